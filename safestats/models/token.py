# safestats/models/token.py
"""
Modelos relacionados a tokens: a resposta de login, as claims do token de
sessão (JWT) e o registro do token de recuperação de senha.
"""

# ========================
# --- Importações ---
# ========================
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from safestats.models.account import PreferredLanguage

# ========================
# --- Token de Sessão ---
# ========================
class Token(BaseModel):
    """Resposta de um login bem-sucedido."""
    token: str = Field(..., title="Token de Sessão JWT")


class SessionUser(BaseModel):
    """
    Dados do usuário desnormalizados no token no momento da emissão.
    Podem ficar desatualizados até o próximo login.
    """
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    birthdate: Optional[date] = None
    age: Optional[int] = None
    preferred_language: PreferredLanguage = PreferredLanguage.PT_BR
    blood_type: Optional[str] = None
    did_donate_blood: Optional[bool] = None
    legal_representative: Optional[str] = None
    health_plan: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionClaims(BaseModel):
    """Payload completo de um token de sessão válido."""
    sub: uuid.UUID = Field(..., title="ID da Conta (Subject)")
    user: SessionUser
    iss: str = Field(..., title="Emissor")
    iat: int = Field(..., title="Timestamp de Emissão")
    exp: int = Field(..., title="Timestamp de Expiração")

# ========================
# --- Token de Recuperação ---
# ========================
class RecoveryTokenInDB(BaseModel):
    """Token de recuperação de senha; no máximo um por conta."""
    account_id: uuid.UUID
    token: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expiration: int = Field(default=60 * 60, gt=0, title="Validade em segundos")

    model_config = ConfigDict(from_attributes=True)
