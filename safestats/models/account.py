# safestats/models/account.py
"""
Modelos Pydantic da entidade Conta (Account).

Inclui a representação armazenada no banco (`AccountInDB`), o rascunho usado
na criação, um esquema de entrada explícito para cada operação exposta pela API
e a visão pública devolvida em `/users/me`. As chaves JSON trafegam em
camelCase (`confirmPassword`, `preferredLanguage`...).
"""

# ========================
# --- Importações ---
# ========================
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from safestats.models.profile import BloodDonation, HealthPlan, TrustedContact

# ========================
# --- Enumerações ---
# ========================
class PreferredLanguage(str, Enum):
    """Idiomas suportados pela aplicação."""
    PT_BR = "PT-BR"
    EN_US = "EN-US"


class ProfileSlot(str, Enum):
    """Referências de sub-recursos de perfil guardadas na conta."""
    BLOOD_DONATION = "blood_donation"
    TRUSTED_CONTACT = "trusted_contact"
    HEALTH_PLAN = "health_plan"

    @property
    def field_name(self) -> str:
        return f"{self.value}_id"

# ========================
# --- Base camelCase ---
# ========================
class CamelModel(BaseModel):
    """Base para corpos de requisição/resposta com chaves em camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# ========================
# --- Modelos de Persistência ---
# ========================
class AccountDraft(BaseModel):
    """Dados já validados para criar uma conta (senha já hasheada)."""
    name: str
    email: str
    hashed_password: str
    phone: Optional[str] = None
    birthdate: Optional[date] = None
    preferred_language: PreferredLanguage = PreferredLanguage.PT_BR


class AccountInDB(BaseModel):
    """
    Representação completa de uma conta como armazenada no banco de dados.
    Inclui a senha hasheada e o marcador de exclusão lógica; uso interno.
    """
    id: uuid.UUID = Field(..., title="ID Único da Conta")
    name: str = Field(..., title="Nome")
    email: str = Field(..., title="E-mail (comparação exata)")
    hashed_password: str = Field(..., title="Senha Hasheada")
    phone: Optional[str] = Field(None, title="Telefone")
    birthdate: Optional[date] = Field(None, title="Data de Nascimento")
    preferred_language: PreferredLanguage = Field(default=PreferredLanguage.PT_BR, title="Idioma Preferido")
    blood_donation_id: Optional[uuid.UUID] = None
    trusted_contact_id: Optional[uuid.UUID] = None
    health_plan_id: Optional[uuid.UUID] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), title="Data de Criação")
    updated_at: Optional[datetime] = Field(None, title="Data da Última Atualização")
    deleted_at: Optional[datetime] = Field(None, title="Data da Exclusão Lógica")

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None

# ========================
# --- Esquemas de Entrada ---
# ========================
class RegisterRequest(CamelModel):
    """Corpo de `POST /users/register`."""
    name: str = Field(..., min_length=1, max_length=150)
    # A sintaxe do e-mail é validada pelo serviço para responder ERR_INVALID_EMAIL
    email: str
    password: str = Field(..., min_length=1)
    confirm_password: str
    phone: Optional[str] = Field(None, max_length=30)
    birthdate: Optional[date] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "name": "José Pereira da Silva",
                    "email": "jose@email.com",
                    "password": "123456",
                    "confirmPassword": "123456"
                }
            ]
        }
    )


class LoginRequest(CamelModel):
    email: str
    password: str


class DeleteAccountRequest(CamelModel):
    password: str
    password_confirmation: str


class RecoveryRequest(CamelModel):
    email: str


class RecoveryCompletion(CamelModel):
    token: str = Field(..., max_length=256)
    password: str = Field(..., min_length=1)
    confirm_password: str


class PasswordChangeRequest(CamelModel):
    old_password: str
    new_password: str = Field(..., min_length=1)
    confirm_password: str


class LanguageUpdateRequest(CamelModel):
    preferred_language: PreferredLanguage

# ========================
# --- Esquemas de Resposta ---
# ========================
class MessageResponse(BaseModel):
    message: str


class AccountProfile(CamelModel):
    """Visão pública da conta autenticada, sem senha nem marcadores internos."""
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    birthdate: Optional[date] = None
    preferred_language: PreferredLanguage
    blood_donation: Optional[BloodDonation] = None
    trusted_contact: Optional[TrustedContact] = None
    health_plan: Optional[HealthPlan] = None
    created_at: datetime
