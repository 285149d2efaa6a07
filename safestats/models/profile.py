# safestats/models/profile.py
"""
Modelos Pydantic dos sub-recursos de perfil ligados a uma conta:
doação de sangue, contato de confiança e plano de saúde.

Cada atualização cria um novo registro; a conta passa a apontar para ele.
"""

# ========================
# --- Importações ---
# ========================
import uuid
from datetime import date
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ========================
# --- Enumerações ---
# ========================
class BloodType(str, Enum):
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"

# ========================
# --- Doação de Sangue ---
# ========================
class BloodDonationCreate(BaseModel):
    blood_type: BloodType = Field(..., title="Tipo Sanguíneo")
    donation_location: str = Field(..., min_length=1, max_length=200, title="Local de Doação")
    did_donate: bool = Field(default=False, title="Já Doou")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BloodDonation(BloodDonationCreate):
    id: uuid.UUID

# ========================
# --- Contato de Confiança ---
# ========================
class TrustedContactCreate(BaseModel):
    """O nome do contato de confiança vai para o token como representante legal."""
    name: str = Field(..., min_length=1, max_length=150)
    email: str = Field(..., max_length=254)
    phone: str = Field(..., min_length=1, max_length=30)
    birthdate: date
    address: str = Field(..., min_length=1, max_length=300)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TrustedContact(TrustedContactCreate):
    id: uuid.UUID

# ========================
# --- Plano de Saúde ---
# ========================
class HealthPlanCreate(BaseModel):
    institution: str = Field(..., min_length=1, max_length=150, title="Operadora")
    type: str = Field(..., min_length=1, max_length=100, title="Tipo do Plano")
    accommodation: str = Field(..., min_length=1, max_length=100, title="Acomodação")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthPlan(HealthPlanCreate):
    id: uuid.UUID
