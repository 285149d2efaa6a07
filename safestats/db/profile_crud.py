# safestats/db/profile_crud.py
"""
Funções de acesso às coleções dos sub-recursos de perfil
(doação de sangue, contato de confiança, plano de saúde).
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from typing import Dict, Optional, Tuple, Type, Union
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pydantic import BaseModel, ValidationError

# --- Módulos da Aplicação ---
from safestats.models.account import ProfileSlot
from safestats.models.profile import (
    BloodDonation, BloodDonationCreate,
    HealthPlan, HealthPlanCreate,
    TrustedContact, TrustedContactCreate,
)

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)

BLOOD_DONATIONS_COLLECTION = "blood_donations"
TRUSTED_CONTACTS_COLLECTION = "trusted_contacts"
HEALTH_PLANS_COLLECTION = "health_plans"

ProfileRecord = Union[BloodDonation, TrustedContact, HealthPlan]
ProfileInput = Union[BloodDonationCreate, TrustedContactCreate, HealthPlanCreate]

# Coleção e modelo armazenado de cada referência da conta
_SLOTS: Dict[ProfileSlot, Tuple[str, Type[BaseModel]]] = {
    ProfileSlot.BLOOD_DONATION: (BLOOD_DONATIONS_COLLECTION, BloodDonation),
    ProfileSlot.TRUSTED_CONTACT: (TRUSTED_CONTACTS_COLLECTION, TrustedContact),
    ProfileSlot.HEALTH_PLAN: (HEALTH_PLANS_COLLECTION, HealthPlan),
}

# ========================
# --- Funções Auxiliares ---
# ========================
def _get_collection(db: AsyncIOMotorDatabase, slot: ProfileSlot) -> AsyncIOMotorCollection:
    collection_name, _ = _SLOTS[ProfileSlot(slot)]
    return db[collection_name]

# ========================
# --- Operações ---
# ========================
async def create_profile_record(
    db: AsyncIOMotorDatabase,
    slot: ProfileSlot,
    data: ProfileInput
) -> Optional[ProfileRecord]:
    """
    Cria um novo registro de sub-recurso com ID próprio.

    Returns:
        O registro criado, ou None se a inserção falhar.
    """
    _, model = _SLOTS[ProfileSlot(slot)]
    record = model(id=uuid.uuid4(), **data.model_dump())
    collection = _get_collection(db, slot)
    try:
        await collection.insert_one(record.model_dump(mode="json"))
    except Exception as e:
        logger.exception(f"Erro ao inserir registro de '{ProfileSlot(slot).value}': {e}")
        return None
    logger.info(f"Registro de '{ProfileSlot(slot).value}' {record.id} criado.")
    return record


async def get_profile_record(
    db: AsyncIOMotorDatabase,
    slot: ProfileSlot,
    record_id: Optional[uuid.UUID]
) -> Optional[ProfileRecord]:
    """Busca um registro pelo ID; devolve None para ID ausente, inexistente ou inválido."""
    if record_id is None:
        return None
    _, model = _SLOTS[ProfileSlot(slot)]
    record_dict = await _get_collection(db, slot).find_one({"id": str(record_id)})
    if not record_dict:
        return None
    record_dict.pop('_id', None)
    try:
        return model.model_validate(record_dict)
    except ValidationError as e:
        logger.error(f"DB Validation error em '{ProfileSlot(slot).value}' {record_id}: {e}")
        return None


async def delete_profile_record(db: AsyncIOMotorDatabase, slot: ProfileSlot, record_id: uuid.UUID) -> bool:
    result = await _get_collection(db, slot).delete_one({"id": str(record_id)})
    return result.deleted_count == 1

# ========================
# --- Configuração de Índices do Banco de Dados ---
# ========================
async def create_profile_indexes(db: AsyncIOMotorDatabase):
    """Cria o índice único de 'id' em cada coleção de sub-recurso."""
    for slot in ProfileSlot:
        collection = _get_collection(db, slot)
        try:
            await collection.create_index("id", unique=True, name="id_unique_idx")
        except Exception as e:
            logger.error(f"Erro ao criar índices para a coleção '{collection.name}': {e}", exc_info=True)
    logger.info("Índices das coleções de perfil verificados/criados.")
