# safestats/db/account_crud.py
"""
Funções de acesso à coleção de contas no MongoDB (Credential Store).

A unicidade do e-mail vale apenas entre contas ativas: uma conta excluída
logicamente permanece na coleção, mas libera o endereço para um novo cadastro.
Este módulo só persiste; notificações ficam a cargo do chamador.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pydantic import TypeAdapter, ValidationError
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

# --- Módulos da Aplicação ---
from safestats.models.account import AccountDraft, AccountInDB, PreferredLanguage, ProfileSlot

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)
ACCOUNTS_COLLECTION = "accounts"

_datetime_adapter = TypeAdapter(datetime)

# ========================
# --- Exceções ---
# ========================
class DuplicateEmailError(Exception):
    """Já existe uma conta ativa com o e-mail informado."""

    def __init__(self, email: str):
        super().__init__(f"E-mail já utilizado por uma conta ativa: {email}")
        self.email = email

# ========================
# --- Funções Auxiliares (Internas) ---
# ========================
def _get_accounts_collection(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    """Retorna a coleção de contas do banco de dados."""
    return db[ACCOUNTS_COLLECTION]


def _json_datetime(value: datetime) -> str:
    """Serializa um datetime no mesmo formato usado por `model_dump(mode="json")`."""
    return _datetime_adapter.dump_python(value, mode="json")


def _to_account(account_dict: Optional[Dict[str, Any]], context: str) -> Optional[AccountInDB]:
    if not account_dict:
        return None
    account_dict.pop('_id', None)
    try:
        return AccountInDB.model_validate(account_dict)
    except ValidationError as e:
        logger.error(f"DB Validation error {context}: {e}")
        return None


async def _update_active_account(
    db: AsyncIOMotorDatabase,
    account_id: uuid.UUID,
    fields: Dict[str, Any],
    context: str
) -> bool:
    """
    Aplica `$set` em uma conta ativa e atualiza `updated_at`.

    Returns:
        True se uma conta ativa com o ID foi encontrada, False caso contrário.
    """
    collection = _get_accounts_collection(db)
    update_data = dict(fields)
    update_data["updated_at"] = _json_datetime(datetime.now(timezone.utc))
    result = await collection.update_one(
        {"id": str(account_id), "deleted_at": None},
        {"$set": update_data}
    )
    if result.matched_count != 1:
        logger.warning(f"{context}: conta ativa {account_id} não encontrada.")
        return False
    return True

# ========================
# --- Consultas ---
# ========================
async def get_account_by_id(db: AsyncIOMotorDatabase, account_id: uuid.UUID) -> Optional[AccountInDB]:
    """
    Busca uma conta pelo ID, incluindo contas excluídas logicamente.

    Returns:
        Um objeto AccountInDB se encontrado e válido, None caso contrário.
    """
    collection = _get_accounts_collection(db)
    account_dict = await collection.find_one({"id": str(account_id)})
    return _to_account(account_dict, f"get_account_by_id {account_id}")


async def get_account_by_email(
    db: AsyncIOMotorDatabase,
    email: str,
    include_deleted: bool = False
) -> Optional[AccountInDB]:
    """
    Busca uma conta pelo e-mail exatamente como armazenado.

    Args:
        db: Instância da conexão com o banco de dados.
        email: Endereço a ser buscado (comparação exata).
        include_deleted: Se True e não houver conta ativa, devolve a conta
            excluída mais recentemente com esse e-mail.

    Returns:
        Um objeto AccountInDB ou None.
    """
    collection = _get_accounts_collection(db)
    account_dict = await collection.find_one({"email": email, "deleted_at": None})
    if account_dict or not include_deleted:
        return _to_account(account_dict, f"get_account_by_email {email}")

    deleted_dict = await collection.find_one({"email": email}, sort=[("deleted_at", DESCENDING)])
    return _to_account(deleted_dict, f"get_account_by_email (deleted) {email}")

# ========================
# --- Escrita ---
# ========================
async def create_account(db: AsyncIOMotorDatabase, draft: AccountDraft) -> Optional[AccountInDB]:
    """
    Cria uma nova conta.

    Args:
        db: Instância da conexão com o banco de dados.
        draft: Dados validados da conta, com a senha já hasheada.

    Returns:
        A conta criada, ou None em caso de erro inesperado do banco.

    Raises:
        DuplicateEmailError: se já existir conta ativa com o e-mail, seja pela
            checagem prévia ou pelo índice único parcial.
    """
    if await get_account_by_email(db, draft.email) is not None:
        raise DuplicateEmailError(draft.email)

    account = AccountInDB(
        id=uuid.uuid4(),
        created_at=datetime.now(timezone.utc),
        **draft.model_dump()
    )
    collection = _get_accounts_collection(db)

    try:
        insert_result = await collection.insert_one(account.model_dump(mode="json"))
        if not insert_result.acknowledged: # pragma: no cover
            logger.error(f"DB Insert Account Acknowledged False para {account.id}")
            return None
        logger.info(f"Conta {account.id} criada.")
        return account
    except DuplicateKeyError:
        logger.warning("Inserção de conta rejeitada pelo índice único de e-mail (cadastro concorrente).")
        raise DuplicateEmailError(draft.email)
    except Exception as e:
        logger.exception(f"Erro inesperado ao inserir conta no DB: {e}")
        return None


async def soft_delete_account(db: AsyncIOMotorDatabase, account_id: uuid.UUID, when: datetime) -> bool:
    """
    Marca a conta como excluída gravando `deleted_at`.

    Returns:
        True se uma conta ativa foi marcada, False se não existia ou já estava excluída.
    """
    deleted = await _update_active_account(
        db, account_id, {"deleted_at": _json_datetime(when)}, "soft_delete_account"
    )
    if deleted:
        logger.info(f"Conta {account_id} excluída logicamente.")
    return deleted


async def update_password(db: AsyncIOMotorDatabase, account_id: uuid.UUID, hashed_password: str) -> bool:
    return await _update_active_account(
        db, account_id, {"hashed_password": hashed_password}, "update_password"
    )


async def update_preferred_language(
    db: AsyncIOMotorDatabase,
    account_id: uuid.UUID,
    language: PreferredLanguage
) -> bool:
    return await _update_active_account(
        db, account_id, {"preferred_language": PreferredLanguage(language).value}, "update_preferred_language"
    )


async def update_profile_link(
    db: AsyncIOMotorDatabase,
    account_id: uuid.UUID,
    slot: ProfileSlot,
    ref_id: uuid.UUID
) -> bool:
    """Aponta a referência `slot` da conta para o sub-recurso `ref_id`, substituindo a anterior."""
    return await _update_active_account(
        db, account_id, {ProfileSlot(slot).field_name: str(ref_id)}, "update_profile_link"
    )

# ========================
# --- Configuração de Índices do Banco de Dados ---
# ========================
async def create_account_indexes(db: AsyncIOMotorDatabase):
    """
    Cria os índices da coleção de contas.

    O índice de e-mail é único apenas para documentos com `deleted_at` nulo,
    refletindo a regra de unicidade entre contas ativas.
    """
    collection = _get_accounts_collection(db)
    try:
        await collection.create_index("id", unique=True, name="id_unique_idx")
        await collection.create_index(
            "email",
            unique=True,
            name="email_active_unique_idx",
            partialFilterExpression={"deleted_at": {"$type": "null"}},
        )
        logger.info("Índices da coleção 'accounts' ('id', 'email') verificados/criados com sucesso.")
    except Exception as e:
        logger.error(f"Erro ao criar índices para a coleção 'accounts': {e}", exc_info=True)
