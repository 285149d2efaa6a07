# safestats/db/recovery_token_crud.py
"""
Funções de acesso à coleção de tokens de recuperação de senha.

Cada conta tem no máximo um token. Emitir um novo substitui o anterior em uma
única operação de upsert, e o consumo é um delete atômico: entre dois
consumidores concorrentes do mesmo token, apenas um recebe True.
O valor do token nunca é escrito nos logs.
"""

# ========================
# --- Importações ---
# ========================
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pydantic import ValidationError

# --- Módulos da Aplicação ---
from safestats.models.token import RecoveryTokenInDB

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)
RECOVERY_TOKENS_COLLECTION = "recovery_tokens"
RECOVERY_TOKEN_BYTES = 32

# ========================
# --- Funções Auxiliares ---
# ========================
def _get_recovery_tokens_collection(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    return db[RECOVERY_TOKENS_COLLECTION]


def _to_record(token_dict: Optional[dict]) -> Optional[RecoveryTokenInDB]:
    if not token_dict:
        return None
    token_dict.pop('_id', None)
    try:
        return RecoveryTokenInDB.model_validate(token_dict)
    except ValidationError as e:
        logger.error(f"DB Validation error para token de recuperação da conta {token_dict.get('account_id')}: {e}")
        return None


def generate_recovery_token() -> str:
    """Gera um token opaco de 64 caracteres hexadecimais (32 bytes aleatórios)."""
    return secrets.token_hex(RECOVERY_TOKEN_BYTES)


def is_expired(record: RecoveryTokenInDB, now: Optional[datetime] = None) -> bool:
    """True quando `now` passou de `created_at + expiration`."""
    now = now or datetime.now(timezone.utc)
    return now > record.created_at + timedelta(seconds=record.expiration)

# ========================
# --- Operações ---
# ========================
async def issue_or_refresh(db: AsyncIOMotorDatabase, account_id: uuid.UUID, expiration: int) -> str:
    """
    Emite um novo token de recuperação para a conta, substituindo o anterior.

    Args:
        db: Instância da conexão com o banco de dados.
        account_id: Conta dona do token.
        expiration: Validade em segundos a partir de agora.

    Returns:
        O token em texto plano, para compor o link enviado por e-mail.
    """
    record = RecoveryTokenInDB(
        account_id=account_id,
        token=generate_recovery_token(),
        created_at=datetime.now(timezone.utc),
        expiration=expiration,
    )
    collection = _get_recovery_tokens_collection(db)
    await collection.replace_one(
        {"account_id": str(account_id)},
        record.model_dump(mode="json"),
        upsert=True
    )
    logger.info(f"Token de recuperação emitido para a conta {account_id}.")
    return record.token


async def get_by_token(db: AsyncIOMotorDatabase, token: str) -> Optional[RecoveryTokenInDB]:
    collection = _get_recovery_tokens_collection(db)
    return _to_record(await collection.find_one({"token": token}))


async def get_by_account_and_token(
    db: AsyncIOMotorDatabase,
    account_id: uuid.UUID,
    token: str
) -> Optional[RecoveryTokenInDB]:
    collection = _get_recovery_tokens_collection(db)
    return _to_record(await collection.find_one({"account_id": str(account_id), "token": token}))


async def consume(db: AsyncIOMotorDatabase, account_id: uuid.UUID, token: Optional[str] = None) -> bool:
    """
    Remove o token da conta.

    Args:
        token: Se informado, remove apenas se o token armazenado for este.

    Returns:
        True se um documento foi removido por esta chamada.
    """
    query = {"account_id": str(account_id)}
    if token is not None:
        query["token"] = token
    collection = _get_recovery_tokens_collection(db)
    result = await collection.delete_one(query)
    return result.deleted_count == 1


async def purge_expired(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> int:
    """
    Remove todos os tokens expirados.

    A remoção filtra pelo valor do token lido, então um token renovado entre a
    leitura e o delete não é afetado.

    Returns:
        Quantidade de documentos removidos.
    """
    now = now or datetime.now(timezone.utc)
    collection = _get_recovery_tokens_collection(db)
    expired_tokens = []
    async for token_dict in collection.find({}):
        record = _to_record(token_dict)
        if record is not None and is_expired(record, now):
            expired_tokens.append(record.token)

    if not expired_tokens:
        return 0
    result = await collection.delete_many({"token": {"$in": expired_tokens}})
    logger.info(f"{result.deleted_count} token(s) de recuperação expirado(s) removido(s).")
    return result.deleted_count

# ========================
# --- Configuração de Índices do Banco de Dados ---
# ========================
async def create_recovery_token_indexes(db: AsyncIOMotorDatabase):
    """Cria índices únicos em 'account_id' e 'token'."""
    collection = _get_recovery_tokens_collection(db)
    try:
        await collection.create_index("account_id", unique=True, name="account_id_unique_idx")
        await collection.create_index("token", unique=True, name="token_unique_idx")
        logger.info("Índices da coleção 'recovery_tokens' verificados/criados com sucesso.")
    except Exception as e:
        logger.error(f"Erro ao criar índices para a coleção 'recovery_tokens': {e}", exc_info=True)
