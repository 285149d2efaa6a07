# safestats/db/mongodb_utils.py
"""
Gerencia a conexão com o MongoDB usando o driver assíncrono Motor:
conectar, fechar, obter a instância do banco e checar conectividade.
"""

# ========================
# --- Importações ---
# ========================
import logging
from typing import Optional
import motor.motor_asyncio
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

# --- Módulos da Aplicação ---
from safestats.core.config import settings

# ========================
# --- Configuração do Logger ---
# ========================
logger = logging.getLogger(__name__)

# ========================
# --- Variáveis Globais de Conexão ---
# ========================
db_client: Optional[AsyncIOMotorClient] = None
db_instance: Optional[AsyncIOMotorDatabase] = None

# ========================
# --- Função de Conexão ---
# ========================
async def connect_to_mongo() -> Optional[AsyncIOMotorDatabase]:
    """
    Estabelece a conexão com o MongoDB.

    Cria o cliente, confirma a conexão com um 'ping' e guarda cliente e banco
    nas variáveis globais do módulo.

    Returns:
        A instância AsyncIOMotorDatabase se a conexão for bem-sucedida, None caso contrário.
    """
    global db_client, db_instance
    logger.info("Tentando conectar ao MongoDB...")
    try:
        db_client = motor.motor_asyncio.AsyncIOMotorClient(
            settings.MONGODB_URL,
            serverSelectionTimeoutMS=5000,
            uuidRepresentation="standard",
        )
        await db_client.admin.command('ping')

        db_instance = db_client[settings.DATABASE_NAME]
        logger.info(f"Conectado com sucesso ao banco de dados: {settings.DATABASE_NAME}")
        return db_instance

    except Exception as e:
        logger.error(f"Não foi possível conectar ao MongoDB: {e}", exc_info=True)
        db_client = None
        db_instance = None
        return None

# ========================
# --- Função de Fechamento de Conexão ---
# ========================
async def close_mongo_connection():
    """Fecha a conexão com o MongoDB, se houver uma aberta."""
    global db_client, db_instance
    if db_client:
        db_client.close()
        db_client = None
        db_instance = None
        logger.info("Conexão com MongoDB fechada.")
    else:
        logger.warning("Tentativa de fechar conexão com MongoDB, mas cliente não estava inicializado.")

# ========================
# --- Função de Acesso ao DB ---
# ========================
def get_database() -> AsyncIOMotorDatabase:
    """
    Retorna a instância global do banco de dados. Usada como dependência FastAPI.

    Raises:
        RuntimeError: Se chamada antes de `connect_to_mongo` inicializar `db_instance`.
    """
    if db_instance is None:
        logger.error("Tentativa de obter instância do DB antes da inicialização!")
        raise RuntimeError("A conexão com o banco de dados não foi inicializada.")
    return db_instance

# ========================
# --- Verificação de Conectividade ---
# ========================
async def check_mongo_connection(db: AsyncIOMotorDatabase) -> bool:
    """
    Executa um 'ping' no banco informado.

    Returns:
        True se o MongoDB respondeu, False em qualquer erro.
    """
    try:
        await db.command("ping")
        return True
    except Exception as e:
        logger.warning(f"Ping no MongoDB falhou: {e}")
        return False
