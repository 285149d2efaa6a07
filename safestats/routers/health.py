# safestats/routers/health.py

# ========================
# --- Importações ---
# ========================
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError

from safestats.core import config
from safestats.core.dependencies import DbDep
from safestats.db.mongodb_utils import check_mongo_connection


# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter()


# ========================
# --- Funções Auxiliares ---
# ========================
async def check_redis_connection(redis_url: str) -> bool:
    client = Redis.from_url(redis_url)
    try:
        await client.ping()
        return True
    except (RedisError, OSError):
        return False
    finally:
        await client.aclose()


# ========================
# --- Rotas da API ---
# ========================
@router.get("/health", tags=["Health"])
async def health_check(db: DbDep):
    # Redis só é verificado quando a fila ARQ está configurada
    redis_url = config.settings.REDIS_URL
    if redis_url and not await check_redis_connection(str(redis_url)):
        return JSONResponse(content={"status": "error", "message": "Redis não está disponível"}, status_code=503)

    if not await check_mongo_connection(db):
        return JSONResponse(content={"status": "error", "message": "MongoDB não está disponível"}, status_code=503)

    return JSONResponse(content={"status": "ok"})
