# safestats/main.py
"""
Ponto de entrada principal e configuração da aplicação FastAPI SafeStats.
Define a instância da aplicação, middlewares, handlers de erro, rotas, ciclo
de vida (lifespan) e o endpoint raiz. Também inclui o setup de logging inicial.
"""

# ========================
# --- Importações ---
# ========================
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from arq import create_pool

# --- Módulos da Aplicação ---
from safestats.routers import auth, users, health
from safestats.db.mongodb_utils import connect_to_mongo, close_mongo_connection
from safestats.db.account_crud import create_account_indexes
from safestats.db.profile_crud import create_profile_indexes
from safestats.db.recovery_token_crud import create_recovery_token_indexes
from safestats.core.config import Settings, settings
from safestats.core.dependencies import OptionalSession
from safestats.core.errors import register_exception_handlers
from safestats.core.logging_config import setup_logging
from safestats.core.notifications import build_redis_settings, dispatcher

# ========================
# --- Configuração de Logging ---
# ========================
setup_logging(log_level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ========================
# --- Função de Setup do Middleware CORS ---
# ========================
def _setup_cors_middleware(app_instance: FastAPI, current_settings: Settings):
    """Configura o middleware CORS para a aplicação."""
    if current_settings.CORS_ALLOWED_ORIGINS:
        logger.info(f"Configurando CORS para origens: {current_settings.CORS_ALLOWED_ORIGINS}")
        app_instance.add_middleware(
            CORSMiddleware,
            allow_origins=current_settings.CORS_ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.warning(
            "Nenhuma origem CORS configurada (settings.CORS_ALLOWED_ORIGINS está vazia). "
            "API pode não ser acessível de frontends em outros domínios."
        )

# ========================
# --- Fila de Notificações ---
# ========================
async def _open_notification_queue(current_settings: Settings):
    """Cria o pool ARQ quando REDIS_URL está definida; sem ele, o envio é local."""
    if not current_settings.REDIS_URL:
        logger.info("REDIS_URL não definida; notificações serão enviadas no processo da API.")
        return None
    try:
        pool = await create_pool(build_redis_settings(str(current_settings.REDIS_URL)))
    except Exception as e:
        logger.error(f"Não foi possível conectar ao Redis para a fila ARQ: {e}. Usando envio local.")
        return None
    dispatcher.attach_pool(pool)
    logger.info("Fila de notificações ARQ conectada.")
    return pool

# ========================
# --- Ciclo de Vida (Lifespan) ---
# ========================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gerencia o ciclo de vida da aplicação.

    Conecta ao MongoDB, cria índices e abre a fila de notificações no startup.
    No shutdown aguarda os envios locais pendentes e fecha as conexões.
    """
    logger.info("Iniciando ciclo de vida da aplicação...")
    db_connection = await connect_to_mongo()

    if db_connection is None:
        logger.critical("Falha fatal ao conectar ao MongoDB na inicialização. App pode não funcionar corretamente.")
        yield
        logger.info("Encerrando ciclo de vida (conexão DB falhou no início).")
        return

    app.state.db = db_connection
    logger.info("Conectado ao MongoDB.")

    try:
        logger.info("Tentando criar/verificar índices...")
        await create_account_indexes(db_connection)
        await create_recovery_token_indexes(db_connection)
        await create_profile_indexes(db_connection)
        logger.info("Criação/verificação de índices concluída.")
    except Exception as e:
        logger.error(f"Erro durante a criação de índices: {e}", exc_info=True)

    pool = await _open_notification_queue(settings)

    logger.info("Aplicação iniciada e pronta.")
    yield

    # Código abaixo é executado no shutdown da aplicação
    logger.info("Iniciando processo de encerramento...")
    await dispatcher.drain()
    if pool is not None:
        dispatcher.attach_pool(None)
        await pool.aclose()
        logger.info("Fila de notificações ARQ fechada.")
    await close_mongo_connection()
    logger.info("Aplicação encerrada.")

# ========================
# --- Instância FastAPI ---
# ========================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API de contas do SafeStats: cadastro, login, recuperação de senha e dados de perfil.",
    version="0.1.0",
    license_info={
        "name": "MIT License",
        "url": "https://opensource.org/licenses/MIT",
    },
    lifespan=lifespan
)

# ========================
# --- Configuração de Middlewares e Handlers ---
# ========================
_setup_cors_middleware(app, settings)
register_exception_handlers(app)

# ========================
# --- Rotas (Routers) ---
# ========================
app.include_router(auth.router, prefix=settings.API_PREFIX + "/users")
app.include_router(users.router, prefix=settings.API_PREFIX + "/users")
app.include_router(health.router)

# ========================
# --- Endpoint Raiz ---
# ========================
@app.get("/", tags=["Root"])
async def read_root(session: OptionalSession):
    """Endpoint raiz para verificar se a API está online. Aceita, mas não exige, um token."""
    if session is not None:
        return {"message": f"Bem-vindo à {settings.PROJECT_NAME}, {session.user.name}!"}
    return {"message": f"Bem-vindo à {settings.PROJECT_NAME}!"}

# ========================
# --- Execução (Uvicorn) ---
# ========================
if __name__ == "__main__": # pragma: no cover
    import uvicorn # pragma: no cover
    logger.info("Iniciando servidor Uvicorn para desenvolvimento...") # pragma: no cover
    uvicorn.run( # pragma: no cover
        "safestats.main:app", # pragma: no cover
        host="0.0.0.0", # pragma: no cover
        port=8000, # pragma: no cover
        reload=True, # pragma: no cover
        log_level=settings.LOG_LEVEL.lower() # pragma: no cover
    )
