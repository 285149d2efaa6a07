# safestats/worker.py
"""
Este módulo define um worker ARQ (Asynchronous Runtimes for Queueing) para executar
tarefas em segundo plano e agendadas.

Ele inclui:
- O job `send_account_email`, que entrega as notificações de conta enfileiradas
  pela API (boas-vindas, recuperação de senha, senha alterada).
- Uma tarefa periódica (`purge_expired_recovery_tokens`) que remove tokens de
  recuperação de senha já expirados.
- Funções de ciclo de vida (`startup` e `shutdown`) para gerenciar a conexão
  com o banco de dados MongoDB para o worker.
- A classe `WorkerSettings` que configura o comportamento do worker ARQ, incluindo
  os `cron_jobs` e as configurações de conexão com o Redis (usado pelo ARQ como broker).
"""

# ========================
# --- Importações ---
# ========================

# --- Bibliotecas Padrão/Terceiros ---
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import arq.cron
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

# --- Módulos da Aplicação ---
from safestats.core.config import settings
from safestats.core.email import AccountEmail
from safestats.core import email as email_sender
from safestats.core.notifications import build_redis_settings
from safestats.db import recovery_token_crud
from safestats.db.mongodb_utils import close_mongo_connection, connect_to_mongo

# =====================================
# --- Configurações e Constantes ---
# =====================================
logger = logging.getLogger("arq.worker")

# ==================================
# --- Jobs ---
# ==================================
async def send_account_email(ctx: Dict[str, Any], payload: Dict[str, Any]):
    """
    Job ARQ que envia uma notificação de conta enfileirada pela API.

    Args:
        ctx: Dicionário de contexto fornecido pelo worker ARQ.
        payload: `AccountEmail` serializada com `model_dump()`.
    """
    try:
        email = AccountEmail.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Payload de notificação inválido descartado: {e}")
        return
    logger.info(f"Enviando notificação '{email.template_name}' enfileirada.")
    await email_sender.send_account_email(email)


async def purge_expired_recovery_tokens(ctx: Dict[str, Any]) -> int:
    """
    Tarefa periódica ARQ que remove tokens de recuperação expirados.

    Returns:
        Quantidade de tokens removidos (0 se o banco não estiver disponível).
    """
    logger.info("Executando job: Remoção de tokens de recuperação expirados...")
    db: Optional[AsyncIOMotorDatabase] = ctx.get("db")

    if db is None:
        logger.error("Conexão com o banco de dados não disponível no contexto ARQ.")
        return 0

    removed = await recovery_token_crud.purge_expired(db, datetime.now(timezone.utc))
    logger.info(f"Remoção concluída. Total de {removed} token(s) expirado(s) removido(s).")
    return removed

# ==========================================
# --- Funções de Ciclo de Vida do Worker ---
# ==========================================
async def startup(ctx: Dict[str, Any]):
    """
    Função executada quando o worker ARQ é iniciado.
    Estabelece a conexão com o banco de dados e a guarda no contexto.

    Args:
        ctx: Dicionário de contexto do ARQ, compartilhado com os jobs.
    """
    logger.info("Worker ARQ: Iniciando rotinas de startup...")
    db_connection_instance = await connect_to_mongo()
    if db_connection_instance is not None:
        ctx["db"] = db_connection_instance
        logger.info("Worker ARQ: Conexão com MongoDB estabelecida e armazenada no contexto.")
    else:
        logger.error("Worker ARQ: Falha crítica ao conectar ao MongoDB durante o startup. "
                     "A conexão não estará disponível para as tarefas.")
        ctx["db"] = None


async def shutdown(ctx: Dict[str, Any]):
    """
    Função executada quando o worker ARQ está sendo encerrado.
    Fecha a conexão com o banco de dados, se existir.

    Args:
        ctx: Dicionário de contexto do ARQ.
    """
    logger.info("Worker ARQ: Iniciando rotinas de shutdown...")
    if ctx.get("db") is not None:
        await close_mongo_connection()
        logger.info("Worker ARQ: Conexão com MongoDB fechada.")
    else:
        logger.info("Worker ARQ: Nenhuma conexão com MongoDB para fechar (não estava disponível ou já fechada).")

# =======================================
# --- Configurações do Worker ARQ ---
# =======================================
class WorkerSettings:
    """
    Define as configurações para o worker ARQ.
    Isso inclui funções de ciclo de vida (startup/shutdown), os jobs
    enfileirados pela API, tarefas agendadas (`cron_jobs`) e a conexão com o Redis.

    Sem REDIS_URL as settings do Redis ficam nulas e o `arq` tenta o Redis
    local padrão (localhost:6379).
    """
    on_startup = startup
    on_shutdown = shutdown
    functions = [send_account_email]
    cron_jobs = [
        arq.cron(purge_expired_recovery_tokens, minute={0, 30}, run_at_startup=False),
    ]
    if settings.REDIS_URL:
        redis_settings = build_redis_settings(str(settings.REDIS_URL))
    else:
        logger.warning("REDIS_URL não está definida; o worker ARQ usará o Redis local padrão.")
        redis_settings = None
