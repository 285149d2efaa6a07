# safestats/core/notifications.py
"""
Despacho das notificações de conta em segundo plano.

Com um pool ARQ anexado (REDIS_URL configurada), a mensagem é enfileirada para
o worker. Sem pool, ou se o enfileiramento falhar, o envio roda em uma tarefa
asyncio no próprio processo da API. Em nenhum caso o despacho bloqueia a
resposta HTTP ou propaga erro para o chamador.
"""

# ========================
# --- Importações ---
# ========================
import asyncio
import logging
from typing import Optional, Set

from arq.connections import ArqRedis, RedisSettings

# --- Módulos da Aplicação ---
from safestats.core.email import AccountEmail, send_account_email

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)
SEND_ACCOUNT_EMAIL_JOB = "send_account_email"


def build_redis_settings(redis_url: str) -> RedisSettings:
    """Converte a REDIS_URL (host, porta, banco e senha) nas RedisSettings do ARQ."""
    redis_settings = RedisSettings.from_dsn(str(redis_url))
    logger.info(
        f"RedisSettings configuradas para ARQ: host={redis_settings.host}, "
        f"port={redis_settings.port}, db={redis_settings.database}"
    )
    return redis_settings

# ========================
# --- Dispatcher ---
# ========================
class NotificationDispatcher:

    def __init__(self, pool: Optional[ArqRedis] = None):
        self.pool = pool
        self._pending: Set[asyncio.Task] = set()

    def attach_pool(self, pool: Optional[ArqRedis]):
        """Define (ou remove, com None) o pool ARQ usado para enfileirar."""
        self.pool = pool

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def dispatch(self, email: AccountEmail) -> None:
        """Entrega a mensagem para envio em segundo plano. Nunca levanta exceção."""
        if self.pool is not None:
            try:
                await self.pool.enqueue_job(SEND_ACCOUNT_EMAIL_JOB, email.model_dump())
                logger.debug(f"Notificação '{email.template_name}' enfileirada no ARQ.")
                return
            except Exception as e:
                logger.warning(f"Falha ao enfileirar notificação no ARQ ({e}); enviando no processo da API.")

        task = asyncio.create_task(send_account_email(email))
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Tarefa de envio de notificação cancelada.")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Falha no envio de notificação em segundo plano: {error!r}")

    async def drain(self):
        """Aguarda as tarefas locais pendentes; usado no shutdown da aplicação."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

# ========================
# --- Instância Global ---
# ========================
dispatcher = NotificationDispatcher()
