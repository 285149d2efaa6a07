# safestats/core/logging_config.py
"""
Configuração do logging da aplicação com Loguru.

Os módulos continuam usando `logging.getLogger(__name__)`; o InterceptHandler
encaminha esses registros para o Loguru, que cuida do formato e da saída.
"""

# ========================
# --- Importações ---
# ========================
import logging
import sys
from loguru import logger as loguru_logger

# Loggers de bibliotecas que só fazem barulho em nível INFO
NOISY_LOGGERS = ("pymongo", "passlib", "asyncio")

# ========================
# --- Handler de Intercepção ---
# ========================
class InterceptHandler(logging.Handler):
    """
    Handler do `logging` que redireciona mensagens para o Loguru,
    preservando o nível e o frame de origem do registro.
    """
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while hasattr(frame, "f_code") and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back # pragma: no cover
            if frame is None: # pragma: no cover
                break # pragma: no cover
            depth += 1 # pragma: no cover

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

# ========================
# --- Função de Setup ---
# ========================
def setup_logging(log_level: str = "INFO"):
    """
    Configura o logging global da aplicação.

    - Remove os handlers padrão do Loguru e adiciona um sink em `sys.stderr`.
    - Faz o `logging` padrão usar o `InterceptHandler`.
    - Silencia o access log do Uvicorn e rebaixa bibliotecas verbosas para WARNING.

    Args:
        log_level: Nível mínimo de log a ser exibido (ex: "INFO", "DEBUG").
    """
    log_level = log_level.upper()

    loguru_logger.remove()

    loguru_logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        enqueue=True,
        diagnose=False   # Evita despejar valores de variáveis (senhas, tokens) nos tracebacks
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("uvicorn.error").propagate = False
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    loguru_logger.disable("httpx")
