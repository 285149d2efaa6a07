# safestats/core/errors.py
"""
Taxonomia de falhas das operações de conta e seu mapeamento para HTTP.

O serviço de contas levanta subclasses de `AccountError`; os handlers
registrados por `register_exception_handlers` convertem cada uma no corpo
`{"error": ..., "code": ...}` com o status correspondente. Nenhum detalhe
interno (traceback, hash, token) chega ao corpo da resposta.
"""

# ========================
# --- Importações ---
# ========================
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# ========================
# --- Configuração do Logger ---
# ========================
logger = logging.getLogger(__name__)

# ========================
# --- Códigos de Erro ---
# ========================
ERR_INVALID_EMAIL = "ERR_INVALID_EMAIL"
ERR_INVALID_PASS = "ERR_INVALID_PASS"
ERR_EMAIL_ALREADY_USED = "ERR_EMAIL_ALREADY_USED"
ERR_CORRUPT_CREDENTIAL = "ERR_CORRUPT_CREDENTIAL"

# ========================
# --- Hierarquia de Falhas ---
# ========================
class AccountError(Exception):
    """Falha tipada de uma operação de conta."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def to_body(self) -> dict:
        body = {"error": self.message}
        if self.code:
            body["code"] = self.code
        return body


class ValidationFailure(AccountError):
    """Entrada malformada; o cliente pode corrigir e reenviar."""
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationFailure(AccountError):
    """Credenciais ou token inválidos. Nunca indica qual campo estava errado."""
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundFailure(AccountError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictFailure(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST


class IntegrityFailure(AccountError):
    """
    Dado armazenado corrompido ou falha de assinatura. O detalhe fica apenas
    no log; o cliente recebe uma mensagem genérica.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, code: Optional[str] = None):
        super().__init__("Internal server error", code=None)
        self.detail = detail
        self.internal_code = code


class CorruptCredentialError(Exception):
    """Hash de senha armazenado em formato inválido ou não reconhecido."""
    code = ERR_CORRUPT_CREDENTIAL


class TokenSigningError(Exception):
    """Falha ao assinar um token de sessão."""

# ========================
# --- Handlers HTTP ---
# ========================
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    if isinstance(exc, IntegrityFailure):
        logger.error(
            f"Falha de integridade em {request.method} {request.url.path}: "
            f"{exc.detail} (code={exc.internal_code})"
        )
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Corpo fora do esquema esperado vira 400 genérico em vez do 422 do FastAPI."""
    logger.info(f"Corpo inválido em {request.method} {request.url.path}: {len(exc.errors())} erro(s) de validação.")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Invalid data"})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Erros HTTP do framework (token ausente, rota inexistente) no mesmo formato `{"error": ...}`."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
