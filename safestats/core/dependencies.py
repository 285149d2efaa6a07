# safestats/core/dependencies.py
"""
Define as dependências reutilizáveis para a aplicação FastAPI: acesso ao banco,
componentes de segurança construídos a partir das settings, validação do token
de sessão e o serviço de contas.
"""

# ========================
# --- Importações ---
# ========================
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from motor.motor_asyncio import AsyncIOMotorDatabase

# --- Módulos da Aplicação ---
from safestats.core.config import settings
from safestats.core.notifications import NotificationDispatcher, dispatcher
from safestats.core.security import PasswordHasher, SessionTokenService
from safestats.db.mongodb_utils import get_database
from safestats.models.token import SessionClaims
from safestats.services.account_service import AccountService

# ========================
# --- Esquema OAuth2 ---
# ========================
# Token lido do header 'Authorization: Bearer <token>'.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/users/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/users/login", auto_error=False)

# ========================
# --- Componentes de Segurança ---
# ========================
@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache
def get_session_token_service() -> SessionTokenService:
    return SessionTokenService(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.JWT_ISSUER,
        duration_seconds=settings.TOKEN_DURATION_IN_SECONDS,
    )


def get_notification_dispatcher() -> NotificationDispatcher:
    return dispatcher

# ========================
# --- Tipos de Dependência ---
# ========================
DbDep = Annotated[AsyncIOMotorDatabase, Depends(get_database)]
TokenDep = Annotated[str, Depends(oauth2_scheme)]
OptionalTokenDep = Annotated[Optional[str], Depends(optional_oauth2_scheme)]
HasherDep = Annotated[PasswordHasher, Depends(get_password_hasher)]
TokenServiceDep = Annotated[SessionTokenService, Depends(get_session_token_service)]
DispatcherDep = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]

# ========================
# --- Dependência: Sessão Atual ---
# ========================
async def get_current_session(token: TokenDep, tokens: TokenServiceDep) -> SessionClaims:
    """
    Valida o token de sessão do header e devolve suas claims.

    A verificação é feita só com a assinatura e as claims do token, sem
    consultar o banco; operações que alteram a conta conferem se ela ainda
    está ativa.

    Raises:
        HTTPException: Status 401 se o token for inválido ou estiver expirado.
    """
    claims = tokens.verify(token)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


async def get_optional_session(token: OptionalTokenDep, tokens: TokenServiceDep) -> Optional[SessionClaims]:
    """Modo anônimo: devolve as claims de um token válido ou None, sem nunca rejeitar."""
    if not token:
        return None
    return tokens.verify(token)

# ========================
# --- Dependência: Serviço de Contas ---
# ========================
def get_account_service(
    db: DbDep,
    hasher: HasherDep,
    tokens: TokenServiceDep,
    notifier: DispatcherDep,
) -> AccountService:
    return AccountService(db=db, hasher=hasher, tokens=tokens, notifier=notifier, settings=settings)

# ========================
# --- Tipos Anotados para Rotas ---
# ========================
CurrentSession = Annotated[SessionClaims, Depends(get_current_session)]
OptionalSession = Annotated[Optional[SessionClaims], Depends(get_optional_session)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
