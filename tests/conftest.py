# tests/conftest.py
# Inibir warnings de depreciação de bibliotecas
import warnings
warnings.filterwarnings("ignore", category=DeprecationWarning, module="passlib")

# ========================
# --- Configuração .env.test ---
# ========================
from dotenv import load_dotenv
import os
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), '.env.test'))

"""
Este módulo define fixtures do Pytest compartilhadas pela suíte de testes do
SafeStats.

Fixtures incluem:
- Banco MongoDB em memória (`mock_db`, via mongomock-motor), novo a cada teste.
- Dispatcher de notificações substituído por um mock (`mock_notifier`).
- Componentes de segurança com custo de bcrypt baixo para acelerar os testes.
- Cliente HTTP assíncrono (`test_async_client`) com as dependências do FastAPI
  sobrescritas para usar os itens acima.
- Dados e fixtures para cadastrar/logar o Usuário A e obter seu token.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from typing import AsyncGenerator, Dict
from unittest.mock import AsyncMock, MagicMock
import pytest
import pytest_asyncio
from fastapi import status
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

# --- Módulos da Aplicação ---
from safestats.core.config import settings
from safestats.core.dependencies import (
    get_notification_dispatcher,
    get_password_hasher,
    get_session_token_service,
)
from safestats.core.notifications import NotificationDispatcher
from safestats.core.security import PasswordHasher, SessionTokenService
from safestats.db.mongodb_utils import get_database
from safestats.main import app as fastapi_app
from safestats.services.account_service import AccountService

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)

USERS_URL = f"{settings.API_PREFIX}/users"

# ========================
# --- Fixtures de Infraestrutura ---
# ========================
@pytest.fixture
def mock_db():
    """Banco em memória isolado por teste (nome único a cada chamada)."""
    client = AsyncMongoMockClient()
    return client[f"{settings.DATABASE_NAME}_{uuid.uuid4().hex[:8]}"]


@pytest.fixture
def mock_notifier() -> MagicMock:
    """Dispatcher falso: registra as mensagens sem enviar nada."""
    notifier = MagicMock(spec=NotificationDispatcher)
    notifier.dispatch = AsyncMock()
    return notifier


@pytest.fixture
def password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def token_service() -> SessionTokenService:
    return SessionTokenService(
        secret_key=settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
        issuer=settings.JWT_ISSUER,
        duration_seconds=settings.TOKEN_DURATION_IN_SECONDS,
    )


@pytest.fixture
def account_service(mock_db, password_hasher, token_service, mock_notifier) -> AccountService:
    """Serviço de contas sobre o banco em memória."""
    return AccountService(
        db=mock_db,
        hasher=password_hasher,
        tokens=token_service,
        notifier=mock_notifier,
        settings=settings,
    )

# ========================
# --- Fixture Principal: Cliente de Teste HTTP ---
# ========================
@pytest_asyncio.fixture(scope="function")
async def test_async_client(
    mock_db,
    mock_notifier,
    password_hasher,
    token_service,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Cliente HTTP (`AsyncClient` com `ASGITransport`) para a aplicação FastAPI.

    O `ASGITransport` não dispara o lifespan, então nenhuma conexão real com
    MongoDB ou Redis é aberta; banco, hasher, emissor de tokens e dispatcher
    vêm das fixtures via `dependency_overrides`.
    """
    fastapi_app.dependency_overrides[get_database] = lambda: mock_db
    fastapi_app.dependency_overrides[get_notification_dispatcher] = lambda: mock_notifier
    fastapi_app.dependency_overrides[get_password_hasher] = lambda: password_hasher
    fastapi_app.dependency_overrides[get_session_token_service] = lambda: token_service
    try:
        transport = ASGITransport(app=fastapi_app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        fastapi_app.dependency_overrides.clear()

# ========================
# --- Fixtures para Usuário de Teste A ---
# ========================
user_a_data: Dict[str, str] = {
    "name": "A",
    "email": "a@x.com",
    "password": "123456",
    "confirmPassword": "123456",
}


@pytest_asyncio.fixture(scope="function")
async def test_user_a_token(test_async_client: AsyncClient) -> str:
    """
    Cadastra e loga o Usuário A, devolvendo o token de sessão.
    """
    reg_response = await test_async_client.post(f"{USERS_URL}/register", json=user_a_data)
    if reg_response.status_code != status.HTTP_201_CREATED:
        pytest.fail(f"Falha ao registrar Usuário A: {reg_response.status_code} - {reg_response.text}")

    login_payload = {"email": user_a_data["email"], "password": user_a_data["password"]}
    login_response = await test_async_client.post(f"{USERS_URL}/login", json=login_payload)
    if login_response.status_code != status.HTTP_200_OK:
        pytest.fail(f"Falha ao fazer login com Usuário A: {login_response.status_code} - {login_response.text}")
    return login_response.json()["token"]


@pytest.fixture(scope="function")
def auth_headers_a(test_user_a_token: str) -> Dict[str, str]:
    """Cabeçalhos de autenticação (Authorization Bearer) do Usuário A."""
    return {"Authorization": f"Bearer {test_user_a_token}"}
