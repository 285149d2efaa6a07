# safestats/routers/auth.py
"""
Rotas públicas de autenticação: cadastro de conta e login (emissão do token
de sessão JWT).
"""

# ========================
# --- Importações ---
# ========================
from typing import Annotated

from fastapi import APIRouter, Body, status

# --- Módulos da Aplicação ---
from safestats.core.dependencies import AccountServiceDep
from safestats.models.account import LoginRequest, MessageResponse, RegisterRequest
from safestats.models.token import Token

# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter(
    tags=["Authentication"],
)

# ========================
# --- Rotas da API ---
# ========================

# --- Endpoint de Registro ---
@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Registra uma nova conta",
    response_description="Confirmação do cadastro.",
)
async def register_user(
    service: AccountServiceDep,
    user_in: Annotated[RegisterRequest, Body(description="Dados da nova conta.")]
):
    """
    Cadastra uma conta com senha hasheada e idioma padrão PT-BR.

    Valida o e-mail, a confirmação de senha e a unicidade do e-mail entre as
    contas ativas. O e-mail de boas-vindas é enviado em segundo plano.
    """
    await service.register(user_in)
    return MessageResponse(message="User created")

# --- Endpoint de Login ---
@router.post(
    "/login",
    response_model=Token,
    summary="Autentica a conta e obtém um token de sessão JWT",
    response_description="Token de sessão JWT.",
)
async def login(
    service: AccountServiceDep,
    credentials: Annotated[LoginRequest, Body(description="E-mail e senha.")]
):
    token = await service.login(credentials)
    return Token(token=token)
