# safestats/routers/users.py
"""
Rotas de gerenciamento da conta: exclusão lógica, recuperação e troca de
senha, idioma preferido, sub-recursos de perfil e consulta dos próprios dados.
"""

# ========================
# --- Importações ---
# ========================
from typing import Annotated

from fastapi import APIRouter, Body

# --- Módulos da Aplicação ---
from safestats.core.dependencies import AccountServiceDep, CurrentSession
from safestats.models.account import (
    AccountProfile,
    DeleteAccountRequest,
    LanguageUpdateRequest,
    MessageResponse,
    PasswordChangeRequest,
    RecoveryCompletion,
    RecoveryRequest,
)
from safestats.models.profile import BloodDonationCreate, HealthPlanCreate, TrustedContactCreate

# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter(
    tags=["Users"],
)

# ========================
# --- Rotas da API ---
# ========================

# --- Exclusão da Conta ---
@router.post(
    "/delete-user",
    response_model=MessageResponse,
    summary="Exclui logicamente a conta autenticada",
)
async def delete_user(
    session: CurrentSession,
    service: AccountServiceDep,
    payload: Annotated[DeleteAccountRequest, Body(description="Senha e confirmação.")]
):
    """
    Marca a conta como excluída. O registro permanece no banco e o e-mail
    fica livre para um novo cadastro.
    """
    await service.soft_delete(session.sub, payload)
    return MessageResponse(message="User deleted.")

# --- Recuperação de Senha ---
@router.post(
    "/recover-password",
    response_model=MessageResponse,
    summary="Envia um link de recuperação de senha por e-mail",
)
async def recover_password(
    service: AccountServiceDep,
    payload: Annotated[RecoveryRequest, Body()]
):
    await service.request_recovery(payload)
    return MessageResponse(message="Recovery link sent")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    summary="Redefine a senha com o token de recuperação",
)
async def reset_password(
    service: AccountServiceDep,
    payload: Annotated[RecoveryCompletion, Body()]
):
    """O token é de uso único e expira após `RECOVERY_TOKEN_EXPIRATION_SECONDS`."""
    await service.complete_recovery(payload)
    return MessageResponse(message="Password updated")

# --- Alterações da Conta Autenticada ---
@router.put(
    "/password",
    response_model=MessageResponse,
    summary="Altera a senha da conta autenticada",
)
async def change_password(
    session: CurrentSession,
    service: AccountServiceDep,
    payload: Annotated[PasswordChangeRequest, Body()]
):
    await service.change_password(session.sub, payload)
    return MessageResponse(message="Password updated")


@router.put(
    "/preferred-language",
    response_model=MessageResponse,
    summary="Atualiza o idioma preferido (PT-BR ou EN-US)",
)
async def update_preferred_language(
    session: CurrentSession,
    service: AccountServiceDep,
    payload: Annotated[LanguageUpdateRequest, Body()]
):
    await service.update_preferred_language(session.sub, payload.preferred_language)
    return MessageResponse(message="Preferrable language updated")

# --- Sub-recursos de Perfil ---
@router.put(
    "/blood-donation",
    response_model=MessageResponse,
    summary="Registra os dados de doação de sangue",
)
async def update_blood_donation(
    session: CurrentSession,
    service: AccountServiceDep,
    payload: Annotated[BloodDonationCreate, Body()]
):
    await service.update_blood_donation(session.sub, payload)
    return MessageResponse(message="Blood donation updated")


@router.put(
    "/trusted-contact",
    response_model=MessageResponse,
    summary="Registra o contato de confiança",
)
async def update_trusted_contact(
    session: CurrentSession,
    service: AccountServiceDep,
    payload: Annotated[TrustedContactCreate, Body()]
):
    await service.update_trusted_contact(session.sub, payload)
    return MessageResponse(message="Trusted contact updated")


@router.put(
    "/health-plan",
    response_model=MessageResponse,
    summary="Registra o plano de saúde",
)
async def update_health_plan(
    session: CurrentSession,
    service: AccountServiceDep,
    payload: Annotated[HealthPlanCreate, Body()]
):
    await service.update_health_plan(session.sub, payload)
    return MessageResponse(message="Health plan updated")

# --- Dados da Conta Autenticada ---
@router.get(
    "/me",
    response_model=AccountProfile,
    summary="Obtém os dados da conta autenticada",
    response_description="Dados da conta e sub-recursos vinculados (sem senha).",
)
async def read_users_me(session: CurrentSession, service: AccountServiceDep):
    """
    Lê a conta do banco a cada chamada; os dados podem ser mais recentes que
    as claims guardadas no token.
    """
    return await service.get_profile(session.sub)
