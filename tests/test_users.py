# tests/test_users.py
"""
Testes de integração para as rotas de gerenciamento da conta
(`safestats.routers.users`): exclusão lógica, recuperação e troca de senha,
idioma preferido, sub-recursos de perfil e `/users/me`.
"""

# ========================
# --- Importações ---
# ========================
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status
from httpx import AsyncClient

# --- Módulos da Aplicação e Configs de Teste ---
from safestats.db import account_crud, recovery_token_crud
from tests.conftest import USERS_URL, user_a_data

# ========================
# --- Marcador Global de Teste ---
# ========================
pytestmark = pytest.mark.asyncio

# ========================
# --- Auxiliares ---
# ========================
async def _login(client: AsyncClient, password: str):
    return await client.post(f"{USERS_URL}/login", json={"email": user_a_data["email"], "password": password})


async def _issue_recovery_token(client: AsyncClient, mock_db, mock_notifier) -> str:
    """Pede a recuperação e extrai o token do e-mail despachado."""
    response = await client.post(f"{USERS_URL}/recover-password", json={"email": user_a_data["email"]})
    assert response.status_code == status.HTTP_200_OK
    account = await account_crud.get_account_by_email(mock_db, user_a_data["email"])
    stored = await mock_db[recovery_token_crud.RECOVERY_TOKENS_COLLECTION].find_one({"account_id": str(account.id)})
    return stored["token"]

# ========================
# --- Exclusão (/users/delete-user) ---
# ========================
async def test_full_scenario_register_login_delete_mismatch(test_async_client: AsyncClient):
    """Cadastro -> 201, login -> token, exclusão com confirmação diferente -> 400."""
    # --- Arrange ---
    register = await test_async_client.post(f"{USERS_URL}/register", json=user_a_data)
    assert register.status_code == status.HTTP_201_CREATED
    assert register.json() == {"message": "User created"}
    login = await _login(test_async_client, "123456")
    assert login.status_code == status.HTTP_200_OK
    token = login.json()["token"]
    assert token

    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/delete-user",
        json={"password": "123456", "passwordConfirmation": "1234567"},
        headers={"Authorization": f"Bearer {token}"},
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Password and confirmation must be equal"}


async def test_delete_user_success(test_async_client: AsyncClient, auth_headers_a, mock_db):
    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/delete-user",
        json={"password": "123456", "passwordConfirmation": "123456"},
        headers=auth_headers_a,
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "User deleted."}
    stored = await account_crud.get_account_by_email(mock_db, user_a_data["email"], include_deleted=True)
    assert stored is not None
    assert stored.deleted_at is not None


async def test_delete_user_wrong_password(test_async_client: AsyncClient, auth_headers_a):
    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/delete-user",
        json={"password": "errada", "passwordConfirmation": "errada"},
        headers=auth_headers_a,
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid password"}


async def test_delete_user_twice_returns_not_found(test_async_client: AsyncClient, auth_headers_a):
    """O token continua válido após a exclusão, mas a conta já não está ativa."""
    # --- Arrange ---
    payload = {"password": "123456", "passwordConfirmation": "123456"}
    await test_async_client.post(f"{USERS_URL}/delete-user", json=payload, headers=auth_headers_a)

    # --- Act ---
    response = await test_async_client.post(f"{USERS_URL}/delete-user", json=payload, headers=auth_headers_a)

    # --- Assert ---
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "User not found."}


async def test_delete_user_requires_token(test_async_client: AsyncClient):
    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/delete-user", json={"password": "123456", "passwordConfirmation": "123456"}
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Not authenticated"}


async def test_delete_user_invalid_token(test_async_client: AsyncClient):
    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/delete-user",
        json={"password": "123456", "passwordConfirmation": "123456"},
        headers={"Authorization": "Bearer nao.e.um.token"},
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.headers.get("www-authenticate") == "Bearer"
    assert response.json() == {"error": "Invalid token"}

# ========================
# --- Recuperação de Senha ---
# ========================
async def test_recover_password_unknown_email(test_async_client: AsyncClient, mock_notifier):
    # --- Act ---
    response = await test_async_client.post(f"{USERS_URL}/recover-password", json={"email": "ninguem@x.com"})

    # --- Assert ---
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "User not found"}
    mock_notifier.dispatch.assert_not_awaited()


async def test_recover_password_sends_link_without_exposing_token(
    test_async_client: AsyncClient, auth_headers_a, mock_db, mock_notifier
):
    # --- Arrange ---
    mock_notifier.dispatch.reset_mock()

    # --- Act ---
    response = await test_async_client.post(f"{USERS_URL}/recover-password", json={"email": user_a_data["email"]})

    # --- Assert ---
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Recovery link sent"}
    token = (await mock_db[recovery_token_crud.RECOVERY_TOKENS_COLLECTION].find_one({}))["token"]
    assert token not in response.text
    email = mock_notifier.dispatch.await_args.args[0]
    assert email.template_name == "password_recovery.html"
    assert token in email.template_body["recovery_link"]


async def test_recover_password_twice_keeps_single_token(
    test_async_client: AsyncClient, auth_headers_a, mock_db, mock_notifier
):
    # --- Arrange ---
    first = await _issue_recovery_token(test_async_client, mock_db, mock_notifier)

    # --- Act ---
    second = await _issue_recovery_token(test_async_client, mock_db, mock_notifier)

    # --- Assert ---
    assert first != second
    assert await mock_db[recovery_token_crud.RECOVERY_TOKENS_COLLECTION].count_documents({}) == 1


async def test_reset_password_garbage_token(test_async_client: AsyncClient):
    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/reset-password",
        json={"token": "garbage", "password": "novaSenha", "confirmPassword": "novaSenha"},
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "Token not found"}


async def test_reset_password_success_and_token_single_use(
    test_async_client: AsyncClient, auth_headers_a, mock_db, mock_notifier
):
    # --- Arrange ---
    token = await _issue_recovery_token(test_async_client, mock_db, mock_notifier)
    payload = {"token": token, "password": "novaSenha", "confirmPassword": "novaSenha"}

    # --- Act ---
    response = await test_async_client.post(f"{USERS_URL}/reset-password", json=payload)
    reused = await test_async_client.post(f"{USERS_URL}/reset-password", json=payload)

    # --- Assert ---
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Password updated"}
    assert reused.status_code == status.HTTP_404_NOT_FOUND
    assert (await _login(test_async_client, "novaSenha")).status_code == status.HTTP_200_OK
    assert (await _login(test_async_client, "123456")).status_code == status.HTTP_401_UNAUTHORIZED
    assert mock_notifier.dispatch.await_args.args[0].template_name == "password_changed.html"


async def test_reset_password_mismatch_keeps_token(
    test_async_client: AsyncClient, auth_headers_a, mock_db, mock_notifier
):
    # --- Arrange ---
    token = await _issue_recovery_token(test_async_client, mock_db, mock_notifier)

    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/reset-password",
        json={"token": token, "password": "novaSenha", "confirmPassword": "outra"},
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert await recovery_token_crud.get_by_token(mock_db, token) is not None


async def test_reset_password_expired_token(test_async_client: AsyncClient, auth_headers_a, mock_db, mock_notifier):
    # --- Arrange ---
    token = await _issue_recovery_token(test_async_client, mock_db, mock_notifier)
    two_hours_ago = datetime.now(timezone.utc) - timedelta(hours=2)
    await mock_db[recovery_token_crud.RECOVERY_TOKENS_COLLECTION].update_one(
        {"token": token}, {"$set": {"created_at": two_hours_ago.isoformat()}}
    )

    # --- Act ---
    response = await test_async_client.post(
        f"{USERS_URL}/reset-password",
        json={"token": token, "password": "novaSenha", "confirmPassword": "novaSenha"},
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Expired token"}
    assert await recovery_token_crud.get_by_token(mock_db, token) is None

# ========================
# --- Troca de Senha (/users/password) ---
# ========================
async def test_change_password_success(test_async_client: AsyncClient, auth_headers_a, mock_notifier):
    # --- Act ---
    response = await test_async_client.put(
        f"{USERS_URL}/password",
        json={"oldPassword": "123456", "newPassword": "abcdef", "confirmPassword": "abcdef"},
        headers=auth_headers_a,
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Password updated"}
    assert (await _login(test_async_client, "abcdef")).status_code == status.HTTP_200_OK
    assert mock_notifier.dispatch.await_args.args[0].template_name == "password_changed.html"


async def test_change_password_wrong_old_password(test_async_client: AsyncClient, auth_headers_a):
    # --- Act ---
    response = await test_async_client.put(
        f"{USERS_URL}/password",
        json={"oldPassword": "errada", "newPassword": "abcdef", "confirmPassword": "abcdef"},
        headers=auth_headers_a,
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"error": "Invalid password"}


async def test_change_password_invalidates_pending_recovery_token(
    test_async_client: AsyncClient, auth_headers_a, mock_db, mock_notifier
):
    # --- Arrange ---
    token = await _issue_recovery_token(test_async_client, mock_db, mock_notifier)

    # --- Act ---
    await test_async_client.put(
        f"{USERS_URL}/password",
        json={"oldPassword": "123456", "newPassword": "abcdef", "confirmPassword": "abcdef"},
        headers=auth_headers_a,
    )

    # --- Assert ---
    assert await recovery_token_crud.get_by_token(mock_db, token) is None

# ========================
# --- Idioma Preferido ---
# ========================
async def test_update_preferred_language_success(test_async_client: AsyncClient, auth_headers_a, mock_db):
    # --- Act ---
    response = await test_async_client.put(
        f"{USERS_URL}/preferred-language", json={"preferredLanguage": "EN-US"}, headers=auth_headers_a
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": "Preferrable language updated"}
    stored = await account_crud.get_account_by_email(mock_db, user_a_data["email"])
    assert stored.preferred_language.value == "EN-US"


async def test_update_preferred_language_invalid(test_async_client: AsyncClient, auth_headers_a):
    # --- Act ---
    response = await test_async_client.put(
        f"{USERS_URL}/preferred-language", json={"preferredLanguage": "XX-YY"}, headers=auth_headers_a
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_400_BAD_REQUEST

# ========================
# --- Sub-recursos de Perfil e /users/me ---
# ========================
async def test_profile_updates_are_reflected_in_me_and_next_token(
    test_async_client: AsyncClient, auth_headers_a, token_service
):
    # --- Act ---
    blood = await test_async_client.put(
        f"{USERS_URL}/blood-donation",
        json={"bloodType": "O-", "donationLocation": "Hemocentro", "didDonate": True},
        headers=auth_headers_a,
    )
    contact = await test_async_client.put(
        f"{USERS_URL}/trusted-contact",
        json={
            "name": "Maria",
            "email": "maria@x.com",
            "phone": "11999999999",
            "birthdate": "1970-05-01",
            "address": "Rua A, 1",
        },
        headers=auth_headers_a,
    )
    plan = await test_async_client.put(
        f"{USERS_URL}/health-plan",
        json={"institution": "Unimed", "type": "Empresarial", "accommodation": "Apartamento"},
        headers=auth_headers_a,
    )
    me = await test_async_client.get(f"{USERS_URL}/me", headers=auth_headers_a)
    login = await _login(test_async_client, "123456")

    # --- Assert ---
    assert blood.json() == {"message": "Blood donation updated"}
    assert contact.json() == {"message": "Trusted contact updated"}
    assert plan.json() == {"message": "Health plan updated"}
    assert me.status_code == status.HTTP_200_OK
    me_data = me.json()
    assert me_data["email"] == user_a_data["email"]
    assert me_data["bloodDonation"]["bloodType"] == "O-"
    assert me_data["trustedContact"]["name"] == "Maria"
    assert me_data["healthPlan"]["institution"] == "Unimed"
    assert "hashedPassword" not in me_data and "hashed_password" not in me_data

    claims = token_service.verify(login.json()["token"])
    assert claims.user.blood_type == "O-"
    assert claims.user.did_donate_blood is True
    assert claims.user.legal_representative == "Maria"
    assert claims.user.health_plan == "Unimed"


async def test_profile_update_replaces_previous_link(test_async_client: AsyncClient, auth_headers_a):
    # --- Arrange ---
    for location in ("Primeiro", "Segundo"):
        await test_async_client.put(
            f"{USERS_URL}/blood-donation",
            json={"bloodType": "A+", "donationLocation": location},
            headers=auth_headers_a,
        )

    # --- Act ---
    me = await test_async_client.get(f"{USERS_URL}/me", headers=auth_headers_a)

    # --- Assert ---
    assert me.json()["bloodDonation"]["donationLocation"] == "Segundo"
    assert me.json()["bloodDonation"]["didDonate"] is False


async def test_profile_update_invalid_blood_type(test_async_client: AsyncClient, auth_headers_a):
    # --- Act ---
    response = await test_async_client.put(
        f"{USERS_URL}/blood-donation",
        json={"bloodType": "Z+", "donationLocation": "Hemocentro"},
        headers=auth_headers_a,
    )

    # --- Assert ---
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Invalid data"}


async def test_me_after_delete_returns_not_found(test_async_client: AsyncClient, auth_headers_a):
    # --- Arrange ---
    await test_async_client.post(
        f"{USERS_URL}/delete-user",
        json={"password": "123456", "passwordConfirmation": "123456"},
        headers=auth_headers_a,
    )

    # --- Act ---
    response = await test_async_client.get(f"{USERS_URL}/me", headers=auth_headers_a)

    # --- Assert ---
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"error": "User not found"}
