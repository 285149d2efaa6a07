# safestats/services/account_service.py
"""
Serviço de ciclo de vida das contas.

Orquestra os stores (contas, tokens de recuperação e sub-recursos de perfil),
o hasher de senhas, o emissor de tokens de sessão e o despacho de
notificações. Cada operação devolve o resultado de sucesso ou levanta uma
subclasse de `AccountError`, que a camada HTTP converte em status e corpo.

Não há transações multi-documento: os passos compostos usam compensação
(o sub-recurso recém-criado é removido se a conta não puder apontar para ele)
e o token de recuperação é reivindicado por um delete atômico antes de a
senha ser gravada.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from motor.motor_asyncio import AsyncIOMotorDatabase

# --- Módulos da Aplicação ---
from safestats.core.config import Settings
from safestats.core.email import (
    build_password_changed_email,
    build_password_recovery_email,
    build_welcome_email,
)
from safestats.core.errors import (
    ERR_EMAIL_ALREADY_USED,
    ERR_INVALID_EMAIL,
    ERR_INVALID_PASS,
    AuthenticationFailure,
    ConflictFailure,
    CorruptCredentialError,
    IntegrityFailure,
    NotFoundFailure,
    TokenSigningError,
    ValidationFailure,
)
from safestats.core.notifications import NotificationDispatcher
from safestats.core.security import PasswordHasher, SessionTokenService
from safestats.db import account_crud, profile_crud, recovery_token_crud
from safestats.db.account_crud import DuplicateEmailError
from safestats.models.account import (
    AccountDraft,
    AccountInDB,
    AccountProfile,
    DeleteAccountRequest,
    LoginRequest,
    PasswordChangeRequest,
    PreferredLanguage,
    ProfileSlot,
    RecoveryCompletion,
    RecoveryRequest,
    RegisterRequest,
)
from safestats.models.profile import (
    BloodDonation, BloodDonationCreate,
    HealthPlan, HealthPlanCreate,
    TrustedContact, TrustedContactCreate,
)

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)

PASSWORD_MISMATCH = "Password and confirmation must be equal"

# ========================
# --- Serviço ---
# ========================
class AccountService:
    """Operações de conta expostas pela API."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        hasher: PasswordHasher,
        tokens: SessionTokenService,
        notifier: NotificationDispatcher,
        settings: Settings,
    ):
        self.db = db
        self.hasher = hasher
        self.tokens = tokens
        self.notifier = notifier
        self.settings = settings

    # === --- Auxiliares --- ===
    async def _get_active_account(self, account_id: uuid.UUID, message: str = "User not found") -> AccountInDB:
        account = await account_crud.get_account_by_id(self.db, account_id)
        if account is None or not account.is_active:
            raise NotFoundFailure(message)
        return account

    def _verify_password(self, plain_password: str, account: AccountInDB) -> bool:
        try:
            return self.hasher.verify(plain_password, account.hashed_password)
        except CorruptCredentialError as e:
            raise IntegrityFailure(f"Hash de senha corrompido na conta {account.id}", e.code) from e

    async def _issue_session_token(self, account: AccountInDB) -> str:
        blood_donation = await profile_crud.get_profile_record(
            self.db, ProfileSlot.BLOOD_DONATION, account.blood_donation_id
        )
        trusted_contact = await profile_crud.get_profile_record(
            self.db, ProfileSlot.TRUSTED_CONTACT, account.trusted_contact_id
        )
        health_plan = await profile_crud.get_profile_record(
            self.db, ProfileSlot.HEALTH_PLAN, account.health_plan_id
        )
        try:
            return self.tokens.issue(account, blood_donation, trusted_contact, health_plan)
        except TokenSigningError as e:
            raise IntegrityFailure(f"Falha ao assinar token de sessão da conta {account.id}: {e}") from e

    # === --- Cadastro e Login --- ===
    async def register(self, request: RegisterRequest) -> AccountInDB:
        """
        Cadastra uma nova conta e despacha o e-mail de boas-vindas.

        Raises:
            ValidationFailure: e-mail inválido ou senha diferente da confirmação.
            ConflictFailure: já existe conta ativa com o e-mail.
        """
        try:
            validate_email(request.email, check_deliverability=False)
        except EmailNotValidError:
            raise ValidationFailure("Invalid e-mail", ERR_INVALID_EMAIL)

        if request.password != request.confirm_password:
            raise ValidationFailure(PASSWORD_MISMATCH, ERR_INVALID_PASS)

        if await account_crud.get_account_by_email(self.db, request.email) is not None:
            raise ConflictFailure("Email already in use", ERR_EMAIL_ALREADY_USED)

        draft = AccountDraft(
            name=request.name,
            email=request.email,
            hashed_password=self.hasher.hash(request.password),
            phone=request.phone,
            birthdate=request.birthdate,
        )
        try:
            account = await account_crud.create_account(self.db, draft)
        except DuplicateEmailError:
            raise ConflictFailure("Email already in use", ERR_EMAIL_ALREADY_USED)
        if account is None:
            raise IntegrityFailure("Falha ao inserir conta no banco de dados.")

        await self.notifier.dispatch(
            build_welcome_email(account.name, account.email, account.preferred_language)
        )
        return account

    async def login(self, request: LoginRequest) -> str:
        """
        Autentica pelo e-mail e senha e devolve um token de sessão.

        Conta inexistente e senha errada produzem a mesma mensagem. "User
        deleted" só aparece quando a senha confere com uma conta excluída.
        """
        account = await account_crud.get_account_by_email(self.db, request.email)
        if account is None:
            deleted = await account_crud.get_account_by_email(self.db, request.email, include_deleted=True)
            if deleted is not None and self._verify_password(request.password, deleted):
                raise AuthenticationFailure("User deleted")
            raise AuthenticationFailure("Invalid credentials")

        if not self._verify_password(request.password, account):
            raise AuthenticationFailure("Invalid credentials")

        logger.info(f"Login bem-sucedido para a conta {account.id}.")
        return await self._issue_session_token(account)

    # === --- Exclusão --- ===
    async def soft_delete(self, account_id: uuid.UUID, request: DeleteAccountRequest) -> None:
        if request.password != request.password_confirmation:
            raise ValidationFailure(PASSWORD_MISMATCH)

        account = await self._get_active_account(account_id, "User not found.")
        if not self._verify_password(request.password, account):
            raise AuthenticationFailure("Invalid password")

        if not await account_crud.soft_delete_account(self.db, account.id, datetime.now(timezone.utc)):
            raise NotFoundFailure("User not found.")

    # === --- Recuperação de Senha --- ===
    async def request_recovery(self, request: RecoveryRequest) -> None:
        """Emite (ou renova) o token de recuperação e envia o link por e-mail."""
        account = await account_crud.get_account_by_email(self.db, request.email)
        if account is None:
            raise NotFoundFailure("User not found")

        expiration = self.settings.RECOVERY_TOKEN_EXPIRATION_SECONDS
        token = await recovery_token_crud.issue_or_refresh(self.db, account.id, expiration)
        await self.notifier.dispatch(
            build_password_recovery_email(
                account.name, account.email, token, expiration, account.preferred_language
            )
        )

    async def complete_recovery(self, request: RecoveryCompletion) -> None:
        """
        Redefine a senha usando um token de recuperação.

        Ordem: confirmação, existência do token, expiração (token expirado é
        removido), reivindicação atômica do token e só então a gravação da
        nova senha. Um token só pode ser usado uma vez.
        """
        if request.password != request.confirm_password:
            raise ValidationFailure(PASSWORD_MISMATCH, ERR_INVALID_PASS)

        record = await recovery_token_crud.get_by_token(self.db, request.token)
        if record is None:
            raise NotFoundFailure("Token not found")

        if recovery_token_crud.is_expired(record):
            await recovery_token_crud.consume(self.db, record.account_id, record.token)
            raise ValidationFailure("Expired token")

        account = await account_crud.get_account_by_id(self.db, record.account_id)
        if account is None or not account.is_active:
            await recovery_token_crud.consume(self.db, record.account_id, record.token)
            raise NotFoundFailure("User not found")

        hashed_password = self.hasher.hash(request.password)
        if not await recovery_token_crud.consume(self.db, record.account_id, record.token):
            # Outro pedido consumiu o mesmo token primeiro
            raise NotFoundFailure("Token not found")

        if not await account_crud.update_password(self.db, account.id, hashed_password):
            raise NotFoundFailure("User not found")

        logger.info(f"Senha da conta {account.id} redefinida via token de recuperação.")
        await self.notifier.dispatch(
            build_password_changed_email(account.name, account.email, account.preferred_language)
        )

    # === --- Alterações Autenticadas --- ===
    async def change_password(self, account_id: uuid.UUID, request: PasswordChangeRequest) -> None:
        if request.new_password != request.confirm_password:
            raise ValidationFailure(PASSWORD_MISMATCH, ERR_INVALID_PASS)

        account = await self._get_active_account(account_id)
        if not self._verify_password(request.old_password, account):
            raise AuthenticationFailure("Invalid password")

        if not await account_crud.update_password(self.db, account.id, self.hasher.hash(request.new_password)):
            raise NotFoundFailure("User not found")

        # Um link de recuperação pendente deixa de valer após a troca
        await recovery_token_crud.consume(self.db, account.id)
        logger.info(f"Senha da conta {account.id} alterada pelo usuário.")
        await self.notifier.dispatch(
            build_password_changed_email(account.name, account.email, account.preferred_language)
        )

    async def update_preferred_language(self, account_id: uuid.UUID, language: PreferredLanguage) -> None:
        await self._get_active_account(account_id)
        if not await account_crud.update_preferred_language(self.db, account_id, language):
            raise NotFoundFailure("User not found")

    async def _replace_profile_record(self, account_id: uuid.UUID, slot: ProfileSlot, data):
        """Cria o novo registro e aponta a conta para ele; desfaz a criação se o vínculo falhar."""
        await self._get_active_account(account_id)

        record = await profile_crud.create_profile_record(self.db, slot, data)
        if record is None:
            raise IntegrityFailure(f"Falha ao criar registro de '{slot.value}' para a conta {account_id}.")

        if not await account_crud.update_profile_link(self.db, account_id, slot, record.id):
            await profile_crud.delete_profile_record(self.db, slot, record.id)
            raise NotFoundFailure("User not found")
        return record

    async def update_blood_donation(self, account_id: uuid.UUID, data: BloodDonationCreate) -> BloodDonation:
        return await self._replace_profile_record(account_id, ProfileSlot.BLOOD_DONATION, data)

    async def update_trusted_contact(self, account_id: uuid.UUID, data: TrustedContactCreate) -> TrustedContact:
        return await self._replace_profile_record(account_id, ProfileSlot.TRUSTED_CONTACT, data)

    async def update_health_plan(self, account_id: uuid.UUID, data: HealthPlanCreate) -> HealthPlan:
        return await self._replace_profile_record(account_id, ProfileSlot.HEALTH_PLAN, data)

    # === --- Consulta --- ===
    async def get_profile(self, account_id: uuid.UUID) -> AccountProfile:
        account = await self._get_active_account(account_id)
        return AccountProfile(
            id=account.id,
            name=account.name,
            email=account.email,
            phone=account.phone,
            birthdate=account.birthdate,
            preferred_language=account.preferred_language,
            blood_donation=await profile_crud.get_profile_record(
                self.db, ProfileSlot.BLOOD_DONATION, account.blood_donation_id
            ),
            trusted_contact=await profile_crud.get_profile_record(
                self.db, ProfileSlot.TRUSTED_CONTACT, account.trusted_contact_id
            ),
            health_plan=await profile_crud.get_profile_record(
                self.db, ProfileSlot.HEALTH_PLAN, account.health_plan_id
            ),
            created_at=account.created_at,
        )
