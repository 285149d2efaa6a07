# safestats/core/security.py
"""
Módulo responsável pelas funcionalidades de segurança da aplicação:
hashing de senhas (bcrypt via Passlib) e emissão/verificação dos tokens de
sessão JWT que carregam as claims do usuário.

Os dois componentes recebem a configuração no construtor e não leem o
ambiente por conta própria; `safestats.core.dependencies` monta uma instância
de cada a partir das settings carregadas no startup.
"""

# ========================
# --- Importações ---
# ========================
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import ExpiredSignatureError, jwt, JWTError
from jose.exceptions import JOSEError
from pydantic import ValidationError

# --- Módulos da Aplicação ---
from safestats.core.errors import CorruptCredentialError, TokenSigningError
from safestats.models.account import AccountInDB
from safestats.models.profile import BloodDonation, HealthPlan, TrustedContact
from safestats.models.token import SessionClaims, SessionUser

# ========================
# --- Configuração do Logger ---
# ========================
logger = logging.getLogger(__name__)

# ========================
# --- Hashing de Senha ---
# ========================
class PasswordHasher:
    """
    Hash e verificação de senhas com bcrypt.

    O fator de custo é fixado na construção e vale para todo o processo.
    """

    def __init__(self, rounds: int):
        self.rounds = rounds
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        """Gera um hash bcrypt com salt aleatório para a senha fornecida."""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verifica uma senha em texto plano contra o hash armazenado.

        Raises:
            CorruptCredentialError: se o hash armazenado não for reconhecido
                pelo Passlib (formato inválido, vazio ou ausente).
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning("Hash de senha armazenado em formato inválido.")
            raise CorruptCredentialError(str(e)) from e

# ========================
# --- Funções Auxiliares ---
# ========================
def calculate_age(birthdate: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Idade em anos completos na data `today` (padrão: hoje em UTC)."""
    if birthdate is None:
        return None
    today = today or datetime.now(timezone.utc).date()
    had_birthday = (today.month, today.day) >= (birthdate.month, birthdate.day)
    return today.year - birthdate.year - (0 if had_birthday else 1)


def build_session_user(
    account: AccountInDB,
    blood_donation: Optional[BloodDonation] = None,
    trusted_contact: Optional[TrustedContact] = None,
    health_plan: Optional[HealthPlan] = None,
    today: Optional[date] = None,
) -> SessionUser:
    """Monta as claims desnormalizadas do usuário para o token de sessão."""
    return SessionUser(
        id=account.id,
        name=account.name,
        email=account.email,
        phone=account.phone,
        birthdate=account.birthdate,
        age=calculate_age(account.birthdate, today),
        preferred_language=account.preferred_language,
        blood_type=blood_donation.blood_type.value if blood_donation else None,
        did_donate_blood=blood_donation.did_donate if blood_donation else None,
        legal_representative=trusted_contact.name if trusted_contact else None,
        health_plan=health_plan.institution if health_plan else None,
    )

# ========================
# --- Tokens de Sessão (JWT) ---
# ========================
class SessionTokenService:
    """
    Emite e verifica tokens de sessão assinados.

    Os tokens são autocontidos: a verificação não consulta o banco. Não há
    revogação; um token emitido vale até `exp`, mesmo após a exclusão da conta.
    """

    def __init__(self, secret_key: str, algorithm: str, issuer: str, duration_seconds: int):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.duration_seconds = duration_seconds

    def issue(
        self,
        account: AccountInDB,
        blood_donation: Optional[BloodDonation] = None,
        trusted_contact: Optional[TrustedContact] = None,
        health_plan: Optional[HealthPlan] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Cria um token de sessão para a conta.

        Args:
            account: Conta autenticada.
            blood_donation, trusted_contact, health_plan: Sub-recursos já
                resolvidos; entram no token como campos derivados.
            now: Instante de emissão (padrão: agora em UTC).

        Returns:
            O token JWT codificado.

        Raises:
            TokenSigningError: se a biblioteca JOSE não conseguir assinar.
        """
        now = now or datetime.now(timezone.utc)
        expire = now + timedelta(seconds=self.duration_seconds)
        session_user = build_session_user(account, blood_donation, trusted_contact, health_plan, today=now.date())

        to_encode = {
            "sub": str(account.id),
            "user": session_user.model_dump(mode="json", by_alias=True),
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        try:
            return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)
        except JOSEError as e:
            raise TokenSigningError(str(e)) from e

    def verify(self, token: str) -> Optional[SessionClaims]:
        """
        Decodifica e valida um token de sessão.

        Verifica assinatura, emissor, expiração e a estrutura das claims.

        Returns:
            `SessionClaims` se o token for válido, None caso contrário.
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require_exp": True, "require_iat": True, "require_sub": True},
            )
            return SessionClaims.model_validate(payload)
        except ExpiredSignatureError:
            logger.info("Token de sessão expirado.")
            return None
        except (JWTError, ValidationError) as e:
            logger.warning(f"Token de sessão rejeitado: {type(e).__name__}")
            return None
