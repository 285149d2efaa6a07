# safestats/core/config.py

# ========================
# --- Importações ---
# ========================
import os
import logging
from pathlib import Path
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import EmailStr, Field, RedisDsn, ValidationError, model_validator
from dotenv import load_dotenv

# ===============================
# --- Configuração do Logger ---
# ===============================
logger = logging.getLogger(__name__)

# ===============================
# --- Carregamento do .env ---
# ===============================
# Define o caminho para o arquivo .env na raiz do projeto
dotenv_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), '.env')
# Carrega as variáveis do arquivo .env para o ambiente, se o arquivo existir
loaded = load_dotenv(dotenv_path=dotenv_path)

# Templates de e-mail distribuídos junto com o pacote
DEFAULT_EMAIL_TEMPLATES_DIR = str(Path(__file__).resolve().parent.parent / "email_templates")

# ======================================
# --- Definição das Configurações ---
# ======================================
class Settings(BaseSettings):
    """
    Configurações da aplicação lidas do ambiente usando Pydantic BaseSettings.
    Procura variáveis de ambiente ou variáveis em um arquivo .env.

    A instância é imutável (frozen): é carregada uma única vez no startup e
    repassada aos componentes que precisam dela (hasher, emissor de tokens).
    """
    # =========================
    # --- Config Gerais ---
    # =========================
    PROJECT_NAME: str = Field("SafeStats Server", description="Nome do Projeto")
    API_PREFIX: str = Field("/api", description="Prefixo das rotas da API")

    # =============================
    # --- Configurações MongoDB ---
    # =============================
    MONGODB_URL: str = Field(..., description="URL de conexão completa do MongoDB (obrigatória)")
    DATABASE_NAME: str = Field("safestats_db", description="Nome do banco de dados MongoDB")

    # ===========================
    # --- Configurações JWT ---
    # ===========================
    JWT_SECRET_KEY: str = Field(..., description="Chave secreta forte para assinar tokens JWT (obrigatória)")
    JWT_ALGORITHM: str = Field("HS256", description="Algoritmo de assinatura JWT")
    JWT_ISSUER: str = Field("safestats", description="Identificador do emissor gravado na claim 'iss'")
    TOKEN_DURATION_IN_SECONDS: int = Field(
        60 * 60 * 24,
        gt=0,
        description="Validade do token de sessão em segundos (padrão: 1 dia)"
    )

    # ====================================
    # --- Configurações de Credenciais ---
    # ====================================
    BCRYPT_ROUNDS: int = Field(10, ge=4, le=31, description="Fator de custo do bcrypt para hash de senhas")
    RECOVERY_TOKEN_EXPIRATION_SECONDS: int = Field(
        60 * 60,
        gt=0,
        description="Validade do token de recuperação de senha em segundos (padrão: 1 hora)"
    )
    FRONTEND_URL: str = Field(
        "http://localhost:3000",
        description="URL base do frontend, usada para montar o link de recuperação de senha."
    )

    # ================================
    # --- Configurações de E-mail ---
    # ================================
    MAIL_ENABLED: bool = Field(
            default=False,
            description="Flag para habilitar/desabilitar envio de e-mails globalmente."
    )
    MAIL_USERNAME: Optional[str] = Field(default=None, description="Usuário do servidor SMTP.")
    MAIL_PASSWORD: Optional[str] = Field(default=None, description="Senha do servidor SMTP.")
    MAIL_FROM: Optional[EmailStr] = Field(
        default=None,
        description="Endereço de e-mail remetente."
    )
    MAIL_FROM_NAME: Optional[str] = Field(
        default="Equipe SafeStats",
        description="Nome do remetente exibido no e-mail."
    )
    MAIL_PORT: int = Field(
        default=587,
        description="Porta do servidor SMTP."
    )
    MAIL_SERVER: Optional[str] = Field(
        default=None,
        description="Endereço do servidor SMTP."
    )
    MAIL_STARTTLS: bool = Field(default=True, description="Usar STARTTLS para conexão SMTP.")
    MAIL_SSL_TLS: bool = Field(default=False, description="Usar SSL/TLS direto para conexão SMTP.")
    USE_CREDENTIALS: bool = Field(default=True, description="Usar credenciais (username/password) para SMTP.")
    VALIDATE_CERTS: bool = Field(default=True, description="Validar certificados SSL/TLS do servidor SMTP.")
    EMAIL_TEMPLATES_DIR: str = Field(
        default=DEFAULT_EMAIL_TEMPLATES_DIR,
        description="Diretório dos templates HTML de e-mail."
    )

    # ==============================
    # --- Configuração Redis ---
    # ==============================
    REDIS_URL: Optional[RedisDsn] = Field(
        default=None,
        description="URL do Redis para a fila de notificações (ARQ). Sem ela, os e-mails são enviados em tarefas asyncio."
    )

    # ===============================
    # --- Configuração de Logging ---
    # ===============================
    LOG_LEVEL: str = Field(default="INFO", description="Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    # ===================================
    # --- Configurações CORS ---
    # ===================================
    CORS_ALLOWED_ORIGINS: List[str] = Field(default=[], description="Lista de origens CORS permitidas")

    # ====================================================
    # --- Configuração do Modelo Pydantic BaseSettings ---
    # ====================================================
    model_config = {
        "case_sensitive": False,
        "frozen": True,
    }

    # ===============================
    # --- Validadores ---
    # ===============================
    @model_validator(mode='after')
    def check_mail_config(self) -> 'Settings':
        """Valida se as credenciais de e-mail estão presentes quando habilitado."""
        if self.MAIL_ENABLED and not all([self.MAIL_USERNAME, self.MAIL_PASSWORD, self.MAIL_FROM, self.MAIL_SERVER]):
            raise ValueError(
                "Se MAIL_ENABLED for True, MAIL_USERNAME, MAIL_PASSWORD, MAIL_FROM e MAIL_SERVER devem ser definidos."
            )
        return self

    @model_validator(mode='after')
    def check_jwt_secret(self) -> 'Settings':
        """Avisa quando a chave JWT é curta demais para HS256."""
        if self.JWT_ALGORITHM.startswith("HS") and len(self.JWT_SECRET_KEY) < 32:
            logger.warning("JWT_SECRET_KEY possui menos de 32 caracteres; use uma chave mais longa em produção.")
        return self

# ================================
# --- Criação da Instância ---
# ================================
try:
    settings = Settings()
except ValidationError as e:
    # Campos obrigatórios faltando, tipos inválidos ou falha do check_mail_config
    logger.critical(f"Erro fatal de validação ao carregar configurações: {e}")
    raise e
except Exception as e:
    logger.critical(f"Erro inesperado ao carregar configurações: {e}", exc_info=True)
    raise e
