# safestats/core/email.py
"""
Este módulo lida com o envio de e-mails, utilizando a biblioteca FastAPI-Mail.
Inclui a configuração da conexão SMTP, a função de envio assíncrono e os
construtores das mensagens de conta (boas-vindas, recuperação de senha e aviso
de senha alterada), cada uma com versão HTML (template) e texto puro.
"""

# ========================
# --- Importações ---
# ========================
import logging
from pathlib import Path
from typing import List, Optional, Dict, Any
from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType
from pydantic import BaseModel, EmailStr

# --- Módulos da Aplicação ---
from safestats.core.config import settings
from safestats.models.account import PreferredLanguage

# ========================
# --- Configuração do Logger ---
# ========================
logger = logging.getLogger(__name__)

# ========================
# --- Configuração FastMail ---
# ========================
conf = ConnectionConfig(
    MAIL_USERNAME=settings.MAIL_USERNAME or "",
    MAIL_PASSWORD=settings.MAIL_PASSWORD or "",
    MAIL_FROM=settings.MAIL_FROM or "help.safestats@gmail.com",
    MAIL_PORT=settings.MAIL_PORT,
    MAIL_SERVER=settings.MAIL_SERVER or "",
    MAIL_FROM_NAME=settings.MAIL_FROM_NAME or "Equipe SafeStats",
    MAIL_STARTTLS=settings.MAIL_STARTTLS,
    MAIL_SSL_TLS=settings.MAIL_SSL_TLS,
    USE_CREDENTIALS=settings.USE_CREDENTIALS,
    VALIDATE_CERTS=settings.VALIDATE_CERTS,
    TEMPLATE_FOLDER=Path(settings.EMAIL_TEMPLATES_DIR),
)

# ========================
# --- Instância do FastMail ---
# ========================
fm = FastMail(conf)

# ========================
# --- Mensagem de Conta ---
# ========================
class AccountEmail(BaseModel):
    """Mensagem pronta para envio; serializável para a fila do worker."""
    subject: str
    recipient: str
    template_name: str
    template_body: Dict[str, Any]
    plain_text_body: str

# ========================
# --- Função Principal de Envio ---
# ========================
async def send_email_async(
    subject: str,
    recipient_to: List[EmailStr],
    body: Dict[str, Any],
    template_name: Optional[str] = None,
    plain_text_body: Optional[str] = None
):
    """
    Envia um e-mail de forma assíncrona.

    Verifica se o envio de e-mail está habilitado e se as credenciais
    necessárias estão configuradas antes de tentar o envio. Erros de envio
    são registrados no log e não propagados.

    Args:
        subject: Assunto do e-mail.
        recipient_to: Lista de e-mails dos destinatários.
        body: Dicionário com variáveis para o template HTML (se usado).
        template_name: Nome do arquivo do template HTML.
        plain_text_body: Conteúdo em texto puro (usado se template_name não for fornecido).
    """
    if not settings.MAIL_ENABLED:
        logger.warning("Envio de e-mail desabilitado nas configurações (MAIL_ENABLED=false).")
        return

    if not all([settings.MAIL_USERNAME, settings.MAIL_PASSWORD, settings.MAIL_FROM, settings.MAIL_SERVER]):
        logger.error("Configurações essenciais de e-mail ausentes. Não foi possível enviar.")
        return

    message = MessageSchema(
        subject=subject,
        recipients=recipient_to,
        template_body=body if template_name else None,
        body=plain_text_body if not template_name else None,
        subtype=MessageType.html if template_name else MessageType.plain,
    )

    try:
        logger.info(f"Tentando enviar e-mail para {recipient_to} com assunto '{subject}'...")
        await fm.send_message(message, template_name=template_name)
        logger.info(f"E-mail enviado com sucesso para {recipient_to}.")
    except Exception as e:
        logger.exception(f"Erro ao enviar e-mail para {recipient_to}: {e}")


async def send_account_email(email: AccountEmail):
    await send_email_async(
        subject=email.subject,
        recipient_to=[email.recipient],
        body=email.template_body,
        template_name=email.template_name,
        plain_text_body=email.plain_text_body,
    )

# ========================
# --- Textos por Idioma ---
# ========================
# Cada tipo de mensagem tem assunto, template HTML e texto puro em cada idioma.
_MESSAGES = {
    "welcome": {
        PreferredLanguage.PT_BR: {
            "subject": "Seja bem-vindo ao SafeStats 🥰",
            "template": "welcome.html",
            "text": "Olá {name},\nSeja bem-vindo ao SafeStats! Ficamos muito felizes com sua presença!",
        },
        PreferredLanguage.EN_US: {
            "subject": "Welcome to SafeStats 🥰",
            "template": "welcome_en.html",
            "text": "Hello {name},\nWelcome to SafeStats! We are very happy to have you with us!",
        },
    },
    "password_recovery": {
        PreferredLanguage.PT_BR: {
            "subject": "SafeStats: recuperação de senha",
            "template": "password_recovery.html",
            "text": (
                "Olá {name},\n"
                "Recebemos um pedido para redefinir sua senha no {project_name}.\n"
                "Acesse o link abaixo em até {expiration_minutes} minutos:\n"
                "{recovery_link}\n"
                "Se você não fez este pedido, ignore este e-mail."
            ),
        },
        PreferredLanguage.EN_US: {
            "subject": "SafeStats: password recovery",
            "template": "password_recovery_en.html",
            "text": (
                "Hello {name},\n"
                "We received a request to reset your {project_name} password.\n"
                "Open the link below within {expiration_minutes} minutes:\n"
                "{recovery_link}\n"
                "If you did not make this request, please ignore this e-mail."
            ),
        },
    },
    "password_changed": {
        PreferredLanguage.PT_BR: {
            "subject": "SafeStats: sua senha foi alterada",
            "template": "password_changed.html",
            "text": (
                "Olá {name},\n"
                "A senha da sua conta no {project_name} foi alterada.\n"
                "Se não foi você, solicite a recuperação de senha imediatamente."
            ),
        },
        PreferredLanguage.EN_US: {
            "subject": "SafeStats: your password was changed",
            "template": "password_changed_en.html",
            "text": (
                "Hello {name},\n"
                "The password of your {project_name} account was changed.\n"
                "If this was not you, request a password recovery right away."
            ),
        },
    },
}

# ========================
# --- Construtores de Mensagens ---
# ========================
def build_recovery_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"


def _build_account_email(kind: str, email: str, language: PreferredLanguage, **fields: Any) -> AccountEmail:
    texts = _MESSAGES[kind][PreferredLanguage(language)]
    template_body = {"user_name": fields["name"], "project_name": settings.PROJECT_NAME}
    template_body.update({key: value for key, value in fields.items() if key != "name"})
    return AccountEmail(
        subject=texts["subject"],
        recipient=email,
        template_name=texts["template"],
        template_body=template_body,
        plain_text_body=texts["text"].format(project_name=settings.PROJECT_NAME, **fields),
    )


def build_welcome_email(
    name: str,
    email: str,
    language: PreferredLanguage = PreferredLanguage.PT_BR
) -> AccountEmail:
    return _build_account_email("welcome", email, language, name=name)


def build_password_recovery_email(
    name: str,
    email: str,
    token: str,
    expiration_seconds: int,
    language: PreferredLanguage = PreferredLanguage.PT_BR
) -> AccountEmail:
    """
    Mensagem com o link de redefinição de senha.

    O token só aparece no corpo do e-mail; nunca em logs ou respostas HTTP.
    """
    return _build_account_email(
        "password_recovery",
        email,
        language,
        name=name,
        recovery_link=build_recovery_link(token),
        expiration_minutes=max(1, expiration_seconds // 60),
    )


def build_password_changed_email(
    name: str,
    email: str,
    language: PreferredLanguage = PreferredLanguage.PT_BR
) -> AccountEmail:
    return _build_account_email("password_changed", email, language, name=name)
