"""Build delivery adapters from settings."""

import logging

from app.core.config_file import get_settings
from app.core.delivery.smtp import SmtpEmailSender
from app.core.delivery.twilio import TwilioSmsSender

logger = logging.getLogger(__name__)


def get_sms_sender() -> TwilioSmsSender | None:
    """Twilio sender, or None when credentials are missing."""
    settings = get_settings()
    sender = TwilioSmsSender(
        account_sid=settings.TWILIO_ACCOUNT_SID,
        auth_token=settings.TWILIO_AUTH_TOKEN,
        from_number=settings.TWILIO_PHONE_NUMBER,
        api_base=settings.TWILIO_API_BASE,
    )
    if not sender.is_configured():
        logger.warning(
            "Twilio not configured, SMS automations will fail. "
            "Set TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER to enable SMS."
        )
        return None
    return sender


def get_email_sender() -> SmtpEmailSender | None:
    """SMTP sender, or None when no SMTP host is configured."""
    settings = get_settings()
    if not settings.SMTP_HOST:
        logger.warning("SMTP not configured, email automations will fail. Set SMTP_HOST.")
        return None
    return SmtpEmailSender(
        hostname=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        from_address=settings.SMTP_FROM,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        start_tls=settings.SMTP_USE_TLS,
    )
