"""SMTP email delivery adapter."""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid

import aiosmtplib

from app.core.automation.types import DeliveryResult
from app.core.logging import mask_email

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """Send multipart (text + HTML) email over SMTP."""

    def __init__(
        self,
        hostname: str,
        port: int,
        from_address: str,
        username: str | None = None,
        password: str | None = None,
        start_tls: bool = True,
    ):
        self.hostname = hostname
        self.port = port
        self.from_address = from_address
        self.username = username or None
        self.password = password or None
        self.start_tls = start_tls

    def build_message(
        self, to: str, subject: str, html_body: str, text_body: str
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self.from_address
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        # Clients render the last part they support, so HTML goes last
        message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))
        return message

    async def send_email(
        self, to: str, subject: str, html_body: str, text_body: str
    ) -> DeliveryResult:
        message = self.build_message(to, subject, html_body, text_body)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {mask_email(to)}: {e}")
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        logger.info(f"Email sent successfully to {mask_email(to)}")
        return DeliveryResult(success=True, message_id=message["Message-ID"])
