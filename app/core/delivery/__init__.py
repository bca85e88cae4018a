"""Delivery adapters used by automation actions."""

from app.core.delivery.factory import get_email_sender, get_sms_sender
from app.core.delivery.smtp import SmtpEmailSender
from app.core.delivery.twilio import TwilioSmsSender

__all__ = [
    "SmtpEmailSender",
    "TwilioSmsSender",
    "get_email_sender",
    "get_sms_sender",
]
