"""Structured logging configuration for application and automation events."""

import json
import logging
import sys
from datetime import datetime, timezone

from app.core.config_file import get_settings

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging() -> None:
    """Attach a console handler to the 'app' logger.

    Safe to call more than once: the handler is only added the first time.
    """
    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    app_logger = logging.getLogger("app")
    app_logger.setLevel(level)

    if app_logger.handlers:
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if settings.LOG_FORMAT == "json":
        console_handler.setFormatter(JsonFormatter())
    else:
        console_handler.setFormatter(
            logging.Formatter(HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
    app_logger.addHandler(console_handler)


def mask_email(email: str) -> str:
    """
    Mask email address for logging (show only first 3 chars and domain).

    Args:
        email: Email address to mask.

    Returns:
        Masked email string (e.g., "tes***@example.com").
    """
    if not email or "@" not in email:
        return "***"

    local_part, domain = email.split("@", 1)

    if len(local_part) <= 3:
        masked_local = "*" * len(local_part)
    else:
        masked_local = local_part[:3] + "***"

    return f"{masked_local}@{domain}"


def mask_phone(phone: str) -> str:
    """
    Mask phone number for logging (keep only the last 4 digits).

    Args:
        phone: Phone number to mask.

    Returns:
        Masked phone string (e.g., "***4567").
    """
    if not phone or len(phone) <= 4:
        return "***"
    return "***" + phone[-4:]
