"""API dependencies shared by the v1 routers."""

import hmac
from typing import Annotated
from uuid import UUID

from fastapi import Header, status

from app.core.config_file import get_settings
from app.core.db.deps import get_db
from app.core.exceptions import APIException, raise_unauthorized

__all__ = [
    "get_db",
    "get_tenant_id",
    "verify_cron_secret",
]


def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header(description="Tenant the request acts on")] = None,
) -> UUID:
    """Tenant ID from the X-Tenant-ID header.

    Raises:
        APIException: 400 if the header is missing or not a UUID
    """
    if not x_tenant_id:
        raise APIException(
            code="TENANT_HEADER_INVALID",
            message="X-Tenant-ID header is required",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    try:
        return UUID(x_tenant_id)
    except ValueError:
        raise APIException(
            code="TENANT_HEADER_INVALID",
            message=f"X-Tenant-ID header is not a valid UUID: {x_tenant_id}",
            status_code=status.HTTP_400_BAD_REQUEST,
        ) from None


def verify_cron_secret(
    x_cron_secret: Annotated[str | None, Header(description="Shared cron secret")] = None,
) -> None:
    """Check X-Cron-Secret when AUTOMATION_CRON_SECRET is set; open otherwise.

    Raises:
        APIException: 401 if the secret does not match
    """
    expected = get_settings().AUTOMATION_CRON_SECRET
    if not expected:
        return
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        raise_unauthorized(code="CRON_UNAUTHORIZED", message="Invalid cron secret")
