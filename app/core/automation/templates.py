"""Template variables and {{placeholder}} interpolation for automation messages."""

import re
from typing import Any

from app.core.automation.types import TriggerEvent
from app.core.config_file import get_settings

PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")
TAG_RE = re.compile(r"<[^>]*>")


def build_template_variables(event: TriggerEvent) -> dict[str, Any]:
    """Collect the values a message template may reference.

    Top-level scalar fields of the event data are exposed as-is; the nested
    contact/lead/deal/bookingData mappings provide the named variables.
    """
    settings = get_settings()
    data = event.data
    contact = data.get("contact") or {}
    lead = data.get("lead") or {}
    deal = data.get("deal") or {}
    booking = data.get("bookingData") or {}

    variables: dict[str, Any] = {
        key: value
        for key, value in data.items()
        if isinstance(value, (str, int, float)) and not isinstance(value, bool)
    }

    contact_name = lead.get("contact_name")
    if not contact_name and contact:
        full_name = f"{contact.get('first_name') or ''} {contact.get('last_name') or ''}"
        contact_name = full_name.strip() or None

    variables.update(
        {
            "business_name": lead.get("business_name"),
            "contact_name": contact_name,
            "score": lead.get("score"),
            "first_name": contact.get("first_name"),
            "last_name": contact.get("last_name"),
            "email": contact.get("email") or lead.get("email"),
            "phone": contact.get("phone") or lead.get("phone"),
            "company": contact.get("company"),
            "deal_name": deal.get("name"),
            "deal_value": deal.get("value"),
            "stage": deal.get("stage") or data.get("newStage"),
            "booking_time": booking.get("start_time"),
            "booking_link": settings.AUTOMATION_BOOKING_LINK,
            "team_name": settings.AUTOMATION_TEAM_NAME,
        }
    )
    return variables


def interpolate(template: str, variables: dict[str, Any]) -> str:
    """Replace {{name}} placeholders; unknown or empty ones are left untouched."""

    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return PLACEHOLDER_RE.sub(_replace, template)


def strip_tags(html: str) -> str:
    """Plain-text rendition of an HTML body."""
    return TAG_RE.sub("", html)
