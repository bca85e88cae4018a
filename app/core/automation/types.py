"""Core types for the automation engine: events, results and taxonomies."""

from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class TriggerType(str, Enum):
    """CRM events a rule can listen for."""

    LEAD_CREATED = "lead_created"
    CONTACT_CREATED = "contact_created"
    DEAL_CREATED = "deal_created"
    DEAL_STAGE_CHANGED = "deal_stage_changed"
    DEAL_WON = "deal_won"
    DEAL_LOST = "deal_lost"
    LEAD_SCORE_CHANGED = "lead_score_changed"
    TAG_ADDED = "tag_added"
    FORM_SUBMITTED = "form_submitted"
    BOOKING_SCHEDULED = "booking_scheduled"
    NO_RESPONSE = "no_response"
    SMS_RECEIVED = "sms_received"


class ActionType(str, Enum):
    """Side-effecting operations a rule can perform."""

    SEND_SMS = "send_sms"
    SEND_EMAIL = "send_email"
    CREATE_TASK = "create_task"
    UPDATE_DEAL = "update_deal"
    WEBHOOK = "webhook"


class TriggerEvent(BaseModel):
    """Something that just happened in the CRM, fed into the engine."""

    type: str = Field(..., description="Trigger type (see TriggerType)")
    tenant_id: UUID = Field(..., description="Tenant the event belongs to")
    data: dict[str, Any] = Field(
        default_factory=dict,
        description="Context fields (contactId, dealId, fromNumber, smsBody, newStage, ...)",
    )


class ActionResult(BaseModel):
    """Outcome of one attempted action."""

    success: bool
    action: str
    message: str | None = None
    error: str | None = None
    external_id: str | None = Field(
        default=None, description="Provider message id, when a delivery adapter returned one"
    )

    @classmethod
    def failed(cls, action: str, error: str) -> "ActionResult":
        """Build a failed result."""
        return cls(success=False, action=action, error=error)


class DeliveryResult(BaseModel):
    """Result returned by an SMS or email delivery adapter."""

    success: bool
    message_id: str | None = None
    error: str | None = None
