"""Automation schemas for API requests and responses."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ActionSchema(BaseModel):
    """Action schema for automation rules."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "send_sms",
                "delay_minutes": 0,
                "config": {"to": "contact", "template": "Hi {{first_name}}, thanks!"},
            }
        }
    )

    type: str = Field(
        ..., description="Action type: send_sms, send_email, create_task, update_deal, webhook"
    )
    delay_minutes: int = Field(default=0, ge=0, description="Minutes to wait before running")
    config: dict[str, Any] = Field(default_factory=dict, description="Action-specific config")


class TriggerConfigSchema(BaseModel):
    """Optional trigger predicate keys."""

    score_threshold: float | None = Field(None, description="For lead_score_changed")
    tag_id: str | None = Field(None, description="For tag_added")
    stage_id: str | None = Field(None, description="For deal_stage_changed")


class RuleBase(BaseModel):
    """Base schema for automation rules."""

    name: str = Field(..., description="Rule name", min_length=1, max_length=255)
    description: str | None = Field(None, description="Rule description")
    is_active: bool = Field(default=True, description="Whether rule is active")
    trigger_type: str = Field(..., description="Trigger type (e.g. 'sms_received')")
    trigger_value: str | None = Field(
        None, description="Keyword, stage or tag the trigger must match", max_length=500
    )
    trigger_config: TriggerConfigSchema | None = Field(
        None, description="Additional trigger predicate keys"
    )
    actions: list[ActionSchema] = Field(..., description="Actions to execute", min_length=1)


class RuleCreate(RuleBase):
    """Schema for creating a rule."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Reply to STOP",
                "trigger_type": "sms_received",
                "trigger_value": "stop",
                "actions": [
                    {
                        "type": "send_sms",
                        "config": {"to": "contact", "template": "You have been unsubscribed."},
                    }
                ],
            }
        }
    )


class RuleUpdate(BaseModel):
    """Schema for updating a rule. Only the fields sent are changed."""

    name: str | None = Field(None, description="Rule name", min_length=1, max_length=255)
    description: str | None = Field(None, description="Rule description")
    is_active: bool | None = Field(None, description="Whether rule is active")
    trigger_type: str | None = Field(None, description="Trigger type")
    trigger_value: str | None = Field(None, description="Trigger value", max_length=500)
    trigger_config: TriggerConfigSchema | None = Field(None, description="Trigger config")
    actions: list[ActionSchema] | None = Field(None, description="Actions to execute")


class RuleResponse(BaseModel):
    """Schema for rule response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    description: str | None
    is_active: bool
    trigger_type: str
    trigger_value: str | None
    trigger_config: dict[str, Any] | None
    actions: list[dict[str, Any]]
    run_count: int
    last_run_at: datetime | None
    created_at: datetime
    updated_at: datetime


class AutomationLogResponse(BaseModel):
    """Schema for one executed action."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    rule_id: UUID
    trigger_type: str
    action_type: str
    status: str
    entity_type: str | None
    entity_id: str | None
    result: dict[str, Any] | None
    error_message: str | None
    executed_at: datetime


class TriggerEventRequest(BaseModel):
    """Event submitted for processing. The tenant comes from the request header."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "sms_received",
                "data": {"fromNumber": "+15551234567", "smsBody": "STOP", "contactId": "c1"},
            }
        }
    )

    type: str = Field(..., min_length=1, description="Trigger type")
    data: dict[str, Any] = Field(default_factory=dict, description="Event context fields")


class ActionResultResponse(BaseModel):
    """Outcome of one attempted action."""

    success: bool
    action: str
    message: str | None = None
    error: str | None = None
    external_id: str | None = None


class QueueProcessResponse(BaseModel):
    """Counts from one pass over the delayed-action queue."""

    processed: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
