"""Pydantic schemas for API requests and responses."""

from app.schemas.automation import (
    ActionResultResponse,
    ActionSchema,
    AutomationLogResponse,
    QueueProcessResponse,
    RuleCreate,
    RuleResponse,
    RuleUpdate,
    TriggerConfigSchema,
    TriggerEventRequest,
)
from app.schemas.common import (
    PaginationMeta,
    StandardListResponse,
    StandardResponse,
)

__all__ = [
    "ActionResultResponse",
    "ActionSchema",
    "AutomationLogResponse",
    "PaginationMeta",
    "QueueProcessResponse",
    "RuleCreate",
    "RuleResponse",
    "RuleUpdate",
    "StandardListResponse",
    "StandardResponse",
    "TriggerConfigSchema",
    "TriggerEventRequest",
]
