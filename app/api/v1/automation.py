"""Automation router: rule management, event intake and queue processing."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_tenant_id, verify_cron_secret
from app.core.automation.engine import AutomationEngine
from app.core.automation.factory import build_automation_engine, build_queue_processor
from app.core.automation.rule_parser import RuleParseError
from app.core.automation.scheduler import ScheduledActionProcessor
from app.core.automation.service import AutomationService
from app.core.automation.types import TriggerEvent
from app.core.config_file import get_settings
from app.core.db.deps import get_db
from app.core.exceptions import raise_bad_request, raise_not_found
from app.models.automation import AutomationRule
from app.schemas.automation import (
    ActionResultResponse,
    AutomationLogResponse,
    QueueProcessResponse,
    RuleCreate,
    RuleResponse,
    RuleUpdate,
    TriggerEventRequest,
)
from app.schemas.common import PaginationMeta, StandardListResponse, StandardResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_automation_service(db: Annotated[Session, Depends(get_db)]) -> AutomationService:
    """Dependency to get AutomationService."""
    return AutomationService(db)


def get_automation_engine(db: Annotated[Session, Depends(get_db)]) -> AutomationEngine:
    """Dependency to get AutomationEngine."""
    return build_automation_engine(db)


def get_queue_processor(db: Annotated[Session, Depends(get_db)]) -> ScheduledActionProcessor:
    """Dependency to get the delayed-action queue processor."""
    return build_queue_processor(db)


def _get_rule_or_404(
    service: AutomationService, rule_id: UUID, tenant_id: UUID
) -> AutomationRule:
    rule = service.get_rule(rule_id, tenant_id)
    if not rule:
        raise_not_found("Automation rule", str(rule_id))
    return rule


def _pagination(total: int, page: int, page_size: int) -> PaginationMeta:
    total_pages = (total + page_size - 1) // page_size if total > 0 else 0
    return PaginationMeta(total=total, page=page, page_size=page_size, total_pages=total_pages)


@router.post(
    "/rules",
    response_model=StandardResponse[RuleResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create automation rule",
    responses={400: {"description": "Invalid rule definition"}},
)
async def create_rule(
    rule_data: RuleCreate,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
) -> StandardResponse[RuleResponse]:
    """Create a new automation rule."""
    try:
        rule = service.create_rule(tenant_id, rule_data.model_dump(exclude_none=True))
    except RuleParseError as e:
        raise_bad_request("AUTOMATION_RULE_INVALID", str(e))

    return StandardResponse(data=RuleResponse.model_validate(rule))


@router.get(
    "/rules",
    response_model=StandardListResponse[RuleResponse],
    status_code=status.HTTP_200_OK,
    summary="List automation rules",
)
async def list_rules(
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Page size"),
    active_only: bool = Query(default=False, description="Only return active rules"),
) -> StandardListResponse[RuleResponse]:
    """List the tenant's automation rules, oldest first."""
    skip = (page - 1) * page_size
    rules = service.get_all_rules(
        tenant_id=tenant_id, active_only=active_only, skip=skip, limit=page_size
    )
    total = service.count_rules(tenant_id, active_only)

    return StandardListResponse(
        data=[RuleResponse.model_validate(rule) for rule in rules],
        meta=_pagination(total, page, page_size),
    )


@router.get(
    "/rules/{rule_id}",
    response_model=StandardResponse[RuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Get automation rule",
    responses={404: {"description": "Rule not found"}},
)
async def get_rule(
    rule_id: UUID,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
) -> StandardResponse[RuleResponse]:
    """Get a specific automation rule."""
    rule = _get_rule_or_404(service, rule_id, tenant_id)
    return StandardResponse(data=RuleResponse.model_validate(rule))


@router.put(
    "/rules/{rule_id}",
    response_model=StandardResponse[RuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Update automation rule",
    responses={
        400: {"description": "Invalid rule definition"},
        404: {"description": "Rule not found"},
    },
)
async def update_rule(
    rule_id: UUID,
    rule_data: RuleUpdate,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
) -> StandardResponse[RuleResponse]:
    """Update an automation rule. Fields left out of the body are kept."""
    try:
        rule = service.update_rule(rule_id, tenant_id, rule_data.model_dump(exclude_unset=True))
    except RuleParseError as e:
        raise_bad_request("AUTOMATION_RULE_INVALID", str(e))

    if not rule:
        raise_not_found("Automation rule", str(rule_id))
    return StandardResponse(data=RuleResponse.model_validate(rule))


@router.delete(
    "/rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete automation rule",
    responses={404: {"description": "Rule not found"}},
)
async def delete_rule(
    rule_id: UUID,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
) -> None:
    """Delete an automation rule together with its logs and queued actions."""
    if not service.delete_rule(rule_id, tenant_id):
        raise_not_found("Automation rule", str(rule_id))


@router.post(
    "/rules/{rule_id}/toggle",
    response_model=StandardResponse[RuleResponse],
    status_code=status.HTTP_200_OK,
    summary="Activate or deactivate automation rule",
    responses={404: {"description": "Rule not found"}},
)
async def toggle_rule(
    rule_id: UUID,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
) -> StandardResponse[RuleResponse]:
    rule = service.toggle_rule(rule_id, tenant_id)
    if not rule:
        raise_not_found("Automation rule", str(rule_id))
    return StandardResponse(data=RuleResponse.model_validate(rule))


@router.get(
    "/rules/{rule_id}/logs",
    response_model=StandardListResponse[AutomationLogResponse],
    status_code=status.HTTP_200_OK,
    summary="Get rule execution history",
    responses={404: {"description": "Rule not found"}},
)
async def get_rule_logs(
    rule_id: UUID,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    service: Annotated[AutomationService, Depends(get_automation_service)],
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Page size"),
) -> StandardListResponse[AutomationLogResponse]:
    """Get execution history for a rule, newest first."""
    _get_rule_or_404(service, rule_id, tenant_id)

    skip = (page - 1) * page_size
    logs = service.get_logs(rule_id, tenant_id, skip=skip, limit=page_size)
    total = service.count_logs(rule_id, tenant_id)

    return StandardListResponse(
        data=[AutomationLogResponse.model_validate(log) for log in logs],
        meta=_pagination(total, page, page_size),
    )


@router.post(
    "/events",
    response_model=StandardResponse[list[ActionResultResponse]],
    status_code=status.HTTP_200_OK,
    summary="Process a CRM event",
    description="Run every matching automation for the event. Automation failures are "
    "reported in the results, never as an HTTP error.",
)
async def process_event(
    event_data: TriggerEventRequest,
    tenant_id: Annotated[UUID, Depends(get_tenant_id)],
    engine: Annotated[AutomationEngine, Depends(get_automation_engine)],
) -> StandardResponse[list[ActionResultResponse]]:
    event = TriggerEvent(type=event_data.type, tenant_id=tenant_id, data=event_data.data)
    results = await engine.process_automations(event)

    return StandardResponse(
        data=[ActionResultResponse.model_validate(result.model_dump()) for result in results],
        meta={"matched_actions": len(results)},
    )


@router.post(
    "/queue/process",
    response_model=StandardResponse[QueueProcessResponse],
    status_code=status.HTTP_200_OK,
    summary="Process due delayed actions",
    responses={401: {"description": "Invalid cron secret"}},
    description="Run one pass over the delayed-action queue. Meant for an external cron; "
    "requires X-Cron-Secret when AUTOMATION_CRON_SECRET is set.",
)
async def process_queue(
    _: Annotated[None, Depends(verify_cron_secret)],
    processor: Annotated[ScheduledActionProcessor, Depends(get_queue_processor)],
) -> StandardResponse[QueueProcessResponse]:
    counts = await processor.process_due()
    logger.info(f"Queue processed via API: {counts}")
    return StandardResponse(data=QueueProcessResponse(**counts))


@router.get(
    "/queue/process",
    response_model=StandardResponse[dict],
    status_code=status.HTTP_200_OK,
    summary="Queue processor status",
)
async def queue_status() -> StandardResponse[dict]:
    settings = get_settings()
    return StandardResponse(
        data={
            "status": "ok",
            "endpoint": "/api/v1/automations/queue/process",
            "queue_enabled": settings.AUTOMATION_QUEUE_ENABLED,
            "poll_seconds": settings.AUTOMATION_QUEUE_POLL_SECONDS,
        }
    )
