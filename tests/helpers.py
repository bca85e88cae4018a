"""Factories shared by the automation tests."""

from typing import Any
from uuid import UUID, uuid4

from app.core.automation.rule_parser import ParsedRule, RuleParser
from app.core.automation.types import TriggerEvent


def make_rule(
    trigger_type: str,
    *,
    tenant_id: UUID | None = None,
    trigger_value: str | None = None,
    trigger_config: dict[str, Any] | None = None,
    actions: list[dict[str, Any]] | None = None,
    is_active: bool = True,
    name: str = "Test rule",
) -> ParsedRule:
    """Build a ParsedRule the same way the rule store decodes one."""
    return ParsedRule(
        id=uuid4(),
        tenant_id=tenant_id or uuid4(),
        name=name,
        trigger_type=trigger_type,
        trigger_value=trigger_value,
        trigger_config=RuleParser.parse_trigger_config(trigger_config),
        actions=RuleParser.parse_actions(actions or []),
        is_active=is_active,
    )


def make_event(event_type: str, tenant_id: UUID | None = None, **data: Any) -> TriggerEvent:
    return TriggerEvent(type=event_type, tenant_id=tenant_id or uuid4(), data=data)


def sms_action(to: str = "contact", template: str = "Hello", delay_minutes: int = 0) -> dict:
    return {
        "type": "send_sms",
        "delay_minutes": delay_minutes,
        "config": {"to": to, "template": template},
    }
