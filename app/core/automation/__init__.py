"""Automation module for rule-based CRM automations."""

from app.core.automation.action_executor import ActionExecutor
from app.core.automation.engine import AutomationEngine
from app.core.automation.rule_parser import ParsedRule, RuleParseError, RuleParser
from app.core.automation.scheduler import QueueScheduler, ScheduledActionProcessor
from app.core.automation.trigger_matcher import TriggerMatcher
from app.core.automation.types import (
    ActionResult,
    ActionType,
    DeliveryResult,
    TriggerEvent,
    TriggerType,
)

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "ActionType",
    "AutomationEngine",
    "DeliveryResult",
    "ParsedRule",
    "QueueScheduler",
    "RuleParseError",
    "RuleParser",
    "ScheduledActionProcessor",
    "TriggerEvent",
    "TriggerMatcher",
    "TriggerType",
]
