"""Trigger matcher for automation rules."""

import logging
from collections.abc import Callable
from typing import Any

from app.core.automation.rule_parser import ParsedRule, TriggerConfig
from app.core.automation.types import TriggerEvent, TriggerType

logger = logging.getLogger(__name__)

Predicate = Callable[[str | None, TriggerConfig, dict[str, Any]], bool]


def _match_sms_received(value: str | None, config: TriggerConfig, data: dict[str, Any]) -> bool:
    sms_body = data.get("smsBody")
    if not value or not isinstance(sms_body, str):
        return False
    return value.casefold() in sms_body.casefold()


def _match_deal_stage_changed(
    value: str | None, config: TriggerConfig, data: dict[str, Any]
) -> bool:
    expected = value or config.stage_id
    new_stage = data.get("newStage")
    if not expected or new_stage is None:
        return False
    return new_stage == expected


def _match_lead_score_changed(
    value: str | None, config: TriggerConfig, data: dict[str, Any]
) -> bool:
    new_score = data.get("newScore")
    if config.score_threshold is None or new_score is None:
        return False
    try:
        return float(new_score) >= config.score_threshold
    except (TypeError, ValueError):
        return False


def _match_tag_added(value: str | None, config: TriggerConfig, data: dict[str, Any]) -> bool:
    expected = config.tag_id or value
    tag_id = data.get("tagId")
    if not expected or tag_id is None:
        return False
    return str(tag_id) == expected


class TriggerMatcher:
    """Decides whether a rule fires for an event of its trigger type.

    The caller has already checked that the rule is active and that its
    trigger type equals the event type. Matching is pure: no I/O, no state.
    """

    PREDICATES: dict[str, Predicate] = {
        TriggerType.SMS_RECEIVED.value: _match_sms_received,
        TriggerType.DEAL_STAGE_CHANGED.value: _match_deal_stage_changed,
        TriggerType.LEAD_SCORE_CHANGED.value: _match_lead_score_changed,
        TriggerType.TAG_ADDED.value: _match_tag_added,
    }

    def matches(self, rule: ParsedRule, event: TriggerEvent) -> bool:
        """Evaluate the rule's predicate against the event.

        Args:
            rule: Parsed rule whose trigger type equals event.type
            event: Incoming event

        Returns:
            True if the rule fires, False otherwise
        """
        value = rule.trigger_value
        config = rule.trigger_config

        # No predicate: fire on every occurrence
        if not value and config.is_empty():
            return True

        predicate = self.PREDICATES.get(rule.trigger_type)
        if predicate is None:
            # Fail closed for predicates nobody knows how to evaluate
            logger.debug(
                f"No predicate for trigger type {rule.trigger_type}, rule {rule.id} does not match"
            )
            return False

        return predicate(value, config, event.data)
