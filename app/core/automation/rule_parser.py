"""Rule parser for automation rules.

Stored rules carry free-form JSON for the trigger predicate and the action
configs. The parser turns them into typed variants once, at the rule store
boundary, so the matcher and the executor only ever see validated data.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.automation.types import ActionType, TriggerType

logger = logging.getLogger(__name__)


class RuleParseError(ValueError):
    """Raised when a rule definition or stored rule is malformed."""


class TriggerConfig(BaseModel):
    """Optional predicate keys; unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    score_threshold: float | None = None
    tag_id: str | None = None
    stage_id: str | None = None

    def is_empty(self) -> bool:
        return self.score_threshold is None and not self.tag_id and not self.stage_id


class ActionConfig(BaseModel):
    """Base class for typed action variants."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    ACTION_TYPE: ClassVar[str] = ""

    delay_minutes: int = Field(default=0, ge=0)

    @property
    def action_type(self) -> str:
        return self.ACTION_TYPE

    def config_dict(self) -> dict[str, Any]:
        return self.model_dump(exclude={"delay_minutes"}, exclude_none=True)

    def to_definition(self) -> dict[str, Any]:
        """Serialize back to the stored `{type, delay_minutes, config}` shape."""
        return {
            "type": self.action_type,
            "delay_minutes": self.delay_minutes,
            "config": self.config_dict(),
        }


class SendSmsAction(ActionConfig):
    ACTION_TYPE: ClassVar[str] = ActionType.SEND_SMS.value

    to: str | None = None  # "contact" or a +E.164 number
    template: str = ""


class SendEmailAction(ActionConfig):
    ACTION_TYPE: ClassVar[str] = ActionType.SEND_EMAIL.value

    to: str | None = None  # "contact" or a literal address
    subject: str | None = None
    template: str = ""


class CreateTaskAction(ActionConfig):
    ACTION_TYPE: ClassVar[str] = ActionType.CREATE_TASK.value

    title: str | None = None
    due_days: int | None = None
    assignee: str | None = None
    priority: str | None = None


class UpdateDealAction(ActionConfig):
    ACTION_TYPE: ClassVar[str] = ActionType.UPDATE_DEAL.value

    stage: str | None = None


class WebhookAction(ActionConfig):
    ACTION_TYPE: ClassVar[str] = ActionType.WEBHOOK.value

    url: str | None = None
    headers: dict[str, str] | None = None


class UnknownAction(ActionConfig):
    """An action type this version does not know; kept so it can fail at run time."""

    raw_type: str
    config: dict[str, Any] = Field(default_factory=dict)

    @property
    def action_type(self) -> str:
        return self.raw_type

    def config_dict(self) -> dict[str, Any]:
        return dict(self.config)


ACTION_VARIANTS: dict[str, type[ActionConfig]] = {
    ActionType.SEND_SMS.value: SendSmsAction,
    ActionType.SEND_EMAIL.value: SendEmailAction,
    ActionType.CREATE_TASK.value: CreateTaskAction,
    ActionType.UPDATE_DEAL.value: UpdateDealAction,
    ActionType.WEBHOOK.value: WebhookAction,
}


@dataclass(frozen=True)
class ParsedRule:
    """A stored rule decoded into typed trigger and action variants."""

    id: UUID
    tenant_id: UUID
    name: str
    trigger_type: str
    trigger_value: str | None = None
    trigger_config: TriggerConfig = field(default_factory=TriggerConfig)
    actions: tuple[ActionConfig, ...] = ()
    is_active: bool = True
    run_count: int = 0

    @property
    def known_trigger_type(self) -> TriggerType | None:
        try:
            return TriggerType(self.trigger_type)
        except ValueError:
            return None


def _load_json(value: Any, default: Any) -> Any:
    """Accept JSON columns that come back as text (older SQLite rows)."""
    if value is None or value == "":
        return default
    if isinstance(value, (str, bytes)):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise RuleParseError(f"Invalid JSON: {e}") from e
    return value


class RuleParser:
    """Parser for automation rules."""

    @staticmethod
    def parse_trigger_config(raw: Any) -> TriggerConfig:
        config = _load_json(raw, {})
        if not isinstance(config, dict):
            raise RuleParseError("trigger_config must be an object")
        try:
            return TriggerConfig.model_validate(config)
        except ValidationError as e:
            raise RuleParseError(f"Invalid trigger_config: {e}") from e

    @staticmethod
    def parse_action(raw: Any) -> ActionConfig:
        """Parse one stored action into its typed variant.

        Unknown action types decode to UnknownAction rather than failing, so
        rules written before a type was removed still load.
        """
        if not isinstance(raw, dict):
            raise RuleParseError("Each action must be an object")
        action_type = raw.get("type")
        if not action_type or not isinstance(action_type, str):
            raise RuleParseError("Each action must have a 'type' field")

        config = _load_json(raw.get("config"), {})
        if not isinstance(config, dict):
            raise RuleParseError(f"config for action '{action_type}' must be an object")
        delay_minutes = raw.get("delay_minutes") or 0

        variant = ACTION_VARIANTS.get(action_type)
        try:
            if variant is None:
                return UnknownAction(
                    raw_type=action_type, config=config, delay_minutes=delay_minutes
                )
            return variant.model_validate({**config, "delay_minutes": delay_minutes})
        except ValidationError as e:
            raise RuleParseError(f"Invalid config for action '{action_type}': {e}") from e

    @staticmethod
    def parse_actions(raw: Any) -> tuple[ActionConfig, ...]:
        actions = _load_json(raw, [])
        if not isinstance(actions, list):
            raise RuleParseError("actions must be a list")
        return tuple(RuleParser.parse_action(action) for action in actions)

    @staticmethod
    def parse_rule(rule: Any) -> ParsedRule:
        """Decode a stored rule (ORM row or any object with the same attributes).

        Raises:
            RuleParseError: If the trigger config or an action is malformed
        """
        trigger_value = rule.trigger_value or None
        if trigger_value is not None and not isinstance(trigger_value, str):
            raise RuleParseError("trigger_value must be a string")

        return ParsedRule(
            id=rule.id,
            tenant_id=rule.tenant_id,
            name=rule.name,
            trigger_type=rule.trigger_type,
            trigger_value=trigger_value,
            trigger_config=RuleParser.parse_trigger_config(rule.trigger_config),
            actions=RuleParser.parse_actions(rule.actions),
            is_active=bool(rule.is_active),
            run_count=rule.run_count or 0,
        )

    @staticmethod
    def parse(rule_definition: dict[str, Any]) -> dict[str, Any]:
        """Validate a rule definition submitted for storage.

        Args:
            rule_definition: Rule definition dictionary

        Returns:
            Normalized rule dictionary ready for the repository

        Raises:
            RuleParseError: If rule definition is invalid
        """
        required_fields = ["name", "trigger_type", "actions"]
        for field_name in required_fields:
            if field_name not in rule_definition:
                raise RuleParseError(f"Missing required field: {field_name}")

        trigger_type = rule_definition["trigger_type"]
        if not isinstance(trigger_type, str) or not trigger_type:
            raise RuleParseError("trigger_type must be a non-empty string")
        if trigger_type not in {t.value for t in TriggerType}:
            raise RuleParseError(f"Unknown trigger type: {trigger_type}")

        trigger_value = rule_definition.get("trigger_value")
        if trigger_value is not None and not isinstance(trigger_value, str):
            raise RuleParseError("trigger_value must be a string")

        trigger_config = RuleParser.parse_trigger_config(rule_definition.get("trigger_config"))

        actions = RuleParser.parse_actions(rule_definition["actions"])
        if not actions:
            raise RuleParseError("actions must be a non-empty list")
        for action in actions:
            if isinstance(action, UnknownAction):
                raise RuleParseError(f"Unknown action type: {action.action_type}")

        return {
            "name": rule_definition["name"],
            "description": rule_definition.get("description"),
            "is_active": rule_definition.get("is_active", True),
            "trigger_type": trigger_type,
            "trigger_value": trigger_value or None,
            "trigger_config": trigger_config.model_dump(exclude_none=True),
            "actions": [action.to_definition() for action in actions],
        }

    @staticmethod
    def validate(rule_definition: dict[str, Any]) -> bool:
        """Validate a rule definition.

        Args:
            rule_definition: Rule definition dictionary

        Returns:
            True if valid, False otherwise
        """
        try:
            RuleParser.parse(rule_definition)
            return True
        except (RuleParseError, KeyError, TypeError) as e:
            logger.warning(f"Invalid rule definition: {e}")
            return False
