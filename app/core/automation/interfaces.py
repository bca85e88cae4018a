"""Collaborator contracts consumed by the automation engine."""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

from app.core.automation.types import DeliveryResult

if TYPE_CHECKING:
    from app.core.automation.rule_parser import ParsedRule


class RuleStore(Protocol):
    """Source of automation rules."""

    def list_active_rules(self, tenant_id: UUID) -> list["ParsedRule"]:
        """Return the tenant's active rules, in evaluation order."""
        ...

    def increment_run_count(self, rule_id: UUID) -> None:
        """Atomically bump the rule's run counter."""
        ...


class SmsSender(Protocol):
    async def send_sms(self, to: str, body: str) -> DeliveryResult: ...


class EmailSender(Protocol):
    async def send_email(
        self, to: str, subject: str, html_body: str, text_body: str
    ) -> DeliveryResult: ...


class MessageLog(Protocol):
    """Outbound message audit trail (the communications table)."""

    def record_message(
        self,
        *,
        tenant_id: UUID,
        contact_id: str,
        direction: str,
        channel: str,
        to: str,
        body: str,
        status: str,
        provider_message_id: str | None,
        metadata: dict[str, Any],
        subject: str | None = None,
    ) -> None: ...


class ContactEmailLookup(Protocol):
    def get_contact_email(self, contact_id: str, tenant_id: UUID) -> str | None: ...


class ExecutionLog(Protocol):
    """Per-action execution history (the automation_logs table)."""

    def record_execution(
        self,
        *,
        rule_id: UUID,
        tenant_id: UUID,
        trigger_type: str,
        action_type: str,
        status: str,
        entity_type: str | None,
        entity_id: str | None,
        result: dict[str, Any] | None,
        error_message: str | None,
    ) -> None: ...


class ActionQueue(Protocol):
    """Storage for actions whose execution is deferred."""

    def enqueue_action(
        self,
        *,
        rule_id: UUID,
        tenant_id: UUID,
        action_index: int,
        entity_type: str | None,
        entity_id: str | None,
        context: dict[str, Any],
        scheduled_for: datetime,
    ) -> Any: ...
