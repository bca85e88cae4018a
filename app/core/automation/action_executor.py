"""Action executor for automation rules."""

import logging
from datetime import datetime, timezone

import httpx

from app.core.automation.interfaces import (
    ContactEmailLookup,
    EmailSender,
    ExecutionLog,
    MessageLog,
    SmsSender,
)
from app.core.automation.rule_parser import (
    ActionConfig,
    CreateTaskAction,
    ParsedRule,
    SendEmailAction,
    SendSmsAction,
    UnknownAction,
    UpdateDealAction,
    WebhookAction,
)
from app.core.automation.templates import build_template_variables, interpolate, strip_tags
from app.core.automation.types import ActionResult, TriggerEvent
from app.core.config_file import get_settings
from app.core.logging import mask_email, mask_phone

logger = logging.getLogger(__name__)


def resolve_entity(event: TriggerEvent) -> tuple[str | None, str | None]:
    """Pick the entity an event is about: contact first, then lead, then deal."""
    for key, entity_type in (("contactId", "contact"), ("leadId", "lead"), ("dealId", "deal")):
        entity_id = event.data.get(key)
        if entity_id:
            return entity_type, str(entity_id)
    return None, None


class ActionExecutor:
    """Executor for rule actions.

    Every collaborator is optional. A missing delivery adapter turns the
    matching action into a failed result; a missing log is simply not written.
    """

    def __init__(
        self,
        sms_sender: SmsSender | None = None,
        email_sender: EmailSender | None = None,
        message_log: MessageLog | None = None,
        contact_lookup: ContactEmailLookup | None = None,
        execution_log: ExecutionLog | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize action executor.

        Args:
            sms_sender: SMS delivery adapter
            email_sender: Email delivery adapter
            message_log: Outbound message log (communications)
            contact_lookup: Resolves a contact's email for `to: "contact"`
            execution_log: Per-action execution history
            http_client: Shared client for webhook actions (one per call if omitted)
        """
        self.sms_sender = sms_sender
        self.email_sender = email_sender
        self.message_log = message_log
        self.contact_lookup = contact_lookup
        self.execution_log = execution_log
        self.http_client = http_client
        self.settings = get_settings()

    async def execute(
        self, rule: ParsedRule, action: ActionConfig, event: TriggerEvent
    ) -> ActionResult:
        """Execute a single action. Never raises.

        Args:
            rule: Rule the action belongs to
            action: Typed action config
            event: Triggering event

        Returns:
            ActionResult for this action
        """
        try:
            result = await self._execute_action(action, event, rule)
        except Exception as e:
            logger.error(
                f"Failed to execute action {action.action_type} for rule {rule.id}: {e}",
                exc_info=True,
            )
            result = ActionResult.failed(action.action_type, str(e) or type(e).__name__)

        self._record_execution(rule, action, event, result)
        return result

    async def _execute_action(
        self, action: ActionConfig, event: TriggerEvent, rule: ParsedRule
    ) -> ActionResult:
        if isinstance(action, SendSmsAction):
            return await self._execute_send_sms(action, event, rule)
        elif isinstance(action, SendEmailAction):
            return await self._execute_send_email(action, event, rule)
        elif isinstance(action, CreateTaskAction):
            return ActionResult.failed(action.action_type, "Task creation not yet implemented")
        elif isinstance(action, UpdateDealAction):
            return ActionResult.failed(action.action_type, "Deal update not yet implemented")
        elif isinstance(action, WebhookAction):
            return await self._execute_webhook(action, event)
        elif isinstance(action, UnknownAction):
            return ActionResult.failed(
                action.action_type, f"Unknown action type: {action.action_type}"
            )
        raise TypeError(f"Unhandled action variant: {type(action).__name__}")

    # SMS

    def _resolve_phone(self, to: str | None, event: TriggerEvent) -> str | None:
        if to == "contact":
            # Reply to the sender first, then fall back to the contact/lead record
            contact = event.data.get("contact") or {}
            lead = event.data.get("lead") or {}
            return event.data.get("fromNumber") or contact.get("phone") or lead.get("phone")
        if to and to.startswith("+"):
            return to
        return None

    async def _execute_send_sms(
        self, action: SendSmsAction, event: TriggerEvent, rule: ParsedRule
    ) -> ActionResult:
        to = self._resolve_phone(action.to, event)
        if not to:
            return ActionResult.failed(action.action_type, "No recipient phone number available")
        if not action.template:
            return ActionResult.failed(action.action_type, "No message content")
        if self.sms_sender is None:
            return ActionResult.failed(action.action_type, "SMS delivery is not configured")

        body = interpolate(action.template, build_template_variables(event))
        delivery = await self.sms_sender.send_sms(to=to, body=body)

        if delivery.success:
            logger.info(f"Automation SMS sent to {mask_phone(to)} for rule {rule.id}")
            self._log_message(
                rule=rule,
                event=event,
                channel="sms",
                to=to,
                body=body,
                provider_message_id=delivery.message_id,
            )
            return ActionResult(
                success=True,
                action=action.action_type,
                message=f"SMS sent to {to}",
                external_id=delivery.message_id,
            )

        error = delivery.error or "SMS delivery failed"
        return ActionResult(
            success=False,
            action=action.action_type,
            message=f"Failed: {error}",
            error=error,
            external_id=delivery.message_id,
        )

    # Email

    async def _execute_send_email(
        self, action: SendEmailAction, event: TriggerEvent, rule: ParsedRule
    ) -> ActionResult:
        if action.to == "contact":
            if self.contact_lookup is None:
                return ActionResult.failed(
                    action.action_type, "Contact email lookup not yet implemented"
                )
            contact_id = event.data.get("contactId")
            to = (
                self.contact_lookup.get_contact_email(str(contact_id), event.tenant_id)
                if contact_id
                else None
            )
        elif action.to and "@" in action.to:
            to = action.to
        else:
            to = None

        if not to:
            return ActionResult.failed(action.action_type, "No recipient email available")
        if not action.template:
            return ActionResult.failed(action.action_type, "No email content")
        if self.email_sender is None:
            return ActionResult.failed(action.action_type, "Email delivery is not configured")

        variables = build_template_variables(event)
        subject = interpolate(
            action.subject or self.settings.AUTOMATION_DEFAULT_EMAIL_SUBJECT, variables
        )
        html_body = interpolate(action.template, variables)
        delivery = await self.email_sender.send_email(
            to=to, subject=subject, html_body=html_body, text_body=strip_tags(html_body)
        )

        if delivery.success:
            logger.info(f"Automation email sent to {mask_email(to)} for rule {rule.id}")
            self._log_message(
                rule=rule,
                event=event,
                channel="email",
                to=to,
                body=html_body,
                subject=subject,
                provider_message_id=delivery.message_id,
            )
            return ActionResult(
                success=True,
                action=action.action_type,
                message=f"Email sent to {to}",
                external_id=delivery.message_id,
            )

        error = delivery.error or "Email delivery failed"
        return ActionResult(
            success=False,
            action=action.action_type,
            message=f"Failed: {error}",
            error=error,
            external_id=delivery.message_id,
        )

    # Webhook

    async def _execute_webhook(self, action: WebhookAction, event: TriggerEvent) -> ActionResult:
        if not action.url:
            return ActionResult.failed(action.action_type, "No webhook URL specified")

        serialized = event.model_dump(mode="json")
        payload = {
            "trigger": serialized["type"],
            "tenantId": serialized["tenant_id"],
            "data": serialized["data"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        headers = dict(action.headers or {})

        if self.http_client is not None:
            response = await self.http_client.post(action.url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(
                timeout=self.settings.AUTOMATION_WEBHOOK_TIMEOUT
            ) as client:
                response = await client.post(action.url, json=payload, headers=headers)

        if response.is_success:
            return ActionResult(
                success=True,
                action=action.action_type,
                message=f"Webhook called: {response.status_code}",
            )
        return ActionResult.failed(action.action_type, f"Webhook returned {response.status_code}")

    # Logging

    def _log_message(
        self,
        *,
        rule: ParsedRule,
        event: TriggerEvent,
        channel: str,
        to: str,
        body: str,
        provider_message_id: str | None,
        subject: str | None = None,
    ) -> None:
        contact_id = event.data.get("contactId")
        if not contact_id or self.message_log is None:
            return
        try:
            self.message_log.record_message(
                tenant_id=event.tenant_id,
                contact_id=str(contact_id),
                direction="outbound",
                channel=channel,
                to=to,
                body=body,
                subject=subject,
                status="sent",
                provider_message_id=provider_message_id,
                metadata={
                    "automationTriggered": True,
                    "eventType": event.type,
                    "ruleId": str(rule.id),
                },
            )
        except Exception as e:
            # The send already happened; the result stays successful without an audit row
            logger.error(
                f"Message sent via {channel} for rule {rule.id} but message log write failed: {e}",
                exc_info=True,
            )

    def _record_execution(
        self,
        rule: ParsedRule,
        action: ActionConfig,
        event: TriggerEvent,
        result: ActionResult,
    ) -> None:
        if self.execution_log is None:
            return
        entity_type, entity_id = resolve_entity(event)
        try:
            self.execution_log.record_execution(
                rule_id=rule.id,
                tenant_id=event.tenant_id,
                trigger_type=rule.trigger_type,
                action_type=action.action_type,
                status="success" if result.success else "failed",
                entity_type=entity_type,
                entity_id=entity_id,
                result=result.model_dump(exclude_none=True),
                error_message=result.error,
            )
        except Exception as e:
            logger.error(f"Failed to record execution for rule {rule.id}: {e}", exc_info=True)
