"""Automation engine for matching events against rules and running their actions."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from app.core.automation.action_executor import ActionExecutor, resolve_entity
from app.core.automation.interfaces import ActionQueue, RuleStore
from app.core.automation.rule_parser import ActionConfig, ParsedRule
from app.core.automation.trigger_matcher import TriggerMatcher
from app.core.automation.types import ActionResult, TriggerEvent, TriggerType

logger = logging.getLogger(__name__)


class AutomationEngine:
    """Engine for executing automation rules.

    Stateless between calls: rules are fetched fresh for every event and
    nothing is cached on the instance, so concurrent calls are independent.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        action_executor: ActionExecutor,
        trigger_matcher: TriggerMatcher | None = None,
        action_queue: ActionQueue | None = None,
    ):
        """Initialize automation engine.

        Args:
            rule_store: Source of active rules per tenant
            action_executor: Runs a single action
            trigger_matcher: Predicate evaluator (default TriggerMatcher)
            action_queue: Storage for delayed actions; when omitted every
                action runs immediately regardless of its delay
        """
        self.rule_store = rule_store
        self.action_executor = action_executor
        self.trigger_matcher = trigger_matcher or TriggerMatcher()
        self.action_queue = action_queue

    async def process_automations(self, event: TriggerEvent) -> list[ActionResult]:
        """Process an event by executing the actions of every matching rule.

        Args:
            event: Event to process

        Returns:
            One ActionResult per attempted action, in rule order. If the rules
            cannot be fetched, a single failed "process_automations" result.
        """
        try:
            rules = self.rule_store.list_active_rules(event.tenant_id)
        except Exception as e:
            logger.error(
                f"Failed to load automation rules for tenant {event.tenant_id}: {e}",
                exc_info=True,
            )
            return [ActionResult.failed("process_automations", str(e) or type(e).__name__)]

        logger.info(
            f"Processing {len(rules)} automation rules for event {event.type} "
            f"(tenant {event.tenant_id})"
        )

        results: list[ActionResult] = []
        for rule in rules:
            if rule.tenant_id != event.tenant_id:
                logger.warning(
                    f"Rule {rule.id} belongs to tenant {rule.tenant_id}, "
                    f"not {event.tenant_id}; skipping"
                )
                continue
            if not rule.is_active:
                logger.warning(f"Rule {rule.id} is inactive but was returned as active; skipping")
                continue
            if rule.trigger_type != event.type:
                continue
            if not self._matches(rule, event):
                logger.debug(f"Rule {rule.id} did not match event {event.type}")
                continue

            logger.info(f"Rule matched: '{rule.name}' ({rule.id})")
            results.extend(await self._run_rule(rule, event))
            self._increment_run_count(rule)

        return results

    def _matches(self, rule: ParsedRule, event: TriggerEvent) -> bool:
        try:
            return self.trigger_matcher.matches(rule, event)
        except Exception as e:
            logger.error(f"Trigger matching failed for rule {rule.id}: {e}", exc_info=True)
            return False

    async def _run_rule(self, rule: ParsedRule, event: TriggerEvent) -> list[ActionResult]:
        results = []
        for index, action in enumerate(rule.actions):
            try:
                if action.delay_minutes > 0 and self.action_queue is not None:
                    result = self._schedule_action(rule, index, action, event)
                else:
                    result = await self.action_executor.execute(rule, action, event)
            except Exception as e:
                logger.error(
                    f"Action {action.action_type} of rule {rule.id} raised: {e}", exc_info=True
                )
                result = ActionResult.failed(action.action_type, str(e) or type(e).__name__)
            results.append(result)
        return results

    def _schedule_action(
        self, rule: ParsedRule, index: int, action: ActionConfig, event: TriggerEvent
    ) -> ActionResult:
        scheduled_for = datetime.now(timezone.utc) + timedelta(minutes=action.delay_minutes)
        entity_type, entity_id = resolve_entity(event)
        serialized = event.model_dump(mode="json")

        self.action_queue.enqueue_action(
            rule_id=rule.id,
            tenant_id=event.tenant_id,
            action_index=index,
            entity_type=entity_type,
            entity_id=entity_id,
            context={
                "type": serialized["type"],
                "data": serialized["data"],
                "action": action.to_definition(),
            },
            scheduled_for=scheduled_for,
        )
        logger.info(
            f"Action {action.action_type} of rule {rule.id} scheduled for "
            f"{scheduled_for.isoformat()}"
        )
        return ActionResult(
            success=True,
            action=action.action_type,
            message=f"Scheduled for {action.delay_minutes} minutes from now",
        )

    def _increment_run_count(self, rule: ParsedRule) -> None:
        try:
            self.rule_store.increment_run_count(rule.id)
        except Exception as e:
            logger.warning(f"Failed to increment run count for rule {rule.id}: {e}")

    # Convenience wrappers used by webhook and CRM handlers

    async def _trigger(
        self, trigger_type: TriggerType, tenant_id: UUID, **data: Any
    ) -> list[ActionResult]:
        event = TriggerEvent(
            type=trigger_type.value,
            tenant_id=tenant_id,
            data={key: value for key, value in data.items() if value is not None},
        )
        return await self.process_automations(event)

    async def trigger_sms_received(
        self,
        tenant_id: UUID,
        from_number: str,
        sms_body: str,
        to_number: str | None = None,
        contact_id: str | None = None,
    ) -> list[ActionResult]:
        """Inbound SMS (Twilio webhook)."""
        return await self._trigger(
            TriggerType.SMS_RECEIVED,
            tenant_id,
            fromNumber=from_number,
            toNumber=to_number,
            smsBody=sms_body,
            contactId=contact_id,
        )

    async def trigger_deal_stage_changed(
        self,
        tenant_id: UUID,
        deal_id: str,
        old_stage: str | None,
        new_stage: str,
        contact_id: str | None = None,
        deal: dict[str, Any] | None = None,
    ) -> list[ActionResult]:
        return await self._trigger(
            TriggerType.DEAL_STAGE_CHANGED,
            tenant_id,
            dealId=deal_id,
            oldStage=old_stage,
            newStage=new_stage,
            contactId=contact_id,
            deal=deal,
        )

    async def trigger_deal_won(
        self,
        tenant_id: UUID,
        deal_id: str,
        contact_id: str | None = None,
        deal: dict[str, Any] | None = None,
    ) -> list[ActionResult]:
        return await self._trigger(
            TriggerType.DEAL_WON, tenant_id, dealId=deal_id, contactId=contact_id, deal=deal
        )

    async def trigger_lead_created(
        self, tenant_id: UUID, lead_id: str, lead: dict[str, Any] | None = None
    ) -> list[ActionResult]:
        return await self._trigger(TriggerType.LEAD_CREATED, tenant_id, leadId=lead_id, lead=lead)

    async def trigger_contact_created(
        self, tenant_id: UUID, contact_id: str, contact: dict[str, Any] | None = None
    ) -> list[ActionResult]:
        return await self._trigger(
            TriggerType.CONTACT_CREATED, tenant_id, contactId=contact_id, contact=contact
        )

    async def trigger_tag_added(
        self,
        tenant_id: UUID,
        contact_id: str,
        tag_id: str,
        tag_name: str | None = None,
        contact: dict[str, Any] | None = None,
    ) -> list[ActionResult]:
        return await self._trigger(
            TriggerType.TAG_ADDED,
            tenant_id,
            contactId=contact_id,
            tagId=tag_id,
            tagName=tag_name,
            contact=contact,
        )

    async def trigger_booking_scheduled(
        self,
        tenant_id: UUID,
        booking_id: str,
        contact_id: str | None = None,
        lead_id: str | None = None,
        contact: dict[str, Any] | None = None,
        booking_data: dict[str, Any] | None = None,
    ) -> list[ActionResult]:
        return await self._trigger(
            TriggerType.BOOKING_SCHEDULED,
            tenant_id,
            bookingId=booking_id,
            contactId=contact_id,
            leadId=lead_id,
            contact=contact,
            bookingData=booking_data,
        )

    async def trigger_form_submitted(
        self,
        tenant_id: UUID,
        contact_id: str | None = None,
        lead_id: str | None = None,
        contact: dict[str, Any] | None = None,
        form_data: dict[str, Any] | None = None,
    ) -> list[ActionResult]:
        return await self._trigger(
            TriggerType.FORM_SUBMITTED,
            tenant_id,
            contactId=contact_id,
            leadId=lead_id,
            contact=contact,
            formData=form_data,
        )
