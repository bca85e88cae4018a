"""End-to-end automation flow on SQLite: rules, delivery, logs and the queue."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.automation.action_executor import ActionExecutor
from app.core.automation.engine import AutomationEngine
from app.core.automation.scheduler import ScheduledActionProcessor
from app.core.automation.types import DeliveryResult
from app.models.automation import AutomationQueueItem, AutomationQueueStatus, AutomationRule
from app.models.communication import Communication
from app.repositories.automation_repository import AutomationRepository
from app.repositories.communication_repository import CommunicationRepository
from app.repositories.contact_repository import ContactRepository
from tests.helpers import sms_action


@pytest.fixture
def sms_sender():
    sender = AsyncMock()
    sender.send_sms.return_value = DeliveryResult(success=True, message_id="SM42")
    return sender


@pytest.fixture
def repository(db_session):
    return AutomationRepository(db_session)


@pytest.fixture
def executor(db_session, repository, sms_sender):
    return ActionExecutor(
        sms_sender=sms_sender,
        message_log=CommunicationRepository(db_session),
        contact_lookup=ContactRepository(db_session),
        execution_log=repository,
    )


@pytest.mark.asyncio
async def test_keyword_reply_is_sent_and_logged(db_session, repository, executor, tenant_id):
    rule = repository.create_rule(
        {
            "tenant_id": tenant_id,
            "name": "Unsubscribe",
            "trigger_type": "sms_received",
            "trigger_value": "stop",
            "actions": [sms_action(template="You are unsubscribed, {{first_name}}.")],
        }
    )
    repository.create_rule(
        {
            "tenant_id": tenant_id,
            "name": "Pricing",
            "trigger_type": "sms_received",
            "trigger_value": "price",
            "actions": [sms_action(template="Our prices...")],
        }
    )
    engine = AutomationEngine(rule_store=repository, action_executor=executor)

    results = await engine.trigger_sms_received(
        tenant_id,
        from_number="+15551234567",
        sms_body="Stop please",
        contact_id="c1",
    )

    assert len(results) == 1
    assert results[0].success is True
    assert results[0].external_id == "SM42"

    communication = db_session.query(Communication).one()
    assert communication.body == "You are unsubscribed, {{first_name}}."
    assert communication.message_metadata["ruleId"] == str(rule.id)

    logs = repository.get_logs_by_rule(rule.id, tenant_id)
    assert [(log.action_type, log.status, log.entity_id) for log in logs] == [
        ("send_sms", "success", "c1")
    ]

    stored = db_session.get(AutomationRule, rule.id)
    db_session.refresh(stored)
    assert stored.run_count == 1


@pytest.mark.asyncio
async def test_delayed_action_runs_from_queue(
    db_session, repository, executor, sms_sender, tenant_id
):
    rule = repository.create_rule(
        {
            "tenant_id": tenant_id,
            "name": "Follow up",
            "trigger_type": "lead_created",
            "actions": [sms_action(template="Still interested?", delay_minutes=30)],
        }
    )
    engine = AutomationEngine(
        rule_store=repository, action_executor=executor, action_queue=repository
    )

    results = await engine.trigger_lead_created(
        tenant_id, lead_id="l1", lead={"phone": "+15557654321"}
    )

    assert results[0].message == "Scheduled for 30 minutes from now"
    sms_sender.send_sms.assert_not_awaited()
    item = db_session.query(AutomationQueueItem).one()
    assert item.status == AutomationQueueStatus.PENDING.value
    assert item.entity_type == "lead"

    processor = ScheduledActionProcessor(repository, executor)
    assert await processor.process_due() == {"processed": 0, "failed": 0}

    counts = await processor.process_due(datetime.now(UTC) + timedelta(minutes=31))

    assert counts == {"processed": 1, "failed": 0}
    sms_sender.send_sms.assert_awaited_once_with(to="+15557654321", body="Still interested?")
    db_session.refresh(item)
    assert item.status == AutomationQueueStatus.COMPLETED.value
    assert item.attempts == 1
    assert repository.count_logs_by_rule(rule.id, tenant_id) == 1


@pytest.mark.asyncio
async def test_inactive_rule_does_not_fire(repository, executor, sms_sender, tenant_id):
    repository.create_rule(
        {
            "tenant_id": tenant_id,
            "name": "Paused",
            "trigger_type": "sms_received",
            "is_active": False,
            "actions": [sms_action()],
        }
    )
    engine = AutomationEngine(rule_store=repository, action_executor=executor)

    results = await engine.trigger_sms_received(
        tenant_id, from_number="+15551234567", sms_body="hi"
    )

    assert results == []
    sms_sender.send_sms.assert_not_awaited()


@pytest.mark.asyncio
async def test_overlapping_queue_passes_send_each_item_once(
    repository, executor, sms_sender, tenant_id
):
    rule = repository.create_rule(
        {
            "tenant_id": tenant_id,
            "name": "Follow up",
            "trigger_type": "lead_created",
            "actions": [sms_action(template="Still interested?", delay_minutes=30)],
        }
    )
    due_at = datetime.now(UTC) - timedelta(minutes=1)
    for index, phone in enumerate(["+15550000001", "+15550000002"]):
        repository.enqueue_action(
            rule_id=rule.id,
            tenant_id=tenant_id,
            action_index=index,
            entity_type="lead",
            entity_id=f"l{index}",
            context={
                "type": "lead_created",
                "data": {"lead": {"phone": phone}},
                "action": sms_action(template="Still interested?", delay_minutes=30),
            },
            scheduled_for=due_at,
        )

    async def slow_send(to, body):
        await asyncio.sleep(0.01)
        return DeliveryResult(success=True, message_id=f"SM-{to}")

    sms_sender.send_sms.side_effect = slow_send
    first = ScheduledActionProcessor(repository, executor)
    second = ScheduledActionProcessor(repository, executor)

    counts = await asyncio.gather(first.process_due(), second.process_due())

    assert sum(c["processed"] for c in counts) == 2
    assert sum(c["failed"] for c in counts) == 0
    sent_to = sorted(c.kwargs["to"] for c in sms_sender.send_sms.await_args_list)
    assert sent_to == ["+15550000001", "+15550000002"]
