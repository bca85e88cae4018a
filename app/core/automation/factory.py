"""Wire the automation engine to the database and delivery adapters."""

import logging

from sqlalchemy.orm import Session

from app.core.automation.action_executor import ActionExecutor
from app.core.automation.engine import AutomationEngine
from app.core.automation.scheduler import ScheduledActionProcessor
from app.core.config_file import get_settings
from app.core.db.deps import session_scope
from app.core.delivery import get_email_sender, get_sms_sender
from app.repositories.automation_repository import AutomationRepository
from app.repositories.communication_repository import CommunicationRepository
from app.repositories.contact_repository import ContactRepository

logger = logging.getLogger(__name__)


def build_action_executor(db: Session) -> ActionExecutor:
    """Executor backed by the database logs and the configured adapters."""
    return ActionExecutor(
        sms_sender=get_sms_sender(),
        email_sender=get_email_sender(),
        message_log=CommunicationRepository(db),
        contact_lookup=ContactRepository(db),
        execution_log=AutomationRepository(db),
    )


def build_automation_engine(db: Session) -> AutomationEngine:
    """Engine for one database session.

    Delayed actions are queued only when the queue is enabled; otherwise they
    run immediately.
    """
    repository = AutomationRepository(db)
    action_queue = repository if get_settings().AUTOMATION_QUEUE_ENABLED else None
    return AutomationEngine(
        rule_store=repository,
        action_executor=build_action_executor(db),
        action_queue=action_queue,
    )


def build_queue_processor(db: Session) -> ScheduledActionProcessor:
    return ScheduledActionProcessor(
        repository=AutomationRepository(db),
        action_executor=build_action_executor(db),
        batch_size=get_settings().AUTOMATION_QUEUE_BATCH_SIZE,
    )


async def run_queue_pass() -> dict[str, int]:
    """Process due queue items in a session of its own (scheduler tick)."""
    with session_scope() as db:
        counts = await build_queue_processor(db).process_due()
    if counts["processed"] or counts["failed"]:
        logger.info(
            f"Automation queue pass: {counts['processed']} processed, {counts['failed']} failed"
        )
    return counts
