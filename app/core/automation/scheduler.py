"""Scheduler for delayed automation actions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from app.core.automation.action_executor import ActionExecutor
from app.core.automation.rule_parser import ParsedRule, RuleParser
from app.core.automation.types import TriggerEvent
from app.models.automation import AutomationQueueItem, AutomationQueueStatus

if TYPE_CHECKING:
    from app.repositories.automation_repository import AutomationRepository

logger = logging.getLogger(__name__)


class ScheduledActionProcessor:
    """Runs queued actions whose delay has elapsed, through the regular executor."""

    def __init__(
        self,
        repository: "AutomationRepository",
        action_executor: ActionExecutor,
        batch_size: int = 100,
    ):
        self.repository = repository
        self.action_executor = action_executor
        self.batch_size = batch_size

    async def process_due(self, now: datetime | None = None) -> dict[str, int]:
        """Process one batch of due queue items.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            Counts of processed (succeeded) and failed items
        """
        now = now or datetime.now(timezone.utc)
        counts = {"processed": 0, "failed": 0}

        items = self.repository.get_due_queue_items(now, limit=self.batch_size)
        logger.info(f"Processing {len(items)} scheduled automation actions")

        for item in items:
            if not self.repository.claim_queue_item(item):
                logger.debug(f"Queue item {item.id} already claimed, skipping")
                continue
            try:
                succeeded = await self._process_item(item)
            except Exception as e:
                logger.error(f"Failed to process queue item {item.id}: {e}", exc_info=True)
                self.repository.update_queue_status(
                    item, AutomationQueueStatus.FAILED, datetime.now(timezone.utc)
                )
                succeeded = False
            counts["processed" if succeeded else "failed"] += 1

        return counts

    async def _process_item(self, item: AutomationQueueItem) -> bool:
        stored_rule = item.rule
        if stored_rule is None or not stored_rule.is_active:
            logger.info(f"Rule {item.rule_id} is no longer active, dropping queue item {item.id}")
            self.repository.update_queue_status(
                item, AutomationQueueStatus.FAILED, datetime.now(timezone.utc)
            )
            return False

        context = item.context or {}
        action = RuleParser.parse_action(context.get("action"))
        event = TriggerEvent(
            type=context.get("type") or stored_rule.trigger_type,
            tenant_id=item.tenant_id,
            data=context.get("data") or {},
        )
        rule = ParsedRule(
            id=stored_rule.id,
            tenant_id=stored_rule.tenant_id,
            name=stored_rule.name,
            trigger_type=stored_rule.trigger_type,
        )

        result = await self.action_executor.execute(rule, action, event)
        status = AutomationQueueStatus.COMPLETED if result.success else AutomationQueueStatus.FAILED
        self.repository.update_queue_status(item, status, datetime.now(timezone.utc))
        return result.success


class QueueScheduler:
    """Runs a callback at a fixed interval until stopped."""

    def __init__(self, callback: Callable[[], Awaitable[Any]], interval_seconds: int = 60):
        """Initialize scheduler.

        Args:
            callback: Async function to call on every tick
            interval_seconds: Seconds between ticks
        """
        self.callback = callback
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def _interval_task(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)
                if self._running:
                    await self.callback()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in automation queue tick: {e}", exc_info=True)

    async def start(self) -> None:
        """Start the scheduler."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._interval_task())
        logger.info(f"Automation queue scheduler started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the scheduler."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        logger.info("Automation queue scheduler stopped")
