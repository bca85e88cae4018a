"""Automation repository for data access operations."""

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.automation.rule_parser import ParsedRule, RuleParseError, RuleParser
from app.models.automation import (
    AutomationLog,
    AutomationQueueItem,
    AutomationQueueStatus,
    AutomationRule,
)

logger = logging.getLogger(__name__)


class AutomationRepository:
    """Repository for automation data access.

    Also serves as the engine's RuleStore, ExecutionLog and ActionQueue.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # Rule operations
    def create_rule(self, rule_data: dict) -> AutomationRule:
        """Create a new rule."""
        rule = AutomationRule(**rule_data)
        self.db.add(rule)
        self._commit()
        self.db.refresh(rule)
        return rule

    def get_rule_by_id(self, rule_id: UUID, tenant_id: UUID) -> AutomationRule | None:
        """Get rule by ID and tenant ID."""
        return (
            self.db.query(AutomationRule)
            .filter(AutomationRule.id == rule_id, AutomationRule.tenant_id == tenant_id)
            .first()
        )

    def get_all_rules(
        self,
        tenant_id: UUID,
        active_only: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AutomationRule]:
        """Get all rules by tenant with pagination, oldest first."""
        query = self.db.query(AutomationRule).filter(AutomationRule.tenant_id == tenant_id)
        if active_only:
            query = query.filter(AutomationRule.is_active.is_(True))
        return query.order_by(AutomationRule.created_at).offset(skip).limit(limit).all()

    def count_all_rules(self, tenant_id: UUID, active_only: bool = False) -> int:
        """Count all rules by tenant."""
        query = self.db.query(func.count(AutomationRule.id)).filter(
            AutomationRule.tenant_id == tenant_id
        )
        if active_only:
            query = query.filter(AutomationRule.is_active.is_(True))
        return query.scalar() or 0

    def update_rule(
        self, rule_id: UUID, tenant_id: UUID, rule_data: dict
    ) -> AutomationRule | None:
        """Update a rule."""
        rule = self.get_rule_by_id(rule_id, tenant_id)
        if not rule:
            return None
        for key, value in rule_data.items():
            setattr(rule, key, value)
        self._commit()
        self.db.refresh(rule)
        return rule

    def delete_rule(self, rule_id: UUID, tenant_id: UUID) -> bool:
        """Delete a rule."""
        rule = self.get_rule_by_id(rule_id, tenant_id)
        if not rule:
            return False
        self.db.delete(rule)
        self._commit()
        return True

    # RuleStore
    def list_active_rules(self, tenant_id: UUID) -> list[ParsedRule]:
        """Active rules of a tenant, decoded. Malformed rules are skipped."""
        rows = (
            self.db.query(AutomationRule)
            .filter(AutomationRule.tenant_id == tenant_id, AutomationRule.is_active.is_(True))
            .order_by(AutomationRule.created_at)
            .all()
        )
        rules = []
        for row in rows:
            try:
                rules.append(RuleParser.parse_rule(row))
            except RuleParseError as e:
                logger.warning(f"Skipping malformed automation rule {row.id}: {e}")
        return rules

    def increment_run_count(self, rule_id: UUID) -> None:
        """Increment run_count in the database, not in Python, so concurrent runs add up."""
        now = datetime.now(UTC)
        self.db.execute(
            update(AutomationRule)
            .where(AutomationRule.id == rule_id)
            .values(run_count=AutomationRule.run_count + 1, last_run_at=now, updated_at=now)
        )
        self._commit()

    # ExecutionLog
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
    ) -> AutomationLog:
        """Create a new automation log entry."""
        log = AutomationLog(
            rule_id=rule_id,
            tenant_id=tenant_id,
            trigger_type=trigger_type,
            action_type=action_type,
            status=status,
            entity_type=entity_type,
            entity_id=entity_id,
            result=result,
            error_message=error_message,
        )
        self.db.add(log)
        self._commit()
        return log

    def get_logs_by_rule(
        self, rule_id: UUID, tenant_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[AutomationLog]:
        """Get execution history for a rule, newest first."""
        return (
            self.db.query(AutomationLog)
            .filter(AutomationLog.rule_id == rule_id, AutomationLog.tenant_id == tenant_id)
            .order_by(AutomationLog.executed_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_logs_by_rule(self, rule_id: UUID, tenant_id: UUID) -> int:
        """Count execution history entries for a rule."""
        return (
            self.db.query(func.count(AutomationLog.id))
            .filter(AutomationLog.rule_id == rule_id, AutomationLog.tenant_id == tenant_id)
            .scalar()
            or 0
        )

    # ActionQueue
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
    ) -> AutomationQueueItem:
        """Store a delayed action."""
        item = AutomationQueueItem(
            rule_id=rule_id,
            tenant_id=tenant_id,
            action_index=action_index,
            entity_type=entity_type,
            entity_id=entity_id,
            context=context,
            scheduled_for=scheduled_for,
            status=AutomationQueueStatus.PENDING.value,
        )
        self.db.add(item)
        self._commit()
        self.db.refresh(item)
        return item

    def get_due_queue_items(self, now: datetime, limit: int = 100) -> list[AutomationQueueItem]:
        """Pending items whose scheduled time has passed, oldest first."""
        return (
            self.db.query(AutomationQueueItem)
            .filter(
                AutomationQueueItem.status == AutomationQueueStatus.PENDING.value,
                AutomationQueueItem.scheduled_for <= now,
            )
            .order_by(AutomationQueueItem.scheduled_for)
            .limit(limit)
            .all()
        )

    def claim_queue_item(self, item: AutomationQueueItem) -> bool:
        """Move a pending item to processing.

        Returns:
            False when another pass already claimed the item
        """
        claimed = self.db.execute(
            update(AutomationQueueItem)
            .where(
                AutomationQueueItem.id == item.id,
                AutomationQueueItem.status == AutomationQueueStatus.PENDING.value,
            )
            .values(status=AutomationQueueStatus.PROCESSING.value)
            .execution_options(synchronize_session=False)
        ).rowcount
        self._commit()
        if claimed:
            self.db.refresh(item)
        return bool(claimed)

    def update_queue_status(
        self,
        item: AutomationQueueItem,
        status: AutomationQueueStatus,
        attempted_at: datetime | None = None,
    ) -> AutomationQueueItem:
        """Move a queue item to a new status; an attempt timestamp also counts an attempt."""
        item.status = status.value
        if attempted_at is not None:
            item.last_attempt_at = attempted_at
            item.attempts = (item.attempts or 0) + 1
        self._commit()
        return item
