"""Automation models for rule-based automation engine."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from app.core.db.session import Base
from app.core.db.types import JSONType


class AutomationLogStatus(str, Enum):
    """Status of an executed automation action."""

    SUCCESS = "success"
    FAILED = "failed"


class AutomationQueueStatus(str, Enum):
    """Status of a delayed action in the queue."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AutomationRule(Base):
    """Automation rule: a trigger and the actions it runs, scoped to a tenant."""

    __tablename__ = "automation_rules"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    trigger_type = Column(String(50), nullable=False)
    trigger_value = Column(String(500), nullable=True)  # Keyword, stage, tag...
    trigger_config = Column(JSONType, nullable=True)  # Extra predicate keys
    actions = Column(JSONType, nullable=False, default=list)  # [{type, delay_minutes, config}]
    is_active = Column(Boolean, default=True, nullable=False)
    run_count = Column(Integer, default=0, nullable=False)
    last_run_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    logs = relationship("AutomationLog", back_populates="rule", cascade="all, delete-orphan")
    queue_items = relationship(
        "AutomationQueueItem", back_populates="rule", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_automation_rules_tenant_active", "tenant_id", "is_active"),
        Index("idx_automation_rules_trigger", "trigger_type", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<AutomationRule(id={self.id}, name={self.name}, trigger_type={self.trigger_type})>"


class AutomationLog(Base):
    """One executed automation action."""

    __tablename__ = "automation_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    rule_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("automation_rules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    trigger_type = Column(String(50), nullable=False)
    entity_type = Column(String(20), nullable=True)
    entity_id = Column(String(64), nullable=True)
    action_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default=AutomationLogStatus.SUCCESS.value)
    result = Column(JSONType, nullable=True)
    error_message = Column(Text, nullable=True)
    executed_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
    )

    # Relationships
    rule = relationship("AutomationRule", back_populates="logs")


class AutomationQueueItem(Base):
    """An action waiting for its delay to elapse."""

    __tablename__ = "automation_queue"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    rule_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("automation_rules.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    action_index = Column(Integer, nullable=False)
    entity_type = Column(String(20), nullable=True)
    entity_id = Column(String(64), nullable=True)
    context = Column(JSONType, nullable=False, default=dict)  # {type, data, action}
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=AutomationQueueStatus.PENDING.value)
    attempts = Column(Integer, nullable=False, default=0)
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    rule = relationship("AutomationRule", back_populates="queue_items")

    __table_args__ = (
        Index("idx_automation_queue_scheduled", "scheduled_for", "status"),
    )
