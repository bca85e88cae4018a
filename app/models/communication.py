"""Communication model: outbound and inbound messages logged per contact."""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text, Uuid

from app.core.db.session import Base
from app.core.db.types import JSONType


class Communication(Base):
    """A message sent to or received from a contact (SMS, email)."""

    __tablename__ = "communications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    tenant_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    contact_id = Column(String(64), nullable=True, index=True)
    channel = Column(String(20), nullable=False)  # sms, email, call
    direction = Column(String(20), nullable=False)  # inbound, outbound
    to_address = Column(String(255), nullable=True)
    subject = Column(String(500), nullable=True)
    body = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)
    provider_message_id = Column(String(255), nullable=True)
    # "metadata" is reserved on declarative classes
    message_metadata = Column("metadata", JSONType, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_communications_tenant_contact", "tenant_id", "contact_id"),
    )

    def __repr__(self) -> str:
        return f"<Communication(id={self.id}, channel={self.channel}, direction={self.direction})>"
