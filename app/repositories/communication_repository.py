"""Communication repository: the outbound message log."""

from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.communication import Communication


class CommunicationRepository:
    """Repository for communication data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

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
    ) -> Communication:
        """Persist one message."""
        communication = Communication(
            tenant_id=tenant_id,
            contact_id=contact_id,
            direction=direction,
            channel=channel,
            to_address=to,
            subject=subject,
            body=body,
            status=status,
            provider_message_id=provider_message_id,
            message_metadata=metadata,
        )
        self.db.add(communication)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return communication

    def get_by_contact(
        self, contact_id: str, tenant_id: UUID, skip: int = 0, limit: int = 100
    ) -> list[Communication]:
        """Messages exchanged with a contact, newest first."""
        return (
            self.db.query(Communication)
            .filter(Communication.contact_id == contact_id, Communication.tenant_id == tenant_id)
            .order_by(Communication.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
