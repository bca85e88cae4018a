"""Contact repository for data access operations."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.models.contact import Contact


class ContactRepository:
    """Repository for contact data access."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def create(self, contact_data: dict) -> Contact:
        """Create a new contact."""
        contact = Contact(**contact_data)
        self.db.add(contact)
        self.db.commit()
        self.db.refresh(contact)
        return contact

    def get_by_id(self, contact_id: UUID, tenant_id: UUID) -> Contact | None:
        """Get contact by ID, filtered by tenant."""
        return (
            self.db.query(Contact)
            .filter(Contact.id == contact_id, Contact.tenant_id == tenant_id)
            .first()
        )

    def get_contact_email(self, contact_id: str, tenant_id: UUID) -> str | None:
        """Email address of a contact, or None if unknown or not a valid ID."""
        try:
            contact_uuid = UUID(str(contact_id))
        except ValueError:
            return None
        contact = self.get_by_id(contact_uuid, tenant_id)
        if not contact or not contact.is_active:
            return None
        return contact.email or None
