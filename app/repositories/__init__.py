"""Repositories for data access operations."""

from app.repositories.automation_repository import AutomationRepository
from app.repositories.communication_repository import CommunicationRepository
from app.repositories.contact_repository import ContactRepository

__all__ = [
    "AutomationRepository",
    "CommunicationRepository",
    "ContactRepository",
]
