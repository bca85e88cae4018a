from app.core.db.session import Base
from app.models.automation import (
    AutomationLog,
    AutomationLogStatus,
    AutomationQueueItem,
    AutomationQueueStatus,
    AutomationRule,
)
from app.models.communication import Communication
from app.models.contact import Contact

__all__ = [
    "AutomationLog",
    "AutomationLogStatus",
    "AutomationQueueItem",
    "AutomationQueueStatus",
    "AutomationRule",
    "Base",
    "Communication",
    "Contact",
]
