from goodcall.audit.models import AuditLog
from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.goals.models import Goal
from goodcall.notifications.models import Notification
from goodcall.sales.models import Sale
from goodcall.users.models import User

__all__ = [
    "AuditLog",
    "Company",
    "Goal",
    "Notification",
    "Sale",
    "SaleStatus",
    "Technology",
    "User",
]
