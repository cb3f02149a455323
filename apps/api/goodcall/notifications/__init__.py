from goodcall.notifications.api import router
from goodcall.notifications.models import Notification
from goodcall.notifications.service import NotificationService, notification_service

__all__ = ["router", "Notification", "NotificationService", "notification_service"]
