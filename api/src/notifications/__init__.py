"""Achievement notifications.

Provides:
- Persisted in-app notifications for module, course and quiz achievements
- Unread count tracking
- Redis Pub/Sub publishing for real-time subscribers

Note: Router is imported directly in main.py to avoid circular imports.
"""

from src.notifications.models import (
    NOTIFICATIONS_TABLES_CQL,
    Notification,
    NotificationType,
)
from src.notifications.service import NotificationService


__all__ = [
    "NOTIFICATIONS_TABLES_CQL",
    "Notification",
    "NotificationService",
    "NotificationType",
]
