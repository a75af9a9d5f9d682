"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.notifications.models import Notification, NotificationType


class NotificationResponse(BaseModel):
    """Single notification response."""

    id: UUID = Field(description="Notification ID")
    type: NotificationType = Field(description="Notification type")
    title: str = Field(description="Notification title")
    message: str = Field(description="Notification message")
    reference_id: UUID | None = Field(None, description="Related module/course/quiz")
    reference_type: str | None = Field(None, description="module, course or quiz")
    is_read: bool = Field(description="Whether notification was read")
    created_at: datetime = Field(description="When notification was created")

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        """Create response from notification entity."""
        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            reference_id=notification.reference_id,
            reference_type=notification.reference_type,
            is_read=notification.is_read,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse] = Field(description="List of notifications")
    unread_count: int = Field(description="Unread notification count")


class UnreadCountResponse(BaseModel):
    count: int = Field(description="Number of unread notifications")


class MarkReadResponse(BaseModel):
    marked_count: int = Field(description="Number of notifications marked as read")
