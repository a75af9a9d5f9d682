"""Database models for achievement notifications.

Cassandra table definitions for:
- Notifications: In-app notifications per user, newest first
- Unread counts: Counter table for badge counts

Notification types:
- MODULE_COMPLETED: Student finished every required resource of a module
- COURSE_COMPLETED: Student reached 100% course progress
- QUIZ_COMPLETED: Student submitted a quiz attempt
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.achievements import CourseCompleted, ModuleCompleted, QuizCompleted


class NotificationType(str, Enum):
    """Types of notifications."""

    MODULE_COMPLETED = "module_completed"
    COURSE_COMPLETED = "course_completed"
    QUIZ_COMPLETED = "quiz_completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id UUID,
    type TEXT,
    title TEXT,
    message TEXT,
    reference_id UUID,
    reference_type TEXT,
    is_read BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification entity."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    reference_id: UUID | None
    reference_type: str | None
    is_read: bool
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        created_at = row.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            reference_id=row.reference_id,
            reference_type=row.reference_type,
            is_read=row.is_read or False,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "notification_id": str(self.notification_id),
            "user_id": str(self.user_id),
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "reference_id": str(self.reference_id) if self.reference_id else None,
            "reference_type": self.reference_type,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    reference_id: UUID | None = None,
    reference_type: str | None = None,
) -> Notification:
    """Create a new unread notification."""
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        reference_id=reference_id,
        reference_type=reference_type,
        is_read=False,
        created_at=datetime.now(UTC),
    )


def create_module_completed_notification(event: ModuleCompleted) -> Notification:
    return create_notification(
        user_id=event.user_id,
        notification_type=NotificationType.MODULE_COMPLETED,
        title="Module Completed",
        message=(
            f'Congratulations! You completed "{event.module_title}" '
            f"in {event.course_title}"
        ),
        reference_id=event.module_id,
        reference_type="module",
    )


def create_course_completed_notification(event: CourseCompleted) -> Notification:
    return create_notification(
        user_id=event.user_id,
        notification_type=NotificationType.COURSE_COMPLETED,
        title="Course Completed",
        message=(
            f"Congratulations! You completed {event.course_title} "
            f"with {event.progress_percent}% completion rate!"
        ),
        reference_id=event.course_id,
        reference_type="course",
    )


def create_quiz_completed_notification(event: QuizCompleted) -> Notification:
    return create_notification(
        user_id=event.user_id,
        notification_type=NotificationType.QUIZ_COMPLETED,
        title="Quiz Completed",
        message=(
            f'You completed "{event.quiz_title}" in {event.context_title}. '
            f"Score: {event.earned_points}/{event.total_points}"
        ),
        reference_id=event.quiz_id,
        reference_type="quiz",
    )
