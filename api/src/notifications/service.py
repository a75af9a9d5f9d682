# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification service layer.

Delivers achievement events:
- Persists an in-app notification per event
- Tracks unread counts
- Publishes to Redis Pub/Sub for real-time subscribers
"""

import contextlib
import json
from functools import singledispatchmethod
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.achievements import (
    AchievementEvent,
    CourseCompleted,
    ModuleCompleted,
    QuizCompleted,
)
from src.core.redis import notification_channel

from .models import (
    Notification,
    create_course_completed_notification,
    create_module_completed_notification,
    create_quiz_completed_notification,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

logger = structlog.get_logger(__name__)


class NotificationService:
    """Achievement notifier backed by Cassandra and Redis."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        publish_enabled: bool = True,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.publish_enabled = publish_enabled
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, notification_id, type, title, message, reference_id,
             reference_type, is_read, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)

        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)

        self._incr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)

        self._decr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)

        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {self.keyspace}.notification_unread_counts
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Achievement Dispatch
    # ==========================================================================

    async def dispatch(self, events: list[AchievementEvent]) -> None:
        """Deliver each event in order."""
        for event in events:
            await self.notify(event)

    @singledispatchmethod
    async def notify(self, event: AchievementEvent) -> Notification:
        msg = f"Unsupported achievement event: {type(event).__name__}"
        raise TypeError(msg)

    @notify.register
    async def _(self, event: ModuleCompleted) -> Notification:
        return await self.create_notification(
            create_module_completed_notification(event)
        )

    @notify.register
    async def _(self, event: CourseCompleted) -> Notification:
        return await self.create_notification(
            create_course_completed_notification(event)
        )

    @notify.register
    async def _(self, event: QuizCompleted) -> Notification:
        return await self.create_notification(create_quiz_completed_notification(event))

    # ==========================================================================
    # Notification Creation
    # ==========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        """Persist a notification and publish it."""
        await self.session.aexecute(
            self._insert_notification,
            [
                notification.user_id,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.reference_id,
                notification.reference_type,
                notification.is_read,
                notification.created_at,
            ],
        )
        await self.session.aexecute(self._incr_unread, [notification.user_id])

        logger.info(
            "notification_created",
            user_id=str(notification.user_id),
            type=notification.type.value,
        )

        await self._publish_notification(notification)
        return notification

    async def _publish_notification(self, notification: Notification) -> None:
        """Publish notification to Redis Pub/Sub for real-time delivery."""
        if not self.redis or not self.publish_enabled:
            return

        message = {"type": "notification", "data": notification.to_dict()}

        # Non-critical: the notification row is already stored
        with contextlib.suppress(Exception):
            await self.redis.publish(
                notification_channel(str(notification.user_id)), json.dumps(message)
            )

    # ==========================================================================
    # Reading
    # ==========================================================================

    async def get_notifications(
        self, user_id: UUID, limit: int = 20, unread_only: bool = False
    ) -> list[Notification]:
        """Most recent notifications for a user."""
        rows = await self.session.aexecute(self._get_notifications, [user_id, limit])
        notifications = [Notification.from_row(row) for row in rows]
        if unread_only:
            notifications = [n for n in notifications if not n.is_read]
        return notifications

    async def get_unread_count(self, user_id: UUID) -> int:
        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = result.one()
        return row.count if row and row.count else 0

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all recent notifications as read.

        Returns count of notifications marked as read.
        """
        rows = await self.session.aexecute(self._get_notifications, [user_id, 1000])
        marked = 0
        for row in rows:
            if not row.is_read:
                await self.session.aexecute(
                    self._mark_read, [user_id, row.created_at, row.notification_id]
                )
                marked += 1

        if marked > 0:
            await self.session.aexecute(self._decr_unread, [marked, user_id])
            logger.info(
                "notifications_marked_read",
                user_id=str(user_id),
                count=marked,
            )
        return marked
