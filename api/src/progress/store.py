"""Cassandra persistence for progress state.

Two capabilities over the same tables:

- ``ProgressStore``: reads, student-supplied resource progress and
  enrollment lifecycle.
- ``DerivedProgressStore``: module completion, enrollment progress and
  achievement claims. Only the completion evaluator and course aggregator
  hold one, so derived state is never written from request payloads.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Certificate, Enrollment, ModuleProgress, ResourceProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Student-facing Store
# ==============================================================================


class ProgressStore:
    """Reads and student-owned writes."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._list_course_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?
        """)

        self._list_user_enrollments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments_by_user WHERE user_id = ?
        """)

        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, user_id, progress, grade, enrolled_at, completed_at,
             last_accessed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)

        self._insert_enrollment_by_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_user
            (user_id, course_id, progress, grade, enrolled_at, completed_at,
             last_accessed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE course_id = ? AND user_id = ?
        """)

        self._delete_enrollment_by_user = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_user
            WHERE user_id = ? AND course_id = ?
        """)

        # Resource progress
        self._get_resource_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.resource_progress
            WHERE user_id = ? AND module_id = ? AND resource_id = ?
        """)

        self._list_resource_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.resource_progress
            WHERE user_id = ? AND module_id = ?
        """)

        self._upsert_resource_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.resource_progress
            (user_id, module_id, resource_id, is_completed, completed_at,
             time_spent, last_position, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Module progress (read side)
        self._get_module_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_progress
            WHERE user_id = ? AND course_id = ? AND module_id = ?
        """)

        self._list_module_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_progress
            WHERE user_id = ? AND course_id = ?
        """)

        # Certificates
        self._get_certificate = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.certificates
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Enrollments
    # ==========================================================================

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get enrollment by user and course."""
        result = await self.session.aexecute(self._get_enrollment, [course_id, user_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_user_enrollments, [user_id])
        return [Enrollment.from_row(row) for row in rows]

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        rows = await self.session.aexecute(self._list_course_enrollments, [course_id])
        return [Enrollment.from_row(row) for row in rows]

    async def create_enrollment(self, enrollment: Enrollment) -> bool:
        """Insert an enrollment unless one exists.

        Returns:
            True when this call created the enrollment
        """
        values = [
            enrollment.progress,
            enrollment.grade,
            enrollment.enrolled_at,
            enrollment.completed_at,
            enrollment.last_accessed_at,
        ]
        result = await self.session.aexecute(
            self._insert_enrollment,
            [enrollment.course_id, enrollment.user_id, *values],
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(
            self._insert_enrollment_by_user,
            [enrollment.user_id, enrollment.course_id, *values],
        )
        return True

    async def delete_enrollment(self, user_id: UUID, course_id: UUID) -> None:
        await self.session.aexecute(self._delete_enrollment, [course_id, user_id])
        await self.session.aexecute(self._delete_enrollment_by_user, [user_id, course_id])

    # ==========================================================================
    # Resource Progress
    # ==========================================================================

    async def get_resource_progress(
        self, user_id: UUID, module_id: UUID, resource_id: UUID
    ) -> ResourceProgress | None:
        result = await self.session.aexecute(
            self._get_resource_progress, [user_id, module_id, resource_id]
        )
        row = result.one()
        return ResourceProgress.from_row(row) if row else None

    async def list_resource_progress(
        self, user_id: UUID, module_id: UUID
    ) -> list[ResourceProgress]:
        """Progress rows for every resource of a module the user has touched."""
        rows = await self.session.aexecute(
            self._list_resource_progress, [user_id, module_id]
        )
        return [ResourceProgress.from_row(row) for row in rows]

    async def save_resource_progress(self, progress: ResourceProgress) -> None:
        await self.session.aexecute(
            self._upsert_resource_progress,
            [
                progress.user_id,
                progress.module_id,
                progress.resource_id,
                progress.is_completed,
                progress.completed_at,
                progress.time_spent,
                progress.last_position,
                progress.updated_at,
            ],
        )

    # ==========================================================================
    # Module Progress & Certificates (read only)
    # ==========================================================================

    async def get_module_progress(
        self, user_id: UUID, course_id: UUID, module_id: UUID
    ) -> ModuleProgress | None:
        result = await self.session.aexecute(
            self._get_module_progress, [user_id, course_id, module_id]
        )
        row = result.one()
        return ModuleProgress.from_row(row) if row else None

    async def list_module_progress(
        self, user_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]:
        rows = await self.session.aexecute(
            self._list_module_progress, [user_id, course_id]
        )
        return [ModuleProgress.from_row(row) for row in rows]

    async def get_certificate(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        result = await self.session.aexecute(
            self._get_certificate, [user_id, course_id]
        )
        row = result.one()
        return Certificate.from_row(row) if row else None


# ==============================================================================
# Derived-state Store
# ==============================================================================


class DerivedProgressStore:
    """Conditional writes for state derived from resource progress.

    Every claim method returns True only for the single caller whose
    lightweight transaction applied.
    """

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._insert_completed_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_progress
            (user_id, course_id, module_id, is_completed, completed_at,
             last_accessed_at)
            VALUES (?, ?, ?, true, ?, ?)
            IF NOT EXISTS
        """)

        self._complete_open_module = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_progress
            SET is_completed = true, completed_at = ?, last_accessed_at = ?
            WHERE user_id = ? AND course_id = ? AND module_id = ?
            IF is_completed = false
        """)

        self._insert_open_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_progress
            (user_id, course_id, module_id, is_completed, last_accessed_at)
            VALUES (?, ?, ?, false, ?)
            IF NOT EXISTS
        """)

        self._touch_module = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_progress
            SET last_accessed_at = ?
            WHERE user_id = ? AND course_id = ? AND module_id = ?
            IF EXISTS
        """)

        self._set_enrollment_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET progress = ?, completed_at = ?
            WHERE course_id = ? AND user_id = ?
            IF EXISTS
        """)

        self._set_enrollment_progress_by_user = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments_by_user
            SET progress = ?, completed_at = ?
            WHERE user_id = ? AND course_id = ?
        """)

        self._insert_claim = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.achievement_claims
            (user_id, achievement_key, claimed_at)
            VALUES (?, ?, ?)
            IF NOT EXISTS
        """)

    async def claim_module_completion(
        self, user_id: UUID, course_id: UUID, module_id: UUID, now: datetime
    ) -> bool:
        """Flip a module from incomplete to complete.

        Returns:
            True if this call performed the transition
        """
        result = await self.session.aexecute(
            self._insert_completed_module,
            [user_id, course_id, module_id, now, now],
        )
        if result.was_applied:
            return True

        result = await self.session.aexecute(
            self._complete_open_module,
            [now, now, user_id, course_id, module_id],
        )
        return result.was_applied

    async def touch_module(
        self, user_id: UUID, course_id: UUID, module_id: UUID, now: datetime
    ) -> None:
        """Record access, creating an incomplete row on first touch."""
        result = await self.session.aexecute(
            self._insert_open_module, [user_id, course_id, module_id, now]
        )
        if not result.was_applied:
            await self.session.aexecute(
                self._touch_module, [now, user_id, course_id, module_id]
            )

    async def set_enrollment_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        progress: int,
        completed_at: datetime | None,
    ) -> bool:
        """Overwrite enrollment progress. No-op if the enrollment vanished.

        Returns:
            False if the enrollment no longer exists
        """
        result = await self.session.aexecute(
            self._set_enrollment_progress,
            [progress, completed_at, course_id, user_id],
        )
        if not result.was_applied:
            logger.warning(
                "enrollment_progress_skipped",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            return False

        await self.session.aexecute(
            self._set_enrollment_progress_by_user,
            [progress, completed_at, user_id, course_id],
        )
        return True

    async def claim_achievement(
        self, user_id: UUID, achievement_key: str, now: datetime
    ) -> bool:
        """Record an achievement once. True only for the first claimant."""
        result = await self.session.aexecute(
            self._insert_claim, [user_id, achievement_key, now]
        )
        return result.was_applied
