"""Read-only course catalog queries.

Resolves the course -> module -> resource hierarchy the progress and quiz
engines evaluate against, plus assignment counts for certificates.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Course, CourseModule, ModuleResource


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class CourseCatalogService:
    """Catalog lookups backed by Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_course = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.courses WHERE course_id = ?
        """)

        self._get_module = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules_by_id WHERE module_id = ?
        """)

        self._list_course_modules = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_modules WHERE course_id = ?
        """)

        self._get_resource = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.resources_by_id WHERE resource_id = ?
        """)

        self._list_module_resources = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_resources WHERE module_id = ?
        """)

        self._count_assignments = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.course_assignments
            WHERE course_id = ?
        """)

        self._count_user_submissions = self.session.prepare(f"""
            SELECT COUNT(*) FROM {self.keyspace}.assignment_submissions_by_user
            WHERE user_id = ? AND course_id = ?
        """)

    # ==========================================================================
    # Courses & Modules
    # ==========================================================================

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return CourseModule.from_row(row) if row else None

    async def list_modules(self, course_id: UUID) -> list[CourseModule]:
        """All modules of a course ordered by position."""
        rows = await self.session.aexecute(self._list_course_modules, [course_id])
        modules = [CourseModule.from_row(row) for row in rows]
        return sorted(modules, key=lambda m: m.position)

    async def list_published_modules(self, course_id: UUID) -> list[CourseModule]:
        return [m for m in await self.list_modules(course_id) if m.is_published]

    # ==========================================================================
    # Resources
    # ==========================================================================

    async def get_resource(self, resource_id: UUID) -> ModuleResource | None:
        result = await self.session.aexecute(self._get_resource, [resource_id])
        row = result.one()
        return ModuleResource.from_row(row) if row else None

    async def list_resources(self, module_id: UUID) -> list[ModuleResource]:
        """All resources of a module ordered by position."""
        rows = await self.session.aexecute(self._list_module_resources, [module_id])
        resources = [ModuleResource.from_row(row) for row in rows]
        return sorted(resources, key=lambda r: r.position)

    async def list_required_resources(self, module_id: UUID) -> list[ModuleResource]:
        return [r for r in await self.list_resources(module_id) if r.is_required]

    # ==========================================================================
    # Assignments
    # ==========================================================================

    async def count_assignments(self, course_id: UUID) -> int:
        result = await self.session.aexecute(self._count_assignments, [course_id])
        row = result.one()
        return row.count if row else 0

    async def count_user_submissions(self, user_id: UUID, course_id: UUID) -> int:
        """Number of distinct course assignments the user has submitted."""
        result = await self.session.aexecute(
            self._count_user_submissions, [user_id, course_id]
        )
        row = result.one()
        return row.count if row else 0
