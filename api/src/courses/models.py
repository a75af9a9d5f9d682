"""Database models for the course catalog.

Cassandra table definitions for:
- Courses: Title and owning instructor
- Modules: Ordered, publishable sections of a course
- Resources: Module content, flagged required or optional
- Assignments: Counted for certificate eligibility

The catalog is read-only from the progress engine's point of view.
Authoring screens write these tables; the engine only reads them.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class ResourceType(str, Enum):
    """Module resource content type."""

    VIDEO = "video"
    DOCUMENT = "document"
    LINK = "link"
    TEXT = "text"
    QUIZ = "quiz"


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    course_id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    instructor_id UUID,
    is_published BOOLEAN,
    created_at TIMESTAMP
)
"""

# Modules of a course, read in full and ordered by position in code
COURSE_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_modules (
    course_id UUID,
    module_id UUID,
    title TEXT,
    position INT,
    is_published BOOLEAN,
    PRIMARY KEY (course_id, module_id)
)
"""

# Lookup: module by id (resource -> module -> course walk)
MODULES_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_id (
    module_id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    position INT,
    is_published BOOLEAN
)
"""

MODULE_RESOURCES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_resources (
    module_id UUID,
    resource_id UUID,
    title TEXT,
    resource_type TEXT,
    is_required BOOLEAN,
    position INT,
    PRIMARY KEY (module_id, resource_id)
)
"""

RESOURCES_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.resources_by_id (
    resource_id UUID PRIMARY KEY,
    module_id UUID,
    title TEXT,
    resource_type TEXT,
    is_required BOOLEAN,
    position INT
)
"""

COURSE_ASSIGNMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_assignments (
    course_id UUID,
    assignment_id UUID,
    title TEXT,
    due_date TIMESTAMP,
    PRIMARY KEY (course_id, assignment_id)
)
"""

# One row per assignment a student has submitted in a course
ASSIGNMENT_SUBMISSIONS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignment_submissions_by_user (
    user_id UUID,
    course_id UUID,
    assignment_id UUID,
    submission_id UUID,
    submitted_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), assignment_id)
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSE_MODULES_TABLE_CQL,
    MODULES_BY_ID_TABLE_CQL,
    MODULE_RESOURCES_TABLE_CQL,
    RESOURCES_BY_ID_TABLE_CQL,
    COURSE_ASSIGNMENTS_TABLE_CQL,
    ASSIGNMENT_SUBMISSIONS_BY_USER_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        course_id: Course UUID
        title: Display title (used in achievement notifications)
        instructor_id: Owning instructor UUID
        description: Optional description
        is_published: Publication flag
        created_at: Creation timestamp
    """

    def __init__(
        self,
        course_id: UUID,
        title: str,
        instructor_id: UUID,
        description: str | None = None,
        is_published: bool = True,
        created_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.title = title
        self.instructor_id = instructor_id
        self.description = description
        self.is_published = is_published
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    def is_instructor(self, user_id: UUID) -> bool:
        return self.instructor_id == user_id

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            title=row.title or "",
            instructor_id=row.instructor_id,
            description=row.description,
            is_published=bool(row.is_published),
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "title": self.title,
            "instructor_id": self.instructor_id,
            "description": self.description,
            "is_published": self.is_published,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.course_id} {self.title!r}>"


class CourseModule:
    """Module within a course.

    Only published modules count towards course progress.
    """

    def __init__(
        self,
        module_id: UUID,
        course_id: UUID,
        title: str,
        position: int = 0,
        is_published: bool = False,
    ):
        self.module_id = module_id
        self.course_id = course_id
        self.title = title
        self.position = position
        self.is_published = is_published

    @classmethod
    def from_row(cls, row: Any) -> "CourseModule":
        """Create CourseModule instance from Cassandra row."""
        return cls(
            module_id=row.module_id,
            course_id=row.course_id,
            title=row.title or "",
            position=row.position or 0,
            is_published=bool(row.is_published),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_id": self.module_id,
            "course_id": self.course_id,
            "title": self.title,
            "position": self.position,
            "is_published": self.is_published,
        }

    def __repr__(self) -> str:
        state = "published" if self.is_published else "draft"
        return f"<CourseModule {self.module_id} #{self.position} {state}>"


class ModuleResource:
    """Resource within a module.

    Attributes:
        resource_id: Resource UUID
        module_id: Owning module UUID
        title: Display title
        resource_type: One of ResourceType values
        is_required: Required resources gate module completion
        position: Ordering inside the module
    """

    def __init__(
        self,
        resource_id: UUID,
        module_id: UUID,
        title: str,
        resource_type: str = ResourceType.TEXT.value,
        is_required: bool = True,
        position: int = 0,
    ):
        self.resource_id = resource_id
        self.module_id = module_id
        self.title = title
        self.resource_type = resource_type
        self.is_required = is_required
        self.position = position

    @classmethod
    def from_row(cls, row: Any) -> "ModuleResource":
        """Create ModuleResource instance from Cassandra row."""
        return cls(
            resource_id=row.resource_id,
            module_id=row.module_id,
            title=row.title or "",
            resource_type=row.resource_type or ResourceType.TEXT.value,
            # Missing flag means required
            is_required=row.is_required is not False,
            position=row.position or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_id": self.resource_id,
            "module_id": self.module_id,
            "title": self.title,
            "resource_type": self.resource_type,
            "is_required": self.is_required,
            "position": self.position,
        }

    def __repr__(self) -> str:
        flag = "required" if self.is_required else "optional"
        return f"<ModuleResource {self.resource_id} {flag}>"
