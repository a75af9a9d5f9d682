"""Database models for student progress tracking.

Cassandra table definitions for:
- Enrollments: Course enrollment with overall progress (0-100)
- Resource progress: Per-resource completion, time spent and position
- Module progress: Derived completion state per module
- Certificates: Issued certificates, one per user and course
- Achievement claims: Once-only markers gating achievement events

Architecture: Dual-write for enrollments so they can be read by both
course_id and user_id. Derived rows are written with lightweight
transactions so that only one writer observes each completion.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from src.courses.models import ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Enrollments partitioned by course, for "who is in this course?"
ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    user_id UUID,
    progress INT,
    grade DECIMAL,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY (course_id, user_id)
)
"""

# Lookup: courses per user
ENROLLMENTS_BY_USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_user (
    user_id UUID,
    course_id UUID,
    progress INT,
    grade DECIMAL,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY (user_id, course_id)
)
"""

# Partition (user_id, module_id) loads every resource of a module at once
RESOURCE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.resource_progress (
    user_id UUID,
    module_id UUID,
    resource_id UUID,
    is_completed BOOLEAN,
    completed_at TIMESTAMP,
    time_spent INT,
    last_position INT,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id, module_id), resource_id)
)
"""

# is_completed is never left null: conditional claims compare against false
MODULE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_progress (
    user_id UUID,
    course_id UUID,
    module_id UUID,
    is_completed BOOLEAN,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id), module_id)
)
"""

CERTIFICATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates (
    user_id UUID,
    course_id UUID,
    certificate_id UUID,
    certificate_number TEXT,
    issued_at TIMESTAMP,
    PRIMARY KEY ((user_id, course_id))
)
"""

ACHIEVEMENT_CLAIMS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.achievement_claims (
    user_id UUID,
    achievement_key TEXT,
    claimed_at TIMESTAMP,
    PRIMARY KEY (user_id, achievement_key)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_USER_TABLE_CQL,
    RESOURCE_PROGRESS_TABLE_CQL,
    MODULE_PROGRESS_TABLE_CQL,
    CERTIFICATES_TABLE_CQL,
    ACHIEVEMENT_CLAIMS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """Course enrollment entity.

    Attributes:
        course_id: Course UUID
        user_id: User UUID
        progress: Percentage of published modules completed (0-100)
        grade: Final grade, set by instructors
        enrolled_at: Enrollment timestamp
        completed_at: First time progress reached 100
        last_accessed_at: Last access timestamp
    """

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        progress: int = 0,
        grade: Decimal | None = None,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.progress = progress
        self.grade = grade
        self.enrolled_at = ensure_utc_aware(enrolled_at) or datetime.now(UTC)
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at)

    @property
    def is_completed(self) -> bool:
        """Check if course is completed."""
        return self.progress >= 100

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row (either table)."""
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            progress=row.progress or 0,
            grade=row.grade,
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "course_id": self.course_id,
            "user_id": self.user_id,
            "progress": self.progress,
            "grade": self.grade,
            "enrolled_at": self.enrolled_at,
            "completed_at": self.completed_at,
            "last_accessed_at": self.last_accessed_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Enrollment user={self.user_id} course={self.course_id} "
            f"{self.progress}%>"
        )


class ResourceProgress:
    """Per-user progress on a single resource.

    Attributes:
        user_id: User UUID
        module_id: Module owning the resource (partition key)
        resource_id: Resource UUID
        is_completed: Completion flag set by the student
        completed_at: When the resource was last marked complete
        time_spent: Seconds spent on the resource
        last_position: Last position (seconds or page) for resume
        updated_at: Last write timestamp
    """

    def __init__(
        self,
        user_id: UUID,
        module_id: UUID,
        resource_id: UUID,
        is_completed: bool = False,
        completed_at: datetime | None = None,
        time_spent: int = 0,
        last_position: int = 0,
        updated_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.module_id = module_id
        self.resource_id = resource_id
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)
        self.time_spent = time_spent
        self.last_position = last_position
        self.updated_at = ensure_utc_aware(updated_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ResourceProgress":
        """Create ResourceProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            module_id=row.module_id,
            resource_id=row.resource_id,
            is_completed=bool(row.is_completed),
            completed_at=row.completed_at,
            time_spent=row.time_spent or 0,
            last_position=row.last_position or 0,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "module_id": self.module_id,
            "resource_id": self.resource_id,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "time_spent": self.time_spent,
            "last_position": self.last_position,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        state = "done" if self.is_completed else "open"
        return f"<ResourceProgress user={self.user_id} resource={self.resource_id} {state}>"


class ModuleProgress:
    """Derived module completion for a user.

    Written only by the completion evaluator; never by request payloads.
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        is_completed: bool = False,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.module_id = module_id
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "ModuleProgress":
        """Create ModuleProgress instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            module_id=row.module_id,
            is_completed=bool(row.is_completed),
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "module_id": self.module_id,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "last_accessed_at": self.last_accessed_at,
        }

    def __repr__(self) -> str:
        state = "done" if self.is_completed else "open"
        return f"<ModuleProgress user={self.user_id} module={self.module_id} {state}>"


class Certificate:
    """Issued course certificate. Existence means issued."""

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        certificate_id: UUID,
        certificate_number: str,
        issued_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.certificate_id = certificate_id
        self.certificate_number = certificate_number
        self.issued_at = ensure_utc_aware(issued_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Certificate":
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            certificate_id=row.certificate_id,
            certificate_number=row.certificate_number,
            issued_at=row.issued_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "certificate_id": self.certificate_id,
            "certificate_number": self.certificate_number,
            "issued_at": self.issued_at,
        }

    def __repr__(self) -> str:
        return f"<Certificate {self.certificate_number} user={self.user_id}>"
