"""Pydantic schemas for student progress tracking.

Request and response models for:
- Resource progress updates
- Module access and completion requests
- Course enrollment
- Progress, certificate and statistics queries
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.achievements import AchievementEvent
from src.achievements.schemas import AchievementResponse

from .certificates import CertificateEligibility
from .models import Certificate, Enrollment, ModuleProgress, ResourceProgress
from .service import CourseProgressReport, CourseStatistics


# ==============================================================================
# Resource Progress Schemas
# ==============================================================================


class UpdateResourceProgressRequest(BaseModel):
    """Request to record progress on a resource."""

    is_completed: bool | None = Field(None, description="Mark complete/incomplete")
    time_spent: int | None = Field(None, ge=0, description="Seconds spent")
    last_position: int | None = Field(None, ge=0, description="Resume position")
    clear_completed_at: bool = Field(
        False, description="Drop completed_at when marking incomplete"
    )


class ResourceProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    resource_id: UUID
    module_id: UUID
    is_completed: bool
    completed_at: datetime | None = None
    time_spent: int = 0
    last_position: int = 0
    updated_at: datetime | None = None
    achievements: list[AchievementResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(
        cls,
        entity: ResourceProgress,
        events: list[AchievementEvent] | None = None,
    ) -> "ResourceProgressResponse":
        return cls(
            resource_id=entity.resource_id,
            module_id=entity.module_id,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            time_spent=entity.time_spent,
            last_position=entity.last_position,
            updated_at=entity.updated_at,
            achievements=[AchievementResponse.from_event(e) for e in events or []],
        )


# ==============================================================================
# Module Progress Schemas
# ==============================================================================


class UpdateModuleProgressRequest(BaseModel):
    """Record module access, optionally requesting completion."""

    is_completed: bool | None = Field(
        None, description="Request completion (requires all required resources)"
    )


class ModuleProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    module_id: UUID
    course_id: UUID
    is_completed: bool
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    achievements: list[AchievementResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(
        cls,
        entity: ModuleProgress,
        events: list[AchievementEvent] | None = None,
    ) -> "ModuleProgressResponse":
        return cls(
            module_id=entity.module_id,
            course_id=entity.course_id,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            achievements=[AchievementResponse.from_event(e) for e in events or []],
        )


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    course_id: UUID = Field(..., description="Course UUID")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    user_id: UUID
    progress: int = Field(description="0-100 percentage of published modules")
    grade: Decimal | None = None
    enrolled_at: datetime
    completed_at: datetime | None = None
    last_accessed_at: datetime | None = None
    achievements: list[AchievementResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(
        cls,
        entity: Enrollment,
        events: list[AchievementEvent] | None = None,
    ) -> "EnrollmentResponse":
        return cls(
            course_id=entity.course_id,
            user_id=entity.user_id,
            progress=entity.progress,
            grade=entity.grade,
            enrolled_at=entity.enrolled_at,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            achievements=[AchievementResponse.from_event(e) for e in events or []],
        )


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class CertificateResponse(BaseModel):
    certificate_id: UUID
    certificate_number: str
    issued_at: datetime

    @classmethod
    def from_entity(cls, entity: Certificate) -> "CertificateResponse":
        return cls(
            certificate_id=entity.certificate_id,
            certificate_number=entity.certificate_number,
            issued_at=entity.issued_at,
        )


class ModuleProgressSummary(BaseModel):
    module_id: UUID
    title: str
    position: int
    required_resources: int
    completed_resources: int
    is_completed: bool
    completed_at: datetime | None = None


class CourseProgressResponse(BaseModel):
    """Per-module progress breakdown for a course."""

    course_id: UUID
    progress: int
    completed_at: datetime | None = None
    modules: list[ModuleProgressSummary]
    certificate: CertificateResponse | None = None

    @classmethod
    def from_report(cls, report: CourseProgressReport) -> "CourseProgressResponse":
        return cls(
            course_id=report.enrollment.course_id,
            progress=report.enrollment.progress,
            completed_at=report.enrollment.completed_at,
            modules=[
                ModuleProgressSummary(
                    module_id=m.module.module_id,
                    title=m.module.title,
                    position=m.module.position,
                    required_resources=m.required_resources,
                    completed_resources=m.completed_resources,
                    is_completed=m.is_completed,
                    completed_at=m.completed_at,
                )
                for m in report.modules
            ],
            certificate=CertificateResponse.from_entity(report.certificate)
            if report.certificate
            else None,
        )


class CourseStatisticsResponse(BaseModel):
    course_id: UUID
    total_modules: int
    published_modules: int
    total_resources: int
    enrolled_students: int
    avg_completion_rate: float

    @classmethod
    def from_statistics(cls, stats: CourseStatistics) -> "CourseStatisticsResponse":
        return cls(
            course_id=stats.course_id,
            total_modules=stats.total_modules,
            published_modules=stats.published_modules,
            total_resources=stats.total_resources,
            enrolled_students=stats.enrolled_students,
            avg_completion_rate=stats.avg_completion_rate,
        )


# ==============================================================================
# Certificate Eligibility Schemas
# ==============================================================================


class ProgressRequirementResponse(BaseModel):
    current: int
    required: int
    met: bool


class AssignmentRequirementResponse(BaseModel):
    total: int
    submitted: int
    met: bool


class CertificateRequirementsResponse(BaseModel):
    progress: ProgressRequirementResponse
    assignments: AssignmentRequirementResponse


class CertificateEligibilityResponse(BaseModel):
    eligible: bool
    has_certificate: bool = False
    reason: str | None = None
    certificate: CertificateResponse | None = None
    requirements: CertificateRequirementsResponse | None = None

    @classmethod
    def from_result(
        cls, result: CertificateEligibility
    ) -> "CertificateEligibilityResponse":
        requirements = None
        if result.requirements is not None:
            requirements = CertificateRequirementsResponse(
                progress=ProgressRequirementResponse(
                    current=result.requirements.progress.current,
                    required=result.requirements.progress.required,
                    met=result.requirements.progress.met,
                ),
                assignments=AssignmentRequirementResponse(
                    total=result.requirements.assignments.total,
                    submitted=result.requirements.assignments.submitted,
                    met=result.requirements.assignments.met,
                ),
            )
        return cls(
            eligible=result.eligible,
            has_certificate=result.has_certificate,
            reason=result.reason,
            certificate=CertificateResponse.from_entity(result.certificate)
            if result.certificate
            else None,
            requirements=requirements,
        )
