"""Student progress tracking service layer.

Business logic for:
- Course enrollment management
- Resource progress updates with module/course cascade
- Manual module completion requests
- Certificate eligibility and progress reports

Every mutating operation returns an ``Outcome`` whose events are handed to
the achievement notifier before returning.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

import structlog

from src.achievements import AchievementNotifier, Outcome, deliver_events
from src.core.exceptions import (
    BadRequestError,
    ConflictError,
    CourseModuleNotFoundError,
    CourseNotFoundError,
    NotEnrolledError,
    NotInstructorError,
    ResourceNotFoundError,
)
from src.courses.models import Course, CourseModule
from src.courses.service import CourseCatalogService

from .certificates import CertificateEligibility, CertificateEligibilityChecker
from .evaluator import CourseProgressAggregator, ModuleCompletionEvaluator
from .models import Certificate, Enrollment, ModuleProgress, ResourceProgress
from .store import DerivedProgressStore, ProgressStore


logger = structlog.get_logger(__name__)


class AlreadyEnrolledError(ConflictError):
    """User already enrolled."""

    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


# ==============================================================================
# Report Types
# ==============================================================================


@dataclass(frozen=True)
class ModuleProgressReport:
    module: CourseModule
    required_resources: int
    completed_resources: int
    is_completed: bool
    completed_at: datetime | None


@dataclass(frozen=True)
class CourseProgressReport:
    enrollment: Enrollment
    modules: list[ModuleProgressReport]
    certificate: Certificate | None


@dataclass(frozen=True)
class CourseStatistics:
    course_id: UUID
    total_modules: int
    published_modules: int
    total_resources: int
    enrolled_students: int
    avg_completion_rate: float


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Facade over the progress engine used by the HTTP layer."""

    def __init__(
        self,
        catalog: CourseCatalogService,
        store: ProgressStore,
        derived: DerivedProgressStore,
        notifier: AchievementNotifier | None = None,
        certificate_min_progress: int = 100,
    ):
        self.catalog = catalog
        self.store = store
        self.notifier = notifier
        self.aggregator = CourseProgressAggregator(catalog, store, derived)
        self.evaluator = ModuleCompletionEvaluator(
            catalog, store, derived, self.aggregator
        )
        self.certificates = CertificateEligibilityChecker(
            catalog, store, certificate_min_progress
        )

    async def _dispatch(self, outcome: Outcome) -> Outcome:
        await deliver_events(self.notifier, outcome.events)
        return outcome

    async def _require_course(self, course_id: UUID) -> Course:
        course = await self.catalog.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        return course

    async def _require_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        enrollment = await self.store.get_enrollment(user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError
        return enrollment

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll_user(self, user_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll user in a course.

        Raises:
            CourseNotFoundError: If the course does not exist
            AlreadyEnrolledError: If user already enrolled
        """
        await self._require_course(course_id)

        enrollment = Enrollment(
            course_id=course_id,
            user_id=user_id,
            enrolled_at=datetime.now(UTC),
        )
        if not await self.store.create_enrollment(enrollment):
            raise AlreadyEnrolledError

        logger.info("user_enrolled", user_id=str(user_id), course_id=str(course_id))
        return enrollment

    async def unenroll_user(self, user_id: UUID, course_id: UUID) -> None:
        await self._require_enrollment(user_id, course_id)
        await self.store.delete_enrollment(user_id, course_id)
        logger.info("user_unenrolled", user_id=str(user_id), course_id=str(course_id))

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment:
        return await self._require_enrollment(user_id, course_id)

    async def get_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        return await self.store.list_user_enrollments(user_id)

    # ==========================================================================
    # Progress Updates
    # ==========================================================================

    async def upsert_resource_progress(
        self,
        user_id: UUID,
        resource_id: UUID,
        is_completed: bool | None = None,
        time_spent: int | None = None,
        last_position: int | None = None,
        clear_completed_at: bool = False,
    ) -> Outcome[ResourceProgress]:
        """Record progress on a resource and cascade to module and course.

        Args:
            user_id: User UUID
            resource_id: Resource UUID
            is_completed: Completion flag; True stamps completed_at
            time_spent: Total seconds spent on the resource
            last_position: Resume position
            clear_completed_at: Drop completed_at when un-completing

        Raises:
            ResourceNotFoundError: If the resource does not exist
            CourseModuleNotFoundError: If its module does not exist
            NotEnrolledError: If user is not enrolled in the course
            BadRequestError: If a numeric field is negative
        """
        if (time_spent is not None and time_spent < 0) or (
            last_position is not None and last_position < 0
        ):
            raise BadRequestError(
                "time_spent and last_position must be non-negative",
                "invalid_progress",
            )

        resource = await self.catalog.get_resource(resource_id)
        if resource is None:
            raise ResourceNotFoundError
        module = await self.catalog.get_module(resource.module_id)
        if module is None:
            raise CourseModuleNotFoundError
        await self._require_enrollment(user_id, module.course_id)

        now = datetime.now(UTC)
        progress = await self.store.get_resource_progress(
            user_id, module.module_id, resource_id
        ) or ResourceProgress(
            user_id=user_id,
            module_id=module.module_id,
            resource_id=resource_id,
        )

        if is_completed is True:
            progress.is_completed = True
            progress.completed_at = now
        elif is_completed is False:
            progress.is_completed = False
            if clear_completed_at:
                progress.completed_at = None
        if time_spent is not None:
            progress.time_spent = time_spent
        if last_position is not None:
            progress.last_position = last_position
        progress.updated_at = now

        await self.store.save_resource_progress(progress)
        logger.info(
            "resource_progress_updated",
            user_id=str(user_id),
            resource_id=str(resource_id),
            is_completed=progress.is_completed,
        )

        cascade = await self.evaluator.reevaluate(user_id, module)
        return await self._dispatch(Outcome(progress, cascade.events))

    async def update_module_progress(
        self,
        user_id: UUID,
        module_id: UUID,
        is_completed: bool | None = None,
    ) -> Outcome[ModuleProgress | None]:
        """Record module access and optionally request completion.

        Completion is granted only when every required resource is done.
        Passing ``is_completed=False`` never reverts a completed module.

        Raises:
            CourseModuleNotFoundError: If the module does not exist
            NotEnrolledError: If user is not enrolled in the course
            BadRequestError: If completion requested with open requirements
        """
        module = await self.catalog.get_module(module_id)
        if module is None:
            raise CourseModuleNotFoundError
        await self._require_enrollment(user_id, module.course_id)

        if is_completed:
            outcome = await self.evaluator.complete_manually(user_id, module)
        else:
            outcome = await self.evaluator.record_access(user_id, module)
        return await self._dispatch(outcome)

    async def reevaluate_course_progress(
        self, user_id: UUID, course_id: UUID
    ) -> Outcome[Enrollment]:
        await self._require_course(course_id)
        await self._require_enrollment(user_id, course_id)

        outcome = await self.aggregator.reevaluate(user_id, course_id)
        if outcome.data is None:
            # Unenrolled between the check and the recompute
            raise NotEnrolledError
        return await self._dispatch(outcome)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def check_certificate_eligibility(
        self, user_id: UUID, course_id: UUID
    ) -> CertificateEligibility:
        return await self.certificates.check(user_id, course_id)

    async def get_course_progress(
        self, user_id: UUID, course_id: UUID
    ) -> CourseProgressReport:
        """Per-module breakdown of a student's progress in a course."""
        await self._require_course(course_id)
        enrollment = await self._require_enrollment(user_id, course_id)

        module_rows = {
            p.module_id: p
            for p in await self.store.list_module_progress(user_id, course_id)
        }
        reports = []
        for module in await self.catalog.list_published_modules(course_id):
            required = await self.catalog.list_required_resources(module.module_id)
            required_ids = {r.resource_id for r in required}
            done = sum(
                1
                for p in await self.store.list_resource_progress(
                    user_id, module.module_id
                )
                if p.is_completed and p.resource_id in required_ids
            )
            row = module_rows.get(module.module_id)
            reports.append(
                ModuleProgressReport(
                    module=module,
                    required_resources=len(required_ids),
                    completed_resources=done,
                    is_completed=bool(row and row.is_completed),
                    completed_at=row.completed_at if row else None,
                )
            )

        certificate = await self.store.get_certificate(user_id, course_id)
        return CourseProgressReport(
            enrollment=enrollment, modules=reports, certificate=certificate
        )

    async def get_course_statistics(
        self, instructor_id: UUID, course_id: UUID
    ) -> CourseStatistics:
        """Module and completion summary for the course instructor.

        Raises:
            CourseNotFoundError: If the course does not exist
            NotInstructorError: If the caller does not own the course
        """
        course = await self._require_course(course_id)
        if not course.is_instructor(instructor_id):
            raise NotInstructorError("Only course instructors can view statistics")

        modules = await self.catalog.list_modules(course_id)
        module_ids = {m.module_id for m in modules}
        published = sum(1 for m in modules if m.is_published)
        total_resources = 0
        for module in modules:
            total_resources += len(await self.catalog.list_resources(module.module_id))

        enrollments = await self.store.list_course_enrollments(course_id)
        completions = 0
        for enrollment in enrollments:
            completions += sum(
                1
                for p in await self.store.list_module_progress(
                    enrollment.user_id, course_id
                )
                if p.is_completed and p.module_id in module_ids
            )

        denominator = len(enrollments) * published or 1
        return CourseStatistics(
            course_id=course_id,
            total_modules=len(modules),
            published_modules=published,
            total_resources=total_resources,
            enrolled_students=len(enrollments),
            avg_completion_rate=completions / denominator if completions else 0.0,
        )
