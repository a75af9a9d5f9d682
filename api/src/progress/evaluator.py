"""Derived progress: module completion and course aggregation.

Resource updates cascade upwards:

    resource progress -> module completion -> enrollment progress

Each level is recomputed from persisted state, so repeated or concurrent
evaluations converge. Transitions that produce achievements go through an
atomic claim; only the claim winner emits the event.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

import structlog

from src.achievements import (
    AchievementEvent,
    CourseCompleted,
    ModuleCompleted,
    Outcome,
    course_completed_key,
)
from src.core.exceptions import BadRequestError
from src.courses.models import CourseModule
from src.courses.service import CourseCatalogService

from .models import Enrollment, ModuleProgress, ResourceProgress
from .store import DerivedProgressStore, ProgressStore


logger = structlog.get_logger(__name__)

# Title used in events when the course row is gone
FALLBACK_COURSE_TITLE = "Course"


def calculate_course_progress(completed: int, total: int) -> int | None:
    """Percentage of completed modules, rounded half up.

    Returns:
        None when there is nothing to measure against
    """
    if total <= 0:
        return None
    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def required_resources_completed(
    required_ids: list[UUID], progress: list[ResourceProgress]
) -> bool:
    """True when every required resource has a completed progress row.

    Vacuously true for an empty list; callers decide what that means.
    """
    done = {p.resource_id for p in progress if p.is_completed}
    return all(resource_id in done for resource_id in required_ids)


# ==============================================================================
# Course Aggregation
# ==============================================================================


class CourseProgressAggregator:
    """Recomputes enrollment progress from module completion."""

    def __init__(
        self,
        catalog: CourseCatalogService,
        store: ProgressStore,
        derived: DerivedProgressStore,
    ):
        self.catalog = catalog
        self.store = store
        self.derived = derived

    async def reevaluate(
        self, user_id: UUID, course_id: UUID
    ) -> Outcome[Enrollment | None]:
        enrollment = await self.store.get_enrollment(user_id, course_id)
        if enrollment is None:
            logger.debug(
                "course_progress_skipped_not_enrolled",
                user_id=str(user_id),
                course_id=str(course_id),
            )
            return Outcome(None)

        modules = await self.catalog.list_published_modules(course_id)
        published_ids = {m.module_id for m in modules}
        module_progress = await self.store.list_module_progress(user_id, course_id)
        completed = sum(
            1
            for p in module_progress
            if p.is_completed and p.module_id in published_ids
        )

        new_progress = calculate_course_progress(completed, len(modules))
        if new_progress is None:
            logger.debug(
                "course_progress_skipped_no_published_modules",
                course_id=str(course_id),
            )
            return Outcome(enrollment)

        now = datetime.now(UTC)
        previous = enrollment.progress
        completed_at = enrollment.completed_at
        if completed_at is None and new_progress >= 100:
            completed_at = now

        await self.derived.set_enrollment_progress(
            user_id, course_id, new_progress, completed_at
        )
        enrollment.progress = new_progress
        enrollment.completed_at = completed_at

        logger.info(
            "course_progress_updated",
            user_id=str(user_id),
            course_id=str(course_id),
            previous=previous,
            progress=new_progress,
            completed_modules=completed,
            published_modules=len(modules),
        )

        events: list[AchievementEvent] = []
        if new_progress == 100 and previous < 100:
            won = await self.derived.claim_achievement(
                user_id, course_completed_key(course_id), now
            )
            if won:
                course = await self.catalog.get_course(course_id)
                events.append(
                    CourseCompleted(
                        user_id=user_id,
                        course_id=course_id,
                        course_title=course.title if course else FALLBACK_COURSE_TITLE,
                        progress_percent=new_progress,
                    )
                )
                logger.info(
                    "course_completed",
                    user_id=str(user_id),
                    course_id=str(course_id),
                )

        return Outcome(enrollment, events)


# ==============================================================================
# Module Completion
# ==============================================================================


class ModuleCompletionEvaluator:
    """Decides module completion and cascades to the course aggregate."""

    def __init__(
        self,
        catalog: CourseCatalogService,
        store: ProgressStore,
        derived: DerivedProgressStore,
        aggregator: CourseProgressAggregator,
    ):
        self.catalog = catalog
        self.store = store
        self.derived = derived
        self.aggregator = aggregator

    async def reevaluate(
        self, user_id: UUID, module: CourseModule
    ) -> Outcome[ModuleProgress | None]:
        """Complete the module if every required resource is done.

        Modules without required resources are never completed here.
        Always re-aggregates the owning course afterwards.
        """
        events: list[AchievementEvent] = []
        await self.derived.touch_module(
            user_id, module.course_id, module.module_id, datetime.now(UTC)
        )
        required = await self.catalog.list_required_resources(module.module_id)

        if not required:
            logger.debug(
                "module_has_no_required_resources",
                module_id=str(module.module_id),
            )
        else:
            progress = await self.store.list_resource_progress(
                user_id, module.module_id
            )
            if required_resources_completed(
                [r.resource_id for r in required], progress
            ):
                events.extend(await self._claim_completion(user_id, module))

        return await self._finish(user_id, module, events)

    async def complete_manually(
        self, user_id: UUID, module: CourseModule
    ) -> Outcome[ModuleProgress | None]:
        """Student-requested completion, granted only when requirements hold.

        Raises:
            BadRequestError: If a required resource is still incomplete
        """
        required = await self.catalog.list_required_resources(module.module_id)
        progress = await self.store.list_resource_progress(user_id, module.module_id)
        if not required_resources_completed(
            [r.resource_id for r in required], progress
        ):
            raise BadRequestError(
                "Complete all required resources first",
                "required_resources_incomplete",
            )

        events = await self._claim_completion(user_id, module)
        return await self._finish(user_id, module, events)

    async def record_access(
        self, user_id: UUID, module: CourseModule
    ) -> Outcome[ModuleProgress | None]:
        """Touch last access without changing completion."""
        await self.derived.touch_module(
            user_id, module.course_id, module.module_id, datetime.now(UTC)
        )
        return await self._finish(user_id, module, [])

    async def _claim_completion(
        self, user_id: UUID, module: CourseModule
    ) -> list[AchievementEvent]:
        won = await self.derived.claim_module_completion(
            user_id, module.course_id, module.module_id, datetime.now(UTC)
        )
        if not won:
            return []

        course = await self.catalog.get_course(module.course_id)
        logger.info(
            "module_completed",
            user_id=str(user_id),
            module_id=str(module.module_id),
            course_id=str(module.course_id),
        )
        return [
            ModuleCompleted(
                user_id=user_id,
                module_id=module.module_id,
                module_title=module.title,
                course_title=course.title if course else FALLBACK_COURSE_TITLE,
            )
        ]

    async def _finish(
        self,
        user_id: UUID,
        module: CourseModule,
        events: list[AchievementEvent],
    ) -> Outcome[ModuleProgress | None]:
        course_outcome = await self.aggregator.reevaluate(user_id, module.course_id)
        module_progress = await self.store.get_module_progress(
            user_id, module.course_id, module.module_id
        )
        return Outcome(module_progress, [*events, *course_outcome.events])
