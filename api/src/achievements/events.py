"""Achievement event types and the notifier boundary."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Generic, Protocol, TypeVar
from uuid import UUID

import structlog


logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ModuleCompleted:
    user_id: UUID
    module_id: UUID
    module_title: str
    course_title: str


@dataclass(frozen=True)
class CourseCompleted:
    user_id: UUID
    course_id: UUID
    course_title: str
    progress_percent: int


@dataclass(frozen=True)
class QuizCompleted:
    """A quiz submission was finalized.

    ``context_title`` is the course title, falling back to the module title.
    """

    user_id: UUID
    quiz_id: UUID
    quiz_title: str
    context_title: str
    earned_points: Decimal
    total_points: Decimal


AchievementEvent = ModuleCompleted | CourseCompleted | QuizCompleted


@dataclass
class Outcome(Generic[T]):
    """Result of an engine operation plus the events it won the right to emit."""

    data: T
    events: list[AchievementEvent] = field(default_factory=list)


class AchievementNotifier(Protocol):
    """Delivers achievement events to users."""

    async def dispatch(self, events: list[AchievementEvent]) -> None: ...


def course_completed_key(course_id: UUID) -> str:
    """Dedupe key claimed once per user when a course reaches 100%."""
    return f"course_completed:{course_id}"


async def deliver_events(
    notifier: AchievementNotifier | None, events: list[AchievementEvent]
) -> None:
    """Hand events to the notifier after the state that earned them is committed.

    Delivery is at-most-once: the claims that gate the events are already
    won, so a failed dispatch is logged and not retried.
    """
    if not events or notifier is None:
        return
    try:
        await notifier.dispatch(events)
    except Exception as e:
        logger.error(
            "achievement_dispatch_failed",
            event_types=[type(event).__name__ for event in events],
            user_id=str(events[0].user_id),
            error=str(e),
        )
