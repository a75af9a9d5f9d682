"""Achievement events emitted by the progress and quiz engines.

The engines decide whether (and only once) an achievement happened;
delivery is left to an AchievementNotifier.
"""

from .events import (
    AchievementEvent,
    AchievementNotifier,
    CourseCompleted,
    ModuleCompleted,
    Outcome,
    QuizCompleted,
    course_completed_key,
    deliver_events,
)


__all__ = [
    "AchievementEvent",
    "AchievementNotifier",
    "CourseCompleted",
    "ModuleCompleted",
    "Outcome",
    "QuizCompleted",
    "course_completed_key",
    "deliver_events",
]
