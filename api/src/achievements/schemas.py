"""Response model for achievements unlocked by a request."""

from pydantic import BaseModel, Field

from .events import AchievementEvent, CourseCompleted, ModuleCompleted


class AchievementResponse(BaseModel):
    type: str = Field(description="module_completed, course_completed or quiz_completed")
    title: str

    @classmethod
    def from_event(cls, event: AchievementEvent) -> "AchievementResponse":
        if isinstance(event, ModuleCompleted):
            return cls(type="module_completed", title=event.module_title)
        if isinstance(event, CourseCompleted):
            return cls(type="course_completed", title=event.course_title)
        return cls(type="quiz_completed", title=event.quiz_title)
