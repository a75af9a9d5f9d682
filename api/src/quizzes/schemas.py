"""Pydantic schemas for quizzes and attempts."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from src.achievements import AchievementEvent
from src.achievements.schemas import AchievementResponse

from .models import QuizAnswer, QuizQuestion, QuizSubmission
from .service import GradeResult, QuizView, StudentSubmissions, SubmissionView


# ==============================================================================
# Request Schemas
# ==============================================================================


class SubmitAnswerRequest(BaseModel):
    question_id: UUID = Field(..., description="Question UUID")
    answer: str = Field(..., max_length=10000, description="Answer text")


class GradeAnswerRequest(BaseModel):
    """Instructor grade for one answer."""

    points_earned: Decimal = Field(..., ge=0, description="Points awarded")
    feedback: str | None = Field(None, max_length=5000)


# ==============================================================================
# Response Schemas
# ==============================================================================


class QuestionResponse(BaseModel):
    question_id: UUID
    question_type: str
    question_text: str
    points: Decimal
    options: list[str] = Field(default_factory=list)
    position: int = 0
    correct_answer: str | None = None
    explanation: str | None = None

    @classmethod
    def from_entity(cls, question: QuizQuestion) -> "QuestionResponse":
        return cls(
            question_id=question.question_id,
            question_type=question.question_type,
            question_text=question.question_text,
            points=question.points,
            options=question.options,
            position=question.position,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
        )


class AnswerResponse(BaseModel):
    answer_id: UUID
    question_id: UUID
    answer: str
    is_correct: bool | None = None
    points_earned: Decimal
    feedback: str | None = None
    graded_at: datetime | None = None
    answered_at: datetime

    @classmethod
    def from_entity(cls, answer: QuizAnswer) -> "AnswerResponse":
        return cls(
            answer_id=answer.answer_id,
            question_id=answer.question_id,
            answer=answer.answer,
            is_correct=answer.is_correct,
            points_earned=answer.points_earned,
            feedback=answer.feedback,
            graded_at=answer.graded_at,
            answered_at=answer.answered_at,
        )


class SubmissionSummaryResponse(BaseModel):
    submission_id: UUID
    user_id: UUID
    quiz_id: UUID
    attempt_number: int
    started_at: datetime
    submitted_at: datetime | None = None
    score: Decimal | None = None
    is_passed: bool = False
    time_spent: int | None = None

    @classmethod
    def from_entity(cls, submission: QuizSubmission) -> "SubmissionSummaryResponse":
        return cls(
            submission_id=submission.submission_id,
            user_id=submission.user_id,
            quiz_id=submission.quiz_id,
            attempt_number=submission.attempt_number,
            started_at=submission.started_at,
            submitted_at=submission.submitted_at,
            score=submission.score,
            is_passed=submission.is_passed,
            time_spent=submission.time_spent,
        )


class QuizResponse(BaseModel):
    quiz_id: UUID
    course_id: UUID
    module_id: UUID | None = None
    title: str
    description: str | None = None
    passing_score: Decimal | None = None
    max_attempts: int | None = None
    show_answers: bool = False
    is_published: bool = False
    questions: list[QuestionResponse]

    @classmethod
    def from_view(cls, view: QuizView) -> "QuizResponse":
        return cls(
            quiz_id=view.quiz.quiz_id,
            course_id=view.quiz.course_id,
            module_id=view.quiz.module_id,
            title=view.quiz.title,
            description=view.quiz.description,
            passing_score=view.quiz.passing_score,
            max_attempts=view.quiz.max_attempts,
            show_answers=view.quiz.show_answers,
            is_published=view.quiz.is_published,
            questions=[QuestionResponse.from_entity(q) for q in view.questions],
        )


class SubmissionResponse(SubmissionSummaryResponse):
    """Attempt with its questions and answers."""

    quiz_title: str
    questions: list[QuestionResponse]
    answers: list[AnswerResponse]
    achievements: list[AchievementResponse] = Field(default_factory=list)

    @classmethod
    def from_view(
        cls,
        view: SubmissionView,
        events: list[AchievementEvent] | None = None,
    ) -> "SubmissionResponse":
        summary = SubmissionSummaryResponse.from_entity(view.submission)
        return cls(
            **summary.model_dump(),
            quiz_title=view.quiz.title,
            questions=[QuestionResponse.from_entity(q) for q in view.questions],
            answers=[AnswerResponse.from_entity(a) for a in view.answers],
            achievements=[AchievementResponse.from_event(e) for e in events or []],
        )


class AttemptListResponse(BaseModel):
    items: list[SubmissionSummaryResponse]
    total: int


class GradeAnswerResponse(BaseModel):
    answer: AnswerResponse
    submission: SubmissionSummaryResponse

    @classmethod
    def from_result(cls, result: GradeResult) -> "GradeAnswerResponse":
        return cls(
            answer=AnswerResponse.from_entity(result.answer),
            submission=SubmissionSummaryResponse.from_entity(result.submission),
        )


class StudentSubmissionsResponse(BaseModel):
    user_id: UUID
    attempts: list[SubmissionSummaryResponse]

    @classmethod
    def from_group(cls, group: StudentSubmissions) -> "StudentSubmissionsResponse":
        return cls(
            user_id=group.user_id,
            attempts=[SubmissionSummaryResponse.from_entity(s) for s in group.attempts],
        )


class QuizSubmissionsResponse(BaseModel):
    items: list[StudentSubmissionsResponse]
    total: int
