"""Database models for quizzes and attempts.

Cassandra table definitions for:
- Quizzes: Passing score, attempt limits, answer visibility
- Questions: Ordered per quiz, objective or subjective
- Submissions: One row per attempt, keyed by (user, quiz, attempt number)
- Answers: One row per (submission, question)
- Lookup tables: Submission by id, submissions by quiz

Architecture: Attempt numbers are claimed with ``IF NOT EXISTS`` on the
submission key and finalization with ``IF submitted_at = null``, so
concurrent starts and submits cannot both succeed.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from src.courses.models import ensure_utc_aware

from .scoring import Objective, QuestionKind, Subjective


class QuestionType(str, Enum):
    """Question type. Choice questions are graded automatically."""

    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"

    @classmethod
    def _missing_(cls, value: object) -> "QuestionType | None":
        # Stored rows may use the upper-case names (MULTIPLE_CHOICE)
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


OBJECTIVE_QUESTION_TYPES = frozenset(
    {QuestionType.MULTIPLE_CHOICE.value, QuestionType.TRUE_FALSE.value}
)


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

QUIZ_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quizzes (
    quiz_id UUID PRIMARY KEY,
    course_id UUID,
    module_id UUID,
    title TEXT,
    description TEXT,
    passing_score DECIMAL,
    max_attempts INT,
    show_answers BOOLEAN,
    is_published BOOLEAN,
    created_at TIMESTAMP
)
"""

QUIZ_QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_questions (
    quiz_id UUID,
    position INT,
    question_id UUID,
    question_type TEXT,
    question_text TEXT,
    points DECIMAL,
    correct_answer TEXT,
    explanation TEXT,
    options LIST<TEXT>,
    PRIMARY KEY (quiz_id, position, question_id)
) WITH CLUSTERING ORDER BY (position ASC, question_id ASC)
"""

# Attempts of a user on a quiz, newest first
QUIZ_SUBMISSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_submissions (
    user_id UUID,
    quiz_id UUID,
    attempt_number INT,
    submission_id UUID,
    started_at TIMESTAMP,
    submitted_at TIMESTAMP,
    score DECIMAL,
    is_passed BOOLEAN,
    time_spent INT,
    PRIMARY KEY ((user_id, quiz_id), attempt_number)
) WITH CLUSTERING ORDER BY (attempt_number DESC)
"""

# Lookup: submission id -> primary key
QUIZ_SUBMISSIONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_submissions_by_id (
    submission_id UUID PRIMARY KEY,
    user_id UUID,
    quiz_id UUID,
    attempt_number INT
)
"""

# Lookup: every attempt on a quiz (instructor views)
QUIZ_SUBMISSIONS_BY_QUIZ_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_submissions_by_quiz (
    quiz_id UUID,
    user_id UUID,
    attempt_number INT,
    submission_id UUID,
    PRIMARY KEY (quiz_id, user_id, attempt_number)
)
"""

QUIZ_ANSWERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_answers (
    submission_id UUID,
    question_id UUID,
    answer_id UUID,
    answer TEXT,
    is_correct BOOLEAN,
    points_earned DECIMAL,
    feedback TEXT,
    graded_by UUID,
    graded_at TIMESTAMP,
    answered_at TIMESTAMP,
    PRIMARY KEY (submission_id, question_id)
)
"""

QUIZZES_TABLES_CQL = [
    QUIZ_TABLE_CQL,
    QUIZ_QUESTIONS_TABLE_CQL,
    QUIZ_SUBMISSIONS_TABLE_CQL,
    QUIZ_SUBMISSIONS_BY_ID_TABLE_CQL,
    QUIZ_SUBMISSIONS_BY_QUIZ_TABLE_CQL,
    QUIZ_ANSWERS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Quiz:
    """Quiz entity.

    Attributes:
        quiz_id: Quiz UUID
        course_id: Owning course UUID
        module_id: Optional module the quiz belongs to
        title: Display title
        passing_score: Minimum score (0-100) to pass; None uses the default
        max_attempts: Attempt limit per user; None means unlimited
        show_answers: Whether students may see correct answers
        is_published: Only published quizzes can be attempted
    """

    def __init__(
        self,
        quiz_id: UUID,
        course_id: UUID,
        title: str,
        module_id: UUID | None = None,
        description: str | None = None,
        passing_score: Decimal | None = None,
        max_attempts: int | None = None,
        show_answers: bool = False,
        is_published: bool = False,
        created_at: datetime | None = None,
    ):
        self.quiz_id = quiz_id
        self.course_id = course_id
        self.title = title
        self.module_id = module_id
        self.description = description
        self.passing_score = passing_score
        self.max_attempts = max_attempts
        self.show_answers = show_answers
        self.is_published = is_published
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "Quiz":
        """Create Quiz instance from Cassandra row."""
        return cls(
            quiz_id=row.quiz_id,
            course_id=row.course_id,
            title=row.title or "",
            module_id=row.module_id,
            description=row.description,
            passing_score=row.passing_score,
            max_attempts=row.max_attempts,
            show_answers=bool(row.show_answers),
            is_published=bool(row.is_published),
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "quiz_id": self.quiz_id,
            "course_id": self.course_id,
            "module_id": self.module_id,
            "title": self.title,
            "description": self.description,
            "passing_score": self.passing_score,
            "max_attempts": self.max_attempts,
            "show_answers": self.show_answers,
            "is_published": self.is_published,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Quiz {self.quiz_id} {self.title!r}>"


class QuizQuestion:
    """Question within a quiz."""

    def __init__(
        self,
        question_id: UUID,
        quiz_id: UUID,
        question_type: str,
        question_text: str = "",
        points: Decimal = Decimal(1),
        correct_answer: str | None = None,
        explanation: str | None = None,
        options: list[str] | None = None,
        position: int = 0,
    ):
        self.question_id = question_id
        self.quiz_id = quiz_id
        # Unknown types raise ValueError
        self.question_type = QuestionType(question_type).value
        self.question_text = question_text
        self.points = points
        self.correct_answer = correct_answer
        self.explanation = explanation
        self.options = options or []
        self.position = position

    @property
    def kind(self) -> QuestionKind:
        """Grading kind: objective questions carry their expected answer."""
        if self.question_type in OBJECTIVE_QUESTION_TYPES:
            return Objective(self.correct_answer)
        return Subjective()

    def redacted(self) -> "QuizQuestion":
        """Copy without the correct answer and explanation."""
        return QuizQuestion(
            question_id=self.question_id,
            quiz_id=self.quiz_id,
            question_type=self.question_type,
            question_text=self.question_text,
            points=self.points,
            options=list(self.options),
            position=self.position,
        )

    @classmethod
    def from_row(cls, row: Any) -> "QuizQuestion":
        """Create QuizQuestion instance from Cassandra row."""
        return cls(
            question_id=row.question_id,
            quiz_id=row.quiz_id,
            question_type=row.question_type,
            question_text=row.question_text or "",
            points=row.points if row.points is not None else Decimal(0),
            correct_answer=row.correct_answer,
            explanation=row.explanation,
            options=list(row.options or []),
            position=row.position or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "quiz_id": self.quiz_id,
            "question_type": self.question_type,
            "question_text": self.question_text,
            "points": self.points,
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "options": self.options,
            "position": self.position,
        }

    def __repr__(self) -> str:
        return f"<QuizQuestion {self.question_id} {self.question_type} {self.points}pts>"


class QuizSubmission:
    """One attempt at a quiz.

    ``score`` and ``is_passed`` are meaningful only once ``submitted_at`` is set.
    """

    def __init__(
        self,
        submission_id: UUID,
        user_id: UUID,
        quiz_id: UUID,
        attempt_number: int,
        started_at: datetime | None = None,
        submitted_at: datetime | None = None,
        score: Decimal | None = None,
        is_passed: bool = False,
        time_spent: int | None = None,
    ):
        self.submission_id = submission_id
        self.user_id = user_id
        self.quiz_id = quiz_id
        self.attempt_number = attempt_number
        self.started_at = ensure_utc_aware(started_at) or datetime.now(UTC)
        self.submitted_at = ensure_utc_aware(submitted_at)
        self.score = score
        self.is_passed = is_passed
        self.time_spent = time_spent

    @property
    def is_submitted(self) -> bool:
        return self.submitted_at is not None

    @classmethod
    def from_row(cls, row: Any) -> "QuizSubmission":
        """Create QuizSubmission instance from Cassandra row."""
        return cls(
            submission_id=row.submission_id,
            user_id=row.user_id,
            quiz_id=row.quiz_id,
            attempt_number=row.attempt_number,
            started_at=row.started_at,
            submitted_at=row.submitted_at,
            score=row.score,
            is_passed=bool(row.is_passed),
            time_spent=row.time_spent,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "user_id": self.user_id,
            "quiz_id": self.quiz_id,
            "attempt_number": self.attempt_number,
            "started_at": self.started_at,
            "submitted_at": self.submitted_at,
            "score": self.score,
            "is_passed": self.is_passed,
            "time_spent": self.time_spent,
        }

    def __repr__(self) -> str:
        state = "submitted" if self.is_submitted else "open"
        return (
            f"<QuizSubmission {self.submission_id} attempt={self.attempt_number} "
            f"{state}>"
        )


class QuizAnswer:
    """Answer to one question in a submission."""

    def __init__(
        self,
        answer_id: UUID,
        submission_id: UUID,
        question_id: UUID,
        answer: str,
        is_correct: bool | None = None,
        points_earned: Decimal = Decimal(0),
        feedback: str | None = None,
        graded_by: UUID | None = None,
        graded_at: datetime | None = None,
        answered_at: datetime | None = None,
    ):
        self.answer_id = answer_id
        self.submission_id = submission_id
        self.question_id = question_id
        self.answer = answer
        self.is_correct = is_correct
        self.points_earned = points_earned
        self.feedback = feedback
        self.graded_by = graded_by
        self.graded_at = ensure_utc_aware(graded_at)
        self.answered_at = ensure_utc_aware(answered_at) or datetime.now(UTC)

    @classmethod
    def from_row(cls, row: Any) -> "QuizAnswer":
        """Create QuizAnswer instance from Cassandra row."""
        return cls(
            answer_id=row.answer_id,
            submission_id=row.submission_id,
            question_id=row.question_id,
            answer=row.answer or "",
            is_correct=row.is_correct,
            points_earned=row.points_earned
            if row.points_earned is not None
            else Decimal(0),
            feedback=row.feedback,
            graded_by=row.graded_by,
            graded_at=row.graded_at,
            answered_at=row.answered_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer_id": self.answer_id,
            "submission_id": self.submission_id,
            "question_id": self.question_id,
            "answer": self.answer,
            "is_correct": self.is_correct,
            "points_earned": self.points_earned,
            "feedback": self.feedback,
            "graded_by": self.graded_by,
            "graded_at": self.graded_at,
            "answered_at": self.answered_at,
        }

    def __repr__(self) -> str:
        return f"<QuizAnswer {self.answer_id} question={self.question_id}>"
