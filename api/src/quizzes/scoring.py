"""Quiz scoring.

Answers are graded per question kind:

- ``Objective``: compared to the expected answer after trimming whitespace;
  full points when equal, zero otherwise.
- ``Subjective``: left ungraded (``is_correct=None``, zero points) until an
  instructor regrades it.

A submission's score is the share of earned points over the quiz total,
as a percentage rounded half up.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import singledispatch
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .models import QuizAnswer, QuizQuestion


HUNDRED = Decimal(100)


@dataclass(frozen=True)
class Objective:
    correct_answer: str | None


@dataclass(frozen=True)
class Subjective:
    pass


QuestionKind = Objective | Subjective


@dataclass(frozen=True)
class AnswerGrade:
    is_correct: bool | None
    points_earned: Decimal


@dataclass(frozen=True)
class SubmissionScore:
    total_points: Decimal
    earned_points: Decimal
    score: Decimal
    is_passed: bool


# ==============================================================================
# Per-answer Grading
# ==============================================================================


@singledispatch
def grade_answer(kind: QuestionKind, answer: str, points: Decimal) -> AnswerGrade:
    msg = f"Unsupported question kind: {type(kind).__name__}"
    raise TypeError(msg)


@grade_answer.register
def _(kind: Objective, answer: str, points: Decimal) -> AnswerGrade:
    if kind.correct_answer is None:
        return AnswerGrade(is_correct=False, points_earned=Decimal(0))
    is_correct = answer.strip() == kind.correct_answer.strip()
    return AnswerGrade(
        is_correct=is_correct,
        points_earned=points if is_correct else Decimal(0),
    )


@grade_answer.register
def _(kind: Subjective, answer: str, points: Decimal) -> AnswerGrade:
    return AnswerGrade(is_correct=None, points_earned=Decimal(0))


# ==============================================================================
# Submission Score
# ==============================================================================


def round_score(value: Decimal, decimal_places: int = 2) -> Decimal:
    """Round half up to a fixed number of decimal places."""
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def calculate_score(
    earned: Decimal, total: Decimal, decimal_places: int = 2
) -> Decimal:
    """Percentage of earned points. Zero when the quiz is worth nothing."""
    if total <= 0:
        return round_score(Decimal(0), decimal_places)
    return round_score(earned / total * HUNDRED, decimal_places)


def compute_submission_score(
    questions: Iterable["QuizQuestion"],
    answers: Iterable["QuizAnswer"],
    passing_score: Decimal,
    decimal_places: int = 2,
) -> SubmissionScore:
    """Aggregate a submission.

    Answers to questions outside the quiz are ignored; unanswered
    questions contribute zero.
    """
    points_by_question = {q.question_id: q.points for q in questions}
    total = sum(points_by_question.values(), Decimal(0))
    earned = sum(
        (a.points_earned for a in answers if a.question_id in points_by_question),
        Decimal(0),
    )
    score = calculate_score(earned, total, decimal_places)
    return SubmissionScore(
        total_points=total,
        earned_points=earned,
        score=score,
        is_passed=score >= passing_score,
    )
