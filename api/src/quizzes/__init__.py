"""Quizzes: attempts, answers and scoring."""

from .models import QUIZZES_TABLES_CQL, Quiz, QuizAnswer, QuizQuestion, QuizSubmission
from .service import QuizService


__all__ = [
    "QUIZZES_TABLES_CQL",
    "Quiz",
    "QuizAnswer",
    "QuizQuestion",
    "QuizService",
    "QuizSubmission",
]
