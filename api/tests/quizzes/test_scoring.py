"""Tests for quiz grading and score aggregation."""

from decimal import Decimal
from unittest.mock import Mock
from uuid import uuid4

import pytest

from src.quizzes.models import QuestionType, QuizAnswer, QuizQuestion
from src.quizzes.scoring import (
    Objective,
    Subjective,
    calculate_score,
    compute_submission_score,
    grade_answer,
    round_score,
)


def make_question(points: int, question_type: str = "multiple_choice") -> QuizQuestion:
    return QuizQuestion(
        question_id=uuid4(),
        quiz_id=uuid4(),
        question_type=question_type,
        points=Decimal(points),
        correct_answer="A",
    )


def make_answer(question: QuizQuestion, points: int) -> QuizAnswer:
    return QuizAnswer(
        answer_id=uuid4(),
        submission_id=uuid4(),
        question_id=question.question_id,
        answer="A",
        points_earned=Decimal(points),
    )


class TestGradeAnswer:
    def test_objective_exact_match(self) -> None:
        grade = grade_answer(Objective("True"), "True", Decimal(5))
        assert grade.is_correct is True
        assert grade.points_earned == Decimal(5)

    def test_objective_ignores_surrounding_whitespace(self) -> None:
        grade = grade_answer(Objective(" B "), "B\n", Decimal(2))
        assert grade.is_correct is True

    def test_objective_is_case_sensitive(self) -> None:
        grade = grade_answer(Objective("Ibuprofen"), "ibuprofen", Decimal(2))
        assert grade.is_correct is False
        assert grade.points_earned == Decimal(0)

    def test_objective_without_key_is_wrong(self) -> None:
        grade = grade_answer(Objective(None), "anything", Decimal(3))
        assert grade.is_correct is False
        assert grade.points_earned == Decimal(0)

    def test_subjective_waits_for_grading(self) -> None:
        grade = grade_answer(Subjective(), "A long essay", Decimal(10))
        assert grade.is_correct is None
        assert grade.points_earned == Decimal(0)

    def test_unknown_kind(self) -> None:
        with pytest.raises(TypeError):
            grade_answer("essay", "text", Decimal(1))


class TestQuestionKind:
    @pytest.mark.parametrize(
        "question_type", [QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE]
    )
    def test_objective_types(self, question_type: QuestionType) -> None:
        question = make_question(1, question_type.value)
        assert question.kind == Objective("A")

    @pytest.mark.parametrize(
        "question_type", [QuestionType.SHORT_ANSWER, QuestionType.ESSAY]
    )
    def test_subjective_types(self, question_type: QuestionType) -> None:
        assert isinstance(make_question(1, question_type.value).kind, Subjective)

    @pytest.mark.parametrize("question_type", ["MULTIPLE_CHOICE", "TRUE_FALSE"])
    def test_upper_case_objective_types(self, question_type: str) -> None:
        question = make_question(10, question_type)

        grade = grade_answer(question.kind, "A", question.points)

        assert question.question_type == question_type.lower()
        assert grade.is_correct is True
        assert grade.points_earned == Decimal(10)

    def test_upper_case_subjective_type(self) -> None:
        assert isinstance(make_question(1, "ESSAY").kind, Subjective)

    def test_unknown_type_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            make_question(1, "matching")

    def test_unknown_type_in_row_is_rejected(self) -> None:
        row = Mock(question_type="matching", options=None)
        with pytest.raises(ValueError):
            QuizQuestion.from_row(row)

    def test_redacted_hides_answer(self) -> None:
        question = make_question(1)
        question.explanation = "Because"

        redacted = question.redacted()

        assert redacted.correct_answer is None
        assert redacted.explanation is None
        assert redacted.points == question.points
        assert question.correct_answer == "A"


class TestScore:
    def test_round_half_up(self) -> None:
        assert round_score(Decimal("66.665")) == Decimal("66.67")
        assert round_score(Decimal("12.5"), 0) == Decimal("13")

    def test_zero_total(self) -> None:
        assert calculate_score(Decimal(0), Decimal(0)) == Decimal("0.00")

    def test_two_of_three_questions(self) -> None:
        questions = [make_question(10), make_question(20), make_question(30)]
        answers = [
            make_answer(questions[0], 10),
            make_answer(questions[1], 0),
            make_answer(questions[2], 30),
        ]

        result = compute_submission_score(questions, answers, Decimal(70))

        assert result.total_points == Decimal(60)
        assert result.earned_points == Decimal(40)
        assert result.score == Decimal("66.67")
        assert result.is_passed is False

    def test_pass_at_threshold(self) -> None:
        questions = [make_question(10), make_question(10)]
        answers = [make_answer(questions[0], 10)]

        result = compute_submission_score(questions, answers, Decimal(50))

        assert result.score == Decimal("50.00")
        assert result.is_passed is True

    def test_unanswered_and_foreign_answers(self) -> None:
        questions = [make_question(4), make_question(4)]
        stray = make_answer(make_question(100), 100)

        result = compute_submission_score(questions, [stray], Decimal(70))

        assert result.earned_points == Decimal(0)
        assert result.score == Decimal("0.00")

    def test_quiz_without_questions(self) -> None:
        result = compute_submission_score([], [], Decimal(0))
        assert result.score == Decimal("0.00")
        assert result.is_passed is True
