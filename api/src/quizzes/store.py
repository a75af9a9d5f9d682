"""Cassandra persistence for quizzes, attempts and answers."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Quiz, QuizAnswer, QuizQuestion, QuizSubmission


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class QuizStore:
    """Quiz catalog reads plus attempt and answer writes."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Quizzes & questions
        self._get_quiz = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quizzes WHERE quiz_id = ?
        """)

        self._list_questions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_questions WHERE quiz_id = ?
        """)

        # Submissions
        self._get_submission = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_submissions
            WHERE user_id = ? AND quiz_id = ? AND attempt_number = ?
        """)

        self._get_submission_key = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_submissions_by_id
            WHERE submission_id = ?
        """)

        self._list_attempts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_submissions
            WHERE user_id = ? AND quiz_id = ?
        """)

        self._list_quiz_submission_keys = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_submissions_by_quiz
            WHERE quiz_id = ?
        """)

        self._insert_submission = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_submissions
            (user_id, quiz_id, attempt_number, submission_id, started_at,
             is_passed)
            VALUES (?, ?, ?, ?, ?, false)
            IF NOT EXISTS
        """)

        self._insert_submission_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_submissions_by_id
            (submission_id, user_id, quiz_id, attempt_number)
            VALUES (?, ?, ?, ?)
        """)

        self._insert_submission_by_quiz = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_submissions_by_quiz
            (quiz_id, user_id, attempt_number, submission_id)
            VALUES (?, ?, ?, ?)
        """)

        self._finalize_submission = self.session.prepare(f"""
            UPDATE {self.keyspace}.quiz_submissions
            SET submitted_at = ?, score = ?, is_passed = ?, time_spent = ?
            WHERE user_id = ? AND quiz_id = ? AND attempt_number = ?
            IF submitted_at = null
        """)

        self._update_score = self.session.prepare(f"""
            UPDATE {self.keyspace}.quiz_submissions
            SET score = ?, is_passed = ?
            WHERE user_id = ? AND quiz_id = ? AND attempt_number = ?
            IF EXISTS
        """)

        # Answers
        self._list_answers = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_answers WHERE submission_id = ?
        """)

        self._get_answer = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_answers
            WHERE submission_id = ? AND question_id = ?
        """)

        self._upsert_answer = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_answers
            (submission_id, question_id, answer_id, answer, is_correct,
             points_earned, feedback, graded_by, graded_at, answered_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Quizzes
    # ==========================================================================

    async def get_quiz(self, quiz_id: UUID) -> Quiz | None:
        result = await self.session.aexecute(self._get_quiz, [quiz_id])
        row = result.one()
        return Quiz.from_row(row) if row else None

    async def list_questions(self, quiz_id: UUID) -> list[QuizQuestion]:
        """Questions ordered by position."""
        rows = await self.session.aexecute(self._list_questions, [quiz_id])
        return [QuizQuestion.from_row(row) for row in rows]

    # ==========================================================================
    # Submissions
    # ==========================================================================

    async def get_submission(self, submission_id: UUID) -> QuizSubmission | None:
        result = await self.session.aexecute(self._get_submission_key, [submission_id])
        key = result.one()
        if not key:
            return None

        result = await self.session.aexecute(
            self._get_submission, [key.user_id, key.quiz_id, key.attempt_number]
        )
        row = result.one()
        return QuizSubmission.from_row(row) if row else None

    async def list_attempts(self, user_id: UUID, quiz_id: UUID) -> list[QuizSubmission]:
        """A user's attempts, highest attempt number first."""
        rows = await self.session.aexecute(self._list_attempts, [user_id, quiz_id])
        return [QuizSubmission.from_row(row) for row in rows]

    async def list_quiz_submissions(self, quiz_id: UUID) -> list[QuizSubmission]:
        """Every attempt on a quiz, across users."""
        keys = await self.session.aexecute(self._list_quiz_submission_keys, [quiz_id])
        submissions = []
        for key in keys:
            result = await self.session.aexecute(
                self._get_submission, [key.user_id, quiz_id, key.attempt_number]
            )
            row = result.one()
            if row:
                submissions.append(QuizSubmission.from_row(row))
        return submissions

    async def create_submission(self, submission: QuizSubmission) -> bool:
        """Claim an attempt number.

        Returns:
            False if the (user, quiz, attempt) key is already taken
        """
        result = await self.session.aexecute(
            self._insert_submission,
            [
                submission.user_id,
                submission.quiz_id,
                submission.attempt_number,
                submission.submission_id,
                submission.started_at,
            ],
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(
            self._insert_submission_by_id,
            [
                submission.submission_id,
                submission.user_id,
                submission.quiz_id,
                submission.attempt_number,
            ],
        )
        await self.session.aexecute(
            self._insert_submission_by_quiz,
            [
                submission.quiz_id,
                submission.user_id,
                submission.attempt_number,
                submission.submission_id,
            ],
        )
        return True

    async def finalize_submission(self, submission: QuizSubmission) -> bool:
        """Persist the final score once.

        Returns:
            False if another request submitted this attempt first
        """
        result = await self.session.aexecute(
            self._finalize_submission,
            [
                submission.submitted_at,
                submission.score,
                submission.is_passed,
                submission.time_spent,
                submission.user_id,
                submission.quiz_id,
                submission.attempt_number,
            ],
        )
        return result.was_applied

    async def update_score(self, submission: QuizSubmission) -> None:
        await self.session.aexecute(
            self._update_score,
            [
                submission.score,
                submission.is_passed,
                submission.user_id,
                submission.quiz_id,
                submission.attempt_number,
            ],
        )

    # ==========================================================================
    # Answers
    # ==========================================================================

    async def list_answers(self, submission_id: UUID) -> list[QuizAnswer]:
        rows = await self.session.aexecute(self._list_answers, [submission_id])
        return [QuizAnswer.from_row(row) for row in rows]

    async def get_answer(
        self, submission_id: UUID, question_id: UUID
    ) -> QuizAnswer | None:
        result = await self.session.aexecute(
            self._get_answer, [submission_id, question_id]
        )
        row = result.one()
        return QuizAnswer.from_row(row) if row else None

    async def save_answer(self, answer: QuizAnswer) -> None:
        await self.session.aexecute(
            self._upsert_answer,
            [
                answer.submission_id,
                answer.question_id,
                answer.answer_id,
                answer.answer,
                answer.is_correct,
                answer.points_earned,
                answer.feedback,
                answer.graded_by,
                answer.graded_at,
                answer.answered_at,
            ],
        )
