"""Quiz attempt and scoring service layer.

Business logic for:
- Starting attempts with attempt limits
- Recording and auto-grading answers
- Finalizing submissions (score, pass/fail, achievement)
- Instructor regrading
- Quiz, submission and attempt queries with answer redaction
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import structlog

from src.achievements import (
    AchievementNotifier,
    Outcome,
    QuizCompleted,
    deliver_events,
)
from src.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotEnrolledError,
    NotFoundError,
    NotInstructorError,
)
from src.courses.models import Course
from src.courses.service import CourseCatalogService
from src.progress.store import ProgressStore

from .models import Quiz, QuizAnswer, QuizQuestion, QuizSubmission
from .scoring import compute_submission_score, grade_answer
from .store import QuizStore


logger = structlog.get_logger(__name__)

# Context shown in quiz notifications when neither course nor module is found
FALLBACK_CONTEXT_TITLE = "Course"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class QuizNotFoundError(NotFoundError):
    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message, "quiz_not_found")


class QuestionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Question not found"):
        super().__init__(message, "question_not_found")


class SubmissionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Submission not found"):
        super().__init__(message, "submission_not_found")


class AnswerNotFoundError(NotFoundError):
    def __init__(self, message: str = "Answer not found"):
        super().__init__(message, "answer_not_found")


class NotSubmissionOwnerError(ForbiddenError):
    def __init__(self, message: str = "This is not your submission"):
        super().__init__(message, "not_owner")


class QuizNotPublishedError(BadRequestError):
    def __init__(self, message: str = "Quiz is not published yet"):
        super().__init__(message, "quiz_not_published")


class MaxAttemptsReachedError(BadRequestError):
    def __init__(self, message: str = "Maximum number of attempts reached"):
        super().__init__(message, "max_attempts_reached")


class AlreadySubmittedError(BadRequestError):
    def __init__(self, message: str = "Quiz has already been submitted"):
        super().__init__(message, "already_submitted")


class InvalidGradeError(BadRequestError):
    def __init__(self, message: str = "Points must be between 0 and the question's points"):
        super().__init__(message, "invalid_grade")


class AttemptConflictError(ConflictError):
    """Another request claimed the same attempt number; retry."""

    def __init__(self, message: str = "Another attempt was started concurrently"):
        super().__init__(message, "attempt_conflict")


# ==============================================================================
# Views
# ==============================================================================


@dataclass(frozen=True)
class QuizView:
    quiz: Quiz
    questions: list[QuizQuestion]
    is_instructor: bool


@dataclass(frozen=True)
class SubmissionView:
    submission: QuizSubmission
    quiz: Quiz
    questions: list[QuizQuestion]
    answers: list[QuizAnswer]


@dataclass(frozen=True)
class GradeResult:
    answer: QuizAnswer
    submission: QuizSubmission


@dataclass(frozen=True)
class StudentSubmissions:
    user_id: UUID
    attempts: list[QuizSubmission]


@dataclass(frozen=True)
class _Access:
    course: Course | None
    is_instructor: bool
    is_enrolled: bool


# ==============================================================================
# Quiz Service
# ==============================================================================


class QuizService:
    """Attempt state machine and scoring."""

    def __init__(
        self,
        catalog: CourseCatalogService,
        progress_store: ProgressStore,
        quiz_store: QuizStore,
        notifier: AchievementNotifier | None = None,
        default_passing_score: Decimal = Decimal(70),
        score_decimal_places: int = 2,
    ):
        self.catalog = catalog
        self.progress_store = progress_store
        self.quiz_store = quiz_store
        self.notifier = notifier
        self.default_passing_score = default_passing_score
        self.score_decimal_places = score_decimal_places

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def passing_score(self, quiz: Quiz) -> Decimal:
        if quiz.passing_score is None:
            return self.default_passing_score
        return quiz.passing_score

    async def _require_quiz(self, quiz_id: UUID) -> Quiz:
        quiz = await self.quiz_store.get_quiz(quiz_id)
        if quiz is None:
            raise QuizNotFoundError
        return quiz

    async def _require_submission(self, submission_id: UUID) -> QuizSubmission:
        submission = await self.quiz_store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFoundError
        return submission

    async def _require_open_submission(
        self, user_id: UUID, submission_id: UUID
    ) -> QuizSubmission:
        submission = await self._require_submission(submission_id)
        if submission.user_id != user_id:
            raise NotSubmissionOwnerError
        if submission.is_submitted:
            raise AlreadySubmittedError
        return submission

    async def _access(self, user_id: UUID, quiz: Quiz) -> _Access:
        course = await self.catalog.get_course(quiz.course_id)
        is_instructor = course is not None and course.is_instructor(user_id)
        enrollment = await self.progress_store.get_enrollment(user_id, quiz.course_id)
        return _Access(
            course=course,
            is_instructor=is_instructor,
            is_enrolled=enrollment is not None,
        )

    async def _require_participant(self, user_id: UUID, quiz: Quiz) -> _Access:
        access = await self._access(user_id, quiz)
        if not access.is_instructor and not access.is_enrolled:
            raise NotEnrolledError("You do not have access to this quiz")
        return access

    @staticmethod
    def _visible_questions(
        quiz: Quiz, questions: list[QuizQuestion], is_instructor: bool
    ) -> list[QuizQuestion]:
        if is_instructor or quiz.show_answers:
            return questions
        return [q.redacted() for q in questions]

    async def _context_title(self, quiz: Quiz, course: Course | None) -> str:
        if course is not None:
            return course.title
        if quiz.module_id is not None:
            module = await self.catalog.get_module(quiz.module_id)
            if module is not None:
                return module.title
        return FALLBACK_CONTEXT_TITLE

    # ==========================================================================
    # Attempts
    # ==========================================================================

    async def start_attempt(self, user_id: UUID, quiz_id: UUID) -> SubmissionView:
        """Open the next attempt for a user.

        Raises:
            QuizNotFoundError: If the quiz does not exist
            QuizNotPublishedError: If the quiz is a draft
            NotEnrolledError: If user is neither enrolled nor the instructor
            MaxAttemptsReachedError: If the attempt limit is used up
            AttemptConflictError: If a concurrent start took the number
        """
        quiz = await self._require_quiz(quiz_id)
        if not quiz.is_published:
            raise QuizNotPublishedError
        access = await self._require_participant(user_id, quiz)

        attempts = await self.quiz_store.list_attempts(user_id, quiz_id)
        if quiz.max_attempts is not None and len(attempts) >= quiz.max_attempts:
            raise MaxAttemptsReachedError

        attempt_number = max((a.attempt_number for a in attempts), default=0) + 1
        submission = QuizSubmission(
            submission_id=uuid4(),
            user_id=user_id,
            quiz_id=quiz_id,
            attempt_number=attempt_number,
            started_at=datetime.now(UTC),
        )
        if not await self.quiz_store.create_submission(submission):
            logger.warning(
                "quiz_attempt_conflict",
                user_id=str(user_id),
                quiz_id=str(quiz_id),
                attempt_number=attempt_number,
            )
            raise AttemptConflictError

        logger.info(
            "quiz_attempt_started",
            user_id=str(user_id),
            quiz_id=str(quiz_id),
            attempt_number=attempt_number,
        )

        questions = await self.quiz_store.list_questions(quiz_id)
        return SubmissionView(
            submission=submission,
            quiz=quiz,
            questions=self._visible_questions(quiz, questions, access.is_instructor),
            answers=[],
        )

    async def submit_answer(
        self,
        user_id: UUID,
        submission_id: UUID,
        question_id: UUID,
        answer_text: str,
    ) -> QuizAnswer:
        """Record (or overwrite) the answer to one question.

        Objective questions are graded immediately; subjective ones wait
        for an instructor.
        """
        submission = await self._require_open_submission(user_id, submission_id)

        questions = await self.quiz_store.list_questions(submission.quiz_id)
        question = next((q for q in questions if q.question_id == question_id), None)
        if question is None:
            raise QuestionNotFoundError

        grade = grade_answer(question.kind, answer_text, question.points)
        existing = await self.quiz_store.get_answer(submission_id, question_id)

        answer = QuizAnswer(
            answer_id=existing.answer_id if existing else uuid4(),
            submission_id=submission_id,
            question_id=question_id,
            answer=answer_text,
            is_correct=grade.is_correct,
            points_earned=grade.points_earned,
            answered_at=datetime.now(UTC),
        )
        await self.quiz_store.save_answer(answer)

        logger.debug(
            "quiz_answer_saved",
            submission_id=str(submission_id),
            question_id=str(question_id),
            overwritten=existing is not None,
        )
        return answer

    async def finalize(
        self, user_id: UUID, submission_id: UUID
    ) -> Outcome[SubmissionView]:
        """Score and close a submission; emits QuizCompleted once.

        Raises:
            SubmissionNotFoundError: If the submission does not exist
            NotSubmissionOwnerError: If it belongs to someone else
            AlreadySubmittedError: If it was already finalized
        """
        submission = await self._require_open_submission(user_id, submission_id)
        quiz = await self._require_quiz(submission.quiz_id)
        questions = await self.quiz_store.list_questions(quiz.quiz_id)
        answers = await self.quiz_store.list_answers(submission_id)

        result = compute_submission_score(
            questions, answers, self.passing_score(quiz), self.score_decimal_places
        )

        now = datetime.now(UTC)
        submission.submitted_at = now
        submission.score = result.score
        submission.is_passed = result.is_passed
        submission.time_spent = max(
            0, int((now - submission.started_at).total_seconds())
        )

        if not await self.quiz_store.finalize_submission(submission):
            raise AlreadySubmittedError

        logger.info(
            "quiz_finalized",
            user_id=str(user_id),
            quiz_id=str(quiz.quiz_id),
            submission_id=str(submission_id),
            score=str(result.score),
            is_passed=result.is_passed,
        )

        access = await self._access(user_id, quiz)
        event = QuizCompleted(
            user_id=user_id,
            quiz_id=quiz.quiz_id,
            quiz_title=quiz.title,
            context_title=await self._context_title(quiz, access.course),
            earned_points=result.earned_points,
            total_points=result.total_points,
        )
        outcome = Outcome(
            SubmissionView(
                submission=submission,
                quiz=quiz,
                questions=self._visible_questions(
                    quiz, questions, access.is_instructor
                ),
                answers=answers,
            ),
            [event],
        )
        await deliver_events(self.notifier, outcome.events)
        return outcome

    # ==========================================================================
    # Grading
    # ==========================================================================

    async def regrade_answer(
        self,
        instructor_id: UUID,
        submission_id: UUID,
        answer_id: UUID,
        points_earned: Decimal,
        feedback: str | None = None,
    ) -> GradeResult:
        """Set points for an answer and refresh the score of a finished attempt.

        Raises:
            SubmissionNotFoundError: If the submission does not exist
            NotInstructorError: If caller is not the course instructor
            AnswerNotFoundError: If the answer is not part of the submission
            InvalidGradeError: If points fall outside [0, question points]
        """
        submission = await self._require_submission(submission_id)
        quiz = await self._require_quiz(submission.quiz_id)
        course = await self.catalog.get_course(quiz.course_id)
        if course is None or not course.is_instructor(instructor_id):
            raise NotInstructorError("Only course instructors can grade submissions")

        answers = await self.quiz_store.list_answers(submission_id)
        answer = next((a for a in answers if a.answer_id == answer_id), None)
        if answer is None:
            raise AnswerNotFoundError

        questions = await self.quiz_store.list_questions(quiz.quiz_id)
        question = next(
            (q for q in questions if q.question_id == answer.question_id), None
        )
        if question is None:
            raise QuestionNotFoundError

        if points_earned < 0 or points_earned > question.points:
            raise InvalidGradeError

        answer.points_earned = points_earned
        answer.feedback = feedback
        answer.graded_by = instructor_id
        answer.graded_at = datetime.now(UTC)
        answer.is_correct = points_earned == question.points
        await self.quiz_store.save_answer(answer)

        if submission.is_submitted:
            result = compute_submission_score(
                questions, answers, self.passing_score(quiz), self.score_decimal_places
            )
            submission.score = result.score
            submission.is_passed = result.is_passed
            await self.quiz_store.update_score(submission)

        logger.info(
            "answer_regraded",
            submission_id=str(submission_id),
            answer_id=str(answer_id),
            points_earned=str(points_earned),
            score=str(submission.score) if submission.score is not None else None,
        )
        return GradeResult(answer=answer, submission=submission)

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def get_quiz(self, user_id: UUID, quiz_id: UUID) -> QuizView:
        quiz = await self._require_quiz(quiz_id)
        access = await self._require_participant(user_id, quiz)
        questions = await self.quiz_store.list_questions(quiz_id)
        return QuizView(
            quiz=quiz,
            questions=self._visible_questions(quiz, questions, access.is_instructor),
            is_instructor=access.is_instructor,
        )

    async def get_submission(self, user_id: UUID, submission_id: UUID) -> SubmissionView:
        """Submission with answers, visible to its owner and the instructor."""
        submission = await self._require_submission(submission_id)
        quiz = await self._require_quiz(submission.quiz_id)
        access = await self._access(user_id, quiz)
        if not access.is_instructor and submission.user_id != user_id:
            raise NotSubmissionOwnerError(
                "You do not have access to this submission"
            )

        questions = await self.quiz_store.list_questions(quiz.quiz_id)
        answers = await self.quiz_store.list_answers(submission_id)
        return SubmissionView(
            submission=submission,
            quiz=quiz,
            questions=self._visible_questions(quiz, questions, access.is_instructor),
            answers=answers,
        )

    async def list_attempts(self, user_id: UUID, quiz_id: UUID) -> list[QuizSubmission]:
        """Caller's own attempts, newest attempt first."""
        quiz = await self._require_quiz(quiz_id)
        await self._require_participant(user_id, quiz)
        attempts = await self.quiz_store.list_attempts(user_id, quiz_id)
        return sorted(attempts, key=lambda a: a.attempt_number, reverse=True)

    async def list_quiz_submissions(
        self, instructor_id: UUID, quiz_id: UUID
    ) -> list[StudentSubmissions]:
        """Finalized attempts grouped per student, most recent first."""
        quiz = await self._require_quiz(quiz_id)
        course = await self.catalog.get_course(quiz.course_id)
        if course is None or not course.is_instructor(instructor_id):
            raise NotInstructorError("Only course instructors can view all submissions")

        submitted = [
            s for s in await self.quiz_store.list_quiz_submissions(quiz_id)
            if s.is_submitted
        ]
        submitted.sort(key=lambda s: s.submitted_at, reverse=True)

        grouped: dict[UUID, list[QuizSubmission]] = {}
        for submission in submitted:
            grouped.setdefault(submission.user_id, []).append(submission)
        return [
            StudentSubmissions(user_id=user_id, attempts=attempts)
            for user_id, attempts in grouped.items()
        ]
