"""Quiz API endpoints.

Provides routes for:
- Quiz retrieval (answers hidden from students unless allowed)
- Attempt lifecycle: start, answer, submit
- Attempt and submission queries
- Instructor grading
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import CurrentUser
from src.core.exceptions import EngineError

from .dependencies import QuizServiceDep, handle_quiz_error
from .schemas import (
    AnswerResponse,
    AttemptListResponse,
    GradeAnswerRequest,
    GradeAnswerResponse,
    QuizResponse,
    QuizSubmissionsResponse,
    StudentSubmissionsResponse,
    SubmissionResponse,
    SubmissionSummaryResponse,
    SubmitAnswerRequest,
)


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


# ==============================================================================
# Quizzes
# ==============================================================================


@router.get(
    "/{quiz_id}",
    response_model=QuizResponse,
    summary="Get quiz with questions",
)
async def get_quiz(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> QuizResponse:
    try:
        view = await quiz_service.get_quiz(user.id, quiz_id)
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return QuizResponse.from_view(view)


@router.get(
    "/{quiz_id}/attempts",
    response_model=AttemptListResponse,
    summary="List my attempts",
)
async def list_attempts(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> AttemptListResponse:
    try:
        attempts = await quiz_service.list_attempts(user.id, quiz_id)
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return AttemptListResponse(
        items=[SubmissionSummaryResponse.from_entity(a) for a in attempts],
        total=len(attempts),
    )


@router.get(
    "/{quiz_id}/submissions",
    response_model=QuizSubmissionsResponse,
    summary="All finalized submissions (instructor only)",
)
async def list_quiz_submissions(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> QuizSubmissionsResponse:
    try:
        groups = await quiz_service.list_quiz_submissions(user.id, quiz_id)
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return QuizSubmissionsResponse(
        items=[StudentSubmissionsResponse.from_group(g) for g in groups],
        total=len(groups),
    )


# ==============================================================================
# Attempt Lifecycle
# ==============================================================================


@router.post(
    "/{quiz_id}/attempts",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a new attempt",
)
async def start_attempt(
    quiz_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> SubmissionResponse:
    try:
        view = await quiz_service.start_attempt(user.id, quiz_id)
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return SubmissionResponse.from_view(view)


@router.put(
    "/submissions/{submission_id}/answers",
    response_model=AnswerResponse,
    summary="Answer a question",
)
async def submit_answer(
    submission_id: UUID,
    data: SubmitAnswerRequest,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> AnswerResponse:
    try:
        answer = await quiz_service.submit_answer(
            user_id=user.id,
            submission_id=submission_id,
            question_id=data.question_id,
            answer_text=data.answer,
        )
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return AnswerResponse.from_entity(answer)


@router.post(
    "/submissions/{submission_id}/submit",
    response_model=SubmissionResponse,
    summary="Submit attempt for scoring",
)
async def finalize_submission(
    submission_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> SubmissionResponse:
    try:
        outcome = await quiz_service.finalize(user.id, submission_id)
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return SubmissionResponse.from_view(outcome.data, outcome.events)


@router.get(
    "/submissions/{submission_id}",
    response_model=SubmissionResponse,
    summary="Get submission with answers",
)
async def get_submission(
    submission_id: UUID,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> SubmissionResponse:
    try:
        view = await quiz_service.get_submission(user.id, submission_id)
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return SubmissionResponse.from_view(view)


# ==============================================================================
# Grading
# ==============================================================================


@router.put(
    "/submissions/{submission_id}/answers/{answer_id}/grade",
    response_model=GradeAnswerResponse,
    summary="Grade an answer (instructor only)",
)
async def grade_answer(
    submission_id: UUID,
    answer_id: UUID,
    data: GradeAnswerRequest,
    quiz_service: QuizServiceDep,
    user: CurrentUser,
) -> GradeAnswerResponse:
    try:
        result = await quiz_service.regrade_answer(
            instructor_id=user.id,
            submission_id=submission_id,
            answer_id=answer_id,
            points_earned=data.points_earned,
            feedback=data.feedback,
        )
    except EngineError as e:
        raise handle_quiz_error(e) from e
    return GradeAnswerResponse.from_result(result)
