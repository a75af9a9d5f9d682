"""Student progress tracking API endpoints.

Provides routes for:
- Resource progress updates
- Module access and completion requests
- Course progress recompute and reports
- Certificate eligibility
- Course enrollment
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.auth.dependencies import CurrentUser
from src.core.exceptions import EngineError

from .dependencies import ProgressServiceDep, handle_progress_error
from .schemas import (
    CertificateEligibilityResponse,
    CourseProgressResponse,
    CourseStatisticsResponse,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    ModuleProgressResponse,
    ResourceProgressResponse,
    UpdateModuleProgressRequest,
    UpdateResourceProgressRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Progress Updates
# ==============================================================================


@router.put(
    "/resources/{resource_id}",
    response_model=ResourceProgressResponse,
    summary="Update resource progress",
)
async def update_resource_progress(
    resource_id: UUID,
    data: UpdateResourceProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ResourceProgressResponse:
    """Record completion, time spent or position on a resource.

    Module and course progress are recomputed in the same request.
    """
    try:
        outcome = await progress_service.upsert_resource_progress(
            user_id=user.id,
            resource_id=resource_id,
            is_completed=data.is_completed,
            time_spent=data.time_spent,
            last_position=data.last_position,
            clear_completed_at=data.clear_completed_at,
        )
    except EngineError as e:
        raise handle_progress_error(e) from e
    return ResourceProgressResponse.from_entity(outcome.data, outcome.events)


@router.put(
    "/modules/{module_id}",
    response_model=ModuleProgressResponse,
    summary="Record module access or request completion",
)
async def update_module_progress(
    module_id: UUID,
    data: UpdateModuleProgressRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> ModuleProgressResponse:
    try:
        outcome = await progress_service.update_module_progress(
            user_id=user.id,
            module_id=module_id,
            is_completed=data.is_completed,
        )
    except EngineError as e:
        raise handle_progress_error(e) from e

    if outcome.data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Module progress not found",
        )
    return ModuleProgressResponse.from_entity(outcome.data, outcome.events)


@router.post(
    "/courses/{course_id}/recalculate",
    response_model=EnrollmentResponse,
    summary="Recompute course progress",
)
async def recalculate_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    try:
        outcome = await progress_service.reevaluate_course_progress(user.id, course_id)
    except EngineError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(outcome.data, outcome.events)


# ==============================================================================
# Queries
# ==============================================================================


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress breakdown",
)
async def get_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseProgressResponse:
    try:
        report = await progress_service.get_course_progress(user.id, course_id)
    except EngineError as e:
        raise handle_progress_error(e) from e
    return CourseProgressResponse.from_report(report)


@router.get(
    "/courses/{course_id}/certificate-eligibility",
    response_model=CertificateEligibilityResponse,
    summary="Check certificate eligibility",
)
async def check_certificate_eligibility(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CertificateEligibilityResponse:
    result = await progress_service.check_certificate_eligibility(user.id, course_id)
    return CertificateEligibilityResponse.from_result(result)


@router.get(
    "/courses/{course_id}/statistics",
    response_model=CourseStatisticsResponse,
    summary="Course completion statistics (instructor only)",
)
async def get_course_statistics(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> CourseStatisticsResponse:
    try:
        stats = await progress_service.get_course_statistics(user.id, course_id)
    except EngineError as e:
        raise handle_progress_error(e) from e
    return CourseStatisticsResponse.from_statistics(stats)


# ==============================================================================
# Enrollments
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    data: EnrollRequest,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    try:
        enrollment = await progress_service.enroll_user(user.id, data.course_id)
    except EngineError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List my enrollments",
)
async def list_my_enrollments(
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentListResponse:
    enrollments = await progress_service.get_user_enrollments(user.id)
    return EnrollmentListResponse(
        items=[EnrollmentResponse.from_entity(e) for e in enrollments],
        total=len(enrollments),
    )


@enrollments_router.get(
    "/{course_id}",
    response_model=EnrollmentResponse,
    summary="Get my enrollment in a course",
)
async def get_enrollment(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    try:
        enrollment = await progress_service.get_enrollment(user.id, course_id)
    except EngineError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave a course",
)
async def unenroll(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    user: CurrentUser,
) -> None:
    try:
        await progress_service.unenroll_user(user.id, course_id)
    except EngineError as e:
        raise handle_progress_error(e) from e
