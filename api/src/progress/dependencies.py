"""FastAPI dependencies for progress tracking.

Provides dependency injection for:
- Progress service
- Engine error translation
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.core.exceptions import (
    BadRequestError,
    ConflictError,
    EngineError,
    ForbiddenError,
    NotFoundError,
)

from .service import ProgressService


async def get_progress_service(request: Request) -> ProgressService:
    """Get progress service from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "progress_service") or not app_state.progress_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return app_state.progress_service


# Type alias for dependency injection
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


def engine_error_status(error: EngineError) -> int:
    """HTTP status for an engine error, by error family."""
    status_map = {
        NotFoundError: status.HTTP_404_NOT_FOUND,
        ForbiddenError: status.HTTP_403_FORBIDDEN,
        BadRequestError: status.HTTP_400_BAD_REQUEST,
        ConflictError: status.HTTP_409_CONFLICT,
    }
    for error_type, status_code in status_map.items():
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def handle_progress_error(error: EngineError) -> HTTPException:
    """Convert progress errors to HTTP exceptions."""
    return HTTPException(
        status_code=engine_error_status(error),
        detail={"message": error.message, "code": error.code},
    )
