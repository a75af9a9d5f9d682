"""FastAPI dependencies for quizzes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.core.exceptions import EngineError
from src.progress.dependencies import engine_error_status

from .service import QuizService


async def get_quiz_service(request: Request) -> QuizService:
    """Get quiz service from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "quiz_service") or not app_state.quiz_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quiz service not available",
        )
    return app_state.quiz_service


QuizServiceDep = Annotated[QuizService, Depends(get_quiz_service)]


def handle_quiz_error(error: EngineError) -> HTTPException:
    """Convert quiz errors to HTTP exceptions."""
    return HTTPException(
        status_code=engine_error_status(error),
        detail={"message": error.message, "code": error.code},
    )
