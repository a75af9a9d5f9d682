"""Whiteboard API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.config import get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.courses.service import CourseCatalogService
from src.health.router import router as health_router
from src.notifications.router import router as notifications_router
from src.notifications.service import NotificationService
from src.progress.router import enrollments_router
from src.progress.router import router as progress_router
from src.progress.service import ProgressService
from src.progress.store import DerivedProgressStore, ProgressStore
from src.quizzes.router import router as quizzes_router
from src.quizzes.service import QuizService
from src.quizzes.store import QuizStore


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - real-time notifications disabled",
        )
    app.state.redis = redis_client

    # Initialize Cassandra (async)
    app.state.cassandra_session = None
    try:
        session = await init_async_cassandra()
        app.state.cassandra_session = session
        logger.info("cassandra_initialized")

        keyspace = settings.cassandra_keyspace

        # Achievement notifications, persisted and published to Redis
        notification_service = NotificationService(
            session=session,
            keyspace=keyspace,
            redis=redis_client,
            publish_enabled=settings.achievements_publish_enabled,
        )
        app.state.notification_service = notification_service
        logger.info(
            "notification_service_initialized", redis_enabled=redis_client is not None
        )

        catalog = CourseCatalogService(session=session, keyspace=keyspace)
        progress_store = ProgressStore(session=session, keyspace=keyspace)

        app.state.progress_service = ProgressService(
            catalog=catalog,
            store=progress_store,
            derived=DerivedProgressStore(session=session, keyspace=keyspace),
            notifier=notification_service,
            certificate_min_progress=settings.certificate_min_progress,
        )
        logger.info("progress_service_initialized")

        app.state.quiz_service = QuizService(
            catalog=catalog,
            progress_store=progress_store,
            quiz_store=QuizStore(session=session, keyspace=keyspace),
            notifier=notification_service,
            default_passing_score=settings.quiz_default_passing_score,
            score_decimal_places=settings.quiz_score_decimal_places,
        )
        logger.info("quiz_service_initialized")
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces never reach responses; the handlers below log them instead
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Whiteboard LMS - progress tracking and quiz assessment API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions, keeping the engine error code if present."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            message, code = "Internal server error", None
        elif isinstance(exc.detail, dict):
            message, code = exc.detail.get("message"), exc.detail.get("code")
        else:
            message, code = str(exc.detail), None

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": message,
                "code": code,
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "code": "validation_error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "code": "internal_error",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(quizzes_router)
    app.include_router(notifications_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Whiteboard API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
