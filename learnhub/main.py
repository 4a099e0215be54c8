"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Models must be imported before create_all
from learnhub.auth import models as auth_models  # noqa: F401
from learnhub.auth.revocation import TokenRevocationRegistry
from learnhub.auth.router import router as auth_router
from learnhub.auth.service import AuthService
from learnhub.config import Settings, get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import Database
from learnhub.core.exceptions import InfrastructureError
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.core.rate_limit import RateLimiter
from learnhub.core.redis import init_redis, shutdown_redis
from learnhub.core.registry import PeriodicSweeper
from learnhub.courses import models as course_models  # noqa: F401
from learnhub.courses.router import router_courses, router_lessons
from learnhub.courses.service import CourseService, LessonService
from learnhub.enrollments import models as enrollment_models  # noqa: F401
from learnhub.enrollments.router import router as enrollments_router
from learnhub.enrollments.service import EnrollmentService
from learnhub.health import router as health_router
from learnhub.notifications.client import NotificationDispatcher
from learnhub.progress import models as progress_models  # noqa: F401
from learnhub.progress.router import router as progress_router
from learnhub.progress.service import ProgressService
from learnhub.storage.service import ObjectStorageService


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    db = Database.from_settings(settings)
    if settings.database_create_tables:
        await db.create_all()
    app.state.db = db

    # Redis is optional: rate limiting falls back to in-process counters
    if settings.redis_enabled:
        try:
            await init_redis(settings)
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without Redis - rate limits are per process",
            )

    revocations = TokenRevocationRegistry()
    auth_rate_limiter = RateLimiter.for_auth(settings)
    sweepers = [
        PeriodicSweeper(
            revocations.registry,
            settings.auth_revocation_sweep_interval_seconds,
            name="token_revocations",
        ),
        PeriodicSweeper(
            auth_rate_limiter.counters,
            settings.auth_revocation_sweep_interval_seconds,
            name="auth_rate_limit",
        ),
    ]
    for sweeper in sweepers:
        sweeper.start()

    dispatcher = NotificationDispatcher.from_settings(settings)
    storage = ObjectStorageService(settings)

    app.state.auth_rate_limiter = auth_rate_limiter
    app.state.notification_dispatcher = dispatcher
    app.state.auth_service = AuthService(db, revocations, settings)
    app.state.course_service = CourseService(db, storage)
    app.state.lesson_service = LessonService(db, storage)
    app.state.enrollment_service = EnrollmentService(db, dispatcher)
    app.state.progress_service = ProgressService(
        db, app.state.enrollment_service, dispatcher
    )
    logger.info(
        "services_initialized",
        notifier_configured=settings.notifier_configured,
        storage_configured=storage.is_configured,
    )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await dispatcher.drain()
    for sweeper in sweepers:
        await sweeper.stop()
    await shutdown_redis()
    await db.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_structlog(settings)

    # Starlette's debug pages would expose stack traces; the handlers below
    # log details and return safe messages instead.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Learning management API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )
    app.state.settings = settings

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
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with field details."""
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

    @app.exception_handler(InfrastructureError)
    async def infrastructure_exception_handler(
        request: Request, exc: InfrastructureError
    ) -> ORJSONResponse:
        """Store or collaborator failure: log it, answer 503."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "infrastructure_error",
            error_message=exc.message,
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": True,
                "message": "Service temporarily unavailable",
                "status_code": 503,
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        Never exposes stack traces or internal error details to users.
        """
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
                "status_code": 500,
                "request_id": request_id,
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(router_courses)
    app.include_router(router_lessons)
    app.include_router(enrollments_router)
    app.include_router(progress_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
