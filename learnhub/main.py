"""LearnHub API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from learnhub.ai.router import router as ai_router
from learnhub.ai.service import AIContentService
from learnhub.config import get_settings
from learnhub.core.context import get_request_id
from learnhub.core.database import init_async_cassandra, shutdown_async_cassandra
from learnhub.core.logging import configure_structlog, get_logger
from learnhub.core.middleware import RequestContextMiddleware
from learnhub.courses.router import router as courses_router
from learnhub.courses.service import CourseService
from learnhub.email.router import admin_router as email_admin_router
from learnhub.email.router import router as email_router
from learnhub.email.service import EmailService
from learnhub.employees.router import router as employees_router
from learnhub.employees.service import EmployeeService
from learnhub.health import router as health_router
from learnhub.progress.router import enrollments_router
from learnhub.progress.router import router as progress_router
from learnhub.progress.service import ProgressService
from learnhub.projects.router import router as projects_router
from learnhub.projects.service import ProjectService
from learnhub.training.router import router as training_router
from learnhub.training.service import TrainingService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(
    settings, log_dir=Path(settings.log_dir), file_output=not settings.is_testing
)

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

    # Email is independent of the database; services below notify through it
    email_service: EmailService | None = None
    if settings.email_enabled:
        try:
            email_service = EmailService(
                credentials_path=settings.email_credentials_path,
                sender_address=settings.email_sender_address,
                sender_name=settings.email_sender_name,
                app_url=settings.email_app_url,
            )
            app.state.email_service = email_service
            logger.info("email_service_initialized", sender=settings.email_sender_address)
        except Exception as e:
            logger.warning(
                "email_service_init_skipped",
                error=str(e),
                message="Running without email service",
            )

    app.state.ai_service = AIContentService(settings)
    logger.info("ai_service_initialized", configured=settings.ai_configured)

    try:
        session = await init_async_cassandra()
        keyspace = settings.cassandra_keyspace

        app.state.course_service = CourseService(session=session, keyspace=keyspace)
        app.state.employee_service = EmployeeService(
            session=session, keyspace=keyspace, email_service=email_service
        )
        app.state.progress_service = ProgressService(
            session=session,
            keyspace=keyspace,
            course_service=app.state.course_service,
            employee_service=app.state.employee_service,
            email_service=email_service,
            formula=settings.progress_overall_formula,
            default_passing_score=settings.progress_default_passing_score,
        )
        app.state.project_service = ProjectService(
            session=session,
            keyspace=keyspace,
            employee_service=app.state.employee_service,
            email_service=email_service,
        )
        app.state.training_service = TrainingService(
            session=session,
            keyspace=keyspace,
            employee_service=app.state.employee_service,
            email_service=email_service,
        )
        logger.info(
            "services_initialized",
            progress_formula=settings.progress_overall_formula,
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Tracebacks are logged by the handlers below, never rendered.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnHub - Corporate learning and onboarding API",
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

    def _error_response(
        request: Request,
        status_code: int,
        message: str,
        *,
        details: list[dict[str, str]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ORJSONResponse:
        content: dict[str, object] = {
            "error": True,
            "message": message,
            "status_code": status_code,
            "request_id": getattr(request.state, "request_id", None)
            or get_request_id(),
        }
        if details is not None:
            content["details"] = details
        return ORJSONResponse(status_code=status_code, content=content, headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def on_http_error(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Return the error envelope; 5xx details stay in the log."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        server_error = exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR
        return _error_response(
            request,
            exc.status_code,
            "Internal server error" if server_error else str(exc.detail),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        errors = exc.errors()
        logger.warning(
            "validation_error",
            errors=errors,
            path=request.url.path,
            method=request.method,
        )
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", "Invalid value"),
            }
            for err in errors
        ]
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            details=details,
        )

    @app.exception_handler(Exception)
    async def on_unhandled_error(request: Request, exc: Exception) -> ORJSONResponse:
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )

    app.include_router(health_router)
    app.include_router(courses_router)
    app.include_router(employees_router)
    app.include_router(enrollments_router)
    app.include_router(progress_router)
    app.include_router(projects_router)
    app.include_router(training_router)
    app.include_router(ai_router)
    app.include_router(email_router)
    app.include_router(email_admin_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        return {
            "message": "LearnHub API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
