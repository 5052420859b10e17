from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqladmin import Admin
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from bloodlink.admin import ADMIN_VIEWS
from bloodlink.config import settings
from bloodlink.database import async_session, close_db, engine, init_db
from bloodlink.dependencies import get_db
from bloodlink.middlewares.logging_middleware import LoggingMiddleware
from bloodlink.schemas.base_schema import ErrorResponse
from bloodlink.routes import router as api_router
from bloodlink.services.notification_sse import manager
from bloodlink.services.scheduler import start_scheduler, stop_scheduler
from bloodlink.services.user_service import UserService
from bloodlink.utils.logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application startup and shutdown events.
    """
    logger.info("Application starting up...")

    if settings.CREATE_TABLES_ON_STARTUP:
        await init_db()

    try:
        async with async_session() as db:
            await UserService(db).seed_admin()
    except SQLAlchemyError as e:
        # Allow the app to start and surface database errors per-request
        logger.error(f"Error seeding administrator account: {e}", exc_info=True)

    if settings.ENABLE_SCHEDULER:
        start_scheduler()

    yield

    logger.info("Application shutting down...")
    if settings.ENABLE_SCHEDULER:
        stop_scheduler()
    await close_db()


def _error_body(message: str, errors=None) -> dict:
    body = ErrorResponse(message=message, errors=jsonable_encoder(errors) if errors else None)
    return body.model_dump(exclude_none=True)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = getattr(exc, "message", None) or str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, getattr(exc, "errors", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body("Validation failed", exc.errors()),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        extra={"event_type": "unhandled_exception", "path": str(request.url.path)},
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error"),
    )


def create_application() -> FastAPI:
    """Create the FastAPI application"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        docs_url=settings.DOCS_URL,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "Accept",
            "X-Requested-With",
            "Origin",
        ],
        expose_headers=["Content-Length", "Content-Type", "Content-Disposition", "X-Request-ID"],
        max_age=600,
    )

    # Logging middleware
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # SQLAdmin setup
    admin = Admin(app, engine, base_url="/admin")
    for view in ADMIN_VIEWS:
        admin.add_view(view)

    @app.get("/")
    def read_root():
        return {"status": "ok", "environment": settings.ENVIRONMENT}

    @app.get("/health")
    async def health_check(db: AsyncSession = Depends(get_db)):
        """Health check with database connectivity test"""
        try:
            await db.execute(select(1))
        except SQLAlchemyError as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unhealthy", "database": "disconnected"},
            )
        return {
            "status": "healthy",
            "database": "connected",
            "sse": manager.get_stats(),
        }

    return app


# Create and expose the FastAPI app
app = create_application()
