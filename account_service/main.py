"""
FastAPI application entry point for the account service.
"""
import re
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog
import uvicorn

from .core.config import Settings, get_settings
from .core.database import Database
from .core.exceptions import AccountServiceError, RequestValidationFailed
from .core.logging_config import configure_logging
from .repositories.account_repository import AccountRepository
from .schemas.account_schemas import ErrorResponse
from .services.account_service import AccountService
from .services.auth.token_service import TokenService
from .services.notification_service import EmailDispatcher
from .api.healthcheck import router as healthcheck_router
from .api.users import router as users_router

logger = structlog.get_logger()

_VALUE_ERROR_PREFIX = "Value error, "


def _humanize(field: str) -> str:
    words = re.sub(r"(?<!^)(?=[A-Z])", " ", field).replace("_", " ").split()
    return " ".join(words).capitalize() if words else "Field"


def _error_items(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic errors into ``[{field: message}]`` entries."""
    items = []
    for err in errors:
        loc = err.get("loc") or ()
        field = loc[-1] if loc and isinstance(loc[-1], str) else "body"

        if err.get("type") == "missing":
            message = f"{_humanize(field)} is required"
        else:
            message = err.get("msg", "Invalid value")
            if message.startswith(_VALUE_ERROR_PREFIX):
                message = message[len(_VALUE_ERROR_PREFIX):]

        items.append({field: message})
    return items


def _error_response(status_code: int, message: str, errors: Optional[list] = None) -> JSONResponse:
    body = ErrorResponse(status_code=status_code, message=message, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True))


def build_account_service(settings: Settings) -> AccountService:
    return AccountService(
        settings=settings,
        account_repository=AccountRepository(),
        token_service=TokenService(settings),
        notifier=EmailDispatcher(settings)
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.
    Creates the schema on startup and closes the engine on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info("Starting account service", version=settings.VERSION, environment=settings.ENVIRONMENT)

    try:
        await app.state.database.create_all()
        yield
    finally:
        logger.info("Shutting down account service")
        await app.state.database.dispose()
        logger.info("Account service shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Factory function to create the FastAPI app."""
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Account registration, sessions, email verification and password recovery",
        version=settings.VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.account_service = build_account_service(settings)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"]
        )

    @app.exception_handler(AccountServiceError)
    async def account_error_handler(request: Request, exc: AccountServiceError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        else:
            logger.info("Request rejected", path=request.url.path, status_code=exc.status_code)
        return _error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors."""
        errors = _error_items(exc.errors())
        # Field names only; submitted values may hold passwords.
        logger.warning(
            "Validation error",
            fields=[field for item in errors for field in item],
            path=request.url.path
        )
        return _error_response(
            RequestValidationFailed.status_code,
            RequestValidationFailed.default_message,
            errors
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error",
            path=request.url.path,
            error_type=type(exc).__name__
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong")

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}

    app.include_router(healthcheck_router, prefix=settings.API_V1_STR)
    app.include_router(users_router, prefix=settings.API_V1_STR)

    return app


def run_dev():
    """Run development server."""
    uvicorn.run(
        "account_service.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="debug"
    )


def run_prod():
    """Run production server."""
    uvicorn.run(
        "account_service.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info",
        workers=1,
        access_log=False  # Use structured logging instead
    )


if __name__ == "__main__":
    if get_settings().DEBUG:
        run_dev()
    else:
        run_prod()
