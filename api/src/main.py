"""
FastAPI application entry point for the VoteMonitor API.

This module composes the application:
- Service registration (database, hash, cache, file storage, tokens)
- Authorization policy (bearer token with NGO claim) and CORS
- Request logging, Prometheus metrics and security headers
- Swagger documentation
- Exception handlers
- Static files
- Graceful startup and shutdown
"""

import structlog
import uvicorn
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.src.config import get_settings, Settings
from api.src.database import (
    create_engine,
    create_schema,
    create_session_factory,
    ensure_seed_data,
)
from api.src.dependencies import AppState
from api.src.middleware import (
    AuthMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from api.src.routers import access, health
from api.src.services.cache_service import build_cache_service
from api.src.services.file_service import build_file_service
from api.src.services.firebase import configure_private_key
from api.src.services.hash_service import build_hash_service
from api.src.services.token_service import TokenService
from shared.logging import configure_logging

logger = structlog.get_logger(__name__)

LOCATION_PREFIXES = ("body", "query", "path", "header", "cookie")

BEARER_SCHEME = "bearer"

# ============================================================================
# Lifespan Management
# ============================================================================


async def register_services(state: AppState, settings: Settings) -> AppState:
    """
    Fill the service container.

    Selects the configured cache, hash and file storage implementations and
    opens the database engine. Each service is stored as soon as it is built.
    """
    state.settings = settings

    state.engine = create_engine(settings)
    state.session_factory = create_session_factory(state.engine)

    state.hash_service = build_hash_service(settings.hash_options)
    state.cache_service = build_cache_service(settings)
    state.file_service = build_file_service(settings)
    state.token_service = TokenService(settings.jwt)

    return state


async def start_services(state: AppState, settings: Settings) -> None:
    """Prepare the database, credentials and storage."""
    if settings.database_seed:
        await create_schema(state.engine)
        async with state.session_factory() as session:
            await ensure_seed_data(session)

    configure_private_key(settings)

    if settings.static_files_enabled:
        Path(settings.static_files_root).mkdir(parents=True, exist_ok=True)

    await state.file_service.initialize()


async def shutdown_services(state: AppState) -> None:
    """Close the cache backend and dispose the database engine."""
    try:
        if state.cache_service is not None:
            await state.cache_service.close()

        if state.engine is not None:
            await state.engine.dispose()
            logger.info("database_engine_disposed")

        logger.info("application_shutdown_complete")

    except Exception as e:
        logger.error("application_shutdown_failed", error=str(e), exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager for startup and shutdown events.

    Handles:
    - Service registration and verification
    - Database schema and seed data (when enabled)
    - Firebase credentials and storage initialization
    - Graceful shutdown and resource cleanup
    """
    settings: Settings = app.state.settings
    state = AppState()
    app.state.container = state

    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    try:
        await register_services(state, settings)
        state.verify()
        await start_services(state, settings)
    except Exception as e:
        logger.error("application_startup_failed", error=str(e), exc_info=True)
        await shutdown_services(state)
        raise

    logger.info(
        "application_started",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )

    try:
        yield
    finally:
        logger.info("application_shutting_down")
        await shutdown_services(state)


# ============================================================================
# Exception Handlers
# ============================================================================


def format_validation_errors(errors: List[dict]) -> Dict[str, List[str]]:
    """
    Group validation errors by field name.

    Missing fields get a "The <field> field is required." message; a missing
    body is reported under "request".
    """
    result: Dict[str, List[str]] = {}

    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in LOCATION_PREFIXES:
            loc = loc[1:]

        field = ".".join(loc) if loc else "request"

        if error.get("type") == "missing":
            message = (
                f"The {field} field is required."
                if loc else "A non-empty request body is required."
            )
        else:
            message = error.get("msg", "The value is invalid.")

        result.setdefault(field, []).append(message)

    return result


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = format_validation_errors(exc.errors())
    logger.warning(
        "validation_error",
        path=request.url.path,
        fields=list(errors)
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=errors
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        path=request.url.path,
        status_code=exc.status_code,
        detail=exc.detail
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions: 500 with an empty JSON body."""
    logger.error(
        "unexpected_exception",
        path=request.url.path,
        error=str(exc),
        exc_info=exc
    )
    return Response(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/json"
    )


def build_openapi(app: FastAPI) -> Dict[str, Any]:
    """OpenAPI document requiring the bearer scheme on every operation."""
    if app.openapi_schema:
        return app.openapi_schema

    schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        terms_of_service=app.terms_of_service,
        contact=app.contact,
        routes=app.routes,
    )

    schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
    schemes.setdefault(BEARER_SCHEME, {"type": "apiKey", "in": "header", "name": "Authorization"})
    schema["security"] = [{BEARER_SCHEME: []}]

    app.openapi_schema = schema
    return schema


# ============================================================================
# FastAPI Application
# ============================================================================


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to the cached settings)

    Returns:
        Configured application; services are registered on startup
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.log_format == "json",
        service_name=settings.app_name,
        environment=settings.environment
    )

    app = FastAPI(
        title="VoteMonitor ",
        version="v1",
        description="API specs for NGO Admin and Observer operations.",
        terms_of_service="TBD",
        contact={
            "name": "Code for Romania",
            "email": "info@monitorizarevot.ro",
            "url": "http://monitorizarevot.ro"
        },
        docs_url="/swagger",
        redoc_url=None,
        openapi_url="/swagger/v1/swagger.json",
        swagger_ui_parameters={"docExpansion": "none"},
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.settings = settings

    # ------------------------------------------------------------------------
    # Middleware (the last one added runs first)
    # ------------------------------------------------------------------------

    exempt_paths = [
        f"{settings.api_prefix}/access/authorize",
        f"{settings.api_prefix}/access/admin",
        "/health",
        "/ready",
        "/metrics",
        "/swagger",
    ]
    if settings.static_files_enabled:
        exempt_paths.append(settings.static_files_url)

    app.add_middleware(AuthMiddleware, exempt_paths=exempt_paths)

    if settings.security_headers_enabled:
        app.add_middleware(SecurityHeadersMiddleware)

    app.add_middleware(RequestLoggingMiddleware, metrics_enabled=settings.metrics_enabled)

    if settings.cors_enabled:
        logger.info("configuring_cors", origins=settings.cors_origins)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
        )

    # ------------------------------------------------------------------------
    # Exception handlers
    # ------------------------------------------------------------------------

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    # Development keeps the framework's debug error output
    if not settings.is_development:
        app.add_exception_handler(Exception, general_exception_handler)

    # ------------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------------

    app.include_router(health.router)
    app.include_router(access.router, prefix=settings.api_prefix)
    app.openapi = lambda: build_openapi(app)

    if settings.static_files_enabled:
        app.mount(
            settings.static_files_url,
            StaticFiles(directory=settings.static_files_root, check_dir=False),
            name="static"
        )

    return app


app = create_app()


# ============================================================================
# Application Entry Point
# ============================================================================

if __name__ == "__main__":
    settings = get_settings()

    logger.info(
        "starting_uvicorn_server",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )

    uvicorn.run(
        "api.src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
