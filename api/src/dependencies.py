"""
Service registration and FastAPI dependency injection.

Provides:
- AppState: the application's service container, built once at startup
  and stored on app.state.container
- Injectable dependencies for database sessions, the configured cache,
  hash and file services, and authentication
- Current user dependencies backed by the auth middleware

All dependencies resolve through AppState so tests can replace any service
with app.dependency_overrides.
"""

import structlog
from typing import AsyncGenerator, List, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from api.src.config import Settings
from api.src.models.auth import CurrentUser
from api.src.repositories.ngo_admin_repo import NgoAdminRepository
from api.src.repositories.observer_repo import ObserverRepository
from api.src.services.auth_service import AuthService
from api.src.services.cache_service import CacheService
from api.src.services.file_service import FileService
from api.src.services.hash_service import HashService
from api.src.services.token_service import TokenService

logger = structlog.get_logger(__name__)

# Documents the "bearer" scheme in Swagger; the header carries "Bearer <token>"
bearer_scheme = APIKeyHeader(name="Authorization", scheme_name="bearer", auto_error=False)


# ============================================================================
# SERVICE CONTAINER
# ============================================================================


class AppState:
    """Application state container for shared resources."""

    REQUIRED_SERVICES = (
        "settings",
        "engine",
        "session_factory",
        "hash_service",
        "cache_service",
        "file_service",
        "token_service",
    )

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.hash_service: Optional[HashService] = None
        self.cache_service: Optional[CacheService] = None
        self.file_service: Optional[FileService] = None
        self.token_service: Optional[TokenService] = None

    def missing_services(self) -> List[str]:
        return [name for name in self.REQUIRED_SERVICES if getattr(self, name) is None]

    def verify(self) -> None:
        """
        Check that every required service is registered.

        Raises:
            RuntimeError: If any service is missing
        """
        missing = self.missing_services()
        if missing:
            logger.error("service_container_invalid", missing=missing)
            raise RuntimeError(f"Services not registered: {', '.join(missing)}")

        logger.info("service_container_verified", services=list(self.REQUIRED_SERVICES))


def get_app_state(request: Request) -> AppState:
    """
    Get the service container of the running application.

    Raises:
        RuntimeError: If the application has not started
    """
    state = getattr(request.app.state, "container", None)
    if state is None:
        logger.error("service_container_not_initialized")
        raise RuntimeError("Service container not initialized. Is the application lifespan running?")
    return state


# ============================================================================
# DATABASE
# ============================================================================


async def get_db(state: AppState = Depends(get_app_state)) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session for the current request.

    Yields:
        AsyncSession, closed after the response is sent
    """
    async with state.session_factory() as session:
        try:
            yield session
        except Exception as e:
            logger.error("database_session_error", error=str(e))
            await session.rollback()
            raise


# ============================================================================
# SERVICE DEPENDENCIES
# ============================================================================


def get_hash_service(state: AppState = Depends(get_app_state)) -> HashService:
    return state.hash_service


def get_cache_service(state: AppState = Depends(get_app_state)) -> CacheService:
    return state.cache_service


def get_file_service(state: AppState = Depends(get_app_state)) -> FileService:
    return state.file_service


def get_token_service(state: AppState = Depends(get_app_state)) -> TokenService:
    return state.token_service


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    state: AppState = Depends(get_app_state),
    hash_service: HashService = Depends(get_hash_service),
    token_service: TokenService = Depends(get_token_service)
) -> AuthService:
    """
    Get an authentication service bound to the request's database session.

    Returns:
        Authentication service
    """
    return AuthService(
        observer_repo=ObserverRepository(db),
        ngo_admin_repo=NgoAdminRepository(db),
        hash_service=hash_service,
        token_service=token_service,
        mobile_security=state.settings.mobile_security
    )


# ============================================================================
# AUTHENTICATION DEPENDENCIES
# ============================================================================


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Depends(bearer_scheme)
) -> CurrentUser:
    """
    Get the caller authenticated by the auth middleware.

    Args:
        request: HTTP request
        authorization: Authorization header (declared for the OpenAPI schema)

    Returns:
        Current authenticated user

    Raises:
        HTTPException: If the request is not authenticated
    """
    user = getattr(request.state, "user", None)

    if user is None:
        logger.warning("auth_missing_user", path=request.url.path, has_header=bool(authorization))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user


async def require_ngo_user(
    current_user: CurrentUser = Depends(get_current_user)
) -> CurrentUser:
    """
    Require a caller that belongs to an NGO.

    Raises:
        HTTPException: If the token carries no NGO claim
    """
    if not current_user.has_ngo:
        logger.warning("access_denied_ngo_required", subject=current_user.subject)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="NGO claim required"
        )

    return current_user
