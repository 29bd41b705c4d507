"""
Authentication service for observers and NGO admins.

Provides:
- Observer authentication by phone number and PIN, with optional
  binding to the first mobile device that logs in
- NGO admin authentication by account and password
- Access token issuing with the claims required by the authorization policy
"""

import structlog
from typing import Optional

from api.src.config import MobileSecurityOptions
from api.src.models.auth import (
    AuthenticateNgoAdminRequest,
    AuthenticateUserRequest,
    CLAIM_ID_NGO,
    CLAIM_ID_OBSERVER,
    CLAIM_ORGANIZER,
    TokenResponse,
)
from api.src.models.entities import NgoAdmin, Observer
from api.src.repositories.ngo_admin_repo import NgoAdminRepository
from api.src.repositories.observer_repo import ObserverRepository
from api.src.services.hash_service import HashService, verify_hash
from api.src.services.token_service import TokenService

logger = structlog.get_logger(__name__)

LOGIN_ERROR_MESSAGE = (
    "A aparut o eroare la logarea in aplicatie. Va rugam sa verificati ca ati "
    "introdus corect numarul de telefon si codul de acces, iar daca eroarea "
    "persista va rugam contactati serviciul tehnic."
)


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        observer_repo: ObserverRepository,
        ngo_admin_repo: NgoAdminRepository,
        hash_service: HashService,
        token_service: TokenService,
        mobile_security: MobileSecurityOptions
    ):
        """
        Initialize auth service.

        Args:
            observer_repo: Observer repository
            ngo_admin_repo: NGO admin repository
            hash_service: Hash service matching the stored credentials
            token_service: Token issuer
            mobile_security: Device lock options
        """
        self.observer_repo = observer_repo
        self.ngo_admin_repo = ngo_admin_repo
        self.hash_service = hash_service
        self.token_service = token_service
        self.mobile_security = mobile_security

    async def authenticate_observer(self, request: AuthenticateUserRequest) -> Optional[Observer]:
        """
        Authenticate an observer.

        Args:
            request: Login request (phone, PIN, device id)

        Returns:
            Observer if authenticated, None otherwise
        """
        observer = await self.observer_repo.get_by_phone(request.user)

        if observer is None:
            logger.warning("observer_authentication_failed_not_found", phone=request.user)
            return None

        if not verify_hash(self.hash_service, request.password, observer.pin):
            logger.warning("observer_authentication_failed_invalid_pin", phone=request.user)
            return None

        if observer.ngo is not None and not observer.ngo.is_active:
            logger.warning(
                "observer_authentication_failed_ngo_inactive",
                phone=request.user,
                ngo_id=observer.id_ngo
            )
            return None

        if self.mobile_security.lock_device:
            if not request.unique_id:
                logger.warning("observer_authentication_failed_missing_device", phone=request.user)
                return None

            if not observer.mobile_device_id:
                await self.observer_repo.register_device(observer, request.unique_id)
            elif observer.mobile_device_id != request.unique_id:
                logger.warning(
                    "observer_authentication_failed_device_mismatch",
                    observer_id=observer.id
                )
                return None

        logger.info("observer_authenticated", observer_id=observer.id, ngo_id=observer.id_ngo)
        return observer

    async def authenticate_ngo_admin(self, request: AuthenticateNgoAdminRequest) -> Optional[NgoAdmin]:
        """
        Authenticate an NGO admin.

        Args:
            request: Login request (account, password)

        Returns:
            NGO admin if authenticated, None otherwise
        """
        admin = await self.ngo_admin_repo.get_by_account(request.user)

        if admin is None:
            logger.warning("ngo_admin_authentication_failed_not_found", account=request.user)
            return None

        if not verify_hash(self.hash_service, request.password, admin.password):
            logger.warning("ngo_admin_authentication_failed_invalid_password", account=request.user)
            return None

        if admin.ngo is not None and not admin.ngo.is_active:
            logger.warning("ngo_admin_authentication_failed_ngo_inactive", account=request.user)
            return None

        logger.info("ngo_admin_authenticated", admin_id=admin.id, ngo_id=admin.id_ngo)
        return admin

    async def login_observer(self, request: AuthenticateUserRequest) -> Optional[TokenResponse]:
        """
        Login an observer and issue an access token.

        The token subject is the phone number the observer logged in with.

        Returns:
            Token response or None if authentication failed
        """
        observer = await self.authenticate_observer(request)

        if observer is None:
            return None

        token = self.token_service.create_access_token(
            subject=request.user,
            claims={
                CLAIM_ID_OBSERVER: observer.id,
                CLAIM_ID_NGO: observer.id_ngo,
            }
        )

        return TokenResponse(
            access_token=token,
            expires_in=self.token_service.options.valid_for_seconds
        )

    async def login_ngo_admin(self, request: AuthenticateNgoAdminRequest) -> Optional[TokenResponse]:
        """
        Login an NGO admin and issue an access token.

        Returns:
            Token response or None if authentication failed
        """
        admin = await self.authenticate_ngo_admin(request)

        if admin is None:
            return None

        organizer = bool(admin.ngo and admin.ngo.organizer)

        token = self.token_service.create_access_token(
            subject=admin.account,
            claims={
                CLAIM_ID_NGO: admin.id_ngo,
                CLAIM_ORGANIZER: str(organizer).lower(),
            }
        )

        return TokenResponse(
            access_token=token,
            expires_in=self.token_service.options.valid_for_seconds
        )
