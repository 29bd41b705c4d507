"""
JWT access token issuing and validation.

Tokens are signed with the configured symmetric key (python-jose) and carry
the registered claims sub, jti, iat, nbf, exp, iss and aud plus the
application claims supplied by the caller.
"""

import uuid
import structlog
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from api.src.config import JwtIssuerOptions
from api.src.models.auth import TokenClaims

logger = structlog.get_logger(__name__)

REGISTERED_CLAIMS = {"sub", "jti", "iat", "nbf", "exp", "iss", "aud"}


class TokenService:
    """Creates and validates signed access tokens."""

    def __init__(self, options: JwtIssuerOptions):
        """
        Initialize token service.

        Args:
            options: JWT issuer options
        """
        self.options = options

    @property
    def valid_for(self) -> timedelta:
        return timedelta(seconds=self.options.valid_for_seconds)

    def create_access_token(self, subject: str, claims: Optional[Dict[str, Any]] = None) -> str:
        """
        Create a signed JWT access token.

        Args:
            subject: Value of the sub claim
            claims: Additional application claims

        Returns:
            Encoded JWT token
        """
        now = datetime.now(timezone.utc)
        expire = now + self.valid_for

        payload: Dict[str, Any] = dict(claims or {})
        payload.update({
            "sub": subject,
            "jti": str(uuid.uuid4()),
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expire.timestamp()),
            "iss": self.options.issuer,
            "aud": self.options.audience,
        })

        token = jwt.encode(
            payload,
            self.options.secret_key,
            algorithm=self.options.algorithm
        )

        logger.info(
            "access_token_created",
            subject=subject,
            expires_in=self.options.valid_for_seconds
        )

        return token

    def decode_token(self, token: str) -> Optional[TokenClaims]:
        """
        Decode and validate a JWT token.

        Checks signature, expiry, issuer and audience.

        Args:
            token: JWT token string

        Returns:
            Token claims or None if invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.options.secret_key,
                algorithms=[self.options.algorithm],
                audience=self.options.audience,
                issuer=self.options.issuer
            )
        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            return None

        if not payload.get("sub"):
            logger.warning("token_missing_subject")
            return None

        return TokenClaims(
            sub=payload["sub"],
            jti=payload.get("jti"),
            iat=payload.get("iat"),
            exp=payload["exp"],
            iss=payload.get("iss"),
            aud=payload.get("aud"),
            extra={k: v for k, v in payload.items() if k not in REGISTERED_CLAIMS}
        )
