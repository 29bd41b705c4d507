"""
Authentication request/response schemas and token models.

Request field names follow the mobile and web clients (`user`, `password`,
`uniqueId`); responses use the OAuth-style snake_case keys the clients read.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError


# Claim names shared by token issuing and the authorization policy
CLAIM_ID_NGO = "IdNgo"
CLAIM_ID_OBSERVER = "IdObserver"
CLAIM_ORGANIZER = "Organizer"


# ============================================================================
# Pydantic Request Models
# ============================================================================


def require_value(value: Optional[str]) -> str:
    """Null and blank credentials are reported as missing fields."""
    if value is None or not value.strip():
        raise PydanticCustomError("missing", "Field required")
    return value


class AuthenticateUserRequest(BaseModel):
    """Observer login request."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "user": "0722222222",
                "password": "1234",
                "uniqueId": "device-identifier"
            }
        }
    )

    user: Optional[str] = Field(
        ...,
        description="Observer phone number"
    )
    password: Optional[str] = Field(
        ...,
        description="Observer PIN"
    )
    unique_id: Optional[str] = Field(
        None,
        alias="uniqueId",
        description="Mobile device identifier"
    )

    @field_validator("user", "password")
    @classmethod
    def require_credentials(cls, v: Optional[str]) -> str:
        return require_value(v)


class AuthenticateNgoAdminRequest(BaseModel):
    """NGO admin login request."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user": "admin",
                "password": "secret"
            }
        }
    )

    user: Optional[str] = Field(
        ...,
        description="NGO admin account"
    )
    password: Optional[str] = Field(
        ...,
        description="NGO admin password"
    )

    @field_validator("user", "password")
    @classmethod
    def require_credentials(cls, v: Optional[str]) -> str:
        return require_value(v)


# ============================================================================
# Pydantic Response Models
# ============================================================================


class TokenResponse(BaseModel):
    """JWT token response schema."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "expires_in": 86400
            }
        }
    )

    access_token: str = Field(
        ...,
        min_length=10,
        description="JWT access token"
    )
    expires_in: int = Field(
        ...,
        gt=0,
        description="Token lifetime in seconds"
    )


class LoginErrorResponse(BaseModel):
    """Body returned when credentials are rejected."""

    error: str = Field(..., description="Localized login failure message")


# ============================================================================
# Token Models
# ============================================================================


class TokenClaims(BaseModel):
    """Decoded and validated JWT claims."""

    sub: str = Field(..., description="Subject (phone number or admin account)")
    jti: Optional[str] = Field(None, description="Token identifier")
    iat: Optional[int] = Field(None, description="Issued at (Unix epoch)")
    exp: int = Field(..., description="Expiration (Unix epoch)")
    iss: Optional[str] = Field(None, description="Issuer")
    aud: Optional[str] = Field(None, description="Audience")
    extra: Dict[str, Any] = Field(
        default_factory=dict,
        description="Application claims (IdNgo, IdObserver, Organizer)"
    )


class CurrentUser(BaseModel):
    """
    Authenticated caller, built from token claims.

    Attached to request.state.user by the auth middleware.
    """

    subject: str
    id_ngo: Optional[int] = None
    id_observer: Optional[int] = None
    organizer: bool = False
    claims: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_observer(self) -> bool:
        return self.id_observer is not None

    @property
    def has_ngo(self) -> bool:
        return self.id_ngo is not None

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "CurrentUser":
        extra = claims.extra
        id_ngo = extra.get(CLAIM_ID_NGO)
        id_observer = extra.get(CLAIM_ID_OBSERVER)
        return cls(
            subject=claims.sub,
            id_ngo=int(id_ngo) if id_ngo is not None else None,
            id_observer=int(id_observer) if id_observer is not None else None,
            organizer=str(extra.get(CLAIM_ORGANIZER, "")).lower() == "true",
            claims=claims.model_dump(exclude={"extra"}) | extra,
        )
