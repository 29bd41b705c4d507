"""FastAPI middleware components.

This package contains the middleware installed by the application factory:
authorization policy, request logging/metrics and security headers.
"""

from api.src.middleware.auth import AuthMiddleware
from api.src.middleware.logging import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)

__all__ = [
    "AuthMiddleware",
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
