"""Shared Pydantic models."""

from .common import (
    HealthStatus,
    ReadinessInfo,
    ServiceInfo,
)

__all__ = [
    "HealthStatus",
    "ReadinessInfo",
    "ServiceInfo",
]
