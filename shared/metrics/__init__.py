"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    ApiMetrics,
    api_metrics,
    render_metrics,
)

__all__ = [
    "ApiMetrics",
    "api_metrics",
    "render_metrics",
]
