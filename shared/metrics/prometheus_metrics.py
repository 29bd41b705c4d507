"""Prometheus metrics definitions and helpers.

Provides the HTTP metrics recorded by the API request middleware.
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    REGISTRY,
    CollectorRegistry,
    CONTENT_TYPE_LATEST,
)


class ApiMetrics:
    """HTTP API metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize API metrics.

        Args:
            registry: Prometheus registry to use
        """
        self.registry = registry

        self.requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status"],
            registry=registry,
        )

        self.request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=registry,
        )

        self.requests_in_progress = Gauge(
            "http_requests_in_progress",
            "HTTP requests currently in progress",
            ["method", "endpoint"],
            registry=registry,
        )

        self.logins_total = Counter(
            "auth_logins_total",
            "Login attempts by account kind and outcome",
            ["kind", "outcome"],
            registry=registry,
        )


def render_metrics(registry: CollectorRegistry = REGISTRY) -> tuple[bytes, str]:
    """Render the registry in the Prometheus text exposition format.

    Args:
        registry: Prometheus registry to render

    Returns:
        Tuple of (payload, content type)
    """
    return generate_latest(registry), CONTENT_TYPE_LATEST


# Process-wide instance; prometheus_client rejects duplicate registrations
api_metrics = ApiMetrics()
