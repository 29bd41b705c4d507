"""Health, readiness and metrics endpoints."""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from api.src.database import ping
from api.src.dependencies import AppState, get_app_state
from shared.metrics import render_metrics
from shared.models import HealthStatus, ReadinessInfo, ServiceInfo

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=ServiceInfo)
async def health_check(state: AppState = Depends(get_app_state)) -> ServiceInfo:
    """
    Health check endpoint.

    Returns basic health status without checking dependencies.
    Use for container health checks.
    """
    settings = state.settings
    return ServiceInfo(
        status=HealthStatus.HEALTHY,
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment
    )


@router.get("/ready", response_model=ReadinessInfo)
async def readiness_check(state: AppState = Depends(get_app_state)):
    """
    Readiness check endpoint.

    Verifies database connectivity; answers 503 when a dependency is down.
    """
    checks = {
        "database": HealthStatus.HEALTHY if await ping(state.engine) else HealthStatus.UNHEALTHY,
    }

    all_healthy = all(check == HealthStatus.HEALTHY for check in checks.values())

    body = ReadinessInfo(
        status="ready" if all_healthy else "not_ready",
        service=state.settings.app_name,
        version=state.settings.app_version,
        checks=checks
    )

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body.model_dump(mode="json")
    )


@router.get("/metrics", tags=["Monitoring"], include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics in the text exposition format."""
    payload, content_type = render_metrics()
    return Response(content=payload, media_type=content_type)
