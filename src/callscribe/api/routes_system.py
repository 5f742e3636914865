"""
Health and resilience monitoring endpoints.

Endpoints:
- GET /health: Breaker states and storage reachability
- GET /resilience/status: Full circuit breaker snapshots
- POST /resilience/reset: Force every breaker closed
"""

import logging

from fastapi import APIRouter, Depends, Response, status

from callscribe.api.dependencies import get_container
from callscribe.api.models import HealthResponse, ResilienceStatusResponse
from callscribe.container import AppContainer
from callscribe.resilience.models import CircuitBreakerState

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="""
    Report the state of every circuit breaker and whether storage answers a ping.

    Returns "healthy" when all breakers are closed and storage is reachable,
    "degraded" otherwise. Providers are not called: breaker state already
    reflects their recent health.
    """,
    responses={
        200: {"description": "All breakers closed"},
        503: {"description": "A breaker is not closed or storage is unreachable"},
    },
)
async def health_check(
    response: Response,
    container: AppContainer = Depends(get_container),
) -> HealthResponse:
    services: dict[str, str] = {}
    overall_healthy = True

    for facade in (container.voice, container.transcription):
        for name, breaker_status in facade.get_circuit_breaker_stats().items():
            services[name] = breaker_status.state.value
            if breaker_status.state is not CircuitBreakerState.CLOSED:
                overall_healthy = False

    if await container.store.ping():
        services["storage"] = "healthy"
    else:
        services["storage"] = "unhealthy"
        overall_healthy = False

    if overall_healthy:
        health_status = "healthy"
        response.status_code = status.HTTP_200_OK
    else:
        health_status = "degraded"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    logger.info(
        "Health check completed",
        extra={
            "status": health_status,
            "services": services,
            "storage_backend": container.settings.STORAGE_BACKEND.lower(),
        },
    )

    return HealthResponse(
        status=health_status,
        version=container.settings.APP_VERSION,
        services=services,
    )


@router.get(
    "/resilience/status",
    response_model=ResilienceStatusResponse,
    summary="Circuit breaker status",
)
async def resilience_status(
    container: AppContainer = Depends(get_container),
) -> ResilienceStatusResponse:
    return ResilienceStatusResponse(
        voice={
            name: s.to_dict() for name, s in container.voice.get_circuit_breaker_stats().items()
        },
        transcription={
            name: s.to_dict()
            for name, s in container.transcription.get_circuit_breaker_stats().items()
        },
        transcriptions_in_flight=container.orchestrator.in_flight,
    )


@router.post(
    "/resilience/reset",
    response_model=ResilienceStatusResponse,
    summary="Reset all circuit breakers",
    description="Operator override: closes every breaker and clears its statistics.",
)
async def reset_breakers(
    container: AppContainer = Depends(get_container),
) -> ResilienceStatusResponse:
    container.voice.reset_circuit_breakers()
    container.transcription.reset_circuit_breakers()
    logger.warning("Circuit breakers reset by operator")
    return await resilience_status(container)
