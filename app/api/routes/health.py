"""Health check API endpoint."""

import time
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.core.database import DatabaseClient, db_client
from app.core.gateways import get_ollama_client
from app.core.ollama_client import OllamaClient
from app.schemas.health import HealthResponse, ServiceHealth, ServicesHealth
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

router = APIRouter()


def get_database_client() -> DatabaseClient:
    return db_client


async def check_ollama(client: OllamaClient) -> ServiceHealth:
    start = time.perf_counter()
    try:
        healthy = await client.check_health()
        message = "Ollama service is responding" if healthy else "Ollama service is not responding"
    except Exception as e:
        LOGGER.error(f"Ollama health check failed: {e}")
        healthy = False
        message = str(e) or "Unknown Ollama error"
    return ServiceHealth(
        status="healthy" if healthy else "unhealthy",
        message=message,
        response_time=round((time.perf_counter() - start) * 1000),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Health check endpoint",
    description="Check database and Ollama connectivity",
    operation_id="get_service_health_status",
)
async def health_check(
    database: Annotated[DatabaseClient, Depends(get_database_client)],
    ollama_client: Annotated[OllamaClient, Depends(get_ollama_client)],
) -> JSONResponse:
    """Report per-dependency health; 503 when any dependency is unhealthy."""
    start = time.perf_counter()
    timestamp = datetime.now(timezone.utc).isoformat()

    database_health = ServiceHealth(**await database.health_check())
    ollama_health = await check_ollama(ollama_client)

    healthy = database_health.status == "healthy" and ollama_health.status == "healthy"
    health = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=timestamp,
        services=ServicesHealth(database=database_health, ollama=ollama_health),
        total_response_time=round((time.perf_counter() - start) * 1000),
    )

    LOGGER.info(
        f"Health check completed in {health.total_response_time}ms",
        extra={
            "overall": health.status,
            "database": database_health.status,
            "ollama": ollama_health.status,
        },
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=health.model_dump(by_alias=True),
    )
