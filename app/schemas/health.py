from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

HealthStatus = Literal["healthy", "unhealthy"]


class ServiceHealth(BaseModel):
    """Health of one dependency."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: HealthStatus
    message: str = ""
    response_time: int = Field(0, description="Probe round trip in milliseconds")


class ServicesHealth(BaseModel):
    database: ServiceHealth
    ollama: ServiceHealth


class HealthResponse(BaseModel):
    """Payload of GET /api/health."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: HealthStatus
    timestamp: str
    services: ServicesHealth
    total_response_time: int = Field(0, description="Whole health check in milliseconds")


class RootResponse(BaseModel):
    """Root endpoint response payload."""

    message: str = Field(..., description="Service status message")
    version: str = Field(..., description="Running application version")
    docs: str = Field(..., description="Path to the interactive API docs")
    health: str = Field(..., description="Path to the health check endpoint")
