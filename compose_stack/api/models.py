"""Response models for the API."""

from typing import Optional

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Aggregate health check response."""

    status: str
    checks: dict[str, dict]


class LivenessResponse(BaseModel):
    """The process is up and serving HTTP."""

    status: str = "ok"


class ReadinessResponse(BaseModel):
    """Whether the service can do more than answer static routes."""

    status: str = Field(description="'ready' or 'not_ready'")
    database: str = Field(description="Connection state: connecting, connected or failed")
    error: Optional[str] = None
