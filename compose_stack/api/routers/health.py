"""Health check endpoints.

`/health/live` answers as long as the process serves HTTP.
`/health/ready` answers 200 only once the database connection is up
and still answering pings.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, Response

from compose_stack.api.models import HealthCheckResponse, LivenessResponse, ReadinessResponse
from compose_stack.api.state import DatabaseConnection
from compose_stack.services.mongodb import ping

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def get_connection(request: Request) -> Optional[DatabaseConnection]:
    """Connection tracked by the app lifespan, if it ran."""
    return getattr(request.app.state, "db", None)


async def check_mongodb(connection: Optional[DatabaseConnection]) -> dict:
    """Check if MongoDB is connected and answering."""
    if connection is None:
        return {"status": "error", "state": "unknown", "message": "MongoDB connection not started"}

    if not connection.is_connected:
        return {
            "status": "error",
            "state": connection.state.value,
            "message": f"MongoDB {connection.describe()}",
        }

    try:
        await ping()
        return {"status": "ok", "state": connection.state.value, "message": "MongoDB accessible"}
    except Exception as e:
        return {
            "status": "error",
            "state": connection.state.value,
            "message": f"MongoDB check failed: {str(e)}",
        }


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """Check overall service health."""
    checks = {
        "mongodb": await check_mongodb(get_connection(request)),
    }

    all_ok = all(check["status"] == "ok" for check in checks.values())
    status = "ok" if all_ok else "degraded"

    return HealthCheckResponse(status=status, checks=checks)


@router.get("/health/live", response_model=LivenessResponse)
async def liveness():
    """Liveness: the listener is up."""
    return LivenessResponse()


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse}},
)
async def readiness(request: Request, response: Response):
    """Readiness: the database connection is established and answering."""
    connection = get_connection(request)
    check = await check_mongodb(connection)

    if check["status"] == "ok":
        return ReadinessResponse(status="ready", database=check["state"])

    response.status_code = 503
    return ReadinessResponse(status="not_ready", database=check["state"], error=check["message"])
