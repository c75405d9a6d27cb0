"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from relay.logging import logger

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    listener: str
    active_connections: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Check health status of the relay.

    The relay is healthy while its TCP listener is accepting connections.

    Returns:
        HealthResponse: Listener status and number of registered
        connections. Returns 503 Service Unavailable if the listener is
        not serving.
    """
    relay_server = getattr(request.app.state, "relay_server", None)

    listener_status = (
        "serving"
        if relay_server is not None and relay_server.is_serving
        else "stopped"
    )
    active_connections = (
        len(relay_server.registry) if relay_server is not None else 0
    )

    if listener_status != "serving":
        logger.error("Health check failed: relay listener is not serving")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if listener_status == "serving" else "unhealthy",
        listener=listener_status,
        active_connections=active_connections,
    )
