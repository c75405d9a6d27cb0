"""Prometheus scrape endpoint for the relay."""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from relay.utils.metrics import relay_connections_active

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=Response)
async def metrics(request: Request) -> Response:
    """
    Relay counters, connection gauge and broadcast latency in Prometheus
    text format.

    The active connection gauge is refreshed from the listener's registry
    before rendering, so a scrape always sees the current count.
    """
    relay_server = getattr(request.app.state, "relay_server", None)
    if relay_server is not None:
        relay_connections_active.set(len(relay_server.registry))

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
