# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from relay.api.tcp.server import RelayServer
from relay.logging import logger
from relay.routing import collect_subrouters
from relay.settings import app_settings
from relay.uvicorn_filters import install_access_log_filter

__version__ = "1.0.0"


async def startup(app: FastAPI) -> None:
    """
    Application startup handler that:
    - Starts the TCP relay listener
    - Filters monitoring endpoints out of the access log
    - Initializes Prometheus metrics

    A ListenerBindFailure propagates and aborts startup.
    """
    logger.info("Application startup initiated")

    relay_server = RelayServer()
    await relay_server.start()
    app.state.relay_server = relay_server

    install_access_log_filter()

    from relay.utils.metrics import app_info

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT,
    ).set(1)
    logger.info("Initialized Prometheus metrics")


async def shutdown(app: FastAPI) -> None:
    """
    Application shutdown handler that stops the relay listener, closing
    every registered connection.
    """
    logger.info("Application shutdown initiated")

    relay_server: RelayServer | None = getattr(
        app.state, "relay_server", None
    )
    if relay_server is not None:
        await relay_server.stop()

    logger.info("Application shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup(app)
    yield
    await shutdown(app)


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    The HTTP application is the relay's side channel: it exposes the
    `/health` and `/metrics` routers collected by
    `relay.routing.collect_subrouters()`, and its lifespan owns the TCP
    relay listener.
    """
    app = FastAPI(
        title="Line relay",
        description="Newline-delimited text broadcast relay",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(collect_subrouters())

    return app
