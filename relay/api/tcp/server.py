import asyncio

from relay.api.tcp.coordinator import BroadcastCoordinator
from relay.constants import RELAY_CLOSE_TIMEOUT_SECONDS
from relay.exceptions import (
    DuplicateConnectionError,
    ListenerBindFailure,
    RegistryInvariantError,
)
from relay.logging import clear_log_context, logger, set_log_context
from relay.managers.connection_registry import (
    ConnectionRegistry,
    connection_registry,
)
from relay.settings import app_settings


class RelayServer:
    """
    TCP listener for the line relay.

    Accepts connections, names each one by the port of its remote endpoint
    and runs the broadcast coordinator for it in its own task.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        registry: ConnectionRegistry | None = None,
        coordinator: BroadcastCoordinator | None = None,
        max_line_bytes: int | None = None,
    ) -> None:
        self.host = app_settings.RELAY_HOST if host is None else host
        self.port = app_settings.RELAY_PORT if port is None else port
        self.max_line_bytes = max_line_bytes or app_settings.MAX_LINE_BYTES
        self.registry = (
            connection_registry if registry is None else registry
        )
        self.coordinator = coordinator or BroadcastCoordinator(self.registry)

        self._server: asyncio.Server | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def bound_port(self) -> int | None:
        """Port actually bound, useful when listening on port 0."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """
        Binds the listener and starts accepting connections.

        Raises:
            ListenerBindFailure: If the address cannot be bound.
        """
        try:
            self._server = await asyncio.start_server(
                self._on_connection,
                self.host,
                self.port,
                limit=self.max_line_bytes,
            )
        except OSError as e:
            raise ListenerBindFailure(
                f"Could not bind {self.host}:{self.port}: {e}"
            ) from e

        logger.info(f"listening on {self.host}:{self.bound_port}")

    async def serve_forever(self) -> None:
        """Starts the listener if needed and serves until cancelled."""
        if self._server is None:
            await self.start()

        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    async def stop(self) -> None:
        """
        Stops accepting connections, closes every registered connection and
        waits for the connection tasks to finish.
        """
        if self._server is None:
            return

        server, self._server = self._server, None
        server.close()
        await self.registry.close_all()

        if self._tasks:
            logger.info(f"Cancelling {len(self._tasks)} connection tasks")
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)

        try:
            await asyncio.wait_for(
                server.wait_closed(), timeout=RELAY_CLOSE_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.warning("Timed out waiting for relay listener to close")

        logger.info("Relay listener stopped")

    def identify(self, peer: tuple) -> int:
        """Connection identifier of a peer address: its remote port."""
        return peer[1]

    async def _on_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """
        Serves one accepted connection for its whole lifetime.

        Args:
            reader: Read side, kept by this task.
            writer: Write side, handed to the registry.
        """
        peer = writer.get_extra_info("peername")
        if not peer:
            writer.close()
            return

        ip, connection_id = peer[0], self.identify(peer)

        task = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)

        set_log_context(connection_id=connection_id, peer=ip)
        logger.info(f"connected {ip} {connection_id}")

        try:
            await self.coordinator.handle_connection(
                connection_id, reader, writer
            )
        except DuplicateConnectionError as e:
            logger.warning(f"Rejected connection from {ip}: {e.message}")
            writer.close()
        except RegistryInvariantError as e:
            logger.error(e.message)
            await self.registry.deregister(connection_id, writer)
            writer.close()
        finally:
            clear_log_context()
            if task is not None:
                self._tasks.discard(task)


async def run_relay(server: RelayServer | None = None) -> None:
    """
    Runs a relay listener in the foreground until cancelled.

    Args:
        server: Listener to run. Defaults to one built from settings.
    """
    server = server or RelayServer()
    await server.serve_forever()
