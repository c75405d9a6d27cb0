import asyncio

from relay.constants import ENCODING
from relay.exceptions import ReadFailure, RegistryInvariantError
from relay.logging import logger
from relay.managers.connection_registry import (
    ConnectionRegistry,
    connection_registry,
)
from relay.protocols import WriteChannel
from relay.schemas.delivery import DeliveryKind, SendStatus
from relay.schemas.message import MessageEnvelope, login_message
from relay.settings import app_settings
from relay.utils.metrics import MetricsCollector

# Raised by StreamReader.readline; ValueError covers an overrun line limit
# and invalid UTF-8
READ_ERRORS = (
    ConnectionError,
    OSError,
    ValueError,
    asyncio.IncompleteReadError,
    asyncio.LimitOverrunError,
)


async def read_line(reader: asyncio.StreamReader) -> str | None:
    """
    Reads the next line from a connection.

    The trailing `\\n` (and a `\\r` before it) is stripped. A final
    fragment without a delimiter is returned as a line.

    Args:
        reader: Read side of the connection.

    Returns:
        The decoded line, or None at end of stream.

    Raises:
        ReadFailure: If the read fails or the line is not valid UTF-8.
    """
    try:
        raw = await reader.readline()
        if not raw:
            return None
        line = raw.decode(ENCODING)
    except READ_ERRORS as e:
        raise ReadFailure(str(e) or type(e).__name__) from e

    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


class BroadcastCoordinator:
    """
    Runs the relay protocol for each connection.

    A connection is logged in by registering its write channel and sending
    it `LOGIN:<id>`. Every line it sends afterwards is wrapped with its
    identifier and broadcast through the registry. A read failure
    deregisters it.
    """

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        deregister_on_eof: bool | None = None,
    ) -> None:
        """
        Args:
            registry: Registry shared by all connections. Defaults to the
                process-wide registry.
            deregister_on_eof: Treat end of stream as a disconnect.
                Defaults to `DEREGISTER_ON_EOF`.
        """
        self.registry = (
            connection_registry if registry is None else registry
        )
        self.deregister_on_eof = (
            app_settings.DEREGISTER_ON_EOF
            if deregister_on_eof is None
            else deregister_on_eof
        )

    async def login(self, connection_id: int, channel: WriteChannel) -> None:
        """
        Registers a connection and sends it the login acknowledgement.

        Args:
            connection_id: Identifier of the new connection.
            channel: Its write channel, handed over to the registry.

        Raises:
            DuplicateConnectionError: If duplicates are rejected and the
                identifier is live.
            RegistryInvariantError: If the connection vanished from the
                registry right after registering.
        """
        await self.registry.register(connection_id, channel)

        status = await self.registry.send_to(
            connection_id, login_message(connection_id), DeliveryKind.LOGIN
        )
        if status is SendStatus.NOT_CONNECTED:
            raise RegistryInvariantError(
                f"client_id {connection_id} missing right after registration",
                connection_id=connection_id,
            )

    async def relay(self, envelope: MessageEnvelope) -> dict[int, SendStatus]:
        """
        Broadcasts one line to every peer and acknowledges it to its sender.

        Args:
            envelope: The line and the identifier of its sender.

        Returns:
            SendStatus per connection swept.
        """
        logger.debug(f"message {envelope.sender_id} {envelope.line}")
        MetricsCollector.record_message_received()

        return await self.registry.broadcast(
            envelope.sender_id, envelope.render()
        )

    async def handle_connection(
        self,
        connection_id: int,
        reader: asyncio.StreamReader,
        channel: WriteChannel,
    ) -> None:
        """
        Serves one connection from login until it is closed.

        Args:
            connection_id: Identifier unique among live connections.
            reader: Read side of the connection, owned by this task.
            channel: Write side of the connection, handed to the registry.
        """
        await self.login(connection_id, channel)

        try:
            while True:
                line = await read_line(reader)
                if line is None:
                    break
                await self.relay(
                    MessageEnvelope(sender_id=connection_id, line=line)
                )
        except ReadFailure as e:
            MetricsCollector.record_read_failure()
            logger.info(f"read failed for client_id {connection_id}: {e}")
            await self.registry.deregister(connection_id, channel)
            return

        if self.deregister_on_eof:
            logger.info(f"client_id {connection_id} disconnected")
            await self.registry.deregister(connection_id, channel)
        else:
            logger.info(
                f"end of stream for client_id {connection_id}, "
                "leaving it registered"
            )
