import asyncio
import time
from typing import Callable

from relay.constants import ACK_TOKEN
from relay.exceptions import DuplicateConnectionError, WriteFailure
from relay.logging import logger
from relay.protocols import WriteChannel
from relay.schemas.delivery import DeliveryFailure, DeliveryKind, SendStatus
from relay.settings import app_settings
from relay.utils.metrics import MetricsCollector

WriteFailureCallback = Callable[[DeliveryFailure], None]

# Raised by StreamWriter.write/drain when the peer is gone or the transport
# is closing
WRITE_ERRORS = (ConnectionError, OSError, RuntimeError)


def log_write_failure(failure: DeliveryFailure) -> None:
    """
    Default write failure callback: log once and count it.

    Args:
        failure: The failed delivery.
    """
    logger.warning(
        f"Failed to send data to client_id {failure.connection_id}: "
        f"{failure.error}",
        extra={"delivery_kind": failure.kind.value},
    )
    MetricsCollector.record_write_failure()


class ConnectionRegistry:
    """
    Registry of live relay connections.

    Maps connection identifiers to the write channel of each connection and
    owns those channels from registration until removal. Every operation
    runs under a single asyncio lock, and a broadcast holds it for the whole
    sweep, so writes through the registry are serialized.
    """

    def __init__(
        self,
        reject_duplicates: bool | None = None,
        on_write_failure: WriteFailureCallback | None = None,
    ) -> None:
        """
        Args:
            reject_duplicates: Raise on an identifier collision instead of
                replacing the live channel. Defaults to
                `REJECT_DUPLICATE_IDS`.
            on_write_failure: Called once per failed write. Defaults to
                logging the failure.
        """
        self.connections: dict[int, WriteChannel] = {}
        self.reject_duplicates = (
            app_settings.REJECT_DUPLICATE_IDS
            if reject_duplicates is None
            else reject_duplicates
        )
        self.on_write_failure = on_write_failure or log_write_failure
        self._lock = asyncio.Lock()

    def __contains__(self, connection_id: int) -> bool:
        return connection_id in self.connections

    def __len__(self) -> int:
        return len(self.connections)

    def connection_ids(self) -> list[int]:
        """Sorted snapshot of the registered identifiers."""
        return sorted(self.connections)

    async def register(self, connection_id: int, channel: WriteChannel) -> None:
        """
        Registers the write channel of a new connection.

        An identifier that is already live is replaced and its previous
        channel closed, unless duplicate rejection is enabled.

        Args:
            connection_id: Identifier unique among live connections.
            channel: Write channel of the connection.

        Raises:
            DuplicateConnectionError: If the identifier is live and
                duplicates are rejected.
        """
        async with self._lock:
            previous = self.connections.get(connection_id)
            if previous is not None:
                if self.reject_duplicates:
                    MetricsCollector.record_connection_rejected()
                    raise DuplicateConnectionError(
                        f"client_id {connection_id} is already registered",
                        connection_id=connection_id,
                    )
                logger.warning(
                    f"client_id {connection_id} already registered, "
                    "replacing its write channel"
                )
                previous.close()
                MetricsCollector.record_connection_replaced()
            else:
                MetricsCollector.record_connection_accepted()

            self.connections[connection_id] = channel
            logger.debug(
                f"write channel ({id(channel)}) registered for "
                f"client_id {connection_id}"
            )

    async def deregister(
        self, connection_id: int, channel: WriteChannel | None = None
    ) -> bool:
        """
        Removes a connection and closes its write channel.

        Args:
            connection_id: Identifier of the connection to remove.
            channel: If given, the entry is removed only while it still
                holds this channel.

        Returns:
            True if an entry was removed, False otherwise.
        """
        async with self._lock:
            current = self.connections.get(connection_id)
            if current is None:
                return False
            if channel is not None and current is not channel:
                logger.debug(
                    f"client_id {connection_id} was re-registered, "
                    "keeping the newer channel"
                )
                return False

            del self.connections[connection_id]
            current.close()
            MetricsCollector.record_disconnection()
            logger.debug(
                f"write channel ({id(current)}) removed for "
                f"client_id {connection_id}"
            )
            return True

    async def send_to(
        self,
        connection_id: int,
        data: bytes,
        kind: DeliveryKind = DeliveryKind.MESSAGE,
    ) -> SendStatus:
        """
        Writes bytes to a single registered connection.

        Args:
            connection_id: Identifier of the recipient.
            data: Bytes to write.
            kind: What is being sent, for metrics and failure reports.

        Returns:
            SendStatus of the write; I/O errors are reported, not raised.
        """
        async with self._lock:
            channel = self.connections.get(connection_id)
            if channel is None:
                return SendStatus.NOT_CONNECTED
            return await self._write(connection_id, channel, data, kind)

    async def broadcast(
        self, sender_id: int, payload: bytes
    ) -> dict[int, SendStatus]:
        """
        Delivers a payload to every connection except its sender, and the
        acknowledgement token to the sender.

        The sweep covers the connections registered when it starts. A
        failed write is reported and the sweep moves on to the next
        connection.

        Args:
            sender_id: Identifier of the connection the payload came from.
            payload: Wire-encoded message for the other connections.

        Returns:
            Mapping of identifier to SendStatus for every connection swept.
        """
        results: dict[int, SendStatus] = {}

        async with self._lock:
            started = time.perf_counter()

            for connection_id, channel in list(self.connections.items()):
                if connection_id != sender_id:
                    results[connection_id] = await self._write(
                        connection_id, channel, payload, DeliveryKind.MESSAGE
                    )
                else:
                    results[connection_id] = await self._write(
                        connection_id, channel, ACK_TOKEN, DeliveryKind.ACK
                    )

            MetricsCollector.record_broadcast(time.perf_counter() - started)

        return results

    async def close_all(self) -> int:
        """
        Removes every connection and closes its write channel.

        Returns:
            Number of connections removed.
        """
        async with self._lock:
            count = len(self.connections)
            for channel in self.connections.values():
                channel.close()
            self.connections.clear()

        if count:
            MetricsCollector.record_disconnection(count)
            logger.info(f"Closed {count} relay connections")
        return count

    async def _write(
        self,
        connection_id: int,
        channel: WriteChannel,
        data: bytes,
        kind: DeliveryKind,
    ) -> SendStatus:
        """Write and drain one channel; the caller holds the lock."""
        try:
            channel.write(data)
            await channel.drain()
        except WRITE_ERRORS as e:
            failure = WriteFailure(
                str(e) or type(e).__name__, connection_id=connection_id
            )
            self.on_write_failure(
                DeliveryFailure.from_write_failure(failure, kind)
            )
            return SendStatus.WRITE_FAILED

        MetricsCollector.record_message_sent(kind.value)
        return SendStatus.DELIVERED


connection_registry = ConnectionRegistry()
