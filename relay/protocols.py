"""
Protocol classes for structural subtyping (duck typing with type safety).

Any object implementing the required methods is accepted; an
`asyncio.StreamWriter` satisfies `WriteChannel` as is.

Example:
    ```python
    from relay.protocols import WriteChannel


    async def greet(channel: WriteChannel) -> None:
        channel.write(b"hello\\n")
        await channel.drain()
    ```
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class WriteChannel(Protocol):
    """
    Outbound byte sink addressed to one remote peer.

    Once handed to the connection registry the channel is owned by it:
    nothing else writes to or closes it.
    """

    def write(self, data: bytes) -> None:
        """
        Queue bytes for sending.

        Args:
            data: Raw bytes to send to the peer.
        """
        ...

    async def drain(self) -> None:
        """Wait until queued bytes are flushed to the transport."""
        ...

    def close(self) -> None:
        """Close the channel without flushing pending bytes."""
        ...
