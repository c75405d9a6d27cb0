from enum import Enum

from pydantic import BaseModel, ConfigDict

from relay.exceptions import WriteFailure


class SendStatus(str, Enum):
    """
    Outcome of a single write attempted through the registry.

    Attributes:
        DELIVERED: Bytes were written and drained to the channel.
        NOT_CONNECTED: No channel is registered under the identifier.
        WRITE_FAILED: The channel raised while writing or draining.
    """

    DELIVERED = "delivered"
    NOT_CONNECTED = "not_connected"
    WRITE_FAILED = "write_failed"

    def __str__(self) -> str:
        return f"{self.__class__.__name__}.{self.name}"


class DeliveryKind(str, Enum):
    """What was being sent when a delivery happened or failed."""

    LOGIN = "login"
    MESSAGE = "message"
    ACK = "ack"


class DeliveryFailure(BaseModel):  # type: ignore[misc]
    """
    Structured write failure event handed to the registry's failure
    callback.
    """

    model_config = ConfigDict(frozen=True)

    connection_id: int
    kind: DeliveryKind
    error: str

    @classmethod
    def from_write_failure(
        cls, failure: WriteFailure, kind: DeliveryKind
    ) -> "DeliveryFailure":
        """Event form of a WriteFailure raised while sending `kind`."""
        return cls(
            connection_id=failure.connection_id, kind=kind, error=failure.message
        )
