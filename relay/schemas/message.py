from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Annotated

from relay.constants import (
    ENCODING,
    LINE_DELIMITER,
    LOGIN_PREFIX,
    MESSAGE_PREFIX,
)

ConnectionID = Annotated[int, Field(ge=0)]


class MessageEnvelope(BaseModel):  # type: ignore[misc]
    """
    One inbound line paired with the identifier of the connection it came
    from. Built once per line and consumed by exactly one broadcast.
    """

    model_config = ConfigDict(frozen=True)

    sender_id: ConnectionID
    line: str

    def render(self) -> bytes:
        """
        Encode the envelope in its wire form, `MESSAGE:<id> <line>\\n`.
        """
        return (
            f"{MESSAGE_PREFIX}{self.sender_id} {self.line}{LINE_DELIMITER}"
        ).encode(ENCODING)


def login_message(connection_id: int) -> bytes:
    """Login acknowledgement sent to a freshly registered connection."""
    return f"{LOGIN_PREFIX}{connection_id}{LINE_DELIMITER}".encode(ENCODING)
