from relay.schemas.delivery import DeliveryFailure, DeliveryKind, SendStatus
from relay.schemas.message import ConnectionID, MessageEnvelope, login_message

__all__ = [
    "ConnectionID",
    "DeliveryFailure",
    "DeliveryKind",
    "MessageEnvelope",
    "SendStatus",
    "login_message",
]
