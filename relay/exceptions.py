"""
Custom exception classes for the relay.

All per-connection errors are contained within the task serving that
connection; only ListenerBindFailure is fatal to the process.
"""


class RelayError(Exception):
    """Base class for all relay errors."""

    def __init__(self, message: str, connection_id: int | None = None):
        super().__init__(message)
        self.message = message
        self.connection_id = connection_id


class ReadFailure(RelayError):
    """
    Reading the next line from a connection failed.

    Raised for resets, invalid UTF-8 and lines exceeding the reader limit.
    The connection is deregistered and its task ends.
    """

    pass


class WriteFailure(RelayError):
    """
    Writing to a connection's write channel failed.

    Never raised out of the registry: the registry wraps the I/O error in
    a WriteFailure and hands it to its write failure callback as a
    `DeliveryFailure` event. The connection stays registered.
    """

    pass


class ListenerBindFailure(RelayError):
    """
    The relay listener could not bind its address.

    Raised only at startup.
    """

    pass


class DuplicateConnectionError(RelayError):
    """
    A connection identifier is already registered.

    Raised only when duplicate rejection is enabled; otherwise the previous
    write channel is replaced.
    """

    pass


class RegistryInvariantError(RelayError):
    """
    A connection that was just registered is missing from the registry.
    """

    pass
