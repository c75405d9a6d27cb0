"""
Facade for centralized metrics emission.

Provides high-level methods for recording metrics without exposing
Prometheus implementation details to the rest of the codebase.
"""


class MetricsCollector:
    """
    Centralized facade for all Prometheus metrics.

    All methods are static for easy use without instantiation.
    """

    # ========== Connection Metrics ==========

    @staticmethod
    def record_connection_accepted() -> None:
        """Record a new registry entry."""
        from relay.utils.metrics import (
            relay_connections_active,
            relay_connections_total,
        )

        relay_connections_total.labels(status="accepted").inc()
        relay_connections_active.inc()

    @staticmethod
    def record_connection_replaced() -> None:
        """Record a registration that replaced a live entry."""
        from relay.utils.metrics import relay_connections_total

        relay_connections_total.labels(status="replaced").inc()

    @staticmethod
    def record_connection_rejected() -> None:
        """Record a registration refused because the id was live."""
        from relay.utils.metrics import relay_connections_total

        relay_connections_total.labels(status="rejected_duplicate").inc()

    @staticmethod
    def record_disconnection(count: int = 1) -> None:
        """Record removal of registry entries."""
        from relay.utils.metrics import relay_connections_active

        relay_connections_active.dec(count)

    # ========== Message Metrics ==========

    @staticmethod
    def record_message_received() -> None:
        """Record one line read from a client."""
        from relay.utils.metrics import relay_messages_received_total

        relay_messages_received_total.inc()

    @staticmethod
    def record_message_sent(kind: str) -> None:
        """
        Record one line written to a client.

        Args:
            kind: One of 'login', 'message', 'ack'
        """
        from relay.utils.metrics import relay_messages_sent_total

        relay_messages_sent_total.labels(kind=kind).inc()

    @staticmethod
    def record_broadcast(duration: float) -> None:
        """Record the duration of one broadcast sweep in seconds."""
        from relay.utils.metrics import relay_broadcast_duration_seconds

        relay_broadcast_duration_seconds.observe(duration)

    # ========== Failure Metrics ==========

    @staticmethod
    def record_write_failure() -> None:
        from relay.utils.metrics import relay_write_failures_total

        relay_write_failures_total.inc()

    @staticmethod
    def record_read_failure() -> None:
        from relay.utils.metrics import relay_read_failures_total

        relay_read_failures_total.inc()
