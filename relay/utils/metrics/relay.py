"""
Prometheus metrics for relay connection monitoring.

This module defines metrics for tracking live connections, relayed lines,
write/read failures and broadcast sweep durations.
"""

from relay.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_gauge,
    _get_or_create_histogram,
)

# Connection Metrics
relay_connections_active = _get_or_create_gauge(
    "relay_connections_active", "Number of registered relay connections"
)

relay_connections_total = _get_or_create_counter(
    "relay_connections_total",
    "Total relay connection registrations",
    ["status"],  # accepted, replaced, rejected_duplicate
)

# Message Metrics
relay_messages_received_total = _get_or_create_counter(
    "relay_messages_received_total", "Total lines received from clients"
)

relay_messages_sent_total = _get_or_create_counter(
    "relay_messages_sent_total",
    "Total lines written to clients",
    ["kind"],  # login, message, ack
)

# Failure Metrics
relay_write_failures_total = _get_or_create_counter(
    "relay_write_failures_total", "Total failed writes to client channels"
)

relay_read_failures_total = _get_or_create_counter(
    "relay_read_failures_total", "Total failed reads from client connections"
)

relay_broadcast_duration_seconds = _get_or_create_histogram(
    "relay_broadcast_duration_seconds",
    "Duration of one broadcast sweep in seconds",
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


def get_active_relay_connections() -> int:
    """
    Get the current number of registered relay connections.

    Returns:
        int: Number of registered connections.
    """
    try:
        return int(relay_connections_active._value.get())
    except (AttributeError, ValueError):
        return 0


__all__ = [
    "relay_connections_active",
    "relay_connections_total",
    "relay_messages_received_total",
    "relay_messages_sent_total",
    "relay_write_failures_total",
    "relay_read_failures_total",
    "relay_broadcast_duration_seconds",
    "get_active_relay_connections",
]
