"""
Prometheus metrics definitions and utilities.

Metrics are defined in submodules and re-exported here:

    from relay.utils.metrics import relay_connections_active

Code emitting metrics should go through the MetricsCollector facade:

    from relay.utils.metrics import MetricsCollector
    MetricsCollector.record_message_received()
"""

from relay.utils.metrics._helpers import _get_or_create_gauge
from relay.utils.metrics.collector import MetricsCollector
from relay.utils.metrics.relay import (
    get_active_relay_connections,
    relay_broadcast_duration_seconds,
    relay_connections_active,
    relay_connections_total,
    relay_messages_received_total,
    relay_messages_sent_total,
    relay_read_failures_total,
    relay_write_failures_total,
)

app_info = _get_or_create_gauge(
    "app_info",
    "Application information",
    ["version", "python_version", "environment"],
)

__all__ = [
    "MetricsCollector",
    "app_info",
    "get_active_relay_connections",
    "relay_broadcast_duration_seconds",
    "relay_connections_active",
    "relay_connections_total",
    "relay_messages_received_total",
    "relay_messages_sent_total",
    "relay_read_failures_total",
    "relay_write_failures_total",
]
