"""
Application-level constants for the relay wire protocol.

These values define the line protocol spoken with clients and must not be
changed via environment variables. For configurable values (bind address,
line limits, disconnect policy) see relay/settings.py.
"""

# ============================================================================
# Wire Protocol
# ============================================================================

# All protocol text is UTF-8
ENCODING = "utf-8"

# Line delimiter for both directions
LINE_DELIMITER = "\n"

# Sent once to a client right after it is registered: LOGIN:<id>\n
LOGIN_PREFIX = "LOGIN:"

# Sent to every peer except the sender: MESSAGE:<id> <text>\n
MESSAGE_PREFIX = "MESSAGE:"

# Sent to the sender of every relayed line
ACK_TOKEN = b"ACK:MESSAGE\n"


# ============================================================================
# Listener Behavior
# ============================================================================

# Timeout (seconds) when waiting for the listener and its connection tasks
# to finish during shutdown
RELAY_CLOSE_TIMEOUT_SECONDS = 5


# ============================================================================
# Logging
# ============================================================================

# Loki rejects entries above this size; longer messages are truncated
LOKI_MAX_LOG_SIZE_BYTES = 256 * 1024
