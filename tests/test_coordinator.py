"""
Tests for the broadcast coordinator.

This module tests login, line reading, relaying and the disconnect policy
of the per-connection protocol, using a real registry and mock channels.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from relay.api.tcp.coordinator import BroadcastCoordinator, read_line
from relay.constants import ACK_TOKEN
from relay.exceptions import ReadFailure, RegistryInvariantError
from relay.schemas.delivery import SendStatus
from relay.schemas.message import MessageEnvelope
from tests.mocks.channel_mocks import (
    create_failing_channel,
    create_failing_reader,
    create_mock_registry,
    create_reader,
    written,
)


@pytest.fixture
def coordinator(registry):
    """
    Provides a coordinator that deregisters on end of stream.

    Args:
        registry: Registry fixture.
    """
    return BroadcastCoordinator(registry, deregister_on_eof=True)


class TestReadLine:
    """Tests for line reading and decoding."""

    @pytest.mark.asyncio
    async def test_reads_lines_in_order(self):
        """Test lines come back without their delimiter, in order."""
        reader = create_reader(b"first\nsecond\n")

        assert await read_line(reader) == "first"
        assert await read_line(reader) == "second"
        assert await read_line(reader) is None

    @pytest.mark.asyncio
    async def test_strips_carriage_return(self):
        """Test CRLF-terminated lines lose both characters."""
        reader = create_reader(b"hello\r\n")

        assert await read_line(reader) == "hello"

    @pytest.mark.asyncio
    async def test_empty_line_is_a_line(self):
        """Test an empty line is returned as an empty string."""
        reader = create_reader(b"\n")

        assert await read_line(reader) == ""
        assert await read_line(reader) is None

    @pytest.mark.asyncio
    async def test_trailing_fragment_is_returned(self):
        """Test text after the last delimiter is returned at end of stream."""
        reader = create_reader(b"done\npartial")

        assert await read_line(reader) == "done"
        assert await read_line(reader) == "partial"
        assert await read_line(reader) is None

    @pytest.mark.asyncio
    async def test_utf8(self):
        """Test multi-byte UTF-8 text is decoded."""
        reader = create_reader("héllo wörld\n".encode("utf-8"))

        assert await read_line(reader) == "héllo wörld"

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_read_failure(self):
        """Test bytes that are not UTF-8 fail the read."""
        reader = create_reader(b"\xff\xfe\n")

        with pytest.raises(ReadFailure):
            await read_line(reader)

    @pytest.mark.asyncio
    async def test_connection_reset_is_read_failure(self):
        """Test transport errors fail the read."""
        reader = create_failing_reader()

        with pytest.raises(ReadFailure) as exc_info:
            await read_line(reader)

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)

    @pytest.mark.asyncio
    async def test_line_over_limit_is_read_failure(self):
        """Test a line longer than the reader limit fails the read."""
        reader = asyncio.StreamReader(limit=8)
        reader.feed_data(b"x" * 32 + b"\n")
        reader.feed_eof()

        with pytest.raises(ReadFailure):
            await read_line(reader)


class TestLogin:
    """Tests for the login step."""

    @pytest.mark.asyncio
    async def test_login_registers_and_acknowledges(
        self, coordinator, registry, channel_factory
    ):
        """Test a new connection is registered and sent LOGIN:<id>."""
        channel = channel_factory()

        await coordinator.login(100, channel)

        assert registry.connections[100] is channel
        assert written(channel) == b"LOGIN:100\n"

    @pytest.mark.asyncio
    async def test_login_write_failure_keeps_connection(
        self, coordinator, registry, failure_callback
    ):
        """Test a failed login write is reported and the connection stays."""
        channel = create_failing_channel()

        await coordinator.login(100, channel)

        assert 100 in registry
        failure_callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_login_missing_after_register_is_invariant_error(
        self, channel_factory
    ):
        """Test a vanished registration is treated as a broken invariant."""
        registry = create_mock_registry()
        registry.send_to.return_value = SendStatus.NOT_CONNECTED
        coordinator = BroadcastCoordinator(registry)

        with pytest.raises(RegistryInvariantError) as exc_info:
            await coordinator.login(100, channel_factory())

        assert exc_info.value.connection_id == 100


class TestRelay:
    """Tests for relaying one line."""

    @pytest.mark.asyncio
    async def test_relay_wraps_line_with_sender(
        self, coordinator, registry, channel_factory
    ):
        """Test the line reaches peers as MESSAGE:<id> <text>."""
        sender = channel_factory()
        peer = channel_factory()
        await registry.register(100, sender)
        await registry.register(200, peer)

        results = await coordinator.relay(
            MessageEnvelope(sender_id=100, line="hello")
        )

        assert results == {
            100: SendStatus.DELIVERED,
            200: SendStatus.DELIVERED,
        }
        assert written(sender) == ACK_TOKEN
        assert written(peer) == b"MESSAGE:100 hello\n"

    @pytest.mark.asyncio
    async def test_relay_empty_line(
        self, coordinator, registry, channel_factory
    ):
        """Test an empty line is broadcast like any other."""
        peer = channel_factory()
        await registry.register(100, channel_factory())
        await registry.register(200, peer)

        await coordinator.relay(MessageEnvelope(sender_id=100, line=""))

        assert written(peer) == b"MESSAGE:100 \n"


class TestHandleConnection:
    """Tests for the full per-connection loop."""

    @pytest.mark.asyncio
    async def test_lines_are_relayed_in_order(
        self, coordinator, registry, channel_factory
    ):
        """Test a peer sees one sender's lines in the order they were sent."""
        peer = channel_factory()
        await registry.register(200, peer)
        sender = channel_factory()

        await coordinator.handle_connection(
            100, create_reader(b"L1\nL2\nL3\n"), sender
        )

        assert written(peer) == (
            b"MESSAGE:100 L1\nMESSAGE:100 L2\nMESSAGE:100 L3\n"
        )
        assert written(sender) == b"LOGIN:100\n" + ACK_TOKEN * 3

    @pytest.mark.asyncio
    async def test_read_failure_deregisters(
        self, coordinator, registry, channel_factory
    ):
        """Test a read error removes the connection and closes its channel."""
        channel = channel_factory()

        await coordinator.handle_connection(
            100, create_failing_reader(), channel
        )

        assert 100 not in registry
        channel.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_read_failure_after_lines(
        self, coordinator, registry, channel_factory
    ):
        """Test lines before a read error are relayed, then it is removed."""
        peer = channel_factory()
        await registry.register(200, peer)

        reader = create_reader(b"ok\n\xff\n")
        await coordinator.handle_connection(100, reader, channel_factory())

        assert written(peer) == b"MESSAGE:100 ok\n"
        assert 100 not in registry
        assert 200 in registry

    @pytest.mark.asyncio
    async def test_end_of_stream_deregisters(
        self, coordinator, registry, channel_factory
    ):
        """Test end of stream removes the connection by default."""
        await coordinator.handle_connection(
            100, create_reader(b"bye\n"), channel_factory()
        )

        assert 100 not in registry

    @pytest.mark.asyncio
    async def test_end_of_stream_kept_when_configured(
        self, registry, channel_factory
    ):
        """Test end of stream leaves the entry when EOF is not a disconnect."""
        coordinator = BroadcastCoordinator(registry, deregister_on_eof=False)
        channel = channel_factory()

        await coordinator.handle_connection(100, create_reader(b""), channel)

        assert registry.connections[100] is channel
        channel.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_replaced_connection_does_not_evict_successor(
        self, coordinator, registry, channel_factory
    ):
        """Test a superseded task's disconnect leaves the new entry alone."""
        older = channel_factory()
        newer = channel_factory()

        await coordinator.login(100, older)
        await registry.register(100, newer)

        # The older task is already logged in; only its read loop runs
        with patch.object(coordinator, "login", new=AsyncMock()):
            await coordinator.handle_connection(
                100, create_failing_reader(), older
            )

        assert registry.connections[100] is newer
        newer.close.assert_not_called()
        older.close.assert_called_once()


class TestScenarios:
    """End-to-end protocol scenarios over mock channels."""

    @pytest.mark.asyncio
    async def test_two_clients_exchange(
        self, coordinator, registry, channel_factory
    ):
        """Client 100 and 200 log in, 100 says hello."""
        client_100 = channel_factory()
        client_200 = channel_factory()

        await coordinator.login(100, client_100)
        await coordinator.login(200, client_200)
        await coordinator.relay(MessageEnvelope(sender_id=100, line="hello"))

        assert written(client_100) == b"LOGIN:100\nACK:MESSAGE\n"
        assert written(client_200) == b"LOGIN:200\nMESSAGE:100 hello\n"

    @pytest.mark.asyncio
    async def test_single_client_gets_only_ack(
        self, coordinator, channel_factory
    ):
        """Only client 100 is connected; it sends hi."""
        client_100 = channel_factory()

        await coordinator.login(100, client_100)
        await coordinator.relay(MessageEnvelope(sender_id=100, line="hi"))

        assert written(client_100) == b"LOGIN:100\nACK:MESSAGE\n"
        assert b"MESSAGE:" not in written(client_100).replace(ACK_TOKEN, b"")

    @pytest.mark.asyncio
    async def test_disconnected_client_is_skipped(
        self, coordinator, registry, channel_factory
    ):
        """Client 100 drops with a read error, then 200 sends x."""
        client_100 = channel_factory()
        client_200 = channel_factory()

        await coordinator.handle_connection(
            100, create_failing_reader(), client_100
        )
        await coordinator.login(200, client_200)
        await coordinator.relay(MessageEnvelope(sender_id=200, line="x"))

        assert written(client_100) == b"LOGIN:100\n"
        assert written(client_200) == b"LOGIN:200\nACK:MESSAGE\n"
