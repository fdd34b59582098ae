"""Tests for BufferedTransport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from flowtelemetry.core.errors import TransportClosedError
from flowtelemetry.events import factory
from flowtelemetry.transport.base import BufferedTransport, TransportConfig
from flowtelemetry.transport.redaction import REDACTED_MARKER


@pytest.fixture
def sink():
    """Mock EventSink."""
    sink = MagicMock()
    sink.name = "mock"
    sink.write = AsyncMock()
    sink.close = AsyncMock()
    sink.query_by_execution = AsyncMock(return_value=[])
    sink.query_by_workflow = AsyncMock(return_value=[])
    return sink


def _events(context, count):
    return [factory.create_custom_event(context, f"e{i}") for i in range(count)]


class TestUnbuffered:
    """Tests for direct delivery."""

    @pytest.mark.asyncio
    async def test_send_writes_immediately(self, sink, context) -> None:
        """Test each send is one write."""
        transport = BufferedTransport(sink)
        event = factory.create_workflow_started_event(context)

        await transport.send(event)

        sink.write.assert_awaited_once_with([event])
        assert transport.pending == 0
        assert transport.name == "mock"

    @pytest.mark.asyncio
    async def test_redaction_applied(self, sink, context) -> None:
        """Test outbound events are redacted."""
        transport = BufferedTransport(sink)
        await transport.send(factory.create_custom_event(context, "login", {"token": "t"}))

        written = sink.write.await_args.args[0][0]
        assert written.payload["data"] == {"token": REDACTED_MARKER}

    @pytest.mark.asyncio
    async def test_redaction_disabled(self, sink, context) -> None:
        """Test redaction can be switched off."""
        transport = BufferedTransport(sink, TransportConfig(redact_payloads=False))
        await transport.send(factory.create_custom_event(context, "login", {"token": "t"}))

        written = sink.write.await_args.args[0][0]
        assert written.payload["data"] == {"token": "t"}

    @pytest.mark.asyncio
    async def test_write_error_propagates(self, sink, context) -> None:
        """Test sink failures reach the caller."""
        sink.write.side_effect = OSError("disk full")
        transport = BufferedTransport(sink)

        with pytest.raises(OSError, match="disk full"):
            await transport.send(factory.create_workflow_started_event(context))


class TestBuffered:
    """Tests for buffered delivery."""

    @pytest.mark.asyncio
    async def test_flush_at_buffer_size(self, sink, context) -> None:
        """Test reaching buffer_size triggers one batch write."""
        transport = BufferedTransport(
            sink, TransportConfig(buffered=True, buffer_size=3, flush_interval=None)
        )
        events = _events(context, 3)

        await transport.send(events[0])
        await transport.send(events[1])
        sink.write.assert_not_awaited()
        assert transport.pending == 2

        await transport.send(events[2])
        sink.write.assert_awaited_once()
        assert [e.event_id for e in sink.write.await_args.args[0]] == [e.event_id for e in events]
        assert transport.pending == 0

    @pytest.mark.asyncio
    async def test_manual_flush(self, sink, context) -> None:
        """Test flush writes pending events and is a no-op when empty."""
        transport = BufferedTransport(
            sink, TransportConfig(buffered=True, buffer_size=10, flush_interval=None)
        )
        await transport.send_batch(_events(context, 2))

        await transport.flush()
        await transport.flush()

        sink.write.assert_awaited_once()
        assert len(sink.write.await_args.args[0]) == 2

    @pytest.mark.asyncio
    async def test_interval_flush(self, sink, context) -> None:
        """Test the background timer flushes pending events."""
        transport = BufferedTransport(
            sink, TransportConfig(buffered=True, buffer_size=100, flush_interval=0.01)
        )
        await transport.send(factory.create_workflow_started_event(context))

        for _ in range(100):
            if sink.write.await_count:
                break
            await asyncio.sleep(0.01)

        sink.write.assert_awaited_once()
        await transport.close()

    @pytest.mark.asyncio
    async def test_interval_flush_failure_is_logged(self, sink, context, caplog) -> None:
        """Test a failing interval flush does not stop the timer."""
        sink.write.side_effect = [OSError("down"), None]
        transport = BufferedTransport(
            sink, TransportConfig(buffered=True, buffer_size=100, flush_interval=0.01)
        )
        await transport.send(factory.create_workflow_started_event(context))

        for _ in range(100):
            if sink.write.await_count:
                break
            await asyncio.sleep(0.01)

        await transport.send(factory.create_workflow_started_event(context))
        for _ in range(100):
            if sink.write.await_count >= 2:
                break
            await asyncio.sleep(0.01)

        assert sink.write.await_count == 2
        assert "interval flush failed" in caplog.text
        await transport.close()


class TestClose:
    """Tests for close()."""

    @pytest.mark.asyncio
    async def test_close_flushes_and_closes_sink(self, sink, context) -> None:
        """Test close drains the buffer then closes the sink."""
        transport = BufferedTransport(
            sink, TransportConfig(buffered=True, buffer_size=10, flush_interval=60)
        )
        await transport.send_batch(_events(context, 2))

        await transport.close()

        sink.write.assert_awaited_once()
        sink.close.assert_awaited_once()
        assert transport.closed

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, sink) -> None:
        """Test a second close does nothing."""
        transport = BufferedTransport(sink)
        await transport.close()
        await transport.close()
        sink.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sink_closed_when_final_flush_fails(self, sink, context) -> None:
        """Test resources are released even if the last flush raises."""
        sink.write.side_effect = OSError("down")
        transport = BufferedTransport(
            sink, TransportConfig(buffered=True, buffer_size=10, flush_interval=None)
        )
        await transport.send(factory.create_workflow_started_event(context))

        with pytest.raises(OSError):
            await transport.close()
        sink.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_send_after_close_raises(self, sink, context) -> None:
        """Test sends are rejected after close."""
        transport = BufferedTransport(sink)
        await transport.close()

        with pytest.raises(TransportClosedError):
            await transport.send(factory.create_workflow_started_event(context))

    @pytest.mark.asyncio
    async def test_async_context_manager(self, sink) -> None:
        """Test async with closes the transport."""
        async with BufferedTransport(sink) as transport:
            assert not transport.closed
        assert transport.closed


class TestQueries:
    """Tests for query delegation."""

    @pytest.mark.asyncio
    async def test_queries_delegate_to_sink(self, sink) -> None:
        """Test queries are answered by the sink."""
        transport = BufferedTransport(sink)
        await transport.query_by_execution("e1")
        await transport.query_by_workflow("w1")

        sink.query_by_execution.assert_awaited_once_with("e1")
        sink.query_by_workflow.assert_awaited_once_with("w1")


class TestTransportConfig:
    """Tests for TransportConfig validation."""

    def test_defaults(self) -> None:
        """Test default settings."""
        config = TransportConfig()
        assert config.buffered is False
        assert config.buffer_size == 100
        assert config.flush_interval == 5.0
        assert config.redact_payloads is True

    def test_invalid_values(self) -> None:
        """Test bounds are enforced."""
        with pytest.raises(ValueError):
            TransportConfig(buffer_size=0)
        with pytest.raises(ValueError):
            TransportConfig(flush_interval=0)
