"""Transport contract and shared buffering/redaction policy.

Destinations implement EventSink (write/query/close). BufferedTransport wraps
any sink and owns the policy every destination shares: redaction of outbound
events, optional buffering with size- and interval-triggered flushes, and an
orderly close.
"""

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from pydantic import BaseModel, Field

from ..core.errors import TransportClosedError
from ..events.types import TelemetryEvent
from .redaction import DEFAULT_REDACT_FIELDS, redact_event

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Event delivery and query contract."""

    @property
    def name(self) -> str:
        """Transport name for identification."""
        ...

    async def send(self, event: TelemetryEvent) -> None:
        """Send a single event."""
        ...

    async def send_batch(self, events: Sequence[TelemetryEvent]) -> None:
        """Send multiple events."""
        ...

    async def flush(self) -> None:
        """Deliver any buffered events."""
        ...

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """Events stored for an execution, in store insertion order."""
        ...

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """Events stored for a workflow, in store insertion order."""
        ...

    async def close(self) -> None:
        """Flush remaining events and release resources."""
        ...


class EventSink(Protocol):
    """Destination-specific writer wrapped by BufferedTransport."""

    @property
    def name(self) -> str:
        """Sink name for identification."""
        ...

    async def write(self, events: Sequence[TelemetryEvent]) -> None:
        """Persist or deliver events (already redacted)."""
        ...

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """Events stored for an execution."""
        ...

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """Events stored for a workflow."""
        ...

    async def close(self) -> None:
        """Release sink resources."""
        ...


class TransportConfig(BaseModel):
    """Buffering and redaction settings shared by all transports."""

    buffered: bool = Field(default=False, description="Queue events and send in batches")
    buffer_size: int = Field(default=100, ge=1, description="Queue length that triggers a flush")
    flush_interval: float | None = Field(
        default=5.0,
        gt=0,
        description="Seconds between background flushes (None disables the timer)",
    )
    redact_payloads: bool = Field(default=True, description="Mask sensitive payload fields")
    redact_fields: tuple[str, ...] = Field(
        default=DEFAULT_REDACT_FIELDS,
        description="Key substrings to mask",
    )


class BufferedTransport:
    """Transport that applies redaction and buffering in front of a sink.

    Usage:
        transport = BufferedTransport(FileSink("./data/events.jsonl"))
        await transport.send(event)
        events = await transport.query_by_execution(event.execution_id)
        await transport.close()
    """

    def __init__(self, sink: EventSink, config: TransportConfig | None = None) -> None:
        """Initialize transport.

        Args:
            sink: Destination the events are written to
            config: Buffering/redaction settings
        """
        self._sink = sink
        self._config = config or TransportConfig()
        self._buffer: list[TelemetryEvent] = []
        self._flush_lock = asyncio.Lock()
        self._flush_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def name(self) -> str:
        """Transport name (the sink's name)."""
        return self._sink.name

    @property
    def sink(self) -> EventSink:
        """Wrapped destination."""
        return self._sink

    @property
    def config(self) -> TransportConfig:
        """Buffering/redaction settings."""
        return self._config

    @property
    def pending(self) -> int:
        """Number of buffered, not yet flushed events."""
        return len(self._buffer)

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def _prepare(self, event: TelemetryEvent) -> TelemetryEvent:
        if not self._config.redact_payloads:
            return event
        return redact_event(event, self._config.redact_fields)

    async def send(self, event: TelemetryEvent) -> None:
        """Send a single event."""
        await self.send_batch([event])

    async def send_batch(self, events: Sequence[TelemetryEvent]) -> None:
        """Send events, buffering them when configured.

        Raises:
            TransportClosedError: transport already closed
        """
        if self._closed:
            raise TransportClosedError(f"Transport {self.name} is closed", transport=self.name)

        prepared = [self._prepare(event) for event in events]
        if not prepared:
            return

        if not self._config.buffered:
            await self._sink.write(prepared)
            return

        self._ensure_flush_timer()
        self._buffer.extend(prepared)
        if len(self._buffer) >= self._config.buffer_size:
            await self.flush()

    async def flush(self) -> None:
        """Write all buffered events in one batch."""
        async with self._flush_lock:
            if not self._buffer:
                return
            batch, self._buffer = self._buffer, []
            await self._sink.write(batch)

    def _ensure_flush_timer(self) -> None:
        if self._flush_task is not None or not self._config.flush_interval:
            return
        self._flush_task = asyncio.create_task(self._flush_periodically())

    async def _flush_periodically(self) -> None:
        interval = self._config.flush_interval
        while True:
            await asyncio.sleep(interval)
            try:
                # shielded so close() cannot cancel a batch mid-write
                await asyncio.shield(self.flush())
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(f"{self.name}: interval flush failed")

    async def _stop_flush_timer(self) -> None:
        task, self._flush_task = self._flush_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """Events stored for an execution."""
        return await self._sink.query_by_execution(execution_id)

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """Events stored for a workflow."""
        return await self._sink.query_by_workflow(workflow_id)

    async def close(self) -> None:
        """Stop the flush timer, flush remaining events, close the sink.

        The sink is closed even when the final flush raises; the flush error
        propagates to the caller.
        """
        if self._closed:
            return
        self._closed = True
        await self._stop_flush_timer()
        try:
            await self.flush()
        finally:
            await self._sink.close()

    async def __aenter__(self) -> "BufferedTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
