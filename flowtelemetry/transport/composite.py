"""Composite transport: fan-out to several destinations.

Members are driven concurrently and independently. A failing member is logged
and does not affect the others; there is no atomicity across destinations.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from ..events.types import TelemetryEvent
from .base import Transport

logger = logging.getLogger(__name__)


class CompositeTransport:
    """Sends every event to all member transports."""

    def __init__(self, transports: Sequence[Transport]) -> None:
        self._transports: list[Transport] = list(transports)

    @property
    def name(self) -> str:
        return "composite"

    @property
    def transports(self) -> list[Transport]:
        """Copy of the member list."""
        return list(self._transports)

    def add_transport(self, transport: Transport) -> None:
        """Add a member at runtime."""
        self._transports.append(transport)

    def remove_transport(self, name: str) -> None:
        """Remove all members with the given name."""
        self._transports = [t for t in self._transports if t.name != name]

    async def _dispatch(
        self,
        action: str,
        call: Callable[[Transport], Awaitable[None]],
    ) -> None:
        members = list(self._transports)
        results = await asyncio.gather(
            *(call(transport) for transport in members),
            return_exceptions=True,
        )
        for transport, result in zip(members, results):
            if isinstance(result, Exception):
                logger.error(
                    f"composite: {transport.name} {action} failed: [{type(result).__name__}] {result}"
                )
            elif isinstance(result, BaseException):
                raise result

    async def send(self, event: TelemetryEvent) -> None:
        """Send to all members; member failures are logged."""
        await self._dispatch("send", lambda t: t.send(event))

    async def send_batch(self, events: Sequence[TelemetryEvent]) -> None:
        """Send a batch to all members; member failures are logged."""
        await self._dispatch("send_batch", lambda t: t.send_batch(events))

    async def flush(self) -> None:
        """Flush all members; member failures are logged."""
        await self._dispatch("flush", lambda t: t.flush())

    async def close(self) -> None:
        """Close all members; member failures are logged."""
        await self._dispatch("close", lambda t: t.close())

    async def _first_non_empty(
        self,
        action: str,
        query: Callable[[Transport], Awaitable[list[TelemetryEvent]]],
    ) -> list[TelemetryEvent]:
        for transport in self._transports:
            try:
                events = await query(transport)
            except Exception as e:
                logger.warning(f"composite: {transport.name} {action} failed: {e}")
                continue
            if events:
                return events
        return []

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """First non-empty result, probing members in order."""
        return await self._first_non_empty(
            "query_by_execution", lambda t: t.query_by_execution(execution_id)
        )

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """First non-empty result, probing members in order."""
        return await self._first_non_empty(
            "query_by_workflow", lambda t: t.query_by_workflow(workflow_id)
        )
