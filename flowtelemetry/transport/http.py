"""HTTP transport: batched delivery to a remote collector.

One POST per batch with body {"events": [...]}. Non-2xx responses, timeouts
and network errors are retried with a linearly increasing delay; once the
retries are exhausted the last DeliveryError is raised to the caller.
"""

import asyncio
import logging
from collections.abc import Sequence

import httpx

from ..core.errors import DeliveryError
from ..events.types import TelemetryEvent
from .base import BufferedTransport, TransportConfig

logger = logging.getLogger(__name__)

# Retry settings
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0

DEFAULT_TIMEOUT = 10.0
DEFAULT_BUFFER_SIZE = 50


class HttpSink:
    """Posts event batches to an HTTP endpoint.

    Keeps a per-process cache keyed by execution id to answer queries; the
    remote collector remains the authoritative store.
    """

    def __init__(
        self,
        endpoint: str,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize HTTP sink.

        Args:
            endpoint: Collector URL
            headers: Extra request headers
            timeout: Per-request timeout in seconds
            retries: Retries after the first attempt
            retry_delay: Base delay; attempt n waits retry_delay * n
            client: Optional shared client (not closed by this sink)
        """
        self._endpoint = endpoint
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout
        self._retries = max(0, retries)
        self._retry_delay = retry_delay
        self._client = client
        self._owns_client = client is None
        self._cache: dict[str, list[TelemetryEvent]] = {}

    @property
    def name(self) -> str:
        return "http"

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def write(self, events: Sequence[TelemetryEvent]) -> None:
        """Deliver a batch, then cache it for queries."""
        if not events:
            return
        body = {"events": [event.to_dict() for event in events]}
        await self._post_with_retry(body, len(events))
        for event in events:
            self._cache.setdefault(event.execution_id, []).append(event)

    async def _post_with_retry(self, body: dict, count: int) -> None:
        max_attempts = self._retries + 1
        last_error: DeliveryError | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                await self._post(body, attempt)
                return
            except DeliveryError as e:
                last_error = e
                logger.warning(
                    f"http: delivery of {count} event(s) failed "
                    f"(attempt {attempt}/{max_attempts}): {e.message}"
                )
                if attempt < max_attempts:
                    await asyncio.sleep(self._retry_delay * attempt)

        logger.error(f"http: giving up on {count} event(s) after {max_attempts} attempt(s)")
        if last_error is not None:
            raise last_error

    async def _post(self, body: dict, attempt: int) -> None:
        try:
            response = await self._get_client().post(
                self._endpoint,
                json=body,
                headers=self._headers,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            raise DeliveryError(
                f"Request timed out: {e}", transport=self.name, attempts=attempt
            ) from e
        except httpx.RequestError as e:
            raise DeliveryError(
                f"Network error: {e}", transport=self.name, attempts=attempt
            ) from e

        if not response.is_success:
            raise DeliveryError(
                f"HTTP {response.status_code}: {response.text[:500]}",
                transport=self.name,
                attempts=attempt,
                status_code=response.status_code,
            )

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """Cached events for an execution."""
        return list(self._cache.get(execution_id, []))

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """Cached events for a workflow."""
        return [
            event
            for events in self._cache.values()
            for event in events
            if event.workflow_id == workflow_id
        ]

    async def close(self) -> None:
        """Close the HTTP client if this sink created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def create_http_transport(
    endpoint: str,
    config: TransportConfig | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    client: httpx.AsyncClient | None = None,
) -> BufferedTransport:
    """Create an HTTP transport (buffered, 50 events per batch by default)."""
    sink = HttpSink(
        endpoint,
        headers=headers,
        timeout=timeout,
        retries=retries,
        retry_delay=retry_delay,
        client=client,
    )
    return BufferedTransport(
        sink, config or TransportConfig(buffered=True, buffer_size=DEFAULT_BUFFER_SIZE)
    )
