"""File transport: newline-delimited JSON event log.

Each event is one JSON line. Appends to the same absolute path are serialized
through a per-path asyncio.Lock, so concurrent writers never interleave bytes
and lines land in the order the writers acquired the lock. Existing lines are
loaded into an in-memory index at construction to answer queries; malformed
lines are skipped.
"""

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from ..events.types import TelemetryEvent
from .base import BufferedTransport, TransportConfig

logger = logging.getLogger(__name__)

DEFAULT_FILE_PATH = "./data/events.jsonl"

# Lock table keyed by absolute file path
_path_locks: dict[str, asyncio.Lock] = {}


def get_path_lock(path: str | Path) -> asyncio.Lock:
    """Return the lock guarding appends to path."""
    key = str(Path(path).resolve())
    lock = _path_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _path_locks[key] = lock
    return lock


def parse_event_lines(content: str, source: str = "<string>") -> list[TelemetryEvent]:
    """Decode NDJSON content, skipping blank and malformed lines."""
    events: list[TelemetryEvent] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            events.append(TelemetryEvent.from_json_line(line))
        except ValidationError as e:
            logger.debug(f"Skipping malformed line {line_number} in {source}: {e.error_count()} error(s)")
    return events


class FileSink:
    """Append-only NDJSON event log with an in-memory query index."""

    def __init__(
        self,
        file_path: str | Path = DEFAULT_FILE_PATH,
        create_dir: bool = True,
        use_locking: bool = True,
    ) -> None:
        """Initialize file sink.

        Args:
            file_path: Path to the JSONL file
            create_dir: Create the parent directory if it doesn't exist
            use_locking: Serialize appends through the per-path lock
        """
        self._file_path = Path(file_path).resolve()
        self._use_locking = use_locking

        if create_dir:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)

        self._events: list[TelemetryEvent] = self._load_existing_events()

    @property
    def name(self) -> str:
        return "file"

    @property
    def file_path(self) -> Path:
        """Absolute path of the event log."""
        return self._file_path

    def _load_existing_events(self) -> list[TelemetryEvent]:
        if not self._file_path.exists():
            return []
        try:
            content = self._file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.error(f"Error loading existing events from {self._file_path}: {e}")
            return []
        events = parse_event_lines(content, source=str(self._file_path))
        logger.debug(f"Loaded {len(events)} events from {self._file_path}")
        return events

    def _append(self, data: str) -> None:
        with open(self._file_path, "a", encoding="utf-8") as f:
            f.write(data)

    async def write(self, events: Sequence[TelemetryEvent]) -> None:
        """Append one line per event, then index them."""
        if not events:
            return
        data = "".join(f"{event.to_json_line()}\n" for event in events)

        if self._use_locking:
            async with get_path_lock(self._file_path):
                await asyncio.to_thread(self._append, data)
                self._events.extend(events)
        else:
            await asyncio.to_thread(self._append, data)
            self._events.extend(events)

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """Indexed events for an execution."""
        return [event for event in self._events if event.execution_id == execution_id]

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """Indexed events for a workflow."""
        return [event for event in self._events if event.workflow_id == workflow_id]

    async def query_all(self) -> list[TelemetryEvent]:
        """All indexed events."""
        return list(self._events)

    async def read_from_file(self) -> list[TelemetryEvent]:
        """Re-read the log from disk, skipping malformed lines."""
        if not self._file_path.exists():
            return []
        try:
            content = await asyncio.to_thread(
                self._file_path.read_text, encoding="utf-8", errors="replace"
            )
        except OSError as e:
            logger.error(f"Error reading {self._file_path}: {e}")
            return []
        return parse_event_lines(content, source=str(self._file_path))

    async def clear(self) -> None:
        """Truncate the log and drop the index."""
        async with get_path_lock(self._file_path):
            self._events = []
            if self._file_path.exists():
                await asyncio.to_thread(self._file_path.write_text, "", encoding="utf-8")

    async def close(self) -> None:
        """Nothing to release; files are opened per append."""
        return None


def create_file_transport(
    file_path: str | Path = DEFAULT_FILE_PATH,
    config: TransportConfig | None = None,
    create_dir: bool = True,
    use_locking: bool = True,
) -> BufferedTransport:
    """Create a file transport (unbuffered unless config says otherwise)."""
    sink = FileSink(file_path, create_dir=create_dir, use_locking=use_locking)
    return BufferedTransport(sink, config or TransportConfig())
