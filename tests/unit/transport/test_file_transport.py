"""Tests for the NDJSON file transport."""

import asyncio
import json

import pytest

from flowtelemetry.core.context import ExecutionContext
from flowtelemetry.events import factory
from flowtelemetry.transport.base import TransportConfig
from flowtelemetry.transport.file import (
    FileSink,
    create_file_transport,
    get_path_lock,
    parse_event_lines,
)
from flowtelemetry.transport.redaction import REDACTED_MARKER


class TestFileSink:
    """Tests for FileSink."""

    def test_creates_parent_directory(self, events_file) -> None:
        """Test the data directory is created on construction."""
        FileSink(events_file)
        assert events_file.parent.is_dir()
        assert not events_file.exists()

    @pytest.mark.asyncio
    async def test_write_appends_lines(self, events_file, context) -> None:
        """Test one JSON line per event."""
        sink = FileSink(events_file)
        events = [
            factory.create_workflow_started_event(context),
            factory.create_workflow_completed_event(context, 10, 0),
        ]

        await sink.write(events)

        lines = events_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["event_type"] == "workflow.started"
        assert json.loads(lines[1])["event_type"] == "workflow.completed"

    @pytest.mark.asyncio
    async def test_queries(self, events_file, context) -> None:
        """Test queries filter the index by execution and workflow."""
        other = ExecutionContext(execution_id="exec_002", workflow_id="wf_002")
        sink = FileSink(events_file)
        await sink.write(
            [
                factory.create_workflow_started_event(context),
                factory.create_workflow_started_event(other),
            ]
        )

        by_execution = await sink.query_by_execution(context.execution_id)
        by_workflow = await sink.query_by_workflow("wf_002")

        assert [e.execution_id for e in by_execution] == [context.execution_id]
        assert [e.workflow_id for e in by_workflow] == ["wf_002"]
        assert len(await sink.query_all()) == 2
        assert await sink.query_by_execution("missing") == []

    @pytest.mark.asyncio
    async def test_loads_existing_events(self, events_file, context) -> None:
        """Test a new sink indexes events already on disk."""
        first = FileSink(events_file)
        event = factory.create_workflow_started_event(context)
        await first.write([event])

        second = FileSink(events_file)
        assert await second.query_by_execution(context.execution_id) == [event]

    @pytest.mark.asyncio
    async def test_malformed_lines_skipped(self, events_file, context) -> None:
        """Test corrupt lines do not break loading."""
        event = factory.create_workflow_started_event(context)
        events_file.parent.mkdir(parents=True, exist_ok=True)
        events_file.write_text(
            "not json\n\n" + event.to_json_line() + "\n" + '{"event_type": "workflow.started"}\n',
            encoding="utf-8",
        )

        sink = FileSink(events_file)

        assert await sink.query_all() == [event]
        assert await sink.read_from_file() == [event]

    @pytest.mark.asyncio
    async def test_invalid_utf8_line_skipped(self, events_file, context) -> None:
        """Test undecodable bytes do not break loading."""
        event = factory.create_workflow_started_event(context)
        events_file.parent.mkdir(parents=True, exist_ok=True)
        events_file.write_bytes(b"\xff\xfe garbage\n" + event.to_json_line().encode("utf-8") + b"\n")

        sink = FileSink(events_file)

        assert await sink.query_all() == [event]
        assert await sink.read_from_file() == [event]

    @pytest.mark.asyncio
    async def test_write_then_read_roundtrip(self, events_file, context) -> None:
        """Test N written events read back identically and in order."""
        sink = FileSink(events_file)
        events = [factory.create_custom_event(context, f"e{i}", {"i": i}) for i in range(5)]
        for event in events:
            await sink.write([event])

        assert await sink.read_from_file() == events
        assert events_file.read_text(encoding="utf-8").endswith("\n")

    @pytest.mark.asyncio
    async def test_clear(self, events_file, context) -> None:
        """Test clear truncates the file and the index."""
        sink = FileSink(events_file)
        await sink.write([factory.create_workflow_started_event(context)])

        await sink.clear()

        assert events_file.read_text(encoding="utf-8") == ""
        assert await sink.query_all() == []

    @pytest.mark.asyncio
    async def test_concurrent_writers_do_not_interleave(self, events_file, context) -> None:
        """Test concurrent appends to one path produce whole lines."""
        sinks = [FileSink(events_file) for _ in range(5)]
        batches = [
            [factory.create_custom_event(context, f"w{i}-e{j}", {"blob": "x" * 2000}) for j in range(20)]
            for i in range(5)
        ]

        await asyncio.gather(*(sink.write(batch) for sink, batch in zip(sinks, batches)))

        lines = events_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 100
        names = [json.loads(line)["payload"]["name"] for line in lines]
        for i in range(5):
            own = [name for name in names if name.startswith(f"w{i}-")]
            assert own == [f"w{i}-e{j}" for j in range(20)]

    def test_path_lock_shared_per_path(self, tmp_path) -> None:
        """Test Path and str spellings of one file share a lock."""
        path = tmp_path / "events.jsonl"
        assert get_path_lock(path) is get_path_lock(str(path))
        assert get_path_lock(path) is not get_path_lock(tmp_path / "other.jsonl")


class TestParseEventLines:
    """Tests for parse_event_lines()."""

    def test_skips_blank_and_invalid(self, context) -> None:
        """Test only valid events are returned."""
        event = factory.create_workflow_started_event(context)
        content = f"\n{event.to_json_line()}\n{{broken\n"
        assert parse_event_lines(content) == [event]


class TestCreateFileTransport:
    """Tests for the file transport factory."""

    @pytest.mark.asyncio
    async def test_send_and_query(self, events_file, context) -> None:
        """Test events are redacted, stored and queryable."""
        transport = create_file_transport(events_file)
        event = factory.create_custom_event(context, "login", {"password": "hunter2"})

        await transport.send(event)
        stored = await transport.query_by_execution(context.execution_id)

        assert transport.name == "file"
        assert stored[0].payload["data"] == {"password": REDACTED_MARKER}
        assert "hunter" not in events_file.read_text(encoding="utf-8")
        await transport.close()

    @pytest.mark.asyncio
    async def test_buffered_file_transport(self, events_file, context) -> None:
        """Test buffered config defers writes until close."""
        transport = create_file_transport(
            events_file, TransportConfig(buffered=True, buffer_size=10, flush_interval=None)
        )
        await transport.send(factory.create_workflow_started_event(context))
        assert not events_file.exists()

        await transport.close()
        assert len(events_file.read_text(encoding="utf-8").splitlines()) == 1
