"""Pytest configuration and fixtures for tests."""

import os
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def execution_id():
    """Test execution ID."""
    return "exec_001"


@pytest.fixture
def workflow_id():
    """Test workflow ID."""
    return "wf_001"


@pytest.fixture
def context(execution_id, workflow_id):
    """Execution context for event factories."""
    from flowtelemetry.core.context import ExecutionContext

    return ExecutionContext(
        execution_id=execution_id,
        workflow_id=workflow_id,
        workflow_name="Test Workflow",
        session_id="session_001",
    )


@pytest.fixture
def node_context():
    """Node context for node-scoped events."""
    from flowtelemetry.events.types import NodeContext

    return NodeContext(node_id="node_1", node_name="Fetch", node_type="httpRequest", node_index=0)


@pytest.fixture
def events_file(tmp_path):
    """Path of a fresh NDJSON event log."""
    return tmp_path / "data" / "events.jsonl"


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def fake_clock():
    """Deterministic clock for ExecutionTracker."""
    return FakeClock()


@pytest.fixture
def mock_transport():
    """Mock Transport recording sent events."""
    from unittest.mock import AsyncMock, MagicMock

    transport = MagicMock()
    transport.name = "mock"
    transport.sent = []

    async def _send(event):
        transport.sent.append(event)

    transport.send = AsyncMock(side_effect=_send)
    transport.send_batch = AsyncMock()
    transport.flush = AsyncMock()
    transport.close = AsyncMock()
    transport.query_by_execution = AsyncMock(return_value=[])
    transport.query_by_workflow = AsyncMock(return_value=[])
    return transport


# Environment configuration
def pytest_configure(config):
    """Configure pytest environment."""
    # Register custom markers
    config.addinivalue_line("markers", "slow: mark test as slow (may take > 30s)")
    config.addinivalue_line("markers", "integration: mark test as integration test")

    # Keep the package quiet unless a test raises the level
    os.environ.setdefault("TELEMETRY_LOG_LEVEL", "WARNING")
