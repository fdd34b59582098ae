"""Execution tracker.

Tracks in-flight workflow executions and their node timings so durations can
be computed when nodes and workflows finish. Executions are independent map
entries keyed by execution id; callbacks for one execution must be applied in
order by the caller.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..events.types import NodeContext

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class TimingEntry:
    """Start of one node run."""

    start_time: float
    node_context: NodeContext | None = None
    input_items_count: int | None = None


@dataclass
class ExecutionState:
    """In-flight state of one workflow execution."""

    execution_id: str
    workflow_id: str
    workflow_name: str
    start_time: float
    session_id: str | None = None
    node_timings: dict[str, TimingEntry] = field(default_factory=dict)
    completed_nodes: list[str] = field(default_factory=list)
    failed_nodes: list[str] = field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @property
    def node_count(self) -> int:
        """Number of finished nodes (completed or failed)."""
        return len(self.completed_nodes) + len(self.failed_nodes)


@dataclass(frozen=True)
class ExecutionSummary:
    """Totals for an execution at a point in time."""

    duration_ms: int
    node_count: int
    completed_nodes: tuple[str, ...] = ()
    failed_nodes: tuple[str, ...] = ()


def _elapsed_ms(start: float, now: float) -> int:
    return max(0, int(round((now - start) * 1000)))


class ExecutionTracker:
    """Registry of in-flight executions.

    Usage:
        tracker = ExecutionTracker()
        tracker.start_execution("exec-1", "wf-1", "Import orders")
        tracker.start_node("exec-1", "Fetch", NodeContext(node_name="Fetch", node_type="http"))
        duration_ms = tracker.complete_node("exec-1", "Fetch")
        summary = tracker.complete_execution("exec-1")
        tracker.cleanup_execution("exec-1")
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        """Initialize tracker.

        Args:
            clock: Monotonic time source returning seconds
        """
        self._clock = clock
        self._executions: dict[str, ExecutionState] = {}

    def start_execution(
        self,
        execution_id: str,
        workflow_id: str,
        workflow_name: str,
        session_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ExecutionState:
        """Start tracking an execution, replacing any state with the same id."""
        if execution_id in self._executions:
            logger.debug(f"Replacing tracked execution {execution_id}")
        state = ExecutionState(
            execution_id=execution_id,
            workflow_id=workflow_id,
            workflow_name=workflow_name,
            start_time=self._clock(),
            session_id=session_id,
            metadata=metadata,
        )
        self._executions[execution_id] = state
        return state

    def get_execution(self, execution_id: str) -> ExecutionState | None:
        """Get an execution state."""
        return self._executions.get(execution_id)

    def start_node(
        self,
        execution_id: str,
        node_name: str,
        node_context: NodeContext,
        input_items_count: int | None = None,
    ) -> TimingEntry | None:
        """Record the start of a node. Returns None for unknown executions."""
        state = self._executions.get(execution_id)
        if state is None:
            return None

        if node_name in state.node_timings:
            logger.debug(f"Node {node_name} restarted in execution {execution_id}")

        entry = TimingEntry(
            start_time=self._clock(),
            node_context=node_context,
            input_items_count=input_items_count,
        )
        state.node_timings[node_name] = entry
        return entry

    def complete_node(self, execution_id: str, node_name: str) -> int:
        """Mark a node completed and return its duration (0 if untracked)."""
        return self._finish_node(execution_id, node_name, failed=False)

    def fail_node(self, execution_id: str, node_name: str) -> int:
        """Mark a node failed and return its duration (0 if untracked)."""
        return self._finish_node(execution_id, node_name, failed=True)

    def _finish_node(self, execution_id: str, node_name: str, failed: bool) -> int:
        state = self._executions.get(execution_id)
        if state is None:
            return 0

        timing = state.node_timings.get(node_name)
        if timing is None:
            return 0

        duration = _elapsed_ms(timing.start_time, self._clock())
        if failed:
            state.failed_nodes.append(node_name)
        else:
            state.completed_nodes.append(node_name)
        return duration

    def get_node_timing(self, execution_id: str, node_name: str) -> TimingEntry | None:
        """Get node timing info."""
        state = self._executions.get(execution_id)
        if state is None:
            return None
        return state.node_timings.get(node_name)

    def complete_execution(self, execution_id: str) -> ExecutionSummary:
        """Return total duration and finished node count (zeros if unknown)."""
        state = self._executions.get(execution_id)
        if state is None:
            return ExecutionSummary(duration_ms=0, node_count=0)

        return ExecutionSummary(
            duration_ms=_elapsed_ms(state.start_time, self._clock()),
            node_count=state.node_count,
        )

    def get_execution_summary(self, execution_id: str) -> ExecutionSummary | None:
        """Get duration, node count and finished node names."""
        state = self._executions.get(execution_id)
        if state is None:
            return None

        return ExecutionSummary(
            duration_ms=_elapsed_ms(state.start_time, self._clock()),
            node_count=state.node_count,
            completed_nodes=tuple(state.completed_nodes),
            failed_nodes=tuple(state.failed_nodes),
        )

    def cleanup_execution(self, execution_id: str) -> None:
        """Stop tracking an execution."""
        self._executions.pop(execution_id, None)

    def active_executions(self) -> list[str]:
        """Ids of all tracked executions."""
        return list(self._executions)

    def reset(self) -> None:
        """Drop all tracked executions."""
        self._executions.clear()
