"""Telemetry event schema.

Every event kind is a member of EventType. EVENT_SHAPES maps each kind to the
fields it must carry; TelemetryEvent enforces the table on construction, so
events re-read from storage are checked the same way as freshly built ones.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


class EventType(str, Enum):
    """Types of telemetry events."""

    # Workflow lifecycle
    WORKFLOW_STARTED = "workflow.started"
    WORKFLOW_COMPLETED = "workflow.completed"
    WORKFLOW_FAILED = "workflow.failed"

    # Node lifecycle
    NODE_STARTED = "node.started"
    NODE_COMPLETED = "node.completed"
    NODE_FAILED = "node.failed"

    # Evaluation
    EVAL_COMPLETED = "eval.completed"

    # LLM / tool activity inside a node
    LLM_REQUESTED = "llm.requested"
    LLM_RESPONDED = "llm.responded"
    TOOL_CALLED = "tool.called"
    TOOL_RESPONDED = "tool.responded"

    CUSTOM = "custom"


class EventStatus(str, Enum):
    """Lifecycle status carried by every event."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class EventShape:
    """Fields an event kind must carry.

    status=None accepts any status.
    """

    status: EventStatus | None
    requires_node_context: bool = False
    requires_duration: bool = False
    required_payload: tuple[str, ...] = ()


EVENT_SHAPES: dict[EventType, EventShape] = {
    EventType.WORKFLOW_STARTED: EventShape(EventStatus.STARTED),
    EventType.WORKFLOW_COMPLETED: EventShape(
        EventStatus.COMPLETED, requires_duration=True, required_payload=("node_count",)
    ),
    EventType.WORKFLOW_FAILED: EventShape(
        EventStatus.FAILED, requires_duration=True, required_payload=("error_message",)
    ),
    EventType.NODE_STARTED: EventShape(EventStatus.STARTED, requires_node_context=True),
    EventType.NODE_COMPLETED: EventShape(
        EventStatus.COMPLETED, requires_node_context=True, requires_duration=True
    ),
    EventType.NODE_FAILED: EventShape(
        EventStatus.FAILED,
        requires_node_context=True,
        requires_duration=True,
        required_payload=("error_message",),
    ),
    EventType.EVAL_COMPLETED: EventShape(
        EventStatus.COMPLETED, required_payload=("score", "labels", "reasons", "metrics")
    ),
    EventType.LLM_REQUESTED: EventShape(EventStatus.STARTED, requires_node_context=True),
    EventType.LLM_RESPONDED: EventShape(
        EventStatus.COMPLETED, requires_node_context=True, requires_duration=True
    ),
    EventType.TOOL_CALLED: EventShape(
        EventStatus.STARTED, requires_node_context=True, required_payload=("tool_name",)
    ),
    EventType.TOOL_RESPONDED: EventShape(
        EventStatus.COMPLETED,
        requires_node_context=True,
        requires_duration=True,
        required_payload=("tool_name",),
    ),
    EventType.CUSTOM: EventShape(None, required_payload=("name",)),
}

_unmapped = set(EventType) - set(EVENT_SHAPES)
if _unmapped:
    raise RuntimeError(f"EVENT_SHAPES is missing event types: {sorted(t.value for t in _unmapped)}")


class NodeContext(BaseModel):
    """Identifies the node an event belongs to."""

    model_config = ConfigDict(frozen=True)

    node_id: str | None = Field(default=None, description="Engine-assigned node identifier")
    node_name: str = Field(..., description="Node name, unique within a workflow")
    node_type: str = Field(..., description="Node type tag")
    node_index: int | None = Field(default=None, ge=0, description="Position in the run order")


class TelemetryEvent(BaseModel):
    """Structured, immutable telemetry event."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid4()), description="Unique event id")
    event_type: EventType = Field(..., description="Type of the event")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the event was created",
    )
    run_id: str = Field(..., description="Run identifier")
    workflow_id: str = Field(..., description="Workflow identifier")
    workflow_name: str | None = Field(default=None, description="Workflow display name")
    execution_id: str = Field(..., description="Execution identifier (primary correlation key)")
    session_id: str | None = Field(default=None, description="Session spanning executions")
    node_context: NodeContext | None = Field(default=None, description="Node the event belongs to")
    duration_ms: int | None = Field(default=None, ge=0, description="Elapsed time in ms")
    status: EventStatus = Field(..., description="Lifecycle status")
    payload: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")
    metadata: dict[str, Any] | None = Field(default=None, description="User-supplied metadata")

    @model_validator(mode="after")
    def _check_shape(self) -> "TelemetryEvent":
        shape = EVENT_SHAPES[self.event_type]
        kind = self.event_type.value
        if shape.status is not None and self.status != shape.status:
            raise ValueError(f"{kind} events must have status {shape.status.value!r}")
        if shape.requires_node_context and self.node_context is None:
            raise ValueError(f"{kind} events require node_context")
        if shape.requires_duration and self.duration_ms is None:
            raise ValueError(f"{kind} events require duration_ms")
        missing = [key for key in shape.required_payload if key not in self.payload]
        if missing:
            raise ValueError(f"{kind} payload is missing {', '.join(missing)}")
        return self

    @property
    def node_name(self) -> str | None:
        """Name of the node, if this is a node-scoped event."""
        return self.node_context.node_name if self.node_context else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict, dropping unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)

    def to_json_line(self) -> str:
        """Encode as a single NDJSON line (without the trailing newline)."""
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def from_json_line(cls, line: str) -> "TelemetryEvent":
        """Decode one NDJSON line.

        Raises:
            pydantic.ValidationError: the line is not a well-formed event
        """
        return cls.model_validate_json(line)


def is_workflow_event(event: TelemetryEvent) -> bool:
    """Check for workflow lifecycle events."""
    return event.event_type.value.startswith("workflow.")


def is_node_event(event: TelemetryEvent) -> bool:
    """Check for node lifecycle events."""
    return event.event_type.value.startswith("node.")


def is_eval_event(event: TelemetryEvent) -> bool:
    """Check for evaluation events."""
    return event.event_type == EventType.EVAL_COMPLETED


def is_valid_event(data: Any) -> bool:
    """Loose structural check of a raw (decoded JSON) event.

    Only verifies that the correlation fields are present strings; use
    TelemetryEvent.model_validate for the full shape check.
    """
    if not isinstance(data, dict):
        return False
    return all(
        isinstance(data.get(key), str)
        for key in ("event_id", "event_type", "timestamp", "execution_id", "workflow_id", "status")
    )
