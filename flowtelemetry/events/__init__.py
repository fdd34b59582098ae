"""Telemetry event model and factories."""

from .types import (
    EVENT_SHAPES,
    EventShape,
    EventStatus,
    EventType,
    NodeContext,
    TelemetryEvent,
    is_eval_event,
    is_node_event,
    is_valid_event,
    is_workflow_event,
)
from .factory import (
    create_custom_event,
    create_eval_completed_event,
    create_llm_requested_event,
    create_llm_responded_event,
    create_node_completed_event,
    create_node_failed_event,
    create_node_started_event,
    create_tool_called_event,
    create_tool_responded_event,
    create_workflow_completed_event,
    create_workflow_failed_event,
    create_workflow_started_event,
)

__all__ = [
    "EventType",
    "EventStatus",
    "EventShape",
    "EVENT_SHAPES",
    "NodeContext",
    "TelemetryEvent",
    "is_workflow_event",
    "is_node_event",
    "is_eval_event",
    "is_valid_event",
    "create_workflow_started_event",
    "create_workflow_completed_event",
    "create_workflow_failed_event",
    "create_node_started_event",
    "create_node_completed_event",
    "create_node_failed_event",
    "create_eval_completed_event",
    "create_llm_requested_event",
    "create_llm_responded_event",
    "create_tool_called_event",
    "create_tool_responded_event",
    "create_custom_event",
]
