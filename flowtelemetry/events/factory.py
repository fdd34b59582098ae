"""Factories for well-formed telemetry events.

Each function stamps the execution context on a new TelemetryEvent and builds
the payload for its event kind. Optional payload values that are None are left
out, so stored lines only carry what was actually reported.
"""

from typing import Any

from ..core.context import ExecutionContext
from ..core.errors import ErrorInfo
from ..evaluation.schemas import EvaluationResult
from .types import EventStatus, EventType, NodeContext, TelemetryEvent


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _build(
    context: ExecutionContext,
    event_type: EventType,
    status: EventStatus,
    payload: dict[str, Any],
    node_context: NodeContext | None = None,
    duration_ms: int | None = None,
) -> TelemetryEvent:
    return TelemetryEvent(
        event_type=event_type,
        status=status,
        run_id=context.effective_run_id,
        workflow_id=context.workflow_id,
        workflow_name=context.workflow_name,
        execution_id=context.execution_id,
        session_id=context.session_id,
        node_context=node_context,
        duration_ms=duration_ms,
        payload=payload,
        metadata=context.metadata or None,
    )


def create_workflow_started_event(
    context: ExecutionContext,
    mode: str | None = None,
    retry_of: str | None = None,
    is_manual: bool | None = None,
) -> TelemetryEvent:
    """Create a workflow.started event."""
    return _build(
        context,
        EventType.WORKFLOW_STARTED,
        EventStatus.STARTED,
        _compact({"mode": mode, "retry_of": retry_of, "is_manual": is_manual}),
    )


def create_workflow_completed_event(
    context: ExecutionContext,
    duration_ms: int,
    node_count: int,
    mode: str | None = None,
) -> TelemetryEvent:
    """Create a workflow.completed event."""
    return _build(
        context,
        EventType.WORKFLOW_COMPLETED,
        EventStatus.COMPLETED,
        _compact({"node_count": node_count, "mode": mode}),
        duration_ms=duration_ms,
    )


def create_workflow_failed_event(
    context: ExecutionContext,
    duration_ms: int,
    error: ErrorInfo,
    error_node: str | None = None,
) -> TelemetryEvent:
    """Create a workflow.failed event."""
    return _build(
        context,
        EventType.WORKFLOW_FAILED,
        EventStatus.FAILED,
        _compact(
            {
                "error_message": error.message,
                "error_node": error_node,
                "error_type": error.type,
                "stack_trace": error.stack,
            }
        ),
        duration_ms=duration_ms,
    )


def create_node_started_event(
    context: ExecutionContext,
    node_context: NodeContext,
    input_items_count: int | None = None,
) -> TelemetryEvent:
    """Create a node.started event."""
    return _build(
        context,
        EventType.NODE_STARTED,
        EventStatus.STARTED,
        _compact({"input_items_count": input_items_count}),
        node_context=node_context,
    )


def create_node_completed_event(
    context: ExecutionContext,
    node_context: NodeContext,
    duration_ms: int,
    output_items_count: int | None = None,
) -> TelemetryEvent:
    """Create a node.completed event."""
    return _build(
        context,
        EventType.NODE_COMPLETED,
        EventStatus.COMPLETED,
        _compact({"output_items_count": output_items_count}),
        node_context=node_context,
        duration_ms=duration_ms,
    )


def create_node_failed_event(
    context: ExecutionContext,
    node_context: NodeContext,
    duration_ms: int,
    error: ErrorInfo,
) -> TelemetryEvent:
    """Create a node.failed event."""
    return _build(
        context,
        EventType.NODE_FAILED,
        EventStatus.FAILED,
        _compact({"error_message": error.message, "error_type": error.type}),
        node_context=node_context,
        duration_ms=duration_ms,
    )


def create_eval_completed_event(
    context: ExecutionContext,
    result: EvaluationResult,
) -> TelemetryEvent:
    """Create an eval.completed event carrying an evaluation result."""
    return _build(
        context,
        EventType.EVAL_COMPLETED,
        EventStatus.COMPLETED,
        result.to_payload(),
    )


def create_llm_requested_event(
    context: ExecutionContext,
    node_context: NodeContext,
    provider: str | None = None,
    model: str | None = None,
    prompt_tokens: int | None = None,
) -> TelemetryEvent:
    """Create an llm.requested event."""
    return _build(
        context,
        EventType.LLM_REQUESTED,
        EventStatus.STARTED,
        _compact({"provider": provider, "model": model, "prompt_tokens": prompt_tokens}),
        node_context=node_context,
    )


def create_llm_responded_event(
    context: ExecutionContext,
    node_context: NodeContext,
    duration_ms: int,
    provider: str | None = None,
    model: str | None = None,
    completion_tokens: int | None = None,
    total_tokens: int | None = None,
) -> TelemetryEvent:
    """Create an llm.responded event."""
    return _build(
        context,
        EventType.LLM_RESPONDED,
        EventStatus.COMPLETED,
        _compact(
            {
                "provider": provider,
                "model": model,
                "completion_tokens": completion_tokens,
                "total_tokens": total_tokens,
            }
        ),
        node_context=node_context,
        duration_ms=duration_ms,
    )


def create_tool_called_event(
    context: ExecutionContext,
    node_context: NodeContext,
    tool_name: str,
    arguments: dict[str, Any] | None = None,
) -> TelemetryEvent:
    """Create a tool.called event."""
    return _build(
        context,
        EventType.TOOL_CALLED,
        EventStatus.STARTED,
        _compact({"tool_name": tool_name, "arguments": arguments}),
        node_context=node_context,
    )


def create_tool_responded_event(
    context: ExecutionContext,
    node_context: NodeContext,
    tool_name: str,
    duration_ms: int,
    success: bool = True,
    error_message: str | None = None,
) -> TelemetryEvent:
    """Create a tool.responded event."""
    return _build(
        context,
        EventType.TOOL_RESPONDED,
        EventStatus.COMPLETED,
        _compact({"tool_name": tool_name, "success": success, "error_message": error_message}),
        node_context=node_context,
        duration_ms=duration_ms,
    )


def create_custom_event(
    context: ExecutionContext,
    name: str,
    data: dict[str, Any] | None = None,
    node_context: NodeContext | None = None,
    status: EventStatus = EventStatus.COMPLETED,
) -> TelemetryEvent:
    """Create a custom event."""
    return _build(
        context,
        EventType.CUSTOM,
        status,
        _compact({"name": name, "data": data}),
        node_context=node_context,
    )
