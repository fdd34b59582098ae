"""Workflow evaluator.

Scores a finished execution from its event trace. The evaluator is a pure
function of the events and its configuration: no I/O, no shared state.

Scoring starts at 100 and applies every rule in order against the same
running score:
1. workflow failed   -> cap at workflow_failure_max_score
2. failed nodes      -> -failed_node_penalty per node
3. slow workflow     -> -slow_workflow_penalty_per_second per second over
4. slow nodes        -> -slow_node_penalty per node over max_node_duration_ms
5. clean completion  -> +success_bonus
The result is clamped to [0, 100].
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..core.context import ExecutionContext
from ..events import factory
from ..events.types import EventType, TelemetryEvent
from .schemas import EvalMetrics, EvaluationResult, LLMMetrics, SlowestNode


@dataclass(frozen=True)
class EvaluatorConfig:
    """Thresholds and penalties for scoring."""

    max_workflow_duration_ms: int = 60000
    max_node_duration_ms: int = 10000
    failed_node_penalty: int = 15
    workflow_failure_max_score: int = 30
    slow_workflow_penalty_per_second: float = 2
    slow_node_penalty: int = 5
    success_bonus: int = 10


@dataclass
class _Trace:
    """Events of one execution grouped by kind."""

    node_started: list[TelemetryEvent] = field(default_factory=list)
    node_completed: list[TelemetryEvent] = field(default_factory=list)
    node_failed: list[TelemetryEvent] = field(default_factory=list)
    workflow_completed: TelemetryEvent | None = None
    workflow_failed: TelemetryEvent | None = None
    llm_events: int = 0
    llm_responses: list[TelemetryEvent] = field(default_factory=list)


def _collect(events: Sequence[TelemetryEvent]) -> _Trace:
    trace = _Trace()
    for event in events:
        event_type = event.event_type
        if event_type == EventType.NODE_STARTED:
            trace.node_started.append(event)
        elif event_type == EventType.NODE_COMPLETED:
            trace.node_completed.append(event)
        elif event_type == EventType.NODE_FAILED:
            trace.node_failed.append(event)
        elif event_type == EventType.WORKFLOW_COMPLETED:
            if trace.workflow_completed is None:
                trace.workflow_completed = event
        elif event_type == EventType.WORKFLOW_FAILED:
            if trace.workflow_failed is None:
                trace.workflow_failed = event
        elif event_type == EventType.LLM_REQUESTED:
            trace.llm_events += 1
        elif event_type == EventType.LLM_RESPONDED:
            trace.llm_events += 1
            trace.llm_responses.append(event)
        elif event_type in (
            EventType.WORKFLOW_STARTED,
            EventType.EVAL_COMPLETED,
            EventType.TOOL_CALLED,
            EventType.TOOL_RESPONDED,
            EventType.CUSTOM,
        ):
            # not scored
            continue
        else:
            raise ValueError(f"Unhandled event type: {event_type}")
    return trace


def _node_label(event: TelemetryEvent) -> str:
    return event.node_name or "unknown"


def _seconds(duration_ms: float) -> str:
    return f"{duration_ms / 1000:.2f}s"


def _token_count(value: object) -> int:
    # Stored events may carry a redaction marker instead of a count
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class WorkflowEvaluator:
    """Rule-based scorer for workflow executions.

    Usage:
        evaluator = WorkflowEvaluator(EvaluatorConfig(max_node_duration_ms=5000))
        result = evaluator.evaluate(events)
        print(result.score, result.labels)
    """

    def __init__(self, config: EvaluatorConfig | None = None) -> None:
        self.config = config or EvaluatorConfig()

    def evaluate(self, events: Sequence[TelemetryEvent]) -> EvaluationResult:
        """Evaluate the events of a single execution."""
        config = self.config
        trace = _collect(events)
        labels: list[str] = []
        reasons: list[str] = []
        score = 100

        terminal = trace.workflow_completed or trace.workflow_failed
        total_duration_ms = (terminal.duration_ms or 0) if terminal else 0
        failed_node_count = len(trace.node_failed)

        # Workflow failure caps the score
        if trace.workflow_failed is not None:
            payload = trace.workflow_failed.payload
            score = min(score, config.workflow_failure_max_score)
            labels.append("workflow_failed")
            reasons.append(f"Workflow failed: {payload.get('error_message', 'unknown error')}")
            if payload.get("error_node"):
                reasons.append(f"Error occurred in node: {payload['error_node']}")

        # Failed nodes
        if failed_node_count > 0:
            penalty = failed_node_count * config.failed_node_penalty
            score -= penalty
            labels.append("node_failures")
            reasons.append(f"{failed_node_count} node(s) failed (-{penalty} points)")
            for event in trace.node_failed:
                reasons.append(
                    f"  - {_node_label(event)}: {event.payload.get('error_message', 'unknown error')}"
                )

        # Slow workflow
        if total_duration_ms > config.max_workflow_duration_ms:
            overage_seconds = (total_duration_ms - config.max_workflow_duration_ms) / 1000
            penalty = math.floor(overage_seconds * config.slow_workflow_penalty_per_second)
            score -= penalty
            labels.append("slow_execution")
            reasons.append(
                f"Workflow exceeded time threshold: {_seconds(total_duration_ms)} > "
                f"{config.max_workflow_duration_ms / 1000:g}s (-{penalty} points)"
            )

        # Slow nodes
        # Completed nodes are scanned before failed ones; ties keep the first found
        node_ended = trace.node_completed + trace.node_failed
        timed_nodes = [event for event in node_ended if event.duration_ms is not None]
        slow_nodes = [
            event for event in timed_nodes if event.duration_ms > config.max_node_duration_ms
        ]
        if slow_nodes:
            penalty = len(slow_nodes) * config.slow_node_penalty
            score -= penalty
            labels.append("slow_nodes")
            reasons.append(f"{len(slow_nodes)} node(s) exceeded time threshold (-{penalty} points)")
            for event in slow_nodes:
                reasons.append(f"  - {_node_label(event)}: {_seconds(event.duration_ms)}")

        # Clean completion bonus
        if trace.workflow_completed is not None and failed_node_count == 0 and not slow_nodes:
            score += config.success_bonus
            labels.append("clean_execution")
            reasons.append(f"Clean execution with no failures (+{config.success_bonus} points)")

        score = max(0, min(100, int(score)))

        return EvaluationResult(
            score=score,
            labels=labels,
            reasons=reasons,
            metrics=self._metrics(trace, timed_nodes, total_duration_ms),
        )

    def _metrics(
        self,
        trace: _Trace,
        timed_nodes: list[TelemetryEvent],
        total_duration_ms: int,
    ) -> EvalMetrics:
        slowest: SlowestNode | None = None
        for event in timed_nodes:
            if slowest is None or event.duration_ms > slowest.duration_ms:
                slowest = SlowestNode(name=_node_label(event), duration_ms=event.duration_ms)

        durations = [event.duration_ms for event in timed_nodes]
        avg_duration = _round_half_up(sum(durations) / len(durations)) if durations else 0

        llm_metrics = None
        if trace.llm_events:
            total_tokens = sum(
                _token_count(event.payload.get("total_tokens")) for event in trace.llm_responses
            )
            total_latency = sum(event.duration_ms or 0 for event in trace.llm_responses)
            llm_metrics = LLMMetrics(
                total_requests=trace.llm_events // 2,
                total_tokens=total_tokens or None,
                total_latency_ms=total_latency or None,
            )

        return EvalMetrics(
            total_duration_ms=total_duration_ms,
            node_count=len(trace.node_started),
            failed_node_count=len(trace.node_failed),
            slowest_node=slowest,
            avg_node_duration_ms=avg_duration,
            llm_metrics=llm_metrics,
        )

    def evaluate_and_create_event(
        self,
        context: ExecutionContext,
        events: Sequence[TelemetryEvent],
    ) -> TelemetryEvent:
        """Evaluate and wrap the result in an eval.completed event."""
        return factory.create_eval_completed_event(context, self.evaluate(events))


def create_evaluator(config: EvaluatorConfig | None = None) -> WorkflowEvaluator:
    """Create an evaluator instance."""
    return WorkflowEvaluator(config)


def evaluate_execution(
    events: Sequence[TelemetryEvent],
    config: EvaluatorConfig | None = None,
) -> EvaluationResult:
    """Quick evaluation helper."""
    return WorkflowEvaluator(config).evaluate(events)
