"""Telemetry hook.

TelemetryHook is the entry point host-engine adapters call on workflow and
node lifecycle callbacks. Each callback updates the execution tracker, builds
an event, buffers it for the execution, and sends it through the transport.
When a workflow terminates the buffered events are evaluated and an
eval.completed event is sent, then the execution's state is released.

Callbacks for executions that were never started (or have already
terminated) are dropped with a warning. Adapters should catch and log any
exception raised by a callback so telemetry never fails the workflow itself.
"""

from typing import Any

from ..config import DEFAULT_EVENTS_FILE, TelemetrySettings
from ..core.context import ExecutionContext
from ..core.errors import ErrorInfo
from ..core.tracker import ExecutionTracker
from ..evaluation.evaluator import WorkflowEvaluator
from ..events import factory
from ..events.types import NodeContext, TelemetryEvent
from ..observability.logger import clear_context, configure_logging, get_logger, set_context
from ..transport.base import Transport, TransportConfig
from ..transport.composite import CompositeTransport
from ..transport.file import create_file_transport
from ..transport.http import DEFAULT_BUFFER_SIZE, create_http_transport
from ..transport.redaction import redact_event

logger = get_logger(__name__)

ErrorLike = BaseException | ErrorInfo | dict[str, Any] | str


def build_transport(settings: TelemetrySettings) -> Transport:
    """Build the transport described by settings.

    File and HTTP destinations are combined in a CompositeTransport when both
    are configured; with neither, events go to the default file.
    """
    transports: list[Transport] = []

    if settings.file_path:
        transports.append(
            create_file_transport(
                settings.file_path,
                TransportConfig(
                    redact_payloads=settings.redact_payloads,
                    redact_fields=settings.redact_fields,
                ),
            )
        )

    if settings.http_endpoint:
        transports.append(
            create_http_transport(
                settings.http_endpoint,
                TransportConfig(
                    buffered=True,
                    buffer_size=DEFAULT_BUFFER_SIZE,
                    redact_payloads=settings.redact_payloads,
                    redact_fields=settings.redact_fields,
                ),
                headers=settings.http_headers,
            )
        )

    if not transports:
        transports.append(create_file_transport(DEFAULT_EVENTS_FILE))

    return transports[0] if len(transports) == 1 else CompositeTransport(transports)


class TelemetryHook:
    """Orchestrates tracker, transport and evaluator for workflow executions.

    Usage:
        hook = TelemetryHook(TelemetrySettings(file_path="./data/events.jsonl"))
        await hook.on_workflow_start(execution_id="e1", workflow_id="w1", workflow_name="Sync")
        await hook.on_node_start(execution_id="e1", node_name="Fetch", node_type="http")
        await hook.on_node_complete(execution_id="e1", node_name="Fetch", node_type="http")
        await hook.on_workflow_complete(execution_id="e1")
        await hook.close()
    """

    def __init__(
        self,
        config: TelemetrySettings | None = None,
        transport: Transport | None = None,
        tracker: ExecutionTracker | None = None,
        evaluator: WorkflowEvaluator | None = None,
    ) -> None:
        """Initialize hook.

        Args:
            config: Hook settings (defaults when omitted)
            transport: Destination for events (built from settings when omitted)
            tracker: Execution registry (a fresh one when omitted)
            evaluator: Scorer (built from settings.evaluator when omitted)
        """
        self.settings = config or TelemetrySettings()

        self._tracker = tracker or ExecutionTracker()
        self._evaluator = evaluator or WorkflowEvaluator(self.settings.evaluator)
        self._transport = transport or build_transport(self.settings)
        self._execution_events: dict[str, list[TelemetryEvent]] = {}

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def tracker(self) -> ExecutionTracker:
        return self._tracker

    @property
    def evaluator(self) -> WorkflowEvaluator:
        return self._evaluator

    def active_executions(self) -> list[str]:
        """Ids of executions that have started but not terminated."""
        return self._tracker.active_executions()

    def get_execution_events(self, execution_id: str) -> list[TelemetryEvent]:
        """Copy of the events buffered for a running execution."""
        return list(self._execution_events.get(execution_id, []))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _bind_log_context(self, execution_id: str, node_name: str | None = None) -> None:
        clear_context()
        state = self._tracker.get_execution(execution_id)
        set_context(
            execution_id=execution_id,
            workflow_id=state.workflow_id if state else None,
            node_name=node_name,
        )

    def _context_for(self, execution_id: str, callback: str) -> ExecutionContext | None:
        state = self._tracker.get_execution(execution_id)
        if state is None:
            logger.warning(
                f"Dropping {callback} for unknown execution {execution_id}",
                extra_data={"execution_id": execution_id, "callback": callback},
            )
            return None

        return ExecutionContext(
            execution_id=state.execution_id,
            workflow_id=state.workflow_id,
            workflow_name=state.workflow_name,
            run_id=state.execution_id,
            session_id=state.session_id or self.settings.default_session_id,
            metadata={**self.settings.default_metadata, **(state.metadata or {})},
        )

    async def _emit(self, event: TelemetryEvent) -> None:
        buffer = self._execution_events.get(event.execution_id)
        if buffer is not None:
            buffer.append(event)

        await self._transport.send(event)

        if self.settings.debug:
            logged = event
            if self.settings.redact_payloads:
                logged = redact_event(event, self.settings.redact_fields)
            logger.event_emitted(event.event_type.value, logged.to_dict())

    async def _run_evaluation(self, execution_id: str, context: ExecutionContext) -> None:
        events = list(self._execution_events.get(execution_id, []))
        if not events:
            return

        eval_event = self._evaluator.evaluate_and_create_event(context, events)
        await self._emit(eval_event)
        logger.evaluation_completed(
            execution_id,
            eval_event.payload["score"],
            eval_event.payload["labels"],
        )

    def _cleanup(self, execution_id: str) -> None:
        self._tracker.cleanup_execution(execution_id)
        self._execution_events.pop(execution_id, None)

    # ------------------------------------------------------------------
    # Workflow callbacks
    # ------------------------------------------------------------------

    async def on_workflow_start(
        self,
        execution_id: str,
        workflow_id: str,
        workflow_name: str,
        mode: str | None = None,
        session_id: str | None = None,
        is_manual: bool | None = None,
        retry_of: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Register an execution and emit workflow.started."""
        if not self.settings.enabled:
            return

        self._tracker.start_execution(execution_id, workflow_id, workflow_name, session_id, metadata)
        self._execution_events[execution_id] = []
        self._bind_log_context(execution_id)

        context = self._context_for(execution_id, "on_workflow_start")
        if context is None:
            return
        event = factory.create_workflow_started_event(
            context, mode=mode, retry_of=retry_of, is_manual=is_manual
        )
        logger.workflow_started(execution_id, workflow_name, mode=mode)
        await self._emit(event)

    async def on_workflow_complete(self, execution_id: str, mode: str | None = None) -> None:
        """Emit workflow.completed, evaluate, and release the execution."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_workflow_complete")
        if context is None:
            return
        self._bind_log_context(execution_id)

        try:
            summary = self._tracker.complete_execution(execution_id)
            event = factory.create_workflow_completed_event(
                context, summary.duration_ms, summary.node_count, mode=mode
            )
            await self._emit(event)

            if self.settings.enable_evaluation:
                await self._run_evaluation(execution_id, context)
        finally:
            self._cleanup(execution_id)

    async def on_workflow_fail(
        self,
        execution_id: str,
        error: ErrorLike,
        error_node: str | None = None,
    ) -> None:
        """Emit workflow.failed, evaluate, and release the execution."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_workflow_fail")
        if context is None:
            return
        self._bind_log_context(execution_id)

        try:
            summary = self._tracker.complete_execution(execution_id)
            error_info = ErrorInfo.coerce(error)
            event = factory.create_workflow_failed_event(
                context, summary.duration_ms, error_info, error_node=error_node
            )
            logger.warning(
                f"Workflow failed: {error_info.message}",
                extra_data={"error_type": error_info.type, "error_node": error_node},
            )
            await self._emit(event)

            if self.settings.enable_evaluation:
                await self._run_evaluation(execution_id, context)
        finally:
            self._cleanup(execution_id)

    # ------------------------------------------------------------------
    # Node callbacks
    # ------------------------------------------------------------------

    async def on_node_start(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        node_id: str | None = None,
        node_index: int | None = None,
        input_items_count: int | None = None,
    ) -> None:
        """Record a node start and emit node.started."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_node_start")
        if context is None:
            return
        self._bind_log_context(execution_id, node_name)

        node_context = NodeContext(
            node_id=node_id, node_name=node_name, node_type=node_type, node_index=node_index
        )
        self._tracker.start_node(execution_id, node_name, node_context, input_items_count)
        await self._emit(
            factory.create_node_started_event(context, node_context, input_items_count)
        )

    async def on_node_complete(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        node_id: str | None = None,
        node_index: int | None = None,
        output_items_count: int | None = None,
    ) -> None:
        """Record a node completion and emit node.completed."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_node_complete")
        if context is None:
            return
        self._bind_log_context(execution_id, node_name)

        node_context = NodeContext(
            node_id=node_id, node_name=node_name, node_type=node_type, node_index=node_index
        )
        duration_ms = self._tracker.complete_node(execution_id, node_name)
        logger.node_completed(node_name, duration_ms)
        await self._emit(
            factory.create_node_completed_event(
                context, node_context, duration_ms, output_items_count
            )
        )

    async def on_node_fail(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        error: ErrorLike,
        node_id: str | None = None,
        node_index: int | None = None,
    ) -> None:
        """Record a node failure and emit node.failed."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_node_fail")
        if context is None:
            return
        self._bind_log_context(execution_id, node_name)

        node_context = NodeContext(
            node_id=node_id, node_name=node_name, node_type=node_type, node_index=node_index
        )
        error_info = ErrorInfo.coerce(error)
        duration_ms = self._tracker.fail_node(execution_id, node_name)
        logger.node_failed(node_name, error_info.message, error_type=error_info.type)
        await self._emit(
            factory.create_node_failed_event(context, node_context, duration_ms, error_info)
        )

    # ------------------------------------------------------------------
    # LLM / tool / custom events
    # ------------------------------------------------------------------

    async def on_llm_request(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        provider: str | None = None,
        model: str | None = None,
        prompt_tokens: int | None = None,
        node_id: str | None = None,
    ) -> None:
        """Emit llm.requested for a node."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_llm_request")
        if context is None:
            return

        node_context = NodeContext(node_id=node_id, node_name=node_name, node_type=node_type)
        await self._emit(
            factory.create_llm_requested_event(
                context, node_context, provider=provider, model=model, prompt_tokens=prompt_tokens
            )
        )

    async def on_llm_response(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        duration_ms: int,
        provider: str | None = None,
        model: str | None = None,
        completion_tokens: int | None = None,
        total_tokens: int | None = None,
        node_id: str | None = None,
    ) -> None:
        """Emit llm.responded for a node."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_llm_response")
        if context is None:
            return

        node_context = NodeContext(node_id=node_id, node_name=node_name, node_type=node_type)
        await self._emit(
            factory.create_llm_responded_event(
                context,
                node_context,
                duration_ms,
                provider=provider,
                model=model,
                completion_tokens=completion_tokens,
                total_tokens=total_tokens,
            )
        )

    async def on_tool_call(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
        node_id: str | None = None,
    ) -> None:
        """Emit tool.called for a node."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_tool_call")
        if context is None:
            return

        node_context = NodeContext(node_id=node_id, node_name=node_name, node_type=node_type)
        await self._emit(
            factory.create_tool_called_event(context, node_context, tool_name, arguments)
        )

    async def on_tool_response(
        self,
        execution_id: str,
        node_name: str,
        node_type: str,
        tool_name: str,
        duration_ms: int,
        error: ErrorLike | None = None,
        node_id: str | None = None,
    ) -> None:
        """Emit tool.responded for a node; an error marks the call unsuccessful."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "on_tool_response")
        if context is None:
            return

        node_context = NodeContext(node_id=node_id, node_name=node_name, node_type=node_type)
        error_message = ErrorInfo.coerce(error).message if error is not None else None
        await self._emit(
            factory.create_tool_responded_event(
                context,
                node_context,
                tool_name,
                duration_ms,
                success=error is None,
                error_message=error_message,
            )
        )

    async def emit_custom(
        self,
        execution_id: str,
        name: str,
        data: dict[str, Any] | None = None,
        node_name: str | None = None,
        node_type: str | None = None,
    ) -> None:
        """Emit a custom event for an execution."""
        if not self.settings.enabled:
            return

        context = self._context_for(execution_id, "emit_custom")
        if context is None:
            return

        node_context = None
        if node_name is not None:
            node_context = NodeContext(node_name=node_name, node_type=node_type or "unknown")
        await self._emit(factory.create_custom_event(context, name, data, node_context))

    # ------------------------------------------------------------------
    # Query / lifecycle
    # ------------------------------------------------------------------

    async def query_by_execution(self, execution_id: str) -> list[TelemetryEvent]:
        """Stored events for an execution (unsorted)."""
        return await self._transport.query_by_execution(execution_id)

    async def query_by_workflow(self, workflow_id: str) -> list[TelemetryEvent]:
        """Stored events for a workflow (unsorted)."""
        return await self._transport.query_by_workflow(workflow_id)

    async def flush(self) -> None:
        """Flush the transport."""
        await self._transport.flush()

    async def close(self) -> None:
        """Flush and close the transport."""
        await self._transport.close()

    async def __aenter__(self) -> "TelemetryHook":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


def create_telemetry_hook(settings: TelemetrySettings | None = None, **kwargs: Any) -> TelemetryHook:
    """Create a hook from explicit settings or the TELEMETRY_* environment.

    Also applies settings.log_level to the package logger.
    """
    settings = settings or TelemetrySettings.from_env()
    configure_logging(settings.log_level)
    return TelemetryHook(settings, **kwargs)
