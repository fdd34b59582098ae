"""Workflow telemetry: lifecycle events, transports, and execution scoring."""

from .core import ErrorInfo, ExecutionContext, ExecutionTracker
from .events import EventType, NodeContext, TelemetryEvent
from .evaluation import EvaluationResult, EvaluatorConfig, WorkflowEvaluator
from .transport import CompositeTransport, TransportConfig, create_file_transport, create_http_transport
from .config import TelemetrySettings
from .hooks import TelemetryHook, create_telemetry_hook

__version__ = "0.1.0"

__all__ = [
    "ErrorInfo",
    "ExecutionContext",
    "ExecutionTracker",
    "EventType",
    "NodeContext",
    "TelemetryEvent",
    "EvaluationResult",
    "EvaluatorConfig",
    "WorkflowEvaluator",
    "TransportConfig",
    "CompositeTransport",
    "create_file_transport",
    "create_http_transport",
    "TelemetrySettings",
    "TelemetryHook",
    "create_telemetry_hook",
]
