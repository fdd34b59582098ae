"""Core contract module for workflow telemetry.

This module provides:
- ExecutionContext: Correlation ids shared by every event of an execution
- Error types: TelemetryError hierarchy and the ErrorInfo record
- ExecutionTracker: Per-execution timing registry
"""

from .context import ExecutionContext
from .errors import (
    DeliveryError,
    ErrorInfo,
    TelemetryError,
    TransportClosedError,
    TransportError,
)
from .tracker import ExecutionState, ExecutionSummary, ExecutionTracker, TimingEntry

__all__ = [
    "ExecutionContext",
    "TelemetryError",
    "TransportError",
    "DeliveryError",
    "TransportClosedError",
    "ErrorInfo",
    "ExecutionTracker",
    "ExecutionState",
    "ExecutionSummary",
    "TimingEntry",
]
