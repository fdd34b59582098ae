"""Host-engine integration: the telemetry hook and a standalone simulator."""

from .hook import TelemetryHook, build_transport, create_telemetry_hook
from .simulator import NodeSimulation, WorkflowSimulation, run_demo_simulation, simulate_workflow

__all__ = [
    "TelemetryHook",
    "build_transport",
    "create_telemetry_hook",
    "NodeSimulation",
    "WorkflowSimulation",
    "simulate_workflow",
    "run_demo_simulation",
]
