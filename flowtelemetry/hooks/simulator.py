"""Standalone workflow simulator.

Drives TelemetryHook callbacks without a host engine, for demos and manual
instrumentation checks.

Usage:
    flowtelemetry-demo --file ./data/events.jsonl
    flowtelemetry-demo --endpoint http://localhost:8080/events --no-eval
"""

import argparse
import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from uuid import uuid4

from ..config import DEFAULT_EVENTS_FILE, TelemetrySettings
from ..observability.logger import configure_logging
from .hook import TelemetryHook

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class NodeSimulation:
    """One simulated node step."""

    name: str
    type: str
    duration_ms: int = 0
    should_fail: bool = False
    error_message: str | None = None
    input_items: int | None = None
    output_items: int | None = None


@dataclass
class WorkflowSimulation:
    """A simulated workflow run."""

    workflow_id: str
    workflow_name: str
    nodes: list[NodeSimulation] = field(default_factory=list)
    session_id: str | None = None


def _new_execution_id() -> str:
    return f"sim_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


async def simulate_workflow(
    hook: TelemetryHook,
    simulation: WorkflowSimulation,
    sleep: Sleep = asyncio.sleep,
) -> str:
    """Run a simulated workflow through the hook.

    Nodes run in order; each one sleeps for its duration. The first failing
    node fails the workflow and the remaining nodes are skipped.

    Returns:
        The generated execution id
    """
    execution_id = _new_execution_id()

    await hook.on_workflow_start(
        execution_id=execution_id,
        workflow_id=simulation.workflow_id,
        workflow_name=simulation.workflow_name,
        mode="simulation",
        session_id=simulation.session_id,
        is_manual=True,
    )

    error: RuntimeError | None = None
    error_node: str | None = None

    for index, node in enumerate(simulation.nodes):
        await hook.on_node_start(
            execution_id=execution_id,
            node_name=node.name,
            node_type=node.type,
            node_index=index,
            input_items_count=node.input_items,
        )

        if node.duration_ms:
            await sleep(node.duration_ms / 1000)

        if node.should_fail:
            error = RuntimeError(node.error_message or "Node execution failed")
            error_node = node.name
            await hook.on_node_fail(
                execution_id=execution_id,
                node_name=node.name,
                node_type=node.type,
                error=error,
                node_index=index,
            )
            break

        await hook.on_node_complete(
            execution_id=execution_id,
            node_name=node.name,
            node_type=node.type,
            node_index=index,
            output_items_count=node.output_items,
        )

    if error is not None:
        await hook.on_workflow_fail(execution_id=execution_id, error=error, error_node=error_node)
    else:
        await hook.on_workflow_complete(execution_id=execution_id, mode="simulation")

    return execution_id


DEMO_SIMULATIONS: tuple[WorkflowSimulation, ...] = (
    WorkflowSimulation(
        workflow_id="demo_1",
        workflow_name="Data Processing Pipeline",
        session_id="demo_session_001",
        nodes=[
            NodeSimulation("HTTP Request", "httpRequest", 150, input_items=1, output_items=10),
            NodeSimulation("Transform Data", "function", 50, input_items=10, output_items=10),
            NodeSimulation("Filter Records", "filter", 20, input_items=10, output_items=5),
            NodeSimulation("Save to Database", "postgres", 100, input_items=5, output_items=5),
        ],
    ),
    WorkflowSimulation(
        workflow_id="demo_2",
        workflow_name="API Integration",
        session_id="demo_session_002",
        nodes=[
            NodeSimulation("Start", "start", 10, output_items=1),
            NodeSimulation("Fetch API Data", "httpRequest", 200, input_items=1, output_items=5),
            NodeSimulation(
                "Process Response",
                "function",
                30,
                should_fail=True,
                error_message="Invalid JSON response",
            ),
            NodeSimulation("Send Notification", "slack", 50),
        ],
    ),
    WorkflowSimulation(
        workflow_id="demo_3",
        workflow_name="Heavy Data Export",
        session_id="demo_session_003",
        nodes=[
            NodeSimulation("Load Data", "spreadsheet", 5000, output_items=1000),
            NodeSimulation("Transform", "function", 15000, input_items=1000, output_items=1000),
            NodeSimulation("Export", "writeBinaryFile", 3000, input_items=1000, output_items=1),
        ],
    ),
)


async def run_demo_simulation(hook: TelemetryHook, sleep: Sleep = asyncio.sleep) -> list[str]:
    """Run the three demo scenarios: clean, failing node, slow export.

    Returns:
        Execution ids in scenario order
    """
    execution_ids = []
    for number, simulation in enumerate(DEMO_SIMULATIONS, start=1):
        print(f"Simulation {number}: {simulation.workflow_name}")
        execution_id = await simulate_workflow(hook, simulation, sleep=sleep)
        print(f"   execution: {execution_id}\n")
        execution_ids.append(execution_id)
    return execution_ids


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run demo workflow simulations with telemetry")
    parser.add_argument("--file", default=None, help=f"Event log path (default: {DEFAULT_EVENTS_FILE})")
    parser.add_argument("--endpoint", default=None, help="HTTP collector URL")
    parser.add_argument("--no-eval", action="store_true", help="Disable evaluation")
    parser.add_argument("--log-level", default=None, help="Log level (default: TELEMETRY_LOG_LEVEL or INFO)")
    return parser


async def _run(settings: TelemetrySettings) -> None:
    async with TelemetryHook(settings) as hook:
        await run_demo_simulation(hook)


def main(argv: Sequence[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)

    overrides: dict[str, object] = {"enable_evaluation": not args.no_eval}
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    if args.file is not None:
        overrides["file_path"] = args.file
    if args.endpoint is not None:
        overrides["http_endpoint"] = args.endpoint
        if args.file is None:
            overrides["file_path"] = None

    settings = TelemetrySettings.from_env(**overrides)
    configure_logging(settings.log_level)

    print("=" * 60)
    print("Workflow telemetry demo")
    print("=" * 60 + "\n")
    asyncio.run(_run(settings))
    print("All simulations complete.")
    if settings.file_path:
        print(f"Events written to: {settings.file_path}")


if __name__ == "__main__":
    main()
