"""Execution context stamped on every telemetry event.

ExecutionContext carries the correlation fields shared by all events of one
workflow execution.
"""

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass
class ExecutionContext:
    """Correlation fields for one workflow execution."""

    execution_id: str
    workflow_id: str
    workflow_name: str | None = None
    run_id: str | None = None
    session_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def effective_run_id(self) -> str:
        """run_id, falling back to the execution id."""
        return self.run_id or self.execution_id

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "execution_id": self.execution_id,
            "workflow_id": self.workflow_id,
            "workflow_name": self.workflow_name,
            "run_id": self.run_id,
            "session_id": self.session_id,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionContext":
        """Create from dictionary."""
        return cls(
            execution_id=data["execution_id"],
            workflow_id=data["workflow_id"],
            workflow_name=data.get("workflow_name"),
            run_id=data.get("run_id"),
            session_id=data.get("session_id"),
            metadata=data.get("metadata") or {},
        )

    def with_metadata(self, **extra: Any) -> "ExecutionContext":
        """Create a copy with additional metadata merged in."""
        return replace(self, metadata={**self.metadata, **extra})
