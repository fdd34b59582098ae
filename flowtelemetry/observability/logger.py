"""Structured logging for workflow telemetry.

Provides context-aware logging with automatic execution/workflow/node tagging.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context variables for automatic tagging
_execution_id: ContextVar[str | None] = ContextVar("execution_id", default=None)
_workflow_id: ContextVar[str | None] = ContextVar("workflow_id", default=None)
_node_name: ContextVar[str | None] = ContextVar("node_name", default=None)

# Output key for each context variable, in output order
_CONTEXT_FIELDS: tuple[tuple[str, ContextVar[str | None]], ...] = (
    ("execution_id", _execution_id),
    ("workflow_id", _workflow_id),
    ("node_name", _node_name),
)

PACKAGE_LOGGER = "flowtelemetry"


def set_context(
    execution_id: str | None = None,
    workflow_id: str | None = None,
    node_name: str | None = None,
) -> None:
    """Set logging context variables."""
    if execution_id is not None:
        _execution_id.set(execution_id)
    if workflow_id is not None:
        _workflow_id.set(workflow_id)
    if node_name is not None:
        _node_name.set(node_name)


def clear_context() -> None:
    """Clear all logging context variables."""
    for _, var in _CONTEXT_FIELDS:
        var.set(None)


def configure_logging(level: str | int = logging.INFO) -> None:
    """Set the level of the package root logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, var in _CONTEXT_FIELDS:
            if value := var.get():
                log_data[key] = value

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Logger with structured output and context awareness."""

    def __init__(self, name: str, level: int = logging.NOTSET):
        """Initialize structured logger.

        Args:
            name: Logger name
            level: Logging level (NOTSET defers to the package logger)
        """
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)

        # Add handler if not already configured
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter())
            self._logger.addHandler(handler)

    @property
    def logger(self) -> logging.Logger:
        """Underlying stdlib logger."""
        return self._logger

    def _log(
        self,
        level: int,
        msg: str,
        *args: Any,
        extra_data: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        """Log with optional extra data."""
        extra = kwargs.pop("extra", {})
        if extra_data:
            extra["extra_data"] = extra_data
        self._logger.log(level, msg, *args, extra=extra, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._log(logging.ERROR, msg, *args, exc_info=True, **kwargs)

    def workflow_started(self, execution_id: str, workflow_name: str, **extra: Any) -> None:
        """Log workflow started."""
        self.info(
            f"Workflow {workflow_name} started",
            extra_data={"execution_id": execution_id, "workflow_name": workflow_name, **extra},
        )

    def node_completed(
        self,
        node_name: str,
        duration_ms: int | None = None,
        **extra: Any,
    ) -> None:
        """Log node completed."""
        data = {"node_name": node_name, **extra}
        if duration_ms is not None:
            data["duration_ms"] = duration_ms
        self.debug(f"Node {node_name} completed", extra_data=data)

    def node_failed(self, node_name: str, error: str, **extra: Any) -> None:
        """Log node failed."""
        self.warning(
            f"Node {node_name} failed: {error}",
            extra_data={"node_name": node_name, "error": error, **extra},
        )

    def event_emitted(self, event_type: str, event: dict[str, Any]) -> None:
        """Log a full event (debug mode)."""
        self.debug(f"Emitted {event_type}", extra_data={"event": event})

    def evaluation_completed(
        self,
        execution_id: str,
        score: int,
        labels: list[str],
    ) -> None:
        """Log evaluation result."""
        self.info(
            f"Execution {execution_id} scored {score}",
            extra_data={"execution_id": execution_id, "score": score, "labels": labels},
        )


# Global logger cache
_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    """Get or create a structured logger.

    Args:
        name: Logger name

    Returns:
        StructuredLogger instance
    """
    if name not in _loggers:
        _loggers[name] = StructuredLogger(name)
    return _loggers[name]
