"""Observability module.

Structured JSON logging with execution/workflow/node context.
"""

from .logger import StructuredLogger, clear_context, configure_logging, get_logger, set_context

__all__ = [
    "StructuredLogger",
    "get_logger",
    "set_context",
    "clear_context",
    "configure_logging",
]
