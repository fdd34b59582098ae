"""Event transports.

This module provides:
- BufferedTransport: Redaction and buffering in front of a sink
- FileSink / HttpSink: NDJSON log and remote collector destinations
- CompositeTransport: Fan-out to several transports
"""

from .base import BufferedTransport, EventSink, Transport, TransportConfig
from .composite import CompositeTransport
from .file import DEFAULT_FILE_PATH, FileSink, create_file_transport
from .http import HttpSink, create_http_transport
from .redaction import DEFAULT_REDACT_FIELDS, REDACTED_MARKER, redact, redact_event

__all__ = [
    "Transport",
    "EventSink",
    "TransportConfig",
    "BufferedTransport",
    "FileSink",
    "create_file_transport",
    "DEFAULT_FILE_PATH",
    "HttpSink",
    "create_http_transport",
    "CompositeTransport",
    "redact",
    "redact_event",
    "REDACTED_MARKER",
    "DEFAULT_REDACT_FIELDS",
]
