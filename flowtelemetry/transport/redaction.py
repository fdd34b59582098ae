"""Redaction of sensitive payload and metadata fields.

A key is sensitive when its lower-cased name contains any configured field
substring. Redaction always builds a new structure; inputs are never mutated.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from ..events.types import TelemetryEvent

REDACTED_MARKER = "[REDACTED]"

DEFAULT_REDACT_FIELDS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "auth",
    "credentials",
    "private_key",
    "privatekey",
)


def _is_sensitive(key: Any, fields: tuple[str, ...]) -> bool:
    lower_key = str(key).lower()
    return any(field in lower_key for field in fields)


def _redact_value(value: Any, fields: tuple[str, ...]) -> Any:
    if isinstance(value, Mapping):
        return {
            key: REDACTED_MARKER if _is_sensitive(key, fields) else _redact_value(item, fields)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, fields) for item in value]
    return value


def redact(
    obj: Mapping[str, Any],
    fields: Iterable[str] = DEFAULT_REDACT_FIELDS,
) -> dict[str, Any]:
    """Return a copy of obj with sensitive keys masked at every depth.

    Args:
        obj: Payload or metadata mapping
        fields: Key substrings to redact (case-insensitive)

    Returns:
        New dict; nested mappings and lists are copied, scalars pass through
    """
    normalized = tuple(field.lower() for field in fields)
    return _redact_value(obj, normalized)


def redact_event(
    event: TelemetryEvent,
    fields: Iterable[str] = DEFAULT_REDACT_FIELDS,
) -> TelemetryEvent:
    """Return a copy of event with payload and metadata redacted."""
    fields = tuple(fields)
    update: dict[str, Any] = {}
    if event.payload:
        update["payload"] = redact(event.payload, fields)
    if event.metadata:
        update["metadata"] = redact(event.metadata, fields)
    if not update:
        return event
    return event.model_copy(update=update)
