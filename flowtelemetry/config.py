"""Telemetry settings.

Settings are plain pydantic models with defaults; from_env() reads the
TELEMETRY_* environment variables used by host adapters.
"""

import os
from typing import Any

from pydantic import BaseModel, Field

from .evaluation.evaluator import EvaluatorConfig
from .transport.redaction import DEFAULT_REDACT_FIELDS

DEFAULT_EVENTS_FILE = "./data/events.jsonl"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


class TelemetrySettings(BaseModel):
    """Settings for TelemetryHook and the transports it builds."""

    enabled: bool = Field(default=True, description="Master switch for all callbacks")
    file_path: str | None = Field(default=DEFAULT_EVENTS_FILE, description="NDJSON event log")
    http_endpoint: str | None = Field(default=None, description="Remote collector URL")
    http_headers: dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")
    enable_evaluation: bool = Field(default=True, description="Score executions on termination")
    evaluator: EvaluatorConfig = Field(default_factory=EvaluatorConfig)
    redact_payloads: bool = Field(default=True, description="Mask sensitive payload fields")
    redact_fields: tuple[str, ...] = Field(default=DEFAULT_REDACT_FIELDS)
    default_session_id: str | None = Field(default=None, description="Fallback session id")
    default_metadata: dict[str, Any] = Field(default_factory=dict, description="Merged into events")
    debug: bool = Field(default=False, description="Log every emitted event")
    log_level: str = Field(default="INFO", description="Package log level")

    @classmethod
    def from_env(cls, **overrides: Any) -> "TelemetrySettings":
        """Build settings from TELEMETRY_* environment variables.

        Keyword overrides take precedence over the environment.
        """
        defaults = EvaluatorConfig()
        values: dict[str, Any] = {
            "enabled": _env_bool("TELEMETRY_ENABLED", True),
            "file_path": os.getenv("TELEMETRY_FILE_PATH", DEFAULT_EVENTS_FILE),
            "http_endpoint": os.getenv("TELEMETRY_HTTP_ENDPOINT") or None,
            "enable_evaluation": _env_bool("TELEMETRY_ENABLE_EVALUATION", True),
            "redact_payloads": _env_bool("TELEMETRY_REDACT_PAYLOADS", True),
            "redact_fields": _env_list("TELEMETRY_REDACT_FIELDS", DEFAULT_REDACT_FIELDS),
            "default_session_id": os.getenv("TELEMETRY_DEFAULT_SESSION_ID") or None,
            "debug": _env_bool("TELEMETRY_DEBUG", False),
            "log_level": os.getenv("TELEMETRY_LOG_LEVEL", "INFO"),
            "evaluator": EvaluatorConfig(
                max_workflow_duration_ms=_env_int(
                    "TELEMETRY_MAX_WORKFLOW_DURATION_MS", defaults.max_workflow_duration_ms
                ),
                max_node_duration_ms=_env_int(
                    "TELEMETRY_MAX_NODE_DURATION_MS", defaults.max_node_duration_ms
                ),
            ),
        }
        values.update(overrides)
        return cls(**values)
