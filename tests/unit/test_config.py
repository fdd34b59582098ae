"""Tests for TelemetrySettings."""

import pytest

from flowtelemetry.config import DEFAULT_EVENTS_FILE, TelemetrySettings
from flowtelemetry.evaluation.evaluator import EvaluatorConfig
from flowtelemetry.transport.redaction import DEFAULT_REDACT_FIELDS

ENV_VARS = (
    "TELEMETRY_ENABLED",
    "TELEMETRY_FILE_PATH",
    "TELEMETRY_HTTP_ENDPOINT",
    "TELEMETRY_ENABLE_EVALUATION",
    "TELEMETRY_REDACT_PAYLOADS",
    "TELEMETRY_REDACT_FIELDS",
    "TELEMETRY_DEFAULT_SESSION_ID",
    "TELEMETRY_DEBUG",
    "TELEMETRY_LOG_LEVEL",
    "TELEMETRY_MAX_WORKFLOW_DURATION_MS",
    "TELEMETRY_MAX_NODE_DURATION_MS",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all TELEMETRY_* variables."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    """Tests for default settings."""

    def test_defaults(self) -> None:
        """Test built-in defaults."""
        settings = TelemetrySettings()

        assert settings.enabled is True
        assert settings.file_path == DEFAULT_EVENTS_FILE
        assert settings.http_endpoint is None
        assert settings.enable_evaluation is True
        assert settings.redact_payloads is True
        assert settings.redact_fields == DEFAULT_REDACT_FIELDS
        assert settings.evaluator == EvaluatorConfig()
        assert settings.debug is False


class TestFromEnv:
    """Tests for TelemetrySettings.from_env()."""

    def test_empty_environment(self, clean_env) -> None:
        """Test defaults when nothing is set."""
        settings = TelemetrySettings.from_env()
        assert settings.file_path == DEFAULT_EVENTS_FILE
        assert settings.log_level == "INFO"
        assert settings.http_endpoint is None

    def test_reads_variables(self, clean_env) -> None:
        """Test every variable is mapped."""
        clean_env.setenv("TELEMETRY_ENABLED", "false")
        clean_env.setenv("TELEMETRY_FILE_PATH", "/tmp/events.jsonl")
        clean_env.setenv("TELEMETRY_HTTP_ENDPOINT", "https://collector.example.com")
        clean_env.setenv("TELEMETRY_ENABLE_EVALUATION", "0")
        clean_env.setenv("TELEMETRY_REDACT_PAYLOADS", "no")
        clean_env.setenv("TELEMETRY_REDACT_FIELDS", "ssn, card_number ,")
        clean_env.setenv("TELEMETRY_DEFAULT_SESSION_ID", "session-1")
        clean_env.setenv("TELEMETRY_DEBUG", "yes")
        clean_env.setenv("TELEMETRY_LOG_LEVEL", "DEBUG")
        clean_env.setenv("TELEMETRY_MAX_WORKFLOW_DURATION_MS", "30000")
        clean_env.setenv("TELEMETRY_MAX_NODE_DURATION_MS", "2000")

        settings = TelemetrySettings.from_env()

        assert settings.enabled is False
        assert settings.file_path == "/tmp/events.jsonl"
        assert settings.http_endpoint == "https://collector.example.com"
        assert settings.enable_evaluation is False
        assert settings.redact_payloads is False
        assert settings.redact_fields == ("ssn", "card_number")
        assert settings.default_session_id == "session-1"
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.evaluator.max_workflow_duration_ms == 30000
        assert settings.evaluator.max_node_duration_ms == 2000
        assert settings.evaluator.failed_node_penalty == 15

    def test_overrides_win(self, clean_env) -> None:
        """Test keyword overrides take precedence."""
        clean_env.setenv("TELEMETRY_DEBUG", "true")
        settings = TelemetrySettings.from_env(debug=False, file_path=None)

        assert settings.debug is False
        assert settings.file_path is None

    def test_invalid_integer(self, clean_env) -> None:
        """Test a malformed threshold is rejected with the variable name."""
        clean_env.setenv("TELEMETRY_MAX_NODE_DURATION_MS", "fast")
        with pytest.raises(ValueError, match="TELEMETRY_MAX_NODE_DURATION_MS"):
            TelemetrySettings.from_env()
