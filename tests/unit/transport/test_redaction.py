"""Tests for payload redaction."""

from flowtelemetry.events import factory
from flowtelemetry.transport.redaction import (
    DEFAULT_REDACT_FIELDS,
    REDACTED_MARKER,
    redact,
    redact_event,
)


class TestRedact:
    """Tests for redact()."""

    def test_top_level_keys(self) -> None:
        """Test sensitive keys are masked and others kept."""
        result = redact({"password": "hunter2", "user": "alice"})
        assert result == {"password": REDACTED_MARKER, "user": "alice"}

    def test_substring_and_case_insensitive(self) -> None:
        """Test keys containing a field name match regardless of case."""
        result = redact({"X-API_KEY": "k", "AccessToken": "t", "Authorization": "Bearer x"})
        assert set(result.values()) == {REDACTED_MARKER}

    def test_nested_structures(self) -> None:
        """Test masking reaches nested dicts and lists."""
        payload = {
            "config": {"db": {"password": "p", "host": "localhost"}},
            "items": [{"secret": "s", "id": 1}, [{"token": "t"}], "plain"],
        }
        result = redact(payload)

        assert result["config"]["db"] == {"password": REDACTED_MARKER, "host": "localhost"}
        assert result["items"][0] == {"secret": REDACTED_MARKER, "id": 1}
        assert result["items"][1] == [{"token": REDACTED_MARKER}]
        assert result["items"][2] == "plain"

    def test_sensitive_container_replaced_whole(self) -> None:
        """Test a sensitive key hides its whole value."""
        result = redact({"credentials": {"user": "u", "pass": "p"}})
        assert result == {"credentials": REDACTED_MARKER}

    def test_input_not_mutated(self) -> None:
        """Test the original structure is left unchanged."""
        payload = {"nested": {"password": "p"}, "list": [{"token": "t"}]}
        redact(payload)
        assert payload == {"nested": {"password": "p"}, "list": [{"token": "t"}]}

    def test_custom_fields(self) -> None:
        """Test a custom field list replaces the defaults."""
        result = redact({"ssn": "123", "password": "p"}, fields=["SSN"])
        assert result == {"ssn": REDACTED_MARKER, "password": "p"}

    def test_default_fields(self) -> None:
        """Test the default field list."""
        assert "password" in DEFAULT_REDACT_FIELDS
        assert "private_key" in DEFAULT_REDACT_FIELDS


class TestRedactEvent:
    """Tests for redact_event()."""

    def test_payload_and_metadata(self, context, node_context) -> None:
        """Test both payload and metadata are masked in a copy."""
        ctx = context.with_metadata(api_key="abc", team="core")
        event = factory.create_tool_called_event(ctx, node_context, "login", {"password": "p"})

        redacted = redact_event(event)

        assert redacted.payload["arguments"] == {"password": REDACTED_MARKER}
        assert redacted.metadata == {"api_key": REDACTED_MARKER, "team": "core"}
        assert redacted.event_id == event.event_id
        assert event.payload["arguments"] == {"password": "p"}

    def test_nothing_to_redact_returns_same_event(self, context) -> None:
        """Test events without payload or metadata are returned as-is."""
        event = factory.create_workflow_started_event(context)
        assert redact_event(event) is event
