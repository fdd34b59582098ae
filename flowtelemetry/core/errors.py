"""Error taxonomy for the telemetry pipeline.

TransportError subclasses are raised by transports; ErrorInfo normalises
failures reported by the host workflow engine so they can be stamped on events.
"""

import traceback
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TelemetryError(Exception):
    """Base exception for telemetry operations."""

    pass


class TransportError(TelemetryError):
    """A transport failed to deliver or store events."""

    def __init__(self, message: str, transport: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.transport = transport


class DeliveryError(TransportError):
    """Remote delivery failed (non-2xx status or network error)."""

    def __init__(
        self,
        message: str,
        transport: str | None = None,
        attempts: int = 1,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, transport=transport)
        self.attempts = attempts
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"DeliveryError(message={self.message!r}, transport={self.transport!r}, "
            f"attempts={self.attempts}, status_code={self.status_code})"
        )


class TransportClosedError(TransportError):
    """Events were sent to a transport after close()."""

    pass


class ErrorInfo(BaseModel):
    """Error reported for a failed node or workflow."""

    model_config = ConfigDict(frozen=True)

    message: str = Field(..., description="Human-readable error message")
    type: str | None = Field(default=None, description="Error type tag (exception class name)")
    stack: str | None = Field(default=None, description="Formatted stack trace")

    @classmethod
    def from_exception(cls, exception: BaseException) -> "ErrorInfo":
        """Build from an exception, capturing its traceback when present."""
        stack = None
        if exception.__traceback__ is not None:
            stack = "".join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )
        return cls(message=str(exception), type=type(exception).__name__, stack=stack)

    @classmethod
    def coerce(cls, error: "BaseException | ErrorInfo | dict[str, Any] | str") -> "ErrorInfo":
        """Accept the shapes host adapters commonly pass for an error."""
        if isinstance(error, ErrorInfo):
            return error
        if isinstance(error, BaseException):
            return cls.from_exception(error)
        if isinstance(error, dict):
            return cls.model_validate(error)
        return cls(message=str(error))
