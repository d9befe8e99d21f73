"""
Room Editor Exceptions

Every failure the service reports carries a machine-readable error code,
a human-readable message and optional details. The HTTP layer maps each
class to a status code in main.py.
"""

from typing import Any, Dict, List, Optional


class RoomEditorError(Exception):
    """Base class for all room editor errors."""

    error_code = "ROOM_EDITOR_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured error object returned to clients."""
        return {"detail": self.message, "error_code": self.error_code, **self.details}


class LayoutValidationError(RoomEditorError):
    """A layout document has the wrong shape or out-of-policy values."""

    error_code = "VALIDATION_ERROR"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None):
        self.errors = errors
        if message is None:
            first = errors[0] if errors else {"field": "", "message": "invalid layout"}
            message = f"Invalid layout: {first['field']}: {first['message']}"
            if len(errors) > 1:
                message += f" (+{len(errors) - 1} more)"
        super().__init__(message, {"errors": errors})


class AnalysisError(RoomEditorError):
    """
    The vision model call failed or returned unusable output.

    kind is "invalid_json" when the answer could not be parsed at all,
    "schema_invalid" when it parsed but failed layout validation, and
    "upstream_error" when the model call itself raised. raw_text holds the
    model answer, or the provider's error text for "upstream_error".
    """

    error_code = "ANALYSIS_ERROR"

    INVALID_JSON = "invalid_json"
    SCHEMA_INVALID = "schema_invalid"
    UPSTREAM_ERROR = "upstream_error"

    def __init__(
        self,
        message: str,
        kind: str,
        raw_text: str = "",
        errors: Optional[List[Dict[str, str]]] = None,
    ):
        self.kind = kind
        self.raw_text = raw_text
        self.errors = errors or []
        details: Dict[str, Any] = {"kind": kind, "raw_text": raw_text}
        if self.errors:
            details["errors"] = self.errors
        super().__init__(message, details)


class PreconditionError(RoomEditorError):
    """An operation was invoked before the state it needs exists."""

    error_code = "PRECONDITION_FAILED"


class InvalidEditError(RoomEditorError):
    """An edit entry is missing its name or carries malformed fields."""

    error_code = "INVALID_EDIT"

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        super().__init__(message, {"index": index} if index is not None else None)


class RenderError(RoomEditorError):
    """The image model produced no usable image."""

    error_code = "RENDER_ERROR"

    def __init__(self, message: str, raw_response: str = ""):
        self.raw_response = raw_response
        super().__init__(message, {"raw_response": raw_response} if raw_response else None)


class UpstreamTimeoutError(RoomEditorError):
    """An external model call did not finish within its time budget."""

    error_code = "UPSTREAM_TIMEOUT"

    def __init__(self, operation: str, timeout: float):
        self.operation = operation
        self.timeout = timeout
        super().__init__(
            f"{operation} did not complete within {timeout:g}s",
            {"operation": operation, "timeout_seconds": timeout},
        )


class LayoutNotFoundError(RoomEditorError):
    """No layout has been stored for the session yet."""

    error_code = "LAYOUT_NOT_FOUND"


class StaleResultError(RoomEditorError):
    """A newer operation superseded this one before it could commit."""

    error_code = "STALE_RESULT"


class RequestCancelledError(RoomEditorError):
    """The originating request went away while an upstream call was running."""

    error_code = "REQUEST_CANCELLED"


class InvalidImageError(RoomEditorError):
    """Uploaded image data is missing, too large, or not an image."""

    error_code = "INVALID_IMAGE"


class ConfigurationError(RoomEditorError):
    """The service cannot run with the current settings (e.g. no API key)."""

    error_code = "CONFIGURATION_ERROR"
