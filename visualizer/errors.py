"""
Error taxonomy for the visualization proxy.

ValidationError and PayloadTooLarge reject a request with HTTP 400.
BackendError and BackendTimeout never reach the client as HTTP errors; the
generate handler folds them into a ``success: false`` envelope.
"""
import math
from typing import Any, Dict, Optional


class VisualizerError(Exception):
    """Base class for errors raised by the proxy."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


def _json_safe(value: Any) -> Any:
    """Replace inf and nan, which strict JSON cannot carry, with their text form."""
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


class ValidationError(VisualizerError):
    status_code = 400

    _MISSING = object()

    def __init__(self, message: str, received: Any = _MISSING):
        super().__init__(message)
        self.received = received

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.received is not self._MISSING:
            body["received"] = _json_safe(self.received)
        return body


class PayloadTooLarge(VisualizerError):
    status_code = 400

    def __init__(self, size_mb: float, limit_mb: float,
                 message: str = "Image too large. Please zoom out or reduce resolution."):
        super().__init__(message)
        self.size_mb = size_mb
        self.limit_mb = limit_mb

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["size"] = round(self.size_mb, 2)
        body["limit"] = self.limit_mb
        return body


class BackendError(VisualizerError):
    """The external generation service failed."""

    error_type = "backend_error"

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.status = status
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "type": self.error_type}
        if self.status is not None:
            body["status"] = self.status
        if self.details is not None:
            body["details"] = self.details
        return body


class BackendTimeout(BackendError):
    """The external call did not finish before its deadline."""

    error_type = "backend_timeout"

    def __init__(self, timeout: float, provider: str = "backend"):
        super().__init__(f"{provider} did not respond within {timeout:g} seconds")
        self.timeout = timeout
        self.provider = provider


class UnexpectedError(VisualizerError):
    status_code = 500
