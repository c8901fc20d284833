"""
Custom exceptions for the training-load analytics engine.

The calculation functions are total over their documented inputs and
never raise. Exceptions only exist at the I/O boundary (the stream store)
and for configuration that cannot be turned into a usable client.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Error codes for consistent error reporting."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # Stream store errors
    STREAM_FETCH_FAILED = "STREAM_FETCH_FAILED"
    STREAM_TIMEOUT = "STREAM_TIMEOUT"
    STREAM_PAYLOAD_INVALID = "STREAM_PAYLOAD_INVALID"


class TrainingEngineError(Exception):
    """
    Base exception for all engine errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging or API responses."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


class ConfigurationError(TrainingEngineError):
    """Raised when a collaborator cannot be built from the current settings."""

    def __init__(self, message: str, setting: Optional[str] = None) -> None:
        details = {"setting": setting} if setting else None
        super().__init__(message, code=ErrorCode.CONFIGURATION_ERROR, details=details)


class StreamFetchError(TrainingEngineError):
    """Raised when the stream store cannot deliver power streams."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.STREAM_FETCH_FAILED,
        status_code: Optional[int] = None,
        activity_count: Optional[int] = None,
    ) -> None:
        self.status_code = status_code
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if activity_count is not None:
            details["activity_count"] = activity_count
        super().__init__(message, code=code, details=details)
