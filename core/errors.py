# core/errors.py
from typing import Any, Dict, Optional


class ShelfError(Exception):
    """Base class for every error the core surfaces to a caller.

    Each subclass names its ``category`` so callers can tell what went wrong
    without parsing the message, and whether an automatic retry makes sense.
    """
    category = "unknown"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "message": self.message}


class ValidationError(ShelfError):
    """Malformed input, detected before any I/O"""
    category = "validation"


class NotFoundError(ShelfError):
    category = "not_found"


class UnauthorizedError(ShelfError):
    category = "unauthorized"


class RequestTimeoutError(ShelfError):
    """An outbound call exceeded its time bound"""
    category = "timeout"
    retryable = True


class NetworkError(ShelfError):
    category = "network"
    retryable = True


class ProviderError(ShelfError):
    """The metadata provider answered with a non-2xx status other than 404"""
    category = "provider"

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        # rate limiting and server errors are worth trying again
        self.retryable = status_code is not None and (status_code == 429 or status_code >= 500)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class ConflictError(ShelfError):
    """A uniqueness or version conflict"""
    category = "conflict"


class PartialFailureError(ShelfError):
    category = "partial"
    retryable = True

    def __init__(self, message: str = "", succeeded: int = 0, failed: int = 0):
        super().__init__(message)
        self.succeeded = succeeded
        self.failed = failed

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["succeeded"] = self.succeeded
        data["failed"] = self.failed
        return data


class NotConfiguredError(ShelfError):
    category = "not_configured"


class UnknownError(ShelfError):
    """Catch-all. The detail is logged server-side, never shown to the caller"""
    category = "unknown"
    retryable = True
    public_message = "An unexpected error occurred"

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "message": self.public_message}
