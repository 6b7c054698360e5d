"""
Unified Exception Hierarchy for the Karakeep Adapter

Every failure that reaches a caller of the API request facade is one of the
normalized errors defined here. Each carries a symbolic ``code``, a
human-readable ``message``, the HTTP ``status_code`` (0 for failures that
never produced an HTTP response) and free-form ``details``.
"""

from typing import Any, Dict, Optional


# ============================================================================
# Base Error
# ============================================================================


class KarakeepAdapterError(Exception):
    """Base exception for all normalized adapter errors."""

    default_code = "UNKNOWN_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: int = 0,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.status_code = status_code
        self.details = details if details is not None else {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Return the normalized error shape.

        Returns:
            Dictionary with code, message, statusCode and details
        """
        return {
            "code": self.code,
            "message": self.message,
            "statusCode": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, "
            f"status_code={self.status_code}, message={self.message!r})"
        )


# ============================================================================
# Configuration / Validation Errors
# ============================================================================


class ConfigurationError(KarakeepAdapterError):
    """Bad or missing credentials, detected before a request is queued."""

    default_code = "CONFIGURATION_ERROR"


class ValidationError(KarakeepAdapterError):
    """Resource parameter validation errors."""

    default_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        super().__init__(message, **kwargs)


# ============================================================================
# Network Errors
# ============================================================================


class NetworkError(KarakeepAdapterError):
    """Failures that happened below HTTP (no status code available)."""

    default_code = "NETWORK_ERROR"


class ConnectivityError(NetworkError):
    """Connection refused or host name could not be resolved."""

    default_code = "CONNECTION_ERROR"


class RequestTimeoutError(NetworkError):
    """The client-side request deadline was exceeded."""

    default_code = "TIMEOUT_ERROR"


# ============================================================================
# Queue Errors
# ============================================================================


class QueueTimeoutError(KarakeepAdapterError):
    """A queued request expired before it reached the network."""

    default_code = "QUEUE_TIMEOUT"


# ============================================================================
# API Errors
# ============================================================================


class APIError(KarakeepAdapterError):
    """Non-2xx HTTP response from the Karakeep API."""

    default_code = "UNKNOWN_ERROR"

    def __str__(self) -> str:
        return f"Karakeep API Error ({self.status_code}): {self.message}"


def is_retryable_error(error: Exception, retryable_status_codes) -> bool:
    """
    Decide whether an error may be retried.

    Configuration and queue timeouts are never retried. Errors that carry an
    HTTP status are retried only when the status is in the retryable set.
    Everything else (network failures, timeouts, unexpected exceptions) is
    retried under the normal budget.

    Args:
        error: The exception raised by the transport
        retryable_status_codes: Collection of retryable HTTP status codes

    Returns:
        True if another attempt is allowed
    """
    if isinstance(error, (ConfigurationError, QueueTimeoutError, ValidationError)):
        return False

    status_code = getattr(error, "status_code", 0)
    if status_code:
        return int(status_code) in retryable_status_codes

    return True
