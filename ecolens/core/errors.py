"""Error taxonomy for the violation report pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import status


class ErrorType(Enum):
    """Enumeration of error types in the report pipeline."""

    # Model invocation
    MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
    UNPARSEABLE_MODEL_OUTPUT = "UNPARSEABLE_MODEL_OUTPUT"
    INVALID_IMAGE = "INVALID_IMAGE"

    # Routing
    AUTHORITY_SEARCH_DEGRADED = "AUTHORITY_SEARCH_DEGRADED"

    # Submission
    UNAUTHORIZED = "UNAUTHORIZED"
    NON_ACTIONABLE_VERDICT = "NON_ACTIONABLE_VERDICT"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"


# HTTP status used when an error reaches the API boundary
HTTP_STATUS_BY_ERROR_TYPE = {
    ErrorType.MODEL_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorType.UNPARSEABLE_MODEL_OUTPUT: status.HTTP_502_BAD_GATEWAY,
    ErrorType.INVALID_IMAGE: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorType.AUTHORITY_SEARCH_DEGRADED: status.HTTP_502_BAD_GATEWAY,
    ErrorType.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorType.NON_ACTIONABLE_VERDICT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorType.PERSISTENCE_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorType.NOTIFICATION_FAILED: status.HTTP_502_BAD_GATEWAY,
}


@dataclass
class ErrorContext:
    """
    Context information for pipeline errors.

    Attributes:
        error_type: Type of error from ErrorType enum
        message: Human-readable error message
        recoverable: Whether the user can simply try again
        details: Optional additional error details
        original_exception: Optional original exception that caused this error
    """

    error_type: ErrorType
    message: str
    recoverable: bool
    details: Optional[Dict[str, Any]] = None
    original_exception: Optional[Exception] = None


class EcoLensError(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        context: ErrorContext with detailed error information
    """

    def __init__(self, context: ErrorContext):
        self.context = context
        super().__init__(context.message)

    def __str__(self) -> str:
        return f"{self.context.error_type.value}: {self.context.message}"

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_ERROR_TYPE.get(
            self.context.error_type, status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class ModelUnavailableError(EcoLensError):
    """Every candidate model failed or was rate-limited."""

    @classmethod
    def from_attempts(cls, attempts: Dict[str, str]) -> "ModelUnavailableError":
        """
        Create the error from the per-candidate failure summary.

        Args:
            attempts: Mapping of model identifier to the reason it failed
        """
        return cls(ErrorContext(
            error_type=ErrorType.MODEL_UNAVAILABLE,
            message="All AI models failed or are busy. Please try again later.",
            recoverable=True,
            details={"attempts": attempts},
        ))


class InvalidImageError(EcoLensError):
    """Image bytes do not decode to the declared media type."""

    @classmethod
    def mismatch(
        cls,
        declared: str,
        detected: Optional[str],
        error: Optional[Exception] = None
    ) -> "InvalidImageError":
        return cls(ErrorContext(
            error_type=ErrorType.INVALID_IMAGE,
            message=f"Image content does not match declared media type '{declared}'",
            recoverable=False,
            details={"declared": declared, "detected": detected},
            original_exception=error,
        ))


class UnauthorizedError(EcoLensError):
    """Report submitted without a verified reporter identity."""

    @classmethod
    def missing_reporter(cls) -> "UnauthorizedError":
        return cls(ErrorContext(
            error_type=ErrorType.UNAUTHORIZED,
            message="A verified reporter identity is required to file a report",
            recoverable=False,
        ))


class NonActionableVerdictError(EcoLensError):
    """Verdict does not describe a confirmed violation and must not be routed."""

    @classmethod
    def for_outcome(cls, outcome: str) -> "NonActionableVerdictError":
        return cls(ErrorContext(
            error_type=ErrorType.NON_ACTIONABLE_VERDICT,
            message=f"Verdict outcome '{outcome}' cannot be filed as a report",
            recoverable=False,
            details={"outcome": outcome},
        ))


class PersistenceError(EcoLensError):
    """The report could not be stored; nothing was kept."""

    @classmethod
    def write_failed(cls, error: Exception) -> "PersistenceError":
        return cls(ErrorContext(
            error_type=ErrorType.PERSISTENCE_FAILED,
            message="Failed to store the report. Please try again.",
            recoverable=True,
            original_exception=error,
        ))


class NotificationError(EcoLensError):
    """Delivery of the authority alert failed."""

    @classmethod
    def delivery_failed(cls, recipient: str, error: Exception) -> "NotificationError":
        return cls(ErrorContext(
            error_type=ErrorType.NOTIFICATION_FAILED,
            message=f"Failed to deliver alert to {recipient}",
            recoverable=True,
            details={"recipient": recipient},
            original_exception=error,
        ))
