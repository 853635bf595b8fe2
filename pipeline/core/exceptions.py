"""
Custom exceptions for pipeline execution.

Every failure carries an explicit ErrorKind so recovery decisions are a
lookup on the kind (see pipeline.core.retry.RECOVERY_POLICY) rather than
isinstance checks.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Error categories used for recovery and diagnostics."""
    VALIDATION = "validation"
    PARSING = "parsing"
    PERMISSION_DENIED = "permission_denied"
    API_UNAVAILABLE = "api_unavailable"
    NETWORK = "network"
    TIMEOUT = "timeout"
    QUOTA = "quota"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"
    CONFIGURATION = "configuration"
    CIRCUIT_OPEN = "circuit_open"
    RETRIES_EXHAUSTED = "retries_exhausted"
    UNKNOWN = "unknown"


class PipelineExecutionError(Exception):
    """
    Base exception for pipeline execution failures.

    All pipeline exceptions inherit from this and carry:
        kind: ErrorKind used for recovery lookup
        context: Structured details for the diagnostic log
        original_error: Underlying exception, if any
        error_id / timestamp: Identify the failure in logs
    """

    default_kind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.context: Dict[str, Any] = dict(context or {})
        self.original_error = original_error
        self.error_id = uuid.uuid4().hex[:12]
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view used by the diagnostic log."""
        data: Dict[str, Any] = {
            "error_id": self.error_id,
            "kind": self.kind.value,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.original_error is not None:
            data["original_error"] = f"{type(self.original_error).__name__}: {self.original_error}"
        return data


class StepExecutionError(PipelineExecutionError):
    """
    Raised when a pipeline step fails.

    Attributes:
        step_name: Name of the failed step
        original_error: The underlying exception

    The kind is inherited from the original error when it is a pipeline error.
    """

    def __init__(self, step_name: str, original_error: Exception):
        self.step_name = step_name
        kind = (
            original_error.kind
            if isinstance(original_error, PipelineExecutionError)
            else ErrorKind.INTERNAL
        )
        super().__init__(
            f"Step '{step_name}' failed: {str(original_error)}",
            kind=kind,
            context={"step": step_name},
            original_error=original_error,
        )


class ValidationError(PipelineExecutionError):
    """
    Raised when step input/output validation fails.

    Example: matching step runs before recipients were parsed
    """
    default_kind = ErrorKind.VALIDATION

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message, context=context, original_error=original_error)


class ParsingError(PipelineExecutionError):
    """Raised when content or an address cannot be parsed."""
    default_kind = ErrorKind.PARSING

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message, context=context, original_error=original_error)


class PermissionDeniedError(PipelineExecutionError):
    """Host denied access to the item. Never retried."""
    default_kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message, context=context, original_error=original_error)


class ApiUnavailableError(PipelineExecutionError):
    """Host API is not available (yet). Retried with backoff."""
    default_kind = ErrorKind.API_UNAVAILABLE

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message, context=context, original_error=original_error)


class NetworkError(PipelineExecutionError):
    """Transient transport failure. Retried with backoff."""
    default_kind = ErrorKind.NETWORK

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message, context=context, original_error=original_error)


class ConfigurationError(PipelineExecutionError):
    """Persisted settings are invalid. Recovered by resetting to defaults."""
    default_kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, original_error: Optional[BaseException] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context, original_error=original_error)


class MailClientError(PipelineExecutionError):
    """
    Failure reported by the mail-client adapter.

    The adapter supplies the kind (permission_denied, not_found, internal,
    network, timeout, quota, api_unavailable).
    """

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.INTERNAL,
                 context: Optional[Dict[str, Any]] = None,
                 original_error: Optional[BaseException] = None):
        super().__init__(message, kind=kind, context=context, original_error=original_error)


class CircuitOpenError(PipelineExecutionError):
    """Raised without calling the adapter while the circuit breaker is open."""
    default_kind = ErrorKind.CIRCUIT_OPEN

    def __init__(self, message: str = "Circuit breaker is open",
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message, context=context)


class RetryExhaustedError(PipelineExecutionError):
    """All retry attempts failed. original_error is the last failure."""
    default_kind = ErrorKind.RETRIES_EXHAUSTED

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} failed after {attempts} attempts: {last_error}",
            context={"operation": operation, "attempts": attempts},
            original_error=last_error,
        )
