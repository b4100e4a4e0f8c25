"""
Result types for explicit success/failure tracking.

Stake submissions resolve into observable state instead of raising; these
types give callers a single value describing how an attempt ended.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class ErrorSeverity(Enum):
    """Severity levels for processing errors."""

    WARNING = "warning"  # Operation completed, issue worth reporting
    ERROR = "error"  # Operation failed, may be retried by the user
    CRITICAL = "critical"  # Operation cannot proceed in this configuration


@dataclass
class ProcessingError:
    """
    Represents a single processing error with context.

    Attributes:
        source: Component that generated the error (e.g., "stake_submission")
        message: Human-readable error description
        severity: How severe the error is
        context: Additional context like kind, transaction hash, chain id
        exception: Original exception if available
    """

    source: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[Exception] = None


@dataclass
class Result(Generic[T]):
    """
    Result type that carries success/failure information.

    Attributes:
        success: Whether the operation succeeded
        data: The result data if successful
        errors: List of errors encountered (warnings may accompany success)
    """

    success: bool
    data: Optional[T] = None
    errors: List[ProcessingError] = field(default_factory=list)

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        """Create a successful result with data."""
        return cls(success=True, data=data)

    @classmethod
    def fail_with_message(
        cls,
        source: str,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
    ) -> "Result[T]":
        """Create a failed result with a message (convenience method)."""
        error = ProcessingError(
            source=source,
            message=message,
            severity=severity,
            context=context or {},
            exception=exception,
        )
        return cls(success=False, errors=[error])

    def has_errors(self) -> bool:
        """Check if result has any ERROR or CRITICAL level errors."""
        return any(
            e.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
            for e in self.errors
        )

    def get_error_messages(self) -> List[str]:
        """Get all error messages as strings."""
        return [e.message for e in self.errors]

    def unwrap(self) -> T:
        """Return data, raising if the result is a failure."""
        if not self.success:
            raise RuntimeError("; ".join(self.get_error_messages()))
        return self.data
