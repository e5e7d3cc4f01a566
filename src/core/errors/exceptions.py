"""
Unified exception hierarchy for avrodesk.

Provides typed exceptions with a category so that every failure reported
by a background operation can be phrased and logged consistently.
"""

import builtins

# Import ErrorCategory from canonical source to avoid duplicate enum issues
# (comparing enums from different classes always returns False)
from core.types import ErrorCategory


class AvrodeskError(Exception):
    """
    Base exception for all avrodesk errors.

    Attributes:
        message: Human-readable error description
        category: Error classification
        cause: Original exception if wrapping
        context: Additional context dict for debugging
    """

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        self.message = message
        self.cause = cause
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.category in (
            ErrorCategory.TRANSIENT,
            ErrorCategory.UNKNOWN,
        )

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Base categories
# =============================================================================


class AuthError(AvrodeskError):
    """Base class for authentication errors."""

    category = ErrorCategory.AUTH


class TransientError(AvrodeskError):
    """Base class for transient errors (a manual retry may succeed)."""

    category = ErrorCategory.TRANSIENT


class PermanentError(AvrodeskError):
    """Base class for errors that won't succeed on retry."""

    category = ErrorCategory.PERMANENT


class TimeoutError(TransientError):
    """Operation timeout error."""

    pass


# =============================================================================
# Domain-Specific Errors
# =============================================================================


class RegistryError(AvrodeskError):
    """Error from the schema registry (non-200 status or transport failure)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        cause: Exception | None = None,
        context: dict | None = None,
    ):
        super().__init__(message, cause, context)
        self.status_code = status_code
        self.category = category


class BrokerError(AvrodeskError):
    """Error from Kafka operations (producer/consumer)."""

    category = ErrorCategory.TRANSIENT


class SchemaError(PermanentError):
    """Schema definition is malformed or cannot be compiled."""

    pass


class PayloadValidationError(PermanentError):
    """Candidate document does not parse or does not match the schema."""

    pass


class ConfigurationError(PermanentError):
    """Configuration file or profile is invalid."""

    pass


class EditorError(PermanentError):
    """External editor could not be launched or exited with an error."""

    pass


class ClipboardError(PermanentError):
    """No clipboard command is available or it failed."""

    pass


class DraftStoreError(PermanentError):
    """Saved draft could not be written, listed or read."""

    pass


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_exception(exc: Exception) -> ErrorCategory:
    """Classify an exception into error category."""
    if isinstance(exc, AvrodeskError):
        return exc.category

    # TimeoutError is shadowed by the class above
    if isinstance(exc, (builtins.TimeoutError, ConnectionError)):
        return ErrorCategory.TRANSIENT
    if isinstance(exc, (OSError, ValueError, TypeError, KeyError)):
        return ErrorCategory.PERMANENT

    exc_str = str(exc).lower()
    if "timeout" in exc_str or "timed out" in exc_str:
        return ErrorCategory.TRANSIENT
    if "401" in exc_str or "unauthorized" in exc_str or "authentication" in exc_str:
        return ErrorCategory.AUTH

    return ErrorCategory.UNKNOWN


def wrap_exception(
    exc: Exception,
    default_class: type = AvrodeskError,
    context: dict | None = None,
) -> AvrodeskError:
    """Wrap a generic exception in the appropriate AvrodeskError subclass."""
    if isinstance(exc, AvrodeskError):
        if context:
            exc.context.update(context)
        return exc

    category = classify_exception(exc)
    context = context or {}
    context.setdefault("error_type", type(exc).__name__)

    if category == ErrorCategory.AUTH:
        return AuthError(str(exc), cause=exc, context=context)
    if category == ErrorCategory.TRANSIENT:
        return TransientError(str(exc), cause=exc, context=context)
    if category == ErrorCategory.PERMANENT:
        return PermanentError(str(exc), cause=exc, context=context)

    return default_class(str(exc), cause=exc, context=context)
