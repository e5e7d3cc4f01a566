"""
Error classification and exception hierarchy.

Provides:
- ErrorCategory enum for classifying errors
- AvrodeskError hierarchy for typed exceptions
- Classification utilities used when wrapping background failures
"""

from core.errors.exceptions import (
    AuthError,
    AvrodeskError,
    BrokerError,
    ClipboardError,
    ConfigurationError,
    DraftStoreError,
    EditorError,
    ErrorCategory,
    PayloadValidationError,
    PermanentError,
    RegistryError,
    SchemaError,
    TimeoutError,
    TransientError,
    classify_exception,
    wrap_exception,
)

__all__ = [
    # Enums
    "ErrorCategory",
    # Base classes
    "AvrodeskError",
    "AuthError",
    "TransientError",
    "PermanentError",
    "TimeoutError",
    # Domain errors
    "RegistryError",
    "BrokerError",
    "SchemaError",
    "PayloadValidationError",
    "ConfigurationError",
    "EditorError",
    "ClipboardError",
    "DraftStoreError",
    # Classification utilities
    "classify_exception",
    "wrap_exception",
]
