"""
Core types shared across modules.

This module provides the base enums used by the error hierarchy and the
collaborator clients so that every failure surfaced to the workflow engine
carries the same classification.
"""

from enum import Enum


class ErrorCategory(Enum):
    """
    Classification of error types for reporting decisions.

    The workflow engine never retries on its own; the category tags
    structured log records and backs AvrodeskError.is_retryable.

    Categories:
        TRANSIENT: Temporary failures where a manual retry may succeed
                   (e.g., network timeouts, 429/503 errors, broker timeouts)
        AUTH: Authentication failures requiring new credentials
              (e.g., 401 errors from the schema registry)
        PERMANENT: Failures that won't succeed on retry
                   (e.g., 404, schema mismatch, configuration issues)
        UNKNOWN: Unclassified errors
    """

    TRANSIENT = "transient"
    AUTH = "auth"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"
