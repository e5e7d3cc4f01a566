"""
Core library: infrastructure shared by the avrodesk application.

Modules:
    logging     - Structured JSON logging with context propagation
    errors      - Exception hierarchy with error categories
    utils       - JSON serialization helpers
"""

from .types import ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
]
