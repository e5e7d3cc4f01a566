"""Shared JSON serialization utilities."""

import base64
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID


def _serialize_known_type(obj: Any) -> tuple[bool, Any]:
    """Try to serialize by known type. Returns (handled, result)."""
    if isinstance(obj, (datetime, date, time)):
        return True, obj.isoformat()
    if isinstance(obj, Decimal):
        return True, str(obj)
    if isinstance(obj, UUID):
        return True, str(obj)
    if isinstance(obj, Path):
        return True, str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return True, base64.b64encode(bytes(obj)).decode("ascii")
    return False, None


def json_serializer(obj: Any) -> Any:
    """
    JSON serializer for values produced by Avro decoding and log extras.

    - datetime/date/time → ISO 8601 string
    - Decimal → string (keeps full precision of Avro decimals)
    - UUID, Path → string
    - bytes → base64 string
    - Enums → value
    - Everything else → string (fallback)

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation
    """
    handled, result = _serialize_known_type(obj)
    if handled:
        return result
    if hasattr(obj, "value"):
        return obj.value
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


__all__ = ["json_serializer"]
