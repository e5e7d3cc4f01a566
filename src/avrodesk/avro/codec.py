"""JSON document to Avro binary and back, plus the broker wire envelope.

Every message on the wire is framed as:

    byte 0      0x00 format marker
    bytes 1-4   schema id, unsigned 32-bit big-endian
    bytes 5..   schemaless Avro binary payload
"""

import io
import json
import struct
from typing import Any

import fastavro
from fastavro.validation import ValidationError, validate

from avrodesk.avro.schema import NAMED_TYPES, PRIMITIVE_TYPES, CompiledSchema, full_name
from core.errors.exceptions import PayloadValidationError
from core.utils.json_serializers import json_serializer

MAGIC_BYTE = 0
HEADER = struct.Struct(">BI")
HEADER_SIZE = HEADER.size  # 5


# =============================================================================
# Wire envelope
# =============================================================================


def frame(schema_id: int, payload: bytes) -> bytes:
    """Prefix an encoded payload with the 5-byte wire header."""
    if not 0 <= schema_id <= 0xFFFFFFFF:
        raise PayloadValidationError(f"schema id {schema_id} does not fit in 4 bytes")
    return HEADER.pack(MAGIC_BYTE, schema_id) + payload


def unframe(data: bytes) -> tuple[int, bytes]:
    """Split a framed message into (schema_id, payload)."""
    if len(data) < HEADER_SIZE:
        raise PayloadValidationError(
            f"message too short for wire header: {len(data)} bytes"
        )
    magic, schema_id = HEADER.unpack_from(data)
    if magic != MAGIC_BYTE:
        raise PayloadValidationError(f"unknown wire format marker {magic:#04x}")
    return schema_id, data[HEADER_SIZE:]


# =============================================================================
# JSON -> native conversion
# =============================================================================


def _latin1(value: str) -> bytes:
    try:
        return value.encode("latin-1")
    except UnicodeEncodeError as e:
        raise PayloadValidationError(
            "bytes values must only contain code points U+0000..U+00FF", cause=e
        ) from e


class _NativeConverter:
    """Turn a generic JSON value into the value fastavro expects.

    JSON has no bytes type, so strings in bytes and fixed positions are
    read as ISO-8859-1 code points. Unions accept either a bare value or
    the single-key {"branch": value} wrapper.
    """

    def __init__(self, compiled: CompiledSchema):
        self.compiled = compiled

    def convert(self, value: Any) -> Any:
        return self._convert(self.compiled.definition, value, None)

    def _convert(self, schema: Any, value: Any, namespace: str | None) -> Any:
        if isinstance(schema, list):
            return self._union(schema, value, namespace)

        kind, definition, namespace = self._kind(schema, namespace)
        if kind in ("bytes", "fixed"):
            return _latin1(value) if isinstance(value, str) else value
        if kind in ("record", "error") and isinstance(value, dict):
            result = dict(value)
            for item in definition.get("fields") or []:
                if item["name"] in value:
                    result[item["name"]] = self._convert(item["type"], value[item["name"]], namespace)
            return result
        if kind == "array" and isinstance(value, list):
            return [self._convert(definition["items"], item, namespace) for item in value]
        if kind == "map" and isinstance(value, dict):
            return {k: self._convert(definition["values"], v, namespace) for k, v in value.items()}
        return value

    def _kind(self, schema: Any, namespace: str | None) -> tuple[str, Any, str | None]:
        """Resolve a schema node to (kind, definition, namespace for children)."""
        if isinstance(schema, str):
            if schema in PRIMITIVE_TYPES:
                return schema, schema, namespace
            definition, name = self.compiled.resolve(schema, namespace)
            return definition["type"], definition, name.rpartition(".")[0] or None
        kind = schema["type"]
        if isinstance(kind, (dict, list)):
            return self._kind(kind, namespace)
        if kind in NAMED_TYPES:
            name = full_name(schema["name"], schema.get("namespace") or namespace)
            return kind, schema, name.rpartition(".")[0] or None
        if kind in PRIMITIVE_TYPES or kind in ("array", "map"):
            return kind, schema, namespace
        return self._kind(kind, namespace)

    def _branch_names(self, branch: Any, namespace: str | None) -> set[str]:
        kind, definition, _ = self._kind(branch, namespace)
        if kind in NAMED_TYPES:
            qualified = full_name(definition["name"], definition.get("namespace") or namespace)
            return {qualified, qualified.rpartition(".")[2]}
        return {kind}

    def _matches(self, branch: Any, value: Any, namespace: str | None) -> bool:
        kind, definition, _ = self._kind(branch, namespace)
        if kind == "null":
            return value is None
        if kind == "boolean":
            return isinstance(value, bool)
        if kind in ("int", "long"):
            return isinstance(value, int) and not isinstance(value, bool)
        if kind in ("float", "double"):
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if kind in ("string", "bytes", "fixed"):
            return isinstance(value, str)
        if kind == "enum":
            return value in (definition.get("symbols") or [])
        if kind == "array":
            return isinstance(value, list)
        if kind in ("record", "error"):
            names = {item["name"] for item in definition.get("fields") or []}
            return isinstance(value, dict) and set(value) <= names
        if kind == "map":
            return isinstance(value, dict)
        return False

    def _union(self, branches: list, value: Any, namespace: str | None) -> Any:
        if value is None:
            return None
        for branch in branches:
            if self._matches(branch, value, namespace):
                return self._convert(branch, value, namespace)
        # Only a value no branch accepts as-is is read as a wrapper
        if isinstance(value, dict) and len(value) == 1:
            (key, inner), = value.items()
            for branch in branches:
                if key in self._branch_names(branch, namespace):
                    return self._convert(branch, inner, namespace)
        return value


def _json_ready(value: Any) -> Any:
    """Decoded native value with bytes rendered as ISO-8859-1 strings."""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    if isinstance(value, dict):
        return {k: _json_ready(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_ready(v) for v in value]
    return value


# =============================================================================
# Public codec
# =============================================================================


def validate_and_encode(compiled: CompiledSchema, text: str) -> bytes:
    """Validate a JSON document against the schema and encode it.

    Raises:
        PayloadValidationError: on malformed JSON or schema mismatch; no
            partial binary is ever returned
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise PayloadValidationError(f"invalid JSON: {e}", cause=e) from e

    native = _NativeConverter(compiled).convert(document)

    try:
        validate(native, compiled.parsed, raise_errors=True)
    except ValidationError as e:
        details = "; ".join(str(err) for err in e.errors) or str(e)
        raise PayloadValidationError(f"validation failed: {details}", cause=e) from e

    buffer = io.BytesIO()
    try:
        fastavro.schemaless_writer(buffer, compiled.parsed, native)
    except (ValueError, TypeError, KeyError, AttributeError, struct.error) as e:
        raise PayloadValidationError(f"encoding failed: {e}", cause=e) from e
    return buffer.getvalue()


def decode(compiled: CompiledSchema, payload: bytes) -> str:
    """Decode a schemaless Avro payload to indented JSON text."""
    try:
        native = fastavro.schemaless_reader(io.BytesIO(payload), compiled.parsed)
    except (EOFError, StopIteration, ValueError, TypeError, IndexError, KeyError, struct.error) as e:
        raise PayloadValidationError(f"decoding failed: {e}", cause=e) from e
    return json.dumps(_json_ready(native), indent=2, default=json_serializer, ensure_ascii=False)


def decode_message(compiled: CompiledSchema, data: bytes) -> str:
    """Strip the wire header and decode the payload."""
    _, payload = unframe(data)
    return decode(compiled, payload)


def encode_message(compiled: CompiledSchema, schema_id: int, text: str) -> bytes:
    """Validate, encode and frame a JSON document."""
    return frame(schema_id, validate_and_encode(compiled, text))
