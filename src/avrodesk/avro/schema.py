"""Avro schema compilation.

A compiled schema keeps three views of one schema document:

- the parsed JSON definition, walked by the template generator
- an index of named types (records, enums, fixed) by full name
- the fastavro-parsed schema used for validation and binary encoding
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import fastavro
from fastavro.schema import SchemaParseException

from core.errors.exceptions import SchemaError

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = frozenset(
    {"null", "boolean", "int", "long", "float", "double", "bytes", "string"}
)
NAMED_TYPES = frozenset({"record", "error", "enum", "fixed"})


def full_name(name: str, namespace: str | None) -> str:
    """Qualify a type name with the enclosing namespace unless already dotted."""
    if "." in name or not namespace:
        return name
    return f"{namespace}.{name}"


def type_namespace(name: str, declared: str | None, enclosing: str | None) -> str | None:
    """Namespace that applies inside a named type's definition."""
    if "." in name:
        return name.rsplit(".", 1)[0]
    if declared is not None:
        return declared or None
    return enclosing


@dataclass(frozen=True)
class CompiledSchema:
    """Resolved, traversable representation of one Avro schema document."""

    text: str
    definition: Any
    parsed: Any
    named_types: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def resolve(self, name: str, namespace: str | None) -> tuple[Mapping[str, Any], str]:
        """Look up a named reference.

        Returns:
            The definition and its full name.

        Raises:
            SchemaError: if the name does not resolve within this document
        """
        for candidate in (full_name(name, namespace), name):
            definition = self.named_types.get(candidate)
            if definition is not None:
                return definition, candidate
        raise SchemaError(f"unknown type reference {name!r}")

    @property
    def pretty(self) -> str:
        return json.dumps(self.definition, indent=2)


def _index_named_types(
    schema: Any, namespace: str | None, index: dict[str, Mapping[str, Any]]
) -> None:
    if isinstance(schema, list):
        for branch in schema:
            _index_named_types(branch, namespace, index)
        return
    if not isinstance(schema, dict):
        return

    kind = schema.get("type")
    if isinstance(kind, str) and kind in NAMED_TYPES:
        name = schema.get("name")
        if not isinstance(name, str) or not name:
            raise SchemaError(f"{kind} definition without a name")
        qualified = full_name(name, schema.get("namespace") or namespace)
        if qualified in index:
            raise SchemaError(f"type {qualified!r} is defined more than once")
        index[qualified] = schema
        namespace = type_namespace(name, schema.get("namespace"), namespace)

    if kind in ("record", "error"):
        for item in schema.get("fields") or []:
            if isinstance(item, dict):
                _index_named_types(item.get("type"), namespace, index)
    elif kind == "array":
        _index_named_types(schema.get("items"), namespace, index)
    elif kind == "map":
        _index_named_types(schema.get("values"), namespace, index)
    elif isinstance(kind, (dict, list)):
        # {"type": {"type": "record", ...}} wrapping
        _index_named_types(kind, namespace, index)


def compile_schema(text: str) -> CompiledSchema:
    """Parse and compile Avro schema text.

    Raises:
        SchemaError: if the text is not JSON or not a valid Avro schema
    """
    try:
        definition = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"invalid schema JSON: {e}", cause=e) from e

    index: dict[str, Mapping[str, Any]] = {}
    _index_named_types(definition, None, index)

    try:
        parsed = fastavro.parse_schema(copy.deepcopy(definition))
    except (SchemaParseException, ValueError, KeyError, TypeError, AttributeError) as e:
        raise SchemaError(f"invalid Avro schema: {e}", cause=e) from e

    logger.debug("Compiled schema with %d named types", len(index))
    return CompiledSchema(text=text, definition=definition, parsed=parsed, named_types=index)
