"""Placeholder document generation from a compiled Avro schema.

The generated document has one value per field and, for schemas without
recursion through required fields, validates against the schema as is.
Fixed-size byte blocks are the exception: their placeholder is an empty
string that the operator must fill before sending.
"""

import copy
import json
from typing import Any, Mapping

from avrodesk.avro.schema import (
    NAMED_TYPES,
    PRIMITIVE_TYPES,
    CompiledSchema,
    full_name,
)
from core.errors.exceptions import SchemaError

PLACEHOLDERS: dict[str, Any] = {
    "null": None,
    "boolean": False,
    "int": 0,
    "long": 0,
    "float": 0.0,
    "double": 0.0,
    "bytes": "",
    "string": "",
}


def _namespace_of(name: str) -> str | None:
    return name.rsplit(".", 1)[0] if "." in name else None


def _is_null(branch: Any) -> bool:
    if isinstance(branch, dict):
        branch = branch.get("type")
    return branch == "null"


class TemplateGenerator:
    """Depth-first walk over a schema graph producing placeholder values.

    Named types currently being expanded on the walk path are tracked so
    that self-referential schemas terminate: a union skips alternatives
    that would re-enter such a type, and any other revisit yields null.
    """

    def __init__(self, compiled: CompiledSchema):
        self.compiled = compiled

    def generate(self) -> Any:
        return self._value(self.compiled.definition, None, frozenset())

    def _value(self, schema: Any, namespace: str | None, expanding: frozenset[str]) -> Any:
        if isinstance(schema, str):
            if schema in PRIMITIVE_TYPES:
                return PLACEHOLDERS[schema]
            definition, name = self.compiled.resolve(schema, namespace)
            return self._named(definition, name, expanding)

        if isinstance(schema, list):
            return self._union(schema, namespace, expanding)

        if isinstance(schema, dict):
            if "type" not in schema:
                raise SchemaError("complex type without a 'type' attribute")
            kind = schema["type"]
            if isinstance(kind, (dict, list)):
                return self._value(kind, namespace, expanding)
            if not isinstance(kind, str):
                raise SchemaError(f"invalid type discriminator {kind!r}")
            if kind in PRIMITIVE_TYPES:
                return PLACEHOLDERS[kind]
            if kind in NAMED_TYPES:
                name = schema.get("name")
                if not isinstance(name, str) or not name:
                    raise SchemaError(f"{kind} definition without a name")
                qualified = full_name(name, schema.get("namespace") or namespace)
                return self._named(schema, qualified, expanding)
            if kind == "array":
                return []
            if kind == "map":
                return {}
            definition, name = self.compiled.resolve(kind, namespace)
            return self._named(definition, name, expanding)

        raise SchemaError(f"unexpected schema node {schema!r}")

    def _union(self, branches: list, namespace: str | None, expanding: frozenset[str]) -> Any:
        for branch in branches:
            if _is_null(branch):
                continue
            ref = self._reference_name(branch, namespace)
            if ref is not None and ref in expanding:
                continue
            return self._value(branch, namespace, expanding)
        return None

    def _reference_name(self, branch: Any, namespace: str | None) -> str | None:
        """Full name of a union branch that is a named type, else None."""
        if isinstance(branch, str) and branch not in PRIMITIVE_TYPES:
            return self.compiled.resolve(branch, namespace)[1]
        if isinstance(branch, dict):
            kind = branch.get("type")
            if isinstance(kind, str) and kind in NAMED_TYPES and isinstance(branch.get("name"), str):
                return full_name(branch["name"], branch.get("namespace") or namespace)
        return None

    def _named(
        self, definition: Mapping[str, Any], name: str, expanding: frozenset[str]
    ) -> Any:
        if name in expanding:
            return None

        kind = definition.get("type")
        if kind == "enum":
            symbols = definition.get("symbols") or []
            return symbols[0] if symbols else ""
        if kind == "fixed":
            return ""
        if kind not in ("record", "error"):
            raise SchemaError(f"type {name!r} has unsupported kind {kind!r}")

        fields = definition.get("fields")
        if not isinstance(fields, list):
            raise SchemaError(f"record {name!r} has no 'fields' list")

        namespace = _namespace_of(name)
        inner = expanding | {name}
        document: dict[str, Any] = {}
        for item in fields:
            if not isinstance(item, dict) or "name" not in item or "type" not in item:
                raise SchemaError(f"record {name!r} has a field without 'name' and 'type'")
            if "default" in item:
                document[item["name"]] = copy.deepcopy(item["default"])
            else:
                document[item["name"]] = self._value(item["type"], namespace, inner)
        return document


def generate_template(compiled: CompiledSchema) -> Any:
    """Placeholder document for a compiled schema.

    Raises:
        SchemaError: if the schema's declared shape is structurally invalid
    """
    return TemplateGenerator(compiled).generate()


def render_template(compiled: CompiledSchema) -> str:
    """Placeholder document serialized as 2-space-indented JSON."""
    return json.dumps(generate_template(compiled), indent=2)
