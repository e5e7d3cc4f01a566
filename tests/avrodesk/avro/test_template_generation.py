"""Tests for placeholder document generation."""

import json

import pytest

from avrodesk.avro.codec import validate_and_encode
from avrodesk.avro.schema import CompiledSchema, compile_schema
from avrodesk.avro.template import generate_template, render_template
from core.errors.exceptions import SchemaError


def _record(*fields, name="R"):
    return json.dumps({"type": "record", "name": name, "fields": list(fields)})


class TestPrimitives:
    @pytest.mark.parametrize(
        "avro_type,expected",
        [
            ("null", None),
            ("boolean", False),
            ("int", 0),
            ("long", 0),
            ("float", 0.0),
            ("double", 0.0),
            ("bytes", ""),
            ("string", ""),
        ],
    )
    def test_placeholder(self, avro_type, expected):
        document = generate_template(compile_schema(_record({"name": "f", "type": avro_type})))
        assert document == {"f": expected}


class TestRecords:
    def test_user_template(self, user_schema):
        assert generate_template(user_schema) == {
            "id": 0,
            "name": "",
            "email": None,
            "status": "ACTIVE",
            "tags": [],
            "score": 1.5,
        }

    def test_field_default_is_used(self):
        schema = compile_schema(
            _record({"name": "n", "type": "int", "default": 7}, {"name": "s", "type": "string", "default": "x"})
        )
        assert generate_template(schema) == {"n": 7, "s": "x"}

    def test_nested_record(self):
        inner = {"type": "record", "name": "Inner", "fields": [{"name": "v", "type": "long"}]}
        schema = compile_schema(_record({"name": "inner", "type": inner}))
        assert generate_template(schema) == {"inner": {"v": 0}}

    def test_map_and_array_are_empty(self):
        schema = compile_schema(
            _record(
                {"name": "m", "type": {"type": "map", "values": "int"}},
                {"name": "a", "type": {"type": "array", "items": "int"}},
            )
        )
        assert generate_template(schema) == {"m": {}, "a": []}

    def test_enum_first_symbol(self):
        enum = {"type": "enum", "name": "E", "symbols": ["A", "B", "C"]}
        assert generate_template(compile_schema(_record({"name": "e", "type": enum}))) == {"e": "A"}

    def test_logical_type_uses_primitive_placeholder(self):
        schema = compile_schema(
            _record({"name": "at", "type": {"type": "long", "logicalType": "timestamp-millis"}})
        )
        assert generate_template(schema) == {"at": 0}

    def test_complex_type_without_discriminator(self):
        definition = {"type": "record", "name": "R", "fields": [{"name": "f", "type": {"items": "int"}}]}
        compiled = CompiledSchema(text="", definition=definition, parsed=None, named_types={"R": definition})
        with pytest.raises(SchemaError, match="without a 'type'"):
            generate_template(compiled)

    def test_fixed_is_empty_string(self):
        fixed = {"type": "fixed", "name": "F", "size": 4}
        assert generate_template(compile_schema(_record({"name": "f", "type": fixed}))) == {"f": ""}

    def test_reference_to_earlier_named_type(self):
        enum = {"type": "enum", "name": "E", "symbols": ["X", "Y"]}
        schema = compile_schema(_record({"name": "a", "type": enum}, {"name": "b", "type": "E"}))
        assert generate_template(schema) == {"a": "X", "b": "X"}


class TestUnions:
    def test_nullable_string_picks_string(self):
        schema = compile_schema(_record({"name": "u", "type": ["null", "string"]}))
        assert generate_template(schema) == {"u": ""}

    def test_only_null(self):
        schema = compile_schema(_record({"name": "u", "type": ["null"]}))
        assert generate_template(schema) == {"u": None}

    def test_first_non_null_branch(self):
        schema = compile_schema(_record({"name": "u", "type": ["null", "int", "string"]}))
        assert generate_template(schema) == {"u": 0}


class TestRecursion:
    def test_self_reference_through_nullable_union(self):
        schema = compile_schema(
            _record(
                {"name": "value", "type": "int"},
                {"name": "next", "type": ["null", "Node"]},
                name="Node",
            )
        )
        assert generate_template(schema) == {"value": 0, "next": None}

    def test_self_reference_through_array(self):
        schema = compile_schema(
            _record(
                {"name": "label", "type": "string"},
                {"name": "children", "type": {"type": "array", "items": "Tree"}},
                name="Tree",
            )
        )
        assert generate_template(schema) == {"label": "", "children": []}

    def test_terminates_on_required_self_reference(self):
        # Not encodable, but generation must stop
        definition = {
            "type": "record",
            "name": "Loop",
            "fields": [{"name": "self", "type": "Loop"}],
        }
        compiled = CompiledSchema(
            text=json.dumps(definition),
            definition=definition,
            parsed=None,
            named_types={"Loop": definition},
        )
        assert generate_template(compiled) == {"self": None}


class TestValidity:
    def test_generated_template_encodes(self, user_schema):
        payload = validate_and_encode(user_schema, render_template(user_schema))
        assert isinstance(payload, bytes)
        assert len(payload) > 0

    def test_render_is_indented(self, user_schema):
        assert render_template(user_schema).startswith('{\n  "id": 0')

    def test_structural_error(self):
        definition = {"type": "record", "name": "Bad"}
        compiled = CompiledSchema(text="", definition=definition, parsed=None, named_types={"Bad": definition})
        with pytest.raises(SchemaError, match="no 'fields' list"):
            generate_template(compiled)
