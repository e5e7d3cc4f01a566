"""Avro schema compilation, template generation and payload encoding."""

from avrodesk.avro.codec import (
    HEADER_SIZE,
    decode,
    decode_message,
    encode_message,
    frame,
    unframe,
    validate_and_encode,
)
from avrodesk.avro.schema import CompiledSchema, compile_schema
from avrodesk.avro.template import generate_template, render_template

__all__ = [
    "CompiledSchema",
    "compile_schema",
    "generate_template",
    "render_template",
    "validate_and_encode",
    "decode",
    "decode_message",
    "encode_message",
    "frame",
    "unframe",
    "HEADER_SIZE",
]
