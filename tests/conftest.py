"""
pytest configuration for avrodesk tests.

Adds src directory to Python path for imports, keeps configuration and
draft files out of the real home directory, and provides shared schema
fixtures.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from avrodesk.avro.schema import compile_schema  # noqa: E402
from avrodesk.registry.models import SchemaVersion  # noqa: E402
from avrodesk.workflow.state import SchemaContext  # noqa: E402

USER_SCHEMA = """
{
  "type": "record",
  "name": "User",
  "namespace": "com.example",
  "fields": [
    {"name": "id", "type": "long"},
    {"name": "name", "type": "string"},
    {"name": "email", "type": ["null", "string"], "default": null},
    {"name": "status", "type": {"type": "enum", "name": "Status", "symbols": ["ACTIVE", "DISABLED"]}},
    {"name": "tags", "type": {"type": "array", "items": "string"}},
    {"name": "score", "type": "double", "default": 1.5}
  ]
}
"""


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point config lookups at a temporary directory."""
    monkeypatch.setenv("AVRODESK_CONFIG", str(tmp_path / "config.yaml"))
    for var in (
        "SCHEMA_REGISTRY_URL",
        "SCHEMA_REGISTRY_API_KEY",
        "SCHEMA_REGISTRY_API_SECRET",
        "KAFKA_BOOTSTRAP_SERVERS",
        "KAFKA_SASL_USERNAME",
        "KAFKA_SASL_PASSWORD",
        "KAFKA_SECURITY_PROTOCOL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield tmp_path


@pytest.fixture
def user_schema_text():
    return USER_SCHEMA


@pytest.fixture
def user_schema():
    return compile_schema(USER_SCHEMA)


@pytest.fixture
def user_context():
    version = SchemaVersion(subject="users-value", version=3, id=42, schema=USER_SCHEMA)
    return SchemaContext.from_version(version)
