"""Schema registry access."""

from avrodesk.registry.client import SchemaRegistryClient, classify_registry_error
from avrodesk.registry.models import SchemaVersion

__all__ = ["SchemaRegistryClient", "SchemaVersion", "classify_registry_error"]
