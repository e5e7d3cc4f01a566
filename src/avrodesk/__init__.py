"""avrodesk: browse registry schemas, draft Avro payloads, publish and consume them."""

__version__ = "0.1.0"
