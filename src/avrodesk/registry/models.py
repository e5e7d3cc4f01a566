"""Schema registry response models."""

from pydantic import BaseModel, Field


class SchemaVersion(BaseModel):
    """One registered schema version as returned by /subjects/{subject}/versions/latest.

    Attributes:
        subject: Subject the version belongs to
        version: Version number within the subject
        id: Registry-wide schema id (written into the wire header)
        schema_type: AVRO, JSON or PROTOBUF; the registry omits it for AVRO
        schema_text: Raw schema definition

    Example:
        >>> SchemaVersion.model_validate(
        ...     {"subject": "orders-value", "version": 3, "id": 42, "schema": '"string"'}
        ... ).schema_type
        'AVRO'
    """

    subject: str = Field(..., min_length=1)
    version: int = Field(..., ge=1)
    id: int = Field(..., ge=0)
    schema_type: str = Field(default="AVRO", alias="schemaType")
    schema_text: str = Field(..., alias="schema")

    model_config = {"populate_by_name": True}

    @property
    def is_avro(self) -> bool:
        return self.schema_type.upper() == "AVRO"
