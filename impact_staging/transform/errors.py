"""Errors raised while flattening records into staging lines."""

from typing import Any, Optional


class FlattenError(Exception):
    """Base class for record flattening failures."""

    def __init__(self, field_name: str, record_id: Optional[str], message: str):
        self.field_name = field_name
        self.record_id = record_id
        super().__init__(f"{message} (field={field_name}, record={record_id or '<unknown>'})")


class FieldNotFoundError(FlattenError):
    """Raised when a record cannot supply a field named by the schema."""

    def __init__(self, field_name: str, record_id: Optional[str] = None):
        super().__init__(field_name, record_id, f"Field not found: {field_name}")


class ConversionError(FlattenError):
    """Raised when a raw value has no text rendering."""

    def __init__(self, field_name: str, value: Any, record_id: Optional[str] = None):
        self.value = value
        super().__init__(
            field_name,
            record_id,
            f"Cannot render {type(value).__name__} value as text: {value!r}",
        )
