"""Record flattening: project a record onto a schema as one tab-delimited line."""

import logging
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence

from impact_staging.transform.errors import FieldNotFoundError
from impact_staging.transform.normalize import (
    DEFAULT_OVERRIDES,
    OverrideRule,
    normalize_field,
)

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\t"

Accessor = Callable[[Any], Any]


def header_line(schema: Sequence[str], separator: str = FIELD_SEPARATOR) -> str:
    """Build the header line for a staging file."""
    return separator.join(schema)


class RecordFlattener:
    """Flatten records into single tab-delimited lines.

    The schema fixes which fields are emitted and in what order. Records are
    either mappings keyed by field name, or any object paired with an
    accessor table (field name -> callable returning the value).

    A flattener holds no mutable state once constructed, so one instance can
    be shared across threads.

    Example:
        >>> flattener = RecordFlattener(["ID", "NAME", "NOTE"])
        >>> flattener.flatten({"ID": "1", "NAME": "Jane  Doe", "NOTE": "line1\\nline2"})
        '1\\tJane Doe\\tline1 line2'
    """

    def __init__(
        self,
        schema: Iterable[str],
        accessors: Optional[Mapping[str, Accessor]] = None,
        overrides: Optional[Mapping[str, OverrideRule]] = None,
        id_field: Optional[str] = None,
        separator: str = FIELD_SEPARATOR,
    ):
        """Initialize flattener.

        Args:
            schema: Ordered, unique field names
            accessors: Optional field name -> accessor table for non-mapping records
            overrides: Field name -> override rule (defaults to DEFAULT_OVERRIDES)
            id_field: Field used to identify records in error messages
            separator: Field separator

        Raises:
            ValueError: If the schema is empty or has duplicate names
        """
        schema = tuple(schema)
        if not schema:
            raise ValueError("Schema must name at least one field")

        duplicates = sorted({name for name in schema if schema.count(name) > 1})
        if duplicates:
            raise ValueError(f"Schema has duplicate field names: {duplicates}")

        self.schema = schema
        self.accessors = MappingProxyType(dict(accessors)) if accessors is not None else None
        self.overrides = MappingProxyType(
            dict(DEFAULT_OVERRIDES if overrides is None else overrides)
        )
        self.id_field = id_field
        self.separator = separator

    @property
    def header(self) -> str:
        return header_line(self.schema, self.separator)

    def _lookup(self, record: Any, field_name: str, record_id: Optional[str]) -> Any:
        if self.accessors is not None:
            accessor = self.accessors.get(field_name)
            if accessor is None:
                raise FieldNotFoundError(field_name, record_id)
            try:
                return accessor(record)
            except (AttributeError, KeyError) as e:
                raise FieldNotFoundError(field_name, record_id) from e

        if not isinstance(record, Mapping):
            raise TypeError(
                f"{type(record).__name__} records need an accessor table"
            )
        try:
            return record[field_name]
        except KeyError:
            raise FieldNotFoundError(field_name, record_id) from None

    def record_id(self, record: Any) -> Optional[str]:
        """Best-effort identifier of a record, for diagnostics and routing."""
        if self.id_field is None:
            return None
        try:
            value = self._lookup(record, self.id_field, None)
        except (FieldNotFoundError, TypeError):
            return None
        return None if value is None else str(value)

    def flatten_field(self, record: Any, field_name: str, record_id: Optional[str] = None) -> str:
        """Resolve and normalize a single field of a record."""
        value = self._lookup(record, field_name, record_id)
        return normalize_field(field_name, value, self.overrides, record_id)

    def flatten(self, record: Any) -> str:
        """Flatten one record into a line.

        The line carries one value per schema field, in schema order, with no
        line terminator. Leading and trailing spaces of the whole line are
        stripped; separators are never stripped, so the field count always
        matches the schema.

        Raises:
            FieldNotFoundError: If the record cannot supply a schema field
            ConversionError: If a value has no text rendering
        """
        record_id = self.record_id(record)
        fields = [self.flatten_field(record, name, record_id) for name in self.schema]
        return self.separator.join(fields).strip(" ")

    __call__ = flatten


def flatten(
    schema: Sequence[str],
    record: Any,
    accessors: Optional[Mapping[str, Accessor]] = None,
    overrides: Optional[Mapping[str, OverrideRule]] = None,
) -> str:
    """Flatten a single record without keeping a flattener around."""
    return RecordFlattener(schema, accessors=accessors, overrides=overrides).flatten(record)


def flatten_records(
    flattener: RecordFlattener,
    records: Iterable[Any],
) -> Iterator[str]:
    """Flatten records lazily, preserving their order.

    Args:
        flattener: Configured flattener
        records: Records to flatten

    Yields:
        One line per record

    Raises:
        FlattenError: On the first record that fails; the failure is logged
            with the record index, field and record identifier
    """
    count = 0

    for i, record in enumerate(records):
        try:
            line = flattener.flatten(record)
        except Exception as e:
            logger.error(
                f"Error flattening record at index {i}: {e}",
                extra={
                    "record_index": i,
                    "field_name": getattr(e, "field_name", None),
                    "record_id": getattr(e, "record_id", None),
                    "error": str(e),
                }
            )
            raise
        count += 1
        yield line

    logger.debug(f"Flattened {count} records")
