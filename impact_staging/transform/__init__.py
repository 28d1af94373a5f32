"""Record transformation modules.

Handles:
- Value rendering and whitespace normalization
- Field override rules
- Schema-driven record flattening
- New/old line routing
"""

from .errors import FlattenError, FieldNotFoundError, ConversionError
from .normalize import (
    render_value,
    normalize_whitespace,
    normalize_field,
    blank_sentinel,
    DEFAULT_OVERRIDES,
    STOP_DATE_SENTINEL,
)
from .flatten import RecordFlattener, flatten, flatten_records, header_line
from .routing import Bucket, RoutedLine, LineRouter, classify

__all__ = [
    # Errors
    "FlattenError",
    "FieldNotFoundError",
    "ConversionError",
    # Normalization
    "render_value",
    "normalize_whitespace",
    "normalize_field",
    "blank_sentinel",
    "DEFAULT_OVERRIDES",
    "STOP_DATE_SENTINEL",
    # Flattening
    "RecordFlattener",
    "flatten",
    "flatten_records",
    "header_line",
    # Routing
    "Bucket",
    "RoutedLine",
    "LineRouter",
    "classify",
]
