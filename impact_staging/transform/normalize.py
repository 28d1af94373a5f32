"""Value rendering, whitespace normalization and field override rules."""

import logging
import math
import re
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from impact_staging.transform.errors import ConversionError

logger = logging.getLogger(__name__)

# Any run of whitespace, including tabs and line breaks
_WHITESPACE_RUN = re.compile(r"\s+")

# Upstream systems write -1 when a stop date does not apply
STOP_DATE_SENTINEL = "-1"

OverrideRule = Callable[[str], str]


def render_value(
    value: Any,
    field_name: str = "",
    record_id: Optional[str] = None,
) -> str:
    """Render a raw record value as its canonical text.

    Args:
        value: Raw value taken from a record
        field_name: Field the value belongs to (for error reporting)
        record_id: Identifier of the owning record (for error reporting)

    Returns:
        Text form of the value. None renders as an empty string, numbers
        render in plain decimal notation independent of locale, booleans
        render as "true"/"false", dates render in ISO 8601.

    Raises:
        ConversionError: If the value type has no text rendering, or the
            number is not finite
    """
    if value is None:
        return ""

    if isinstance(value, str):
        return value

    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if not math.isfinite(value):
            raise ConversionError(field_name, value, record_id)
        text = repr(value)
        if "e" in text or "E" in text:
            text = format(Decimal(text), "f")
        return text

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ConversionError(field_name, value, record_id)
        return format(value, "f")

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    raise ConversionError(field_name, value, record_id)


def normalize_whitespace(text: str) -> str:
    """Replace every run of whitespace with a single space.

    Example:
        >>> normalize_whitespace("line1\\n\\tline2  end")
        'line1 line2 end'
    """
    return _WHITESPACE_RUN.sub(" ", text)


def blank_sentinel(sentinel: str) -> OverrideRule:
    """Build a rule that replaces an exact sentinel value with an empty string."""
    def rule(value: str) -> str:
        return "" if value == sentinel else value

    rule.__name__ = f"blank_sentinel_{sentinel}"
    return rule


DEFAULT_OVERRIDES: Mapping[str, OverrideRule] = MappingProxyType({
    "STOP_DATE": blank_sentinel(STOP_DATE_SENTINEL),
})


def normalize_field(
    field_name: str,
    value: Any,
    overrides: Mapping[str, OverrideRule] = DEFAULT_OVERRIDES,
    record_id: Optional[str] = None,
) -> str:
    """Render, normalize and override a single field value.

    Override rules are keyed by field name and run after whitespace
    normalization.

    Args:
        field_name: Name of the field
        value: Raw value
        overrides: Field name -> override rule
        record_id: Identifier of the owning record (for error reporting)

    Returns:
        Text value safe to place in a tab-delimited line
    """
    text = normalize_whitespace(render_value(value, field_name, record_id))

    rule = overrides.get(field_name)
    if rule is not None:
        text = rule(text)

    return text
