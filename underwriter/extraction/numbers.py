"""Parsing of numeric cell values as they appear in financial documents."""

import math
import re

_PAREN_RE = re.compile(r"^\((.*)\)$")
_IGNORED_RE = re.compile(r"[\s$,]")
_NUMBER_RE = re.compile(r"^-?(?:\d+\.?\d*|\.\d+)$")


def parse_numeric(value: object) -> float | None:
    """Parse a cell into a float, or None when it does not hold a number.

    Currency symbols, thousands separators and whitespace are ignored, and
    accounting negatives are honoured: "(1,200)" and "$(1,200)" are -1200.
    Cells mixing letters and digits ("Unit 101", "12 units") are not numbers.

    Examples:
        >>> parse_numeric("$1,234.50")
        1234.5
        >>> parse_numeric("(1,200)")
        -1200.0
        >>> parse_numeric("n/a") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    text = _IGNORED_RE.sub("", str(value))
    negative = False
    match = _PAREN_RE.match(text)
    if match:
        negative = True
        text = match.group(1)
    if not _NUMBER_RE.match(text):
        return None
    number = float(text)
    if negative and number > 0:
        number = -number
    return number


def is_numeric(value: object) -> bool:
    return parse_numeric(value) is not None
