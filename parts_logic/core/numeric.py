from __future__ import annotations

import math
import re

from parts_logic.models.types import DimensionValue

# Leading decimal literal, e.g. "12.5mm" -> "12.5", " -3e2 " -> "-3e2".
_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_dimension_value(value: DimensionValue) -> float:
    """Parse a dimension value using the ParseAsZero policy.

    Numbers are taken as-is. Strings yield their leading decimal literal, so
    "12.5mm" reads as 12.5. Anything unparseable (categorical values such as
    "Circle", blanks, None, booleans, NaN, infinities) reads as 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        try:
            f = float(value)
        except OverflowError:
            return 0.0
    else:
        m = _LEADING_FLOAT_RE.match(str(value))
        if not m:
            return 0.0
        try:
            f = float(m.group(1))
        except ValueError:
            return 0.0
    if math.isnan(f) or math.isinf(f):
        return 0.0
    return f


def is_blank(value: DimensionValue) -> bool:
    """True for values a form treats as "not filled in"."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def percentage_difference(a: float, b: float) -> float | None:
    """|a - b| as a percentage of the larger magnitude; None when both are zero."""
    max_val = max(abs(a), abs(b))
    if max_val == 0:
        return None
    return abs(a - b) * 100.0 / max_val
