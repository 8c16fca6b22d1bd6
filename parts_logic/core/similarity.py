from __future__ import annotations

from typing import List

from parts_logic.core.numeric import is_blank, parse_dimension_value, percentage_difference
from parts_logic.models.types import Dimensions


def shared_keys(a: Dimensions, b: Dimensions) -> List[str]:
    """Keys of `a` that are filled in on both sides, in `a`'s order."""
    return [k for k in a if k in b and not is_blank(a[k]) and not is_blank(b[k])]


def similarity(a: Dimensions, b: Dimensions) -> float:
    """Percentage similarity (0-100) between two dimension sets.

    Policy:
    - Only keys filled in on both sides are compared. Keys present on one side
      only are ignored, so the score is not a true distance.
    - Values are parsed with the ParseAsZero policy.
    - A key where both sides read as zero carries no information and is not
      counted (it is not a perfect match).
    - Score = max(0, 100 - mean percentage difference over counted keys), or 0
      when no key was counted.

    Never raises; malformed input just contributes nothing.
    """
    keys = shared_keys(a or {}, b or {})
    if not keys:
        return 0.0

    total = 0.0
    counted = 0
    for key in keys:
        v1 = parse_dimension_value(a[key])
        v2 = parse_dimension_value(b[key])
        if v1 == 0 and v2 == 0:
            continue
        diff = percentage_difference(v1, v2)
        if diff is None:
            continue
        total += diff
        counted += 1

    if counted == 0:
        return 0.0
    return max(0.0, 100.0 - total / counted)
