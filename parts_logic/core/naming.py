from __future__ import annotations

import re
from typing import Iterable, Optional, Union

from parts_logic.models.types import PartType, prefix_for


def format_part_name(part_type: Union[PartType, str], number: int) -> str:
    """Return the canonical part name: prefix + number, no zero padding.

    Examples: U1, U23, K104
    """
    if int(number) < 1:
        raise ValueError(f"Part numbers start at 1, got {number}.")
    return f"{prefix_for(part_type)}{int(number)}"


def extract_number(name: str, prefix: str) -> Optional[int]:
    """Digit suffix of `name` if it is exactly <prefix><digits>, else None.

    Legacy names (U-legacy-7, U8a, u3, ...) return None.
    """
    m = re.fullmatch(rf"{re.escape(prefix)}([0-9]+)", name or "")
    return int(m.group(1)) if m else None


def next_number_from_names(names: Iterable[str], prefix: str) -> int:
    numbers = [n for n in (extract_number(name, prefix) for name in names) if n is not None]
    return max(numbers) + 1 if numbers else 1


def sub_part_suffix(index: int) -> str:
    """Letter suffix for the index-th sub-part of a parent.

    0 -> a, 25 -> z, then 26 -> aa, 27 -> ab, ... (bijective base 26, so the
    sequence never runs out of lowercase letters).
    """
    if index < 0:
        raise ValueError(f"Sub-part index cannot be negative, got {index}.")
    letters = []
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(ord("a") + rem))
    return "".join(reversed(letters))


def format_sub_part_name(parent_name: str, existing_sub_part_count: int) -> str:
    return f"{parent_name}{sub_part_suffix(existing_sub_part_count)}"
