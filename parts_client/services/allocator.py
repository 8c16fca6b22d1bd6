from __future__ import annotations

import logging
from typing import Any, List, Optional, Union

from parts_logic.core.naming import extract_number, format_part_name, format_sub_part_name, next_number_from_names
from parts_logic.models.errors import AllocationFailed, CatalogUnavailable
from parts_logic.models.types import Part, PartType, prefix_for

logger = logging.getLogger(__name__)


class PartIdAllocator:
    """Propose globally unique part names.

    `store` is either catalog store (`Repo` or `ApiRepo`). The allocator only
    computes names; persisting the part is a separate step by the caller, so
    an abandoned create flow leaves nothing behind.

    Numbering is one shared sequence per prefix across all projects.
    """

    def __init__(self, store: Any, use_sequence: bool = True):
        self.store = store
        self.use_sequence = use_sequence

    def next_number(self, part_type: Union[PartType, str]) -> int:
        """max(n for every <prefix><n> name) + 1, or 1 for an empty catalog.

        Names that do not match <prefix><digits> exactly are ignored. Store
        failures raise AllocationFailed rather than guessing 1.
        """
        prefix = prefix_for(part_type)
        try:
            names = self.store.query_part_names(prefix)
        except CatalogUnavailable as e:
            raise AllocationFailed(f"Cannot determine next number for prefix {prefix}: {e}") from e
        return next_number_from_names(names, prefix)

    def used_numbers(self, part_type: Union[PartType, str]) -> List[int]:
        """Sorted numbers already taken for the type's prefix, across all projects.

        Backs the manual number picker. Legacy names are ignored.
        """
        prefix = prefix_for(part_type)
        try:
            names = self.store.query_part_names(prefix)
        except CatalogUnavailable as e:
            raise AllocationFailed(f"Cannot list used numbers for prefix {prefix}: {e}") from e
        numbers = (extract_number(name, prefix) for name in names)
        return sorted({n for n in numbers if n is not None})

    def reserve_number(self, part_type: Union[PartType, str]) -> int:
        if not self.use_sequence:
            return self.next_number(part_type)
        prefix = prefix_for(part_type)
        try:
            return self.store.next_sequence(prefix)
        except CatalogUnavailable as e:
            raise AllocationFailed(f"Cannot reserve a number for prefix {prefix}: {e}") from e

    def propose_name(self, part_type: Union[PartType, str]) -> str:
        name = format_part_name(part_type, self.reserve_number(part_type))
        logger.info("Proposed part name %s", name)
        return name

    def allocate_sub_part_name(self, parent: Part, existing_sub_part_count: Optional[int] = None) -> str:
        """parent.name + the letter for the next sub-part (a, b, ..., z, aa, ...).

        Without an explicit count the parent's current sub-parts are counted in
        the store.
        """
        if existing_sub_part_count is None:
            try:
                existing_sub_part_count = self.store.count_sub_parts(parent.id)
            except CatalogUnavailable as e:
                raise AllocationFailed(f"Cannot count sub-parts of {parent.name}: {e}") from e
        return format_sub_part_name(parent.name, existing_sub_part_count)

    def name_exists(self, name: str) -> bool:
        return self.store.name_exists(name)
