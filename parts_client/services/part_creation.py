from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from parts_client.services.allocator import PartIdAllocator
from parts_logic.core.dimensions import validate_dimensions
from parts_logic.core.match import find_best_match, rank_matches
from parts_logic.core.naming import format_part_name
from parts_logic.models.errors import AllocationConflict, AllocationFailed, CatalogUnavailable
from parts_logic.models.types import Part, PartDraft, SimilarityCandidate

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2  # first try + one retry after a name conflict


class PartCreationService:
    """Create parts and sub-parts with allocated names.

    Flow for every create: validate dimensions -> allocate a name -> insert.
    If the insert hits a name conflict (another device won the race), the name
    is allocated again from fresh catalog state and the insert retried once.
    A second conflict raises AllocationFailed. Names are never overwritten.
    """

    def __init__(self, store: Any, allocator: Optional[PartIdAllocator] = None):
        self.store = store
        self.allocator = allocator or PartIdAllocator(store)

    def _insert_with_retry(self, allocate: Callable[[], str], draft: PartDraft, parent_part_id: Optional[str] = None) -> Part:
        last_conflict: Optional[AllocationConflict] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            name = allocate()
            try:
                part = self.store.insert_part(draft.to_payload(name, parent_part_id=parent_part_id))
            except AllocationConflict as e:
                logger.warning("Part name %s already taken (attempt %d of %d)", name, attempt, MAX_ATTEMPTS)
                last_conflict = e
                continue
            logger.info("Created part %s (%s)", part.name, part.id)
            return part
        raise AllocationFailed(
            f"Could not allocate a free part name after {MAX_ATTEMPTS} attempts; please try again."
        ) from last_conflict

    def create_part(
        self,
        draft: PartDraft,
        explicit_name: Optional[str] = None,
        number: Optional[int] = None,
    ) -> Part:
        """Create a top-level part.

        With `explicit_name`, or a `number` picked from the free ones
        (named <prefix><number>), the caller chose the name: it is checked and
        inserted as-is, and a collision raises AllocationConflict (no retry,
        no renaming).
        """
        if explicit_name and number is not None:
            raise ValueError("Give either an explicit name or a part number, not both.")
        validate_dimensions(draft.type, draft.dimensions)

        if number is not None:
            explicit_name = format_part_name(draft.type, number)
        if explicit_name:
            name = explicit_name.strip()
            if self.allocator.name_exists(name):
                raise AllocationConflict(
                    name,
                    f'A part named "{name}" already exists. Choose a different name or use the existing part instead.',
                )
            return self.store.insert_part(draft.to_payload(name))

        return self._insert_with_retry(lambda: self.allocator.propose_name(draft.type), draft)

    def create_sub_part(self, parent_part_id: str, draft: PartDraft) -> Part:
        validate_dimensions(draft.type, draft.dimensions)

        parent = self.store.get_part(parent_part_id)
        if parent is None:
            raise KeyError(f"Parent part not found: {parent_part_id}")

        return self._insert_with_retry(
            lambda: self._allocate_sub_part_name(parent),
            draft,
            parent_part_id=parent.id,
        )

    def _allocate_sub_part_name(self, parent: Part) -> str:
        # Letters follow the sub-part count, so deleting any sub-part but the
        # last leaves the next letter held by a sibling for good.
        name = self.allocator.allocate_sub_part_name(parent)
        try:
            siblings = self.store.query_sub_parts(parent.id)
        except CatalogUnavailable as e:
            raise AllocationFailed(f"Cannot list sub-parts of {parent.name}: {e}") from e
        if any(p.name == name for p in siblings):
            raise AllocationFailed(
                f"Sub-part name {name} is already used by another sub-part of {parent.name}. "
                f"A sub-part of {parent.name} was deleted, so the next letter is taken; retrying will not help."
            )
        return name

    def suggest_existing(self, draft: PartDraft, catalog: Optional[List[Part]] = None) -> Optional[SimilarityCandidate]:
        """Closest same-type part for a draft, for the "use existing part" prompt."""
        if catalog is None:
            catalog = self.store.query_parts_by_type(draft.type)
        return find_best_match(draft.type, draft.dimensions, catalog)

    def suggestions(self, draft: PartDraft, catalog: List[Part], max_suggestions: int = 5) -> List[SimilarityCandidate]:
        return rank_matches(draft.type, draft.dimensions, catalog, max_suggestions=max_suggestions)
