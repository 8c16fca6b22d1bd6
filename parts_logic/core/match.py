from __future__ import annotations

from typing import Iterable, List, Optional, Union

from parts_logic.core.similarity import similarity
from parts_logic.models.types import Dimensions, Part, PartType, SimilarityCandidate, coerce_part_type

SIMILARITY_THRESHOLD = 95.0


def _same_type(part_type: Union[PartType, str], part: Part) -> bool:
    try:
        return coerce_part_type(part.type) is coerce_part_type(part_type)
    except ValueError:
        return False


def find_best_match(
    part_type: Optional[Union[PartType, str]],
    dimensions: Optional[Dimensions],
    catalog: Iterable[Part],
    threshold: float = SIMILARITY_THRESHOLD,
) -> Optional[SimilarityCandidate]:
    """Return the closest existing part of the same type, or None.

    Matching policy:
    - Only parts of the candidate's type are considered.
    - A part qualifies only if its score is strictly above `threshold`.
    - Ties keep the first part encountered in `catalog`.

    Pure and cheap; meant to be re-run on every edit of type or dimensions.
    """
    if not part_type or not dimensions:
        return None

    best: Optional[SimilarityCandidate] = None
    for part in catalog:
        if not _same_type(part_type, part):
            continue
        s = similarity(dimensions, part.dimensions or {})
        if s > threshold and (best is None or s > best.score):
            best = SimilarityCandidate(part=part, score=s)
    return best


def rank_matches(
    part_type: Optional[Union[PartType, str]],
    dimensions: Optional[Dimensions],
    catalog: Iterable[Part],
    threshold: float = SIMILARITY_THRESHOLD,
    max_suggestions: int = 5,
) -> List[SimilarityCandidate]:
    """All same-type parts scoring above `threshold`, best first.

    Equal scores keep catalog order, so the head of the list is always the
    part `find_best_match` would return.
    """
    if not part_type or not dimensions:
        return []

    candidates: List[SimilarityCandidate] = []
    for part in catalog:
        if not _same_type(part_type, part):
            continue
        s = similarity(dimensions, part.dimensions or {})
        if s > threshold:
            candidates.append(SimilarityCandidate(part=part, score=s))

    candidates.sort(key=lambda c: c.score, reverse=True)
    return candidates[:max_suggestions]
