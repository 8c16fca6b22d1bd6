from __future__ import annotations
from typing import List, Optional


class PartsError(RuntimeError):
    """Base class for part registry failures."""


class CatalogUnavailable(PartsError):
    """The part catalog could not be read or written."""


class AllocationConflict(PartsError):
    """An insert collided with an existing part name."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(message or f"Part name already exists: {name}")
        self.name = name


class AllocationFailed(PartsError):
    """No usable part name could be allocated."""


class InvalidDimensions(PartsError):
    def __init__(self, part_type: str, fields: List[str]):
        super().__init__(
            f"Please fill in all required dimensions for '{part_type}': {', '.join(fields)}"
        )
        self.part_type = part_type
        self.fields = list(fields)
