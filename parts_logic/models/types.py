from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

DimensionValue = Union[str, int, float, None]
Dimensions = Dict[str, DimensionValue]


class PartType(str, Enum):
    U_SHAPE = "U shape"
    STRAIGHT = "Straight"
    KNOB = "Knob"
    BUTTON = "Button"
    PUSH_PAD = "Push Pad"
    COVER = "Cover"
    SPECIAL_DESIGN = "X - Special Design"
    GADGET = "Gadget"


# One prefix per type, unique across types.
PART_TYPE_PREFIX: Dict[PartType, str] = {
    PartType.U_SHAPE: "U",
    PartType.STRAIGHT: "S",
    PartType.KNOB: "K",
    PartType.BUTTON: "B",
    PartType.PUSH_PAD: "P",
    PartType.COVER: "C",
    PartType.SPECIAL_DESIGN: "X",
    PartType.GADGET: "G",
}

PREFIX_PART_TYPE: Dict[str, PartType] = {v: k for k, v in PART_TYPE_PREFIX.items()}


def coerce_part_type(value: Union[PartType, str]) -> PartType:
    if isinstance(value, PartType):
        return value
    try:
        return PartType((value or "").strip())
    except ValueError:
        raise ValueError(f"Unknown part type '{value}'.") from None


def prefix_for(part_type: Union[PartType, str]) -> str:
    return PART_TYPE_PREFIX[coerce_part_type(part_type)]


def type_for_prefix(prefix: str) -> PartType:
    p = (prefix or "").strip().upper()
    if p not in PREFIX_PART_TYPE:
        raise ValueError(f"Unknown part prefix '{prefix}'.")
    return PREFIX_PART_TYPE[p]


class PartStatus(str, Enum):
    MEASURED = "measured"
    DESIGNED = "designed"
    TESTED = "tested"
    PRINTED = "printed"
    INSTALLED = "installed"

    @property
    def stage(self) -> int:
        """Zero-based position in the production lifecycle."""
        return list(PartStatus).index(self)


class ButtonShape(str, Enum):
    CIRCLE = "Circle"
    RECTANGULAR = "Rectangular"
    SLOT = "Slot"


@dataclass
class Part:
    id: str
    name: str
    type: PartType
    dimensions: Dimensions = field(default_factory=dict)
    status: PartStatus = PartStatus.MEASURED
    project_id: Optional[str] = None

    # Set only for sub-parts.
    parent_part_id: Optional[str] = None

    description: Optional[str] = None
    designer: Optional[str] = None
    cad_drawing: Optional[str] = None
    pictures: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @property
    def is_sub_part(self) -> bool:
        return self.parent_part_id is not None

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Part":
        """Build a Part from a backend/SQLite row dict."""
        created = rec.get("created_at")
        if isinstance(created, str) and created:
            created = datetime.fromisoformat(created)
        parent = rec.get("parent_part_id")
        return cls(
            id=str(rec["id"]),
            name=rec["name"],
            type=coerce_part_type(rec["type"]),
            dimensions=dict(rec.get("dimensions") or {}),
            status=PartStatus(rec.get("status") or PartStatus.MEASURED.value),
            project_id=rec.get("project_id"),
            parent_part_id=str(parent) if parent else None,
            description=rec.get("description"),
            designer=rec.get("designer"),
            cad_drawing=rec.get("cad_drawing"),
            pictures=list(rec.get("pictures") or []),
            created_at=created or None,
        )


@dataclass
class PartDraft:
    """Everything a caller supplies for a new part; the name is allocated."""
    type: PartType
    dimensions: Dimensions = field(default_factory=dict)
    status: PartStatus = PartStatus.MEASURED
    project_id: Optional[str] = None
    description: Optional[str] = None
    designer: Optional[str] = None
    cad_drawing: Optional[str] = None
    pictures: List[str] = field(default_factory=list)

    def copy_from(self, part: Part) -> None:
        """Take over the non-identity fields of an existing (matched) part."""
        self.description = part.description
        self.designer = part.designer
        self.cad_drawing = part.cad_drawing
        self.pictures = list(part.pictures)
        self.dimensions = dict(part.dimensions)

    def to_payload(self, name: str, parent_part_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            "name": name,
            "type": coerce_part_type(self.type).value,
            "dimensions": dict(self.dimensions),
            "status": PartStatus(self.status).value,
            "project_id": self.project_id,
            "parent_part_id": parent_part_id,
            "description": self.description,
            "designer": self.designer,
            "cad_drawing": self.cad_drawing,
            "pictures": list(self.pictures),
        }


@dataclass
class SimilarityCandidate:
    part: Part
    score: float
