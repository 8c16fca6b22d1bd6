from __future__ import annotations

from typing import Dict, List, Union

from parts_logic.core.numeric import is_blank
from parts_logic.models.errors import InvalidDimensions
from parts_logic.models.types import ButtonShape, Dimensions, PartType, coerce_part_type

REQUIRED_FIELDS: Dict[PartType, List[str]] = {
    PartType.U_SHAPE: ["length", "radius", "depth", "oFillet", "iFillet"],
    PartType.STRAIGHT: ["length", "radius"],
    PartType.KNOB: ["frontRadius", "middleRadius", "backRadius", "depth", "middleToBackDepth"],
    PartType.BUTTON: ["shape", "thickness"],
    PartType.PUSH_PAD: ["length", "width", "radius"],
    PartType.COVER: [],
    PartType.SPECIAL_DESIGN: [],
    PartType.GADGET: [],
}


def required_fields(part_type: Union[PartType, str], dimensions: Dimensions | None = None) -> List[str]:
    """Required dimension fields for a type.

    Buttons depend on their shape: radius unless Rectangular, and
    length/width/fillet unless Circle. Shape-dependent fields are only added
    once a shape has been picked.
    """
    pt = coerce_part_type(part_type)
    fields = list(REQUIRED_FIELDS[pt])
    if pt is PartType.BUTTON:
        shape = (dimensions or {}).get("shape")
        if not is_blank(shape):
            if shape != ButtonShape.RECTANGULAR.value:
                fields.append("radius")
            if shape != ButtonShape.CIRCLE.value:
                fields.extend(["length", "width", "fillet"])
    return fields


def missing_required_fields(part_type: Union[PartType, str], dimensions: Dimensions | None) -> List[str]:
    dims = dimensions or {}
    return [f for f in required_fields(part_type, dims) if is_blank(dims.get(f))]


def validate_dimensions(part_type: Union[PartType, str], dimensions: Dimensions | None) -> None:
    """Raise InvalidDimensions if required fields are missing or a shape is unknown."""
    dims = dimensions or {}
    problems = missing_required_fields(part_type, dims)
    if coerce_part_type(part_type) is PartType.BUTTON:
        shape = dims.get("shape")
        if not is_blank(shape) and shape not in {s.value for s in ButtonShape}:
            problems.append("shape")
    if problems:
        raise InvalidDimensions(coerce_part_type(part_type).value, problems)
