import math
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from utils.exceptions import ValidationError


DEFAULT_DIMENSION_CM = 10


class Dimensions(BaseModel):
    """Package dimensions in cm."""

    length: float = Field(default=DEFAULT_DIMENSION_CM, gt=0)
    width: float = Field(default=DEFAULT_DIMENSION_CM, gt=0)
    height: float = Field(default=DEFAULT_DIMENSION_CM, gt=0)


def _resolve_dimensions(dims) -> Dimensions:
    if dims is None:
        return Dimensions()
    if isinstance(dims, Dimensions):
        return dims

    # partial dicts fall back to 10 cm for whatever is missing
    return Dimensions(
        **{key: value for key, value in dict(dims).items() if value is not None}
    )


def volumetric_weight(dims: Optional[Dimensions] = None, divisor: int = 5000) -> int:
    """
    Volumetric weight in kg.

    Formula: ceil((L x W x H) / divisor)
    """
    dims = _resolve_dimensions(dims)

    volume = (
        Decimal(str(dims.length)) * Decimal(str(dims.width)) * Decimal(str(dims.height))
    )
    return math.ceil(volume / Decimal(str(divisor)))


def chargeable_weight(
    actual_weight_kg: float, dims: Optional[Dimensions] = None, divisor: int = 5000
) -> float:
    """Greater of the actual and the volumetric weight, in kg."""
    if actual_weight_kg is None or actual_weight_kg < 0:
        raise ValidationError(fields={"weight": ["weight must be a non negative number"]})

    return max(float(actual_weight_kg), float(volumetric_weight(dims, divisor)))
