from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

# utils
from utils.weight_calc import Dimensions
from utils.zone import normalize_pincode


class QuoteRequestModel(BaseModel):
    seller_id: int
    origin_pincode: str
    destination_pincode: str
    weight_kg: float = Field(gt=0)
    dims: Optional[Dimensions] = None
    service_type: Optional[str] = None
    cod_amount: Decimal = Field(default=Decimal("0"), ge=0)
    include_rto: bool = False
    destination_state: Optional[str] = None

    @field_validator("origin_pincode", "destination_pincode", mode="before")
    @classmethod
    def validate_pincode(cls, value):
        pincode = normalize_pincode(value)
        if pincode is None:
            raise ValueError("pincode must be a 6 digit number")
        return pincode

    @field_validator("service_type")
    @classmethod
    def normalize_service_type(cls, value):
        if value is None or not value.strip():
            return None
        return value.strip().capitalize()


class RateBreakdown(BaseModel):
    billable_weight: Decimal
    extra_kg: int
    base_rate: Decimal
    weight_charge: Decimal
    cod_charge: Decimal
    rto_charge: Decimal
    express_multiplier: Decimal = Decimal("1")
    subtotal: Decimal
    fuel_surcharge: Decimal
    tax: Decimal


class CourierQuote(BaseModel):
    courier: str
    product_name: Optional[str] = None
    mode: str
    zone: str
    breakdown: Optional[RateBreakdown] = None
    total: int
    delivery_estimate: Optional[str] = None

    # "rate_card" or "courier_api" (legacy adapter pricing)
    source: str = "rate_card"
    is_override: bool = False
    is_legacy_express: bool = False


class ServiceUnavailable(BaseModel):
    """No courier serves this route; an expected outcome, not an error."""

    available: Literal[False] = False
    reason: str
    zone: Optional[str] = None
    service_type: Optional[str] = None
    origin_pincode: Optional[str] = None
    destination_pincode: Optional[str] = None


QuoteResult = Union[List[CourierQuote], ServiceUnavailable]


class RouteModel(BaseModel):
    origin_pincode: str
    destination_pincode: str
    destination_state: Optional[str] = None

    @field_validator("origin_pincode", "destination_pincode", mode="before")
    @classmethod
    def validate_pincode(cls, value):
        pincode = normalize_pincode(value)
        if pincode is None:
            raise ValueError("pincode must be a 6 digit number")
        return pincode
