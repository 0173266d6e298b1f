from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# utils
from utils.cache import Token  # noqa: F401  re-exported for adapters
from utils.exceptions import CourierAdapterError
from utils.weight_calc import Dimensions


class ErrorKind(str, Enum):
    AUTH_FAILED = "AuthFailed"
    UPSTREAM_TIMEOUT = "UpstreamTimeout"
    UPSTREAM_REJECTED = "UpstreamRejected"
    INVALID_RESPONSE_SHAPE = "InvalidResponseShape"
    UPSTREAM_ERROR = "UpstreamError"


# what callers get to see instead of the courier's own error body
SANITIZED_MESSAGES = {
    ErrorKind.AUTH_FAILED: "Could not authenticate with the courier partner",
    ErrorKind.UPSTREAM_TIMEOUT: "The courier partner did not respond in time",
    ErrorKind.UPSTREAM_REJECTED: "The courier partner rejected the request",
    ErrorKind.INVALID_RESPONSE_SHAPE: "The courier partner sent an unexpected response",
    ErrorKind.UPSTREAM_ERROR: "The courier partner is currently unavailable",
}


def error_kind_of(error: CourierAdapterError) -> ErrorKind:
    try:
        return ErrorKind(error.kind)
    except ValueError:
        return ErrorKind.UPSTREAM_ERROR


class AddressModel(BaseModel):
    name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    email: Optional[str] = None


class ShipmentRequest(BaseModel):
    order_id: str
    seller_id: Optional[int] = None
    pickup: AddressModel
    consignee: AddressModel
    weight_kg: float = Field(gt=0)
    dims: Dimensions = Field(default_factory=Dimensions)
    # prepaid / cod
    payment_mode: str = "prepaid"
    cod_amount: Decimal = Decimal("0")
    declared_value: Decimal = Decimal("0")
    product_description: str = "General goods"
    quantity: int = 1
    service_type: Optional[str] = None

    @property
    def is_cod(self) -> bool:
        return self.payment_mode.lower() == "cod"


class RateRequest(BaseModel):
    origin_pincode: str
    destination_pincode: str
    weight_kg: float = Field(gt=0)
    dims: Optional[Dimensions] = None
    payment_mode: str = "prepaid"
    cod_amount: Decimal = Decimal("0")
    service_type: Optional[str] = None


class BookingResult(BaseModel):
    success: bool
    courier: str
    awb: Optional[str] = None
    tracking_id: Optional[str] = None
    tracking_url: Optional[str] = None
    raw_provider_response: Optional[Dict[str, Any]] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def failed(cls, courier: str, error: CourierAdapterError) -> "BookingResult":
        kind = error_kind_of(error)
        return cls(
            success=False,
            courier=courier,
            error_kind=kind,
            message=SANITIZED_MESSAGES[kind],
        )


class TrackingEvent(BaseModel):
    status: str
    status_detail: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    timestamp: Optional[datetime] = None


class TrackingResult(BaseModel):
    awb: str
    courier: str
    status: str
    status_detail: Optional[str] = None
    courier_status: Optional[str] = None
    location: Optional[str] = None
    timestamp: Optional[datetime] = None
    history: List[TrackingEvent] = []
    tracking_url: Optional[str] = None

    # set when the courier could not be reached
    degraded: bool = False
    manual_instructions: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class CancelResult(BaseModel):
    success: bool
    courier: str
    awb: str
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class PickupResult(BaseModel):
    success: bool
    courier: str
    awbs: List[str] = []
    pickup_id: Optional[str] = None
    scheduled_date: Optional[str] = None
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
