from decimal import Decimal
from enum import Enum
from typing import Optional, List, Dict

from pydantic import BaseModel, Field, field_validator

# schema
from schema.base import DBBaseModel


DEFAULT_RATE_BAND = "RBX1"


class RateCardMode(str, Enum):
    SURFACE = "Surface"
    AIR = "Air"
    EXPRESS = "Express"
    STANDARD = "Standard"
    PREMIUM = "Premium"


class RateCardZone(str, Enum):
    WITHIN_CITY = "Within City"
    WITHIN_STATE = "Within State"
    WITHIN_REGION = "Within Region"
    METRO_TO_METRO = "Metro to Metro"
    REST_OF_INDIA = "Rest of India"
    SPECIAL_ZONE = "Special Zone"
    NORTH_EAST_SPECIAL = "North East & Special Areas"


# fields a seller override may patch, in merge order
OVERRIDABLE_FIELDS = (
    "base_rate",
    "additional_rate",
    "cod_flat_amount",
    "cod_percent",
    "rto_charge",
    "minimum_billable_weight",
)


class RateCardTuple(BaseModel):
    courier: str = Field(min_length=1, max_length=100)
    product_name: str = Field(min_length=1, max_length=150)
    mode: RateCardMode
    zone: RateCardZone

    @field_validator("courier", "product_name")
    @classmethod
    def strip_text(cls, value: str):
        return value.strip()

    def key(self):
        return (self.courier, self.product_name, self.mode.value, self.zone.value)


class RateCardUpsertModel(RateCardTuple):
    rate_band: str = DEFAULT_RATE_BAND
    base_rate: Decimal = Field(ge=0)
    additional_rate: Decimal = Field(ge=0)
    cod_flat_amount: Decimal = Field(default=Decimal("0"), ge=0)
    cod_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    rto_charge: Decimal = Field(default=Decimal("0"), ge=0)
    minimum_billable_weight: Decimal = Field(default=Decimal("0.5"), ge=0)
    is_active: bool = True


class OverridePatchModel(RateCardTuple):
    """Sparse patch of a base card; a None field inherits the base value."""

    base_rate: Optional[Decimal] = Field(default=None, ge=0)
    additional_rate: Optional[Decimal] = Field(default=None, ge=0)
    cod_flat_amount: Optional[Decimal] = Field(default=None, ge=0)
    cod_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    rto_charge: Optional[Decimal] = Field(default=None, ge=0)
    minimum_billable_weight: Optional[Decimal] = Field(default=None, ge=0)
    is_active: bool = True
    notes: Optional[str] = Field(default=None, max_length=500)


class RateCardModel(DBBaseModel):
    courier: str
    product_name: str
    mode: str
    zone: str
    rate_band: str
    base_rate: Decimal
    additional_rate: Decimal
    cod_flat_amount: Decimal
    cod_percent: Decimal
    rto_charge: Decimal
    minimum_billable_weight: Decimal
    is_active: bool

    def key(self):
        return (self.courier, self.product_name, self.mode, self.zone)


class SellerRateOverrideModel(DBBaseModel):
    seller_id: int
    base_rate_card_id: int
    courier: str
    product_name: str
    mode: str
    zone: str
    base_rate: Optional[Decimal] = None
    additional_rate: Optional[Decimal] = None
    cod_flat_amount: Optional[Decimal] = None
    cod_percent: Optional[Decimal] = None
    rto_charge: Optional[Decimal] = None
    minimum_billable_weight: Optional[Decimal] = None
    is_active: bool
    created_by: int
    updated_by: Optional[int] = None
    notes: Optional[str] = None

    def key(self):
        return (self.courier, self.product_name, self.mode, self.zone)


class SellerModel(DBBaseModel):
    business_name: str
    rate_band: Optional[str] = None


class EffectiveRate(BaseModel):
    courier: str
    product_name: str
    mode: str
    zone: str
    rate_band: str
    base_rate: Decimal
    additional_rate: Decimal
    cod_flat_amount: Decimal
    cod_percent: Decimal
    rto_charge: Decimal
    minimum_billable_weight: Decimal

    # provenance
    is_override: bool = False
    override_id: Optional[int] = None
    base_rate_card_id: int
    notes: Optional[str] = None

    @classmethod
    def merge(
        cls,
        base: RateCardModel,
        override: Optional[SellerRateOverrideModel] = None,
    ) -> "EffectiveRate":
        """Field by field merge; override values win unless they are None."""
        values = {field: getattr(base, field) for field in OVERRIDABLE_FIELDS}

        if override is not None:
            for field in OVERRIDABLE_FIELDS:
                patched = getattr(override, field)
                if patched is not None:
                    values[field] = patched

        return cls(
            courier=base.courier,
            product_name=base.product_name,
            mode=base.mode,
            zone=base.zone,
            rate_band=base.rate_band,
            is_override=override is not None,
            override_id=override.id if override is not None else None,
            base_rate_card_id=base.id,
            notes=override.notes if override is not None else None,
            **values,
        )


class RateCardStatisticsModel(BaseModel):
    total_rate_cards: int
    active_rate_cards: int
    active_couriers: List[str]
    by_courier: Dict[str, int]
    by_zone: Dict[str, int]
    by_mode: Dict[str, int]
