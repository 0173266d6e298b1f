"""
Zone classification for a pickup / delivery pincode pair.

Everything here is pure: the prefix table in data/pincode_prefix_mapping.py is
the only source consulted. Database pincode records are layered on top by the
serviceability service.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from data.pincode_prefix_mapping import (
    NORTH_EAST_STATES,
    STATE_REGIONS,
    pincode_prefix_mapping,
)


class Zone(str, Enum):
    WITHIN_CITY = "WITHIN_CITY"
    METRO = "METRO"
    NORTH_EAST = "NORTH_EAST"
    SPECIAL = "SPECIAL"
    WITHIN_STATE = "WITHIN_STATE"
    WITHIN_REGION = "WITHIN_REGION"
    REST_OF_INDIA = "REST_OF_INDIA"

    @property
    def rate_card_zone(self) -> str:
        """Zone name as stored on rate cards."""
        return RATE_CARD_ZONES[self]


RATE_CARD_ZONES = {
    Zone.WITHIN_CITY: "Within City",
    Zone.METRO: "Metro to Metro",
    Zone.NORTH_EAST: "North East & Special Areas",
    Zone.SPECIAL: "Special Zone",
    Zone.WITHIN_STATE: "Within State",
    Zone.WITHIN_REGION: "Within Region",
    Zone.REST_OF_INDIA: "Rest of India",
}

# zone used whenever a pincode can not be classified
DEFAULT_ZONE = Zone.REST_OF_INDIA


@dataclass(frozen=True)
class PincodeInfo:
    pincode: str
    prefix: Optional[str]
    city: str = "Unknown"
    state: str = "Unknown"
    is_metro: bool = False
    is_special: bool = False
    is_serviceable: bool = True

    @property
    def is_known(self) -> bool:
        return self.prefix is not None and self.prefix in pincode_prefix_mapping


def normalize_pincode(pincode) -> Optional[str]:
    """Return the 6 digit pincode as a string, or None when malformed."""
    if pincode is None:
        return None

    value = str(pincode).strip()
    if len(value) != 6 or not value.isdigit() or value.startswith("0"):
        return None

    return value


def lookup_pincode(pincode, is_serviceable: bool = True) -> PincodeInfo:
    normalized = normalize_pincode(pincode)
    if normalized is None:
        return PincodeInfo(
            pincode=str(pincode), prefix=None, is_serviceable=is_serviceable
        )

    prefix = normalized[:3]
    mapping = pincode_prefix_mapping.get(prefix)
    if mapping is None:
        return PincodeInfo(
            pincode=normalized, prefix=prefix, is_serviceable=is_serviceable
        )

    return PincodeInfo(
        pincode=normalized,
        prefix=prefix,
        city=mapping["city"],
        state=mapping["state"],
        is_metro=mapping["is_metro"],
        is_special=mapping["is_special"],
        is_serviceable=is_serviceable,
    )


def classify_zone(
    origin_pincode, destination_pincode, destination_state: Optional[str] = None
) -> Zone:
    """
    Map an origin / destination pincode pair to a pricing zone.

    First match wins:
        1. origin is a metro prefix and destination has the same prefix -> WITHIN_CITY
        2. destination is a metro prefix -> METRO
        3. destination state is a North-East state -> NORTH_EAST
        4. destination prefix is flagged special (J&K, Ladakh, Himachal, islands) -> SPECIAL
        5. anything else, including unknown or malformed pincodes -> REST_OF_INDIA,
           except that known pincodes in one state are WITHIN_STATE and known
           pincodes in one region (North, West, South, East, Central) are
           WITHIN_REGION
    """
    origin = lookup_pincode(origin_pincode)
    destination = lookup_pincode(destination_pincode)

    if (
        origin.is_metro
        and destination.prefix is not None
        and origin.prefix == destination.prefix
    ):
        return Zone.WITHIN_CITY

    if destination.is_metro:
        return Zone.METRO

    state = destination_state or destination.state
    if state and state.strip().title() in _NORTH_EAST_TITLES:
        return Zone.NORTH_EAST

    if destination.is_special:
        return Zone.SPECIAL

    if not (origin.is_known and destination.is_known):
        return DEFAULT_ZONE

    origin_state = origin.state.lower()
    target_state = state.strip().lower()
    if origin_state == target_state:
        return Zone.WITHIN_STATE

    origin_region = _REGIONS.get(origin_state)
    if origin_region is not None and origin_region == _REGIONS.get(target_state):
        return Zone.WITHIN_REGION

    return DEFAULT_ZONE


_NORTH_EAST_TITLES = frozenset(state.title() for state in NORTH_EAST_STATES)
_REGIONS = {state.lower(): region for state, region in STATE_REGIONS.items()}
