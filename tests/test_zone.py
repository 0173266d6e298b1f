"""Tests for pincode lookup and zone classification."""

import pytest

from utils.zone import (
    DEFAULT_ZONE,
    Zone,
    classify_zone,
    lookup_pincode,
    normalize_pincode,
)


DELHI = "110001"
MUMBAI = "400001"
LUCKNOW = "226001"
GURGAON = "122001"
GUWAHATI = "781001"
GANGTOK = "737101"
SRINAGAR = "190001"
CHAPRA = "841301"
PRAYAGRAJ = "211001"
LUDHIANA = "141001"


class TestNormalizePincode:
    def test_accepts_six_digits(self):
        assert normalize_pincode("110001") == "110001"

    def test_accepts_integers_and_whitespace(self):
        assert normalize_pincode(110001) == "110001"
        assert normalize_pincode(" 400001 ") == "400001"

    @pytest.mark.parametrize("value", [None, "", "11001", "1100011", "11000A", "011001"])
    def test_rejects_malformed(self, value):
        assert normalize_pincode(value) is None


class TestLookupPincode:
    def test_known_metro_prefix(self):
        info = lookup_pincode(MUMBAI)
        assert info.prefix == "400"
        assert info.state == "Maharashtra"
        assert info.is_metro
        assert info.is_known

    def test_unknown_prefix(self):
        info = lookup_pincode("999999")
        assert info.prefix == "999"
        assert not info.is_known
        assert info.city == "Unknown"

    def test_malformed_pincode_has_no_prefix(self):
        info = lookup_pincode("12AB56")
        assert info.prefix is None
        assert not info.is_known

    def test_serviceable_unless_marked(self):
        assert lookup_pincode(DELHI).is_serviceable
        assert not lookup_pincode(DELHI, is_serviceable=False).is_serviceable


class TestClassifyZone:
    def test_same_metro_prefix_is_within_city(self):
        assert classify_zone(DELHI, "110020") == Zone.WITHIN_CITY

    def test_metro_destination(self):
        assert classify_zone(DELHI, MUMBAI) == Zone.METRO
        assert classify_zone(CHAPRA, MUMBAI) == Zone.METRO

    def test_same_non_metro_prefix_is_not_within_city(self):
        assert classify_zone(GURGAON, "122002") == Zone.WITHIN_STATE

    def test_same_state(self):
        assert classify_zone(LUCKNOW, PRAYAGRAJ) == Zone.WITHIN_STATE
        assert classify_zone(CHAPRA, "800020") != Zone.WITHIN_STATE  # Patna is a metro

    def test_same_region(self):
        assert classify_zone(GURGAON, LUDHIANA) == Zone.WITHIN_REGION
        assert classify_zone(DELHI, LUDHIANA) == Zone.WITHIN_REGION

    def test_region_uses_destination_state_argument(self):
        assert classify_zone(DELHI, CHAPRA, destination_state="Punjab") == Zone.WITHIN_REGION
        assert classify_zone(DELHI, LUDHIANA, destination_state="Bihar") == Zone.REST_OF_INDIA

    def test_unknown_origin_is_not_within_state(self):
        assert classify_zone("999999", LUDHIANA) == Zone.REST_OF_INDIA

    def test_north_east_destination(self):
        assert classify_zone(DELHI, GUWAHATI) == Zone.NORTH_EAST

    def test_sikkim_is_north_east_before_special(self):
        assert classify_zone(DELHI, GANGTOK) == Zone.NORTH_EAST

    def test_destination_state_argument_wins(self):
        assert classify_zone(DELHI, CHAPRA, destination_state="meghalaya") == Zone.NORTH_EAST

    def test_special_destination(self):
        assert classify_zone(DELHI, SRINAGAR) == Zone.SPECIAL

    def test_everything_else_is_rest_of_india(self):
        assert classify_zone(DELHI, CHAPRA) == Zone.REST_OF_INDIA

    @pytest.mark.parametrize("destination", ["999999", "12345", None, "abcdef"])
    def test_unknown_or_malformed_defaults(self, destination):
        assert classify_zone(DELHI, destination) == DEFAULT_ZONE == Zone.REST_OF_INDIA

    def test_every_zone_is_reachable(self):
        pairs = [
            (DELHI, "110020"),
            (LUCKNOW, MUMBAI),
            (DELHI, GUWAHATI),
            (DELHI, SRINAGAR),
            (LUCKNOW, PRAYAGRAJ),
            (DELHI, LUDHIANA),
            (DELHI, CHAPRA),
        ]
        assert {classify_zone(origin, dest) for origin, dest in pairs} == set(Zone)

    def test_is_deterministic(self):
        results = {classify_zone(DELHI, GUWAHATI) for _ in range(10)}
        assert results == {Zone.NORTH_EAST}


class TestRateCardZone:
    def test_maps_to_rate_card_vocabulary(self):
        assert Zone.WITHIN_CITY.rate_card_zone == "Within City"
        assert Zone.METRO.rate_card_zone == "Metro to Metro"
        assert Zone.NORTH_EAST.rate_card_zone == "North East & Special Areas"
        assert Zone.SPECIAL.rate_card_zone == "Special Zone"
        assert Zone.WITHIN_STATE.rate_card_zone == "Within State"
        assert Zone.WITHIN_REGION.rate_card_zone == "Within Region"
        assert Zone.REST_OF_INDIA.rate_card_zone == "Rest of India"
