"""Tests for pricing effective rates."""

from decimal import Decimal

import pytest

from modules.rate_card.rate_card_schema import EffectiveRate
from modules.serviceability.rate_engine import RateEngine, delivery_estimate
from modules.serviceability.serviceability_schema import ServiceUnavailable
from utils.zone import Zone, classify_zone


def _rate(**fields):
    values = {
        "courier": "acme",
        "product_name": "Acme Surface",
        "mode": "Surface",
        "zone": "Rest of India",
        "rate_band": "RBX1",
        "base_rate": Decimal("30"),
        "additional_rate": Decimal("15"),
        "cod_flat_amount": Decimal("0"),
        "cod_percent": Decimal("0"),
        "rto_charge": Decimal("0"),
        "minimum_billable_weight": Decimal("0.5"),
        "base_rate_card_id": 1,
    }
    values.update(fields)
    return EffectiveRate(**values)


@pytest.fixture
def engine():
    return RateEngine(fuel_surcharge_percent=0, tax_percent=18)


class TestPriceRate:
    def test_overridden_base_rate_scenario(self, engine):
        rate = _rate(base_rate=Decimal("25"), is_override=True, override_id=3)

        quote = engine.price_rate(rate, 1.2)

        assert quote.breakdown.extra_kg == 1
        assert quote.breakdown.weight_charge == Decimal("15.00")
        assert quote.breakdown.subtotal == Decimal("40.00")
        # 40 x 1.18 = 47.2
        assert quote.total == 47
        assert quote.is_override

    def test_fuel_surcharge_and_tax_compound(self):
        engine = RateEngine(fuel_surcharge_percent=10, tax_percent=18)
        quote = engine.price_rate(_rate(base_rate=Decimal("25")), 1.2)

        # 40 x 1.10 x 1.18 = 51.92
        assert quote.breakdown.fuel_surcharge == Decimal("4.00")
        assert quote.breakdown.tax == Decimal("7.92")
        assert quote.total == 52

    def test_rounds_half_up_once_on_total(self):
        engine = RateEngine(fuel_surcharge_percent=0, tax_percent=0)
        quote = engine.price_rate(_rate(base_rate=Decimal("10.25"), additional_rate=Decimal("0.25")), 2)

        # 10.25 + 0.25 = 10.50
        assert quote.total == 11

    def test_minimum_billable_weight(self, engine):
        quote = engine.price_rate(_rate(minimum_billable_weight=Decimal("2")), 0.3)

        assert quote.breakdown.billable_weight == Decimal("2")
        assert quote.breakdown.extra_kg == 1

    def test_light_parcel_has_no_extra_kg(self, engine):
        quote = engine.price_rate(_rate(), 0.2)

        assert quote.breakdown.extra_kg == 0
        assert quote.breakdown.weight_charge == Decimal("0.00")

    def test_cod_charge_takes_the_larger_of_flat_and_percent(self, engine):
        rate = _rate(cod_flat_amount=Decimal("30"), cod_percent=Decimal("2"))

        assert engine.price_rate(rate, 1, cod_amount=1000).breakdown.cod_charge == Decimal("30.00")
        assert engine.price_rate(rate, 1, cod_amount=2000).breakdown.cod_charge == Decimal("40.00")
        assert engine.price_rate(rate, 1, cod_amount=0).breakdown.cod_charge == Decimal("0.00")

    def test_rto_charge_per_billable_kg(self, engine):
        rate = _rate(rto_charge=Decimal("20"))

        without_rto = engine.price_rate(rate, 1.2)
        with_rto = engine.price_rate(rate, 1.2, include_rto=True)

        assert without_rto.breakdown.rto_charge == Decimal("0.00")
        assert with_rto.breakdown.rto_charge == Decimal("40.00")
        assert with_rto.total > without_rto.total

    def test_delivery_estimate(self, engine):
        assert engine.price_rate(_rate(), 1).delivery_estimate == "4-6 days"
        assert delivery_estimate("Within City", "Air") == "1-2 days"
        assert delivery_estimate("Somewhere", "Surface") == "4-6 days"


class TestPrice:
    def test_filters_by_zone_and_sorts_by_total(self, engine):
        rates = [
            _rate(courier="pricey", base_rate=Decimal("80")),
            _rate(courier="cheap", base_rate=Decimal("20")),
            _rate(courier="metro", zone="Metro to Metro", base_rate=Decimal("5")),
        ]

        quotes = engine.price(rates, Zone.REST_OF_INDIA, 1.0)

        assert [quote.courier for quote in quotes] == ["cheap", "pricey"]
        assert quotes[0].zone == "Rest of India"

    @pytest.mark.parametrize(
        "origin, destination, zone",
        [("226001", "211001", "Within State"), ("110001", "141001", "Within Region")],
    )
    def test_state_and_region_cards_are_quoted(self, engine, origin, destination, zone):
        rates = [_rate(), _rate(courier="regional", zone=zone)]

        quotes = engine.price(rates, classify_zone(origin, destination), 1.0)

        assert [quote.courier for quote in quotes] == ["regional"]
        assert quotes[0].delivery_estimate == delivery_estimate(zone, "Surface")

    def test_filters_by_service_type(self, engine):
        rates = [_rate(), _rate(courier="bluedart", mode="Air", base_rate=Decimal("60"))]

        quotes = engine.price(rates, "Rest of India", 1.0, service_type="Air")

        assert [quote.courier for quote in quotes] == ["bluedart"]

    def test_no_matching_card_is_service_unavailable(self, engine):
        result = engine.price([_rate(zone="Metro to Metro")], Zone.REST_OF_INDIA, 1.0)

        assert isinstance(result, ServiceUnavailable)
        assert result.available is False
        assert result.zone == "Rest of India"

    def test_no_rates_at_all_is_service_unavailable(self, engine):
        assert isinstance(engine.price([], Zone.METRO, 1.0), ServiceUnavailable)

    def test_express_card_is_used_when_present(self, engine):
        rates = [_rate(), _rate(courier="bluedart", mode="Express", base_rate=Decimal("50"))]

        quotes = engine.price(rates, Zone.REST_OF_INDIA, 1.0, service_type="Express")

        assert [quote.courier for quote in quotes] == ["bluedart"]
        assert not quotes[0].is_legacy_express
        assert quotes[0].breakdown.express_multiplier == Decimal("1")

    def test_express_falls_back_to_surface_at_one_and_a_half(self, engine):
        quotes = engine.price([_rate()], Zone.REST_OF_INDIA, 1.2, service_type="Express")

        quote = quotes[0]
        assert quote.is_legacy_express
        assert quote.mode == "Express"
        assert quote.breakdown.express_multiplier == Decimal("1.5")
        # (30 + 15) x 1.5 = 67.5, x 1.18 = 79.65
        assert quote.breakdown.subtotal == Decimal("67.50")
        assert quote.total == 80

    def test_express_without_any_fallback_card(self, engine):
        result = engine.price([_rate(mode="Air")], Zone.REST_OF_INDIA, 1.0, service_type="Express")
        assert isinstance(result, ServiceUnavailable)

    def test_total_is_monotonic_in_weight(self, engine):
        rate = _rate(cod_flat_amount=Decimal("25"), rto_charge=Decimal("10"))
        weights = [0.1, 0.5, 0.9, 1.0, 1.01, 2.5, 3.0, 10.0]

        totals = [
            engine.price_rate(rate, weight, cod_amount=500, include_rto=True).total
            for weight in weights
        ]

        assert totals == sorted(totals)
