"""Tests for the quote facade over the rate card store."""

import asyncio
from decimal import Decimal

import pytest

from modules.serviceability.rate_engine import RateEngine
from modules.serviceability.serviceability_schema import ServiceUnavailable
from modules.serviceability.serviceability_service import ServiceabilityService
from shipping_partner.registry import AdapterRegistry
from utils.exceptions import NotFound, ValidationError


DELHI = "110001"
CHAPRA = "841301"


@pytest.fixture
def service(rate_card_service, quote_cache):
    return ServiceabilityService(
        rate_card_service=rate_card_service,
        rate_engine=RateEngine(fuel_surcharge_percent=0, tax_percent=18),
        registry=AdapterRegistry([], quote_cache=quote_cache),
        quote_cache=quote_cache,
    )


def _quote(service, seller_id, **kwargs):
    params = {
        "origin_pincode": DELHI,
        "destination_pincode": CHAPRA,
        "weight_kg": 1.2,
        "dims": {"length": 10, "width": 10, "height": 10},
    }
    params.update(kwargs)
    return asyncio.run(service.quote(seller_id, **params))


class TestQuote:
    def test_seller_override_scenario(
        self, service, rate_card_service, make_seller, make_rate_card
    ):
        seller_id = make_seller()
        make_rate_card()
        rate_card_service.create_or_update_override(
            seller_id,
            {
                "courier": "acme",
                "product_name": "Acme Surface",
                "mode": "Surface",
                "zone": "Rest of India",
                "base_rate": 25,
            },
            actor_id=1,
        )

        rates = asyncio.run(service.resolve_effective_rates(seller_id))
        assert rates[0].base_rate == Decimal("25")
        assert rates[0].additional_rate == Decimal("15")

        quotes = _quote(service, seller_id)

        assert len(quotes) == 1
        assert quotes[0].zone == "Rest of India"
        assert quotes[0].breakdown.subtotal == Decimal("40.00")
        assert quotes[0].total == 47
        assert quotes[0].is_override

    def test_no_card_in_seller_band(self, service, make_seller, make_rate_card):
        seller_id = make_seller(rate_band="RBX9")
        make_rate_card()

        result = _quote(service, seller_id)

        assert isinstance(result, ServiceUnavailable)
        assert result.zone == "Rest of India"
        assert result.origin_pincode == DELHI
        assert result.destination_pincode == CHAPRA

    def test_unserviceable_pincode(self, service, make_seller, make_rate_card, make_pincode):
        seller_id = make_seller()
        make_rate_card()
        make_pincode(CHAPRA, is_serviceable=False)

        result = _quote(service, seller_id)

        assert isinstance(result, ServiceUnavailable)
        assert CHAPRA in result.reason

    def test_pincode_records_default_to_serviceable(
        self, service, make_seller, make_rate_card, make_pincode
    ):
        seller_id = make_seller()
        make_rate_card()
        make_pincode(CHAPRA)

        assert not isinstance(_quote(service, seller_id), ServiceUnavailable)

    def test_unknown_seller(self, service):
        with pytest.raises(NotFound):
            _quote(service, 404)

    @pytest.mark.parametrize(
        "params, field",
        [
            ({"destination_pincode": "84130"}, "destination_pincode"),
            ({"origin_pincode": "abcdef"}, "origin_pincode"),
            ({"weight_kg": 0}, "weight_kg"),
            ({"cod_amount": -5}, "cod_amount"),
        ],
    )
    def test_bad_input(self, service, make_seller, params, field):
        seller_id = make_seller()

        with pytest.raises(ValidationError) as exc:
            _quote(service, seller_id, **params)
        assert field in exc.value.fields

    def test_repeat_quotes_are_served_from_cache(
        self, service, rate_card_service, make_seller, make_rate_card, monkeypatch
    ):
        seller_id = make_seller()
        make_rate_card()

        calls = []
        resolve = rate_card_service.resolve_effective_rates

        def counting_resolve(seller_id):
            calls.append(seller_id)
            return resolve(seller_id)

        monkeypatch.setattr(rate_card_service, "resolve_effective_rates", counting_resolve)

        first = _quote(service, seller_id)
        second = _quote(service, seller_id)
        with_cod = _quote(service, seller_id, cod_amount=500)

        assert first == second
        assert len(calls) == 2
        assert with_cod[0].total >= first[0].total

    def test_destination_state_is_not_served_from_another_zone(
        self, service, make_seller, make_rate_card
    ):
        seller_id = make_seller()
        make_rate_card()
        make_rate_card(courier="ne-express", zone="North East & Special Areas")

        by_pincode = _quote(service, seller_id, destination_pincode="313001")
        by_state = _quote(
            service, seller_id, destination_pincode="313001", destination_state="Assam"
        )

        assert [quote.zone for quote in by_pincode] == ["Rest of India"]
        assert [quote.zone for quote in by_state] == ["North East & Special Areas"]
        assert by_state[0].courier == "ne-express"

    def test_active_couriers(self, service, make_rate_card):
        make_rate_card()
        make_rate_card(courier="bluedart", product_name="Bluedart Air", mode="Air")

        assert asyncio.run(service.get_active_couriers()) == ["acme", "bluedart"]
