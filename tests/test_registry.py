"""Tests for the adapter registry: fan-out quoting and error wrapping."""

import asyncio
from datetime import timedelta
from typing import Dict, List

import httpx
import pytest

from modules.serviceability.serviceability_schema import CourierQuote, RouteModel
from modules.shipping_partner.shipping_partner_schema import (
    BookingResult,
    CancelResult,
    PickupResult,
    RateRequest,
    ShipmentRequest,
    Token,
    TrackingResult,
)
from shipping_partner.base import CourierAdapter
from shipping_partner.delhivery.delhivery import Delhivery
from shipping_partner.registry import AdapterRegistry
from shipping_partner.xpressbees.xpressbees import Xpressbees
from utils.cache import InMemoryCacheBackend, TokenCache
from utils.datetime import utc_now
from utils.exceptions import (
    NotFound,
    ProviderUnavailable,
    UpstreamRejected,
)


ROUTE = RouteModel(origin_pincode="110001", destination_pincode="841301")


class FakeAdapter(CourierAdapter):
    """In-process courier; calculate_rate behaviour is set per instance."""

    courier_id = "fake"
    display_name = "Fake"

    def __init__(self, courier_id="fake", total=100, delay=0, error=None, **kwargs):
        kwargs.setdefault("credentials", {})
        super().__init__(**kwargs)
        self.courier_id = courier_id
        self.total = total
        self.delay = delay
        self.error = error
        self.rate_calls = 0
        self.booked: List[ShipmentRequest] = []

    async def _login(self) -> Token:
        return Token(access_token="t", expires_at=utc_now() + timedelta(hours=1))

    def _auth_headers(self, token: Token) -> Dict[str, str]:
        return {}

    async def _rate(self, request: RateRequest) -> CourierQuote:
        self.rate_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self._fallback_quote(request, self.total)

    async def _book(self, request):
        self.booked.append(request)
        return BookingResult(success=True, courier=self.courier_id, awb="AWB1")

    async def _track(self, awb):
        return TrackingResult(awb=awb, courier=self.courier_id, status="in transit")

    async def _cancel(self, awb):
        return CancelResult(success=True, courier=self.courier_id, awb=awb)

    async def _pickup(self, awbs):
        return PickupResult(success=True, courier=self.courier_id, awbs=awbs)


def _registry(*adapters, quote_cache=None, timeout=1):
    return AdapterRegistry(adapters, quote_cache=quote_cache, timeout=timeout)


class TestQuoteAll:
    def test_sorted_by_total(self, quote_cache):
        registry = _registry(
            FakeAdapter("beta", total=90),
            FakeAdapter("alpha", total=120),
            quote_cache=quote_cache,
        )

        quotes = asyncio.run(registry.quote_all(ROUTE, 1.2))

        assert [quote.courier for quote in quotes] == ["beta", "alpha"]
        assert quotes[0].zone == "Rest of India"

    def test_slow_and_failing_couriers_are_excluded(self, quote_cache):
        registry = _registry(
            FakeAdapter("fast", total=90),
            FakeAdapter("slow", delay=1),
            FakeAdapter("broken", error=UpstreamRejected("broken", 500, "boom")),
            quote_cache=quote_cache,
            timeout=0.05,
        )

        quotes = asyncio.run(registry.quote_all(ROUTE, 1.2))

        assert [quote.courier for quote in quotes] == ["fast"]

    def test_malformed_courier_is_excluded(self, quote_cache):
        registry = _registry(
            FakeAdapter("good", total=100),
            FakeAdapter("buggy", error=KeyError("total")),
            FakeAdapter("garbled", error=TypeError("'NoneType' is not subscriptable")),
            quote_cache=quote_cache,
        )

        quotes = asyncio.run(registry.quote_all(ROUTE, 1.2))

        assert [quote.courier for quote in quotes] == ["good"]
        assert quotes[0].total == 100

    def test_unreadable_delhivery_rate_is_excluded(self, quote_cache):
        def rate(request):
            return httpx.Response(200, json=[{"total_amount": None}])

        delhivery = Delhivery(
            credentials={"token": "abc"},
            token_cache=TokenCache(InMemoryCacheBackend()),
            http_client=httpx.AsyncClient(
                transport=httpx.MockTransport(rate), base_url=Delhivery.base_url
            ),
        )
        registry = _registry(
            delhivery, FakeAdapter("good", total=100), quote_cache=quote_cache
        )

        quotes = asyncio.run(registry.quote_all(ROUTE, 1.2))

        assert [quote.courier for quote in quotes] == ["good"]

    def test_rate_card_quotes_take_precedence(self, quote_cache):
        adapter = FakeAdapter("acme", total=500)
        registry = _registry(adapter, quote_cache=quote_cache)
        card_quote = CourierQuote(
            courier="acme", mode="Surface", zone="Rest of India", total=47
        )

        quotes = asyncio.run(
            registry.quote_all(ROUTE, 1.2, rate_card_quotes={"acme": [card_quote]})
        )

        assert [quote.total for quote in quotes] == [47]
        assert adapter.rate_calls == 0

    def test_live_quotes_are_cached(self, quote_cache):
        adapter = FakeAdapter("acme", total=80)
        registry = _registry(adapter, quote_cache=quote_cache)

        async def scenario():
            await registry.quote_all(ROUTE, 1.2, seller_id=1)
            await registry.quote_all(ROUTE, 1.2, seller_id=1)
            await registry.quote_all(ROUTE, 1.2, seller_id=2)

        asyncio.run(scenario())

        assert adapter.rate_calls == 2

    def test_live_quotes_are_cached_per_zone(self, quote_cache):
        adapter = FakeAdapter("acme", total=80)
        registry = _registry(adapter, quote_cache=quote_cache)
        north_east = RouteModel(
            origin_pincode="110001",
            destination_pincode="841301",
            destination_state="Assam",
        )

        async def scenario():
            return (
                await registry.quote_all(ROUTE, 1.2, seller_id=1),
                await registry.quote_all(north_east, 1.2, seller_id=1),
            )

        rest, ne = asyncio.run(scenario())

        assert adapter.rate_calls == 2
        assert rest[0].zone == "Rest of India"
        assert ne[0].zone == "North East & Special Areas"

    def test_no_couriers(self, quote_cache):
        assert asyncio.run(_registry(quote_cache=quote_cache).quote_all(ROUTE, 1)) == []


class TestLookupAndWrapping:
    def test_unknown_courier(self):
        with pytest.raises(NotFound):
            _registry(FakeAdapter("acme")).get("nobody")

    def test_active_couriers_sorted(self):
        registry = _registry(FakeAdapter("zeta"), FakeAdapter("alpha"))
        assert registry.get_active_couriers() == ["alpha", "zeta"]

    def test_rate_error_is_provider_unavailable(self):
        error = UpstreamRejected("acme", 502, "bad gateway from 10.0.0.7")
        registry = _registry(FakeAdapter("acme", error=error))
        request = RateRequest(
            origin_pincode="110001", destination_pincode="841301", weight_kg=1
        )

        with pytest.raises(ProviderUnavailable) as exc_info:
            asyncio.run(registry.quote_with_courier("acme", request))

        assert exc_info.value.courier == "acme"
        assert exc_info.value.detail is error
        assert "10.0.0.7" not in exc_info.value.message

    def test_booking_is_delegated_once(self):
        adapter = FakeAdapter("acme")
        registry = _registry(adapter)
        address = {
            "name": "Acme",
            "phone": "9876543210",
            "address": "12 Industrial Area",
            "city": "Delhi",
            "state": "Delhi",
            "pincode": "110001",
        }
        request = ShipmentRequest(
            order_id="ORD-1", pickup=address, consignee=address, weight_kg=1
        )

        result = asyncio.run(registry.book_with_courier("acme", request))

        assert result.awb == "AWB1"
        assert len(adapter.booked) == 1


class TestFromMapping:
    def test_unconfigured_couriers_are_skipped(self, monkeypatch, token_cache):
        monkeypatch.delenv("XPRESSBEES_EMAIL", raising=False)
        monkeypatch.delenv("XPRESSBEES_PASSWORD", raising=False)

        registry = AdapterRegistry.from_mapping(
            {"xpressbees": Xpressbees}, token_cache=token_cache
        )
        assert registry.get_active_couriers() == []

        registry = AdapterRegistry.from_mapping(
            {"xpressbees": Xpressbees},
            token_cache=token_cache,
            include_unconfigured=True,
        )
        assert registry.get_active_couriers() == ["xpressbees"]

    def test_configured_courier_shares_the_token_cache(self, monkeypatch, token_cache):
        monkeypatch.setenv("XPRESSBEES_EMAIL", "ops@example.com")
        monkeypatch.setenv("XPRESSBEES_PASSWORD", "secret")

        registry = AdapterRegistry.from_mapping(
            {"xpressbees": Xpressbees}, token_cache=token_cache
        )

        assert registry.get("xpressbees").token_cache is token_cache
