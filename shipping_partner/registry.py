"""
Adapter registry: the one place the rest of the system reaches couriers through.

Couriers are looked up by slug (see data/courier_service_mapping.py). Adapter
errors that escape a courier call are wrapped into ProviderUnavailable here;
bookings, tracking, cancellations and pickups already come back as result
values and are handed through unchanged.
"""

import asyncio
from typing import Callable, Dict, Iterable, List, Optional

import httpx

import settings
from context_manager.context import context_user_data
from logger import logger

# schema
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

# data
from data.courier_service_mapping import courier_service_mapping

from shipping_partner.base import CourierAdapter

# utils
from utils.cache import QuoteCache, TokenCache
from utils.exception_handler import parse_model
from utils.exceptions import (
    CourierAdapterError,
    NotFound,
    ProviderUnavailable,
)
from utils.weight_calc import Dimensions, chargeable_weight
from utils.zone import classify_zone


class AdapterRegistry:
    def __init__(
        self,
        adapters: Iterable[CourierAdapter],
        quote_cache: Optional[QuoteCache] = None,
        timeout: float = settings.UPSTREAM_TIMEOUT_SECONDS,
    ):
        self.adapters: Dict[str, CourierAdapter] = {
            adapter.courier_id: adapter for adapter in adapters
        }
        self.quote_cache = quote_cache or QuoteCache()
        self.timeout = timeout

    @classmethod
    def from_mapping(
        cls,
        mapping: Optional[Dict[str, type]] = None,
        token_cache: Optional[TokenCache] = None,
        quote_cache: Optional[QuoteCache] = None,
        http_client_factory: Optional[Callable[[type], httpx.AsyncClient]] = None,
        include_unconfigured: bool = False,
    ) -> "AdapterRegistry":
        """
        Build adapters for every courier in the mapping.

        Couriers whose credentials are missing from the environment are left
        out unless include_unconfigured is set. All adapters share one token
        cache, keyed by courier id.
        """
        mapping = mapping if mapping is not None else courier_service_mapping
        token_cache = token_cache or TokenCache()

        adapters = []
        for courier_id, adapter_class in mapping.items():
            http_client = (
                http_client_factory(adapter_class) if http_client_factory else None
            )
            adapter = adapter_class(token_cache=token_cache, http_client=http_client)

            if not include_unconfigured and not adapter.is_configured():
                logger.warning(
                    extra=context_user_data.get(),
                    msg="Courier {} has no credentials configured, skipping".format(
                        courier_id
                    ),
                )
                continue

            adapters.append(adapter)

        return cls(adapters, quote_cache=quote_cache)

    def get(self, courier_id: str) -> CourierAdapter:
        adapter = self.adapters.get(courier_id)
        if adapter is None:
            raise NotFound("Courier partner {} is not enabled".format(courier_id))
        return adapter

    def get_active_couriers(self) -> List[str]:
        return sorted(self.adapters)

    async def aclose(self):
        for adapter in self.adapters.values():
            await adapter.aclose()

    # ============================================
    # QUOTING
    # ============================================

    async def quote_all(
        self,
        route: RouteModel,
        weight_kg: float,
        dims: Optional[Dimensions] = None,
        service_type: Optional[str] = None,
        seller_id: Optional[int] = None,
        cod_amount=0,
        timeout: Optional[float] = None,
        rate_card_quotes: Optional[Dict[str, List[CourierQuote]]] = None,
    ) -> List[CourierQuote]:
        """
        Quote every enabled courier concurrently and return the union sorted by total.

        Couriers present in rate_card_quotes are priced from those; the others
        fall back to their own calculate_rate. Every branch is bounded by
        timeout; a branch that fails or times out is logged and left out.
        """
        route = parse_model(RouteModel, route)
        timeout = timeout if timeout is not None else self.timeout
        rate_card_quotes = rate_card_quotes or {}

        zone = classify_zone(
            route.origin_pincode, route.destination_pincode, route.destination_state
        )
        weight = chargeable_weight(weight_kg, dims)
        rate_request = parse_model(
            RateRequest,
            {
                "origin_pincode": route.origin_pincode,
                "destination_pincode": route.destination_pincode,
                "weight_kg": weight_kg,
                "dims": dims,
                "payment_mode": "cod" if cod_amount and cod_amount > 0 else "prepaid",
                "cod_amount": cod_amount or 0,
                "service_type": service_type,
            },
        )

        branches = {}
        for courier_id, quotes in rate_card_quotes.items():
            branches[courier_id] = self._ready(quotes)

        for courier_id, adapter in self.adapters.items():
            if courier_id in branches:
                continue
            cache_key = QuoteCache.build_key(
                route.origin_pincode,
                route.destination_pincode,
                weight,
                service_type=service_type,
                seller_id=seller_id,
                cod_amount=cod_amount,
                courier=courier_id,
                zone=zone,
            )
            branches[courier_id] = self._adapter_quote(
                adapter, rate_request, zone.rate_card_zone, cache_key
            )

        courier_ids = list(branches)
        results = await asyncio.gather(
            *(asyncio.wait_for(branches[c], timeout) for c in courier_ids),
            return_exceptions=True,
        )

        quotes: List[CourierQuote] = []
        for courier_id, result in zip(courier_ids, results):
            if isinstance(result, asyncio.TimeoutError):
                logger.warning(
                    extra=context_user_data.get(),
                    msg="Quote from {} timed out after {}s, excluded".format(
                        courier_id, timeout
                    ),
                )
            elif isinstance(result, CourierAdapterError):
                logger.error(
                    extra=context_user_data.get(),
                    msg="Quote from {} failed with {}: {}, excluded".format(
                        courier_id, result.kind, str(result)
                    ),
                )
            elif isinstance(result, Exception):
                logger.error(
                    extra=context_user_data.get(),
                    msg="Quote from {} raised {!r}, excluded".format(courier_id, result),
                    exc_info=result,
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                quotes.extend(result)

        quotes.sort(key=lambda quote: (quote.total, quote.courier, quote.mode))
        return quotes

    @staticmethod
    async def _ready(quotes: List[CourierQuote]) -> List[CourierQuote]:
        return list(quotes)

    async def _adapter_quote(
        self,
        adapter: CourierAdapter,
        request: RateRequest,
        zone_name: str,
        cache_key: str,
    ) -> List[CourierQuote]:
        async def _create():
            quote = await adapter.calculate_rate(request)
            quote.zone = zone_name
            return quote.model_dump(mode="json")

        # only successful quotes reach the cache; errors propagate
        data = await self.quote_cache.get_or_create(cache_key, _create)
        return [CourierQuote.model_validate(data)]

    async def quote_with_courier(
        self, courier_id: str, request: RateRequest
    ) -> CourierQuote:
        adapter = self.get(courier_id)
        try:
            return await adapter.calculate_rate(request)
        except CourierAdapterError as e:
            raise self._unavailable(courier_id, "rate", e) from e

    async def authenticate_courier(self, courier_id: str) -> Token:
        adapter = self.get(courier_id)
        try:
            return await adapter.authenticate()
        except CourierAdapterError as e:
            raise self._unavailable(courier_id, "authentication", e) from e

    @staticmethod
    def _unavailable(
        courier_id: str, action: str, error: CourierAdapterError
    ) -> ProviderUnavailable:
        logger.error(
            extra=context_user_data.get(),
            msg="{} {} failed with {}: {}".format(
                courier_id, action, error.kind, str(error)
            ),
        )
        return ProviderUnavailable(courier_id, detail=error)

    # ============================================
    # SHIPMENT LIFECYCLE
    # ============================================

    async def book_with_courier(
        self, courier_id: str, request: ShipmentRequest
    ) -> BookingResult:
        """Book exactly once with the chosen courier; failures are not retried."""
        return await self.get(courier_id).book_shipment(request)

    async def track_shipment(self, courier_id: str, awb: str) -> TrackingResult:
        return await self.get(courier_id).track_shipment(awb)

    async def cancel_shipment(self, courier_id: str, awb: str) -> CancelResult:
        return await self.get(courier_id).cancel_shipment(awb)

    async def request_pickup(self, courier_id: str, awbs: List[str]) -> PickupResult:
        return await self.get(courier_id).request_pickup(awbs)
