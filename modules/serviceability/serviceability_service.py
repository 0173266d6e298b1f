import asyncio
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from context_manager.context import context_user_data, set_request_context
from logger import logger

# schema
from modules.rate_card.rate_card_schema import EffectiveRate
from modules.serviceability.serviceability_schema import (
    CourierQuote,
    QuoteRequestModel,
    QuoteResult,
    RouteModel,
    ServiceUnavailable,
)
from modules.shipping_partner.shipping_partner_schema import (
    BookingResult,
    CancelResult,
    PickupResult,
    ShipmentRequest,
    TrackingResult,
)

# service
from modules.rate_card.rate_card_service import RateCardService
from modules.serviceability.rate_engine import RateEngine
from shipping_partner.registry import AdapterRegistry

# utils
from utils.cache import QuoteCache
from utils.exception_handler import parse_model
from utils.exceptions import InternalError
from utils.weight_calc import chargeable_weight
from utils.zone import classify_zone


class ServiceabilityService:
    """
    Entry point for pricing a route and for reaching the couriers.

    Store calls are synchronous SQLAlchemy and run in worker threads; courier
    calls go through the adapter registry.
    """

    def __init__(
        self,
        rate_card_service: Optional[RateCardService] = None,
        rate_engine: Optional[RateEngine] = None,
        registry: Optional[AdapterRegistry] = None,
        quote_cache: Optional[QuoteCache] = None,
    ):
        self.rate_card_service = rate_card_service or RateCardService()
        self.rate_engine = rate_engine or RateEngine()
        self.quote_cache = quote_cache or QuoteCache()
        self._registry = registry

    @property
    def registry(self) -> AdapterRegistry:
        if self._registry is None:
            self._registry = AdapterRegistry.from_mapping()
        return self._registry

    async def _store(self, fn, *args, **kwargs):
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(
                extra=context_user_data.get(),
                msg="Rate card store error in {}: {}".format(fn.__name__, str(e)),
            )
            raise InternalError() from e

    # ============================================
    # QUOTING
    # ============================================

    async def quote(
        self,
        seller_id: int,
        origin_pincode: str,
        destination_pincode: str,
        weight_kg: float,
        dims=None,
        service_type: Optional[str] = None,
        cod_amount=None,
        include_rto: bool = False,
        destination_state: Optional[str] = None,
    ) -> QuoteResult:
        """
        Price a shipment for a seller from their effective rate cards.

        Returns the quotes sorted by total, cheapest first, or a
        ServiceUnavailable value when nothing serves the route. Raises
        ValidationError on bad input and NotFound for an unknown seller.
        """
        request = parse_model(
            QuoteRequestModel,
            {
                "seller_id": seller_id,
                "origin_pincode": origin_pincode,
                "destination_pincode": destination_pincode,
                "weight_kg": weight_kg,
                "dims": dims,
                "service_type": service_type,
                "cod_amount": cod_amount or 0,
                "include_rto": include_rto,
                "destination_state": destination_state,
            },
        )
        set_request_context(seller_id=request.seller_id)

        unserviceable = await self._unserviceable_pincode(
            request.origin_pincode, request.destination_pincode, request.service_type
        )
        if unserviceable is not None:
            return unserviceable

        zone = classify_zone(
            request.origin_pincode,
            request.destination_pincode,
            request.destination_state,
        )
        weight = chargeable_weight(request.weight_kg, request.dims)

        cache_key = QuoteCache.build_key(
            request.origin_pincode,
            request.destination_pincode,
            weight,
            service_type=request.service_type,
            seller_id=request.seller_id,
            cod_amount=request.cod_amount,
            include_rto=request.include_rto,
            zone=zone,
        )

        async def _price():
            effective_rates = await self._store(
                self.rate_card_service.resolve_effective_rates, request.seller_id
            )
            result = self.rate_engine.price(
                effective_rates,
                zone,
                weight,
                service_type=request.service_type,
                cod_amount=request.cod_amount,
                include_rto=request.include_rto,
            )

            if isinstance(result, ServiceUnavailable):
                result.origin_pincode = request.origin_pincode
                result.destination_pincode = request.destination_pincode
                logger.info(
                    extra=context_user_data.get(),
                    msg="No rate for {} -> {}: {}".format(
                        request.origin_pincode,
                        request.destination_pincode,
                        result.reason,
                    ),
                )
                return {"available": False, "result": result.model_dump(mode="json")}

            return {
                "available": True,
                "result": [quote.model_dump(mode="json") for quote in result],
            }

        cached = await self.quote_cache.get_or_create(cache_key, _price)
        return self._load_quote_result(cached)

    @staticmethod
    def _load_quote_result(cached: Dict) -> QuoteResult:
        if not cached["available"]:
            return ServiceUnavailable.model_validate(cached["result"])
        return [CourierQuote.model_validate(quote) for quote in cached["result"]]

    async def _unserviceable_pincode(
        self, origin_pincode: str, destination_pincode: str, service_type=None
    ) -> Optional[ServiceUnavailable]:
        """Pincodes missing from the mapping table are treated as serviceable."""
        for pincode in (origin_pincode, destination_pincode):
            record = await self._store(
                self.rate_card_service.repository.get_pincode, pincode
            )
            if record is not None and record.is_serviceable is False:
                return ServiceUnavailable(
                    reason="Pincode {} is not serviceable".format(pincode),
                    service_type=service_type,
                    origin_pincode=origin_pincode,
                    destination_pincode=destination_pincode,
                )
        return None

    async def quote_all(
        self,
        route: RouteModel,
        weight_kg: float,
        dims=None,
        service_type: Optional[str] = None,
        seller_id: Optional[int] = None,
        cod_amount=0,
        timeout: Optional[float] = None,
    ) -> QuoteResult:
        """
        Rate card quotes for the seller, topped up with live quotes from every
        enabled courier that has no rate card on this route.
        """
        route = parse_model(RouteModel, route)

        unserviceable = await self._unserviceable_pincode(
            route.origin_pincode, route.destination_pincode, service_type
        )
        if unserviceable is not None:
            return unserviceable

        rate_card_quotes: Dict[str, List[CourierQuote]] = defaultdict(list)
        if seller_id is not None:
            priced = await self.quote(
                seller_id,
                route.origin_pincode,
                route.destination_pincode,
                weight_kg,
                dims=dims,
                service_type=service_type,
                cod_amount=cod_amount,
                destination_state=route.destination_state,
            )
            if not isinstance(priced, ServiceUnavailable):
                for quote in priced:
                    rate_card_quotes[quote.courier].append(quote)

        quotes = await self.registry.quote_all(
            route,
            weight_kg,
            dims=dims,
            service_type=service_type,
            seller_id=seller_id,
            cod_amount=cod_amount or 0,
            timeout=timeout,
            rate_card_quotes=rate_card_quotes,
        )

        if not quotes:
            return ServiceUnavailable(
                reason="No courier returned a quote for this route",
                zone=classify_zone(
                    route.origin_pincode,
                    route.destination_pincode,
                    route.destination_state,
                ).rate_card_zone,
                service_type=service_type,
                origin_pincode=route.origin_pincode,
                destination_pincode=route.destination_pincode,
            )
        return quotes

    async def resolve_effective_rates(self, seller_id: int) -> List[EffectiveRate]:
        return await self._store(
            self.rate_card_service.resolve_effective_rates, seller_id
        )

    async def get_active_couriers(self) -> List[str]:
        """Couriers with at least one active rate card, in name order."""
        return await self._store(self.rate_card_service.get_active_couriers)

    # ============================================
    # COURIER OPERATIONS
    # ============================================

    async def book_with_courier(
        self, courier_id: str, request: ShipmentRequest
    ) -> BookingResult:
        set_request_context(seller_id=request.seller_id, courier=courier_id)
        return await self.registry.book_with_courier(courier_id, request)

    async def track_shipment(self, courier_id: str, awb: str) -> TrackingResult:
        set_request_context(courier=courier_id)
        return await self.registry.track_shipment(courier_id, awb)

    async def cancel_shipment(self, courier_id: str, awb: str) -> CancelResult:
        set_request_context(courier=courier_id)
        return await self.registry.cancel_shipment(courier_id, awb)

    async def request_pickup(self, courier_id: str, awbs: List[str]) -> PickupResult:
        set_request_context(courier=courier_id)
        return await self.registry.request_pickup(courier_id, awbs)
