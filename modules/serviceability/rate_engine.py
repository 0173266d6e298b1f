"""
Rate Engine

Prices a shipment against a seller's effective rate cards.

Per matching rate:
    billable_weight = max(chargeable_weight, minimum_billable_weight)
    extra_kg        = max(0, ceil(billable_weight) - 1)
    weight_charge   = extra_kg x additional_rate
    cod_charge      = max(cod_flat_amount, cod_amount x cod_percent / 100)  (COD only)
    subtotal        = base_rate + weight_charge + cod_charge (+ rto_charge x ceil(billable_weight))
    total           = round(subtotal x (1 + fuel%) x (1 + tax%))

All arithmetic is Decimal; rounding to whole rupees happens once, on the total.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

import settings
from context_manager.context import context_user_data
from logger import logger

# schema
from modules.rate_card.rate_card_schema import EffectiveRate, RateCardMode
from modules.serviceability.serviceability_schema import (
    CourierQuote,
    RateBreakdown,
    ServiceUnavailable,
)

# utils
from utils.zone import Zone


HUNDRED = Decimal("100")
ONE = Decimal("1")

# rate card modes used for legacy express pricing
EXPRESS_FALLBACK_MODES = (RateCardMode.STANDARD.value, RateCardMode.SURFACE.value)

DELIVERY_ESTIMATES = {
    # zone: (air, everything else)
    "Within City": ("1-2 days", "2-3 days"),
    "Within State": ("2-3 days", "3-4 days"),
    "Within Region": ("2-3 days", "3-5 days"),
    "Metro to Metro": ("2-3 days", "3-5 days"),
    "Rest of India": ("3-4 days", "4-6 days"),
    "Special Zone": ("4-5 days", "6-8 days"),
    "North East & Special Areas": ("4-6 days", "6-9 days"),
}
DEFAULT_DELIVERY_ESTIMATE = "4-6 days"


def delivery_estimate(zone: str, mode: str) -> str:
    estimate = DELIVERY_ESTIMATES.get(zone)
    if estimate is None:
        return DEFAULT_DELIVERY_ESTIMATE
    return estimate[0] if mode == RateCardMode.AIR.value else estimate[1]


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value or 0))


def _display(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class RateEngine:
    def __init__(
        self,
        fuel_surcharge_percent=settings.FUEL_SURCHARGE_PERCENT,
        tax_percent=settings.TAX_PERCENT,
        express_fallback_multiplier=settings.EXPRESS_FALLBACK_MULTIPLIER,
    ):
        self.fuel_surcharge_percent = _decimal(fuel_surcharge_percent)
        self.tax_percent = _decimal(tax_percent)
        self.express_fallback_multiplier = _decimal(express_fallback_multiplier)

    def price(
        self,
        effective_rates: Iterable[EffectiveRate],
        zone: Union[Zone, str],
        chargeable_weight,
        service_type: Optional[str] = None,
        cod_amount=0,
        include_rto: bool = False,
    ) -> Union[List[CourierQuote], ServiceUnavailable]:
        zone_name = zone.rate_card_zone if isinstance(zone, Zone) else zone

        in_zone = [rate for rate in effective_rates if rate.zone == zone_name]

        multiplier = ONE
        legacy_express = False
        candidates = in_zone

        if service_type:
            candidates = [
                rate for rate in in_zone if rate.mode.lower() == service_type.lower()
            ]

            if not candidates and service_type.lower() == RateCardMode.EXPRESS.value.lower():
                candidates = [
                    rate for rate in in_zone if rate.mode in EXPRESS_FALLBACK_MODES
                ]
                if candidates:
                    legacy_express = True
                    multiplier = self.express_fallback_multiplier
                    logger.info(
                        extra=context_user_data.get(),
                        msg="No express rate card for zone {}, pricing {} cards at {}x".format(
                            zone_name, len(candidates), multiplier
                        ),
                    )

        if not candidates:
            return ServiceUnavailable(
                reason="No rate card matches zone {}{}".format(
                    zone_name,
                    " and service type {}".format(service_type) if service_type else "",
                ),
                zone=zone_name,
                service_type=service_type,
            )

        quotes = [
            self.price_rate(
                rate,
                chargeable_weight,
                cod_amount=cod_amount,
                include_rto=include_rto,
                multiplier=multiplier,
                legacy_express=legacy_express,
            )
            for rate in candidates
        ]
        quotes.sort(key=lambda quote: (quote.total, quote.courier, quote.mode))
        return quotes

    def price_rate(
        self,
        rate: EffectiveRate,
        chargeable_weight,
        cod_amount=0,
        include_rto: bool = False,
        multiplier: Decimal = ONE,
        legacy_express: bool = False,
    ) -> CourierQuote:
        chargeable_weight = _decimal(chargeable_weight)
        cod_amount = _decimal(cod_amount)

        billable_weight = max(chargeable_weight, _decimal(rate.minimum_billable_weight))
        billable_units = math.ceil(billable_weight)
        extra_kg = max(0, billable_units - 1)

        weight_charge = extra_kg * _decimal(rate.additional_rate)

        cod_charge = Decimal("0")
        if cod_amount > 0:
            cod_charge = max(
                _decimal(rate.cod_flat_amount),
                cod_amount * _decimal(rate.cod_percent) / HUNDRED,
            )

        rto_charge = Decimal("0")
        if include_rto:
            rto_charge = _decimal(rate.rto_charge) * billable_units

        subtotal = (
            _decimal(rate.base_rate) + weight_charge + cod_charge + rto_charge
        ) * multiplier
        fuel_surcharge = subtotal * self.fuel_surcharge_percent / HUNDRED
        tax = (subtotal + fuel_surcharge) * self.tax_percent / HUNDRED
        total = (subtotal + fuel_surcharge + tax).quantize(ONE, rounding=ROUND_HALF_UP)

        return CourierQuote(
            courier=rate.courier,
            product_name=rate.product_name,
            mode=RateCardMode.EXPRESS.value if legacy_express else rate.mode,
            zone=rate.zone,
            breakdown=RateBreakdown(
                billable_weight=billable_weight,
                extra_kg=extra_kg,
                base_rate=_display(_decimal(rate.base_rate)),
                weight_charge=_display(weight_charge),
                cod_charge=_display(cod_charge),
                rto_charge=_display(rto_charge),
                express_multiplier=multiplier,
                subtotal=_display(subtotal),
                fuel_surcharge=_display(fuel_surcharge),
                tax=_display(tax),
            ),
            total=int(total),
            delivery_estimate=delivery_estimate(rate.zone, rate.mode),
            source="rate_card",
            is_override=rate.is_override,
            is_legacy_express=legacy_express,
        )
