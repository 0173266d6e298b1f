from typing import Dict, List, Optional, Tuple

from context_manager.context import context_user_data
from logger import logger

import settings

# schema
from modules.rate_card.rate_card_schema import (
    EffectiveRate,
    OverridePatchModel,
    RateCardModel,
    RateCardStatisticsModel,
    RateCardUpsertModel,
    SellerModel,
    SellerRateOverrideModel,
)
from modules.rate_card.rate_card_repository import RateCardRepository

# utils
from utils.exception_handler import parse_model
from utils.exceptions import NotFound


class RateCardService:
    """
    Rate card store: base cards per rate band plus sparse seller overrides.

    Overrides are only ever written through create_or_update_override, which
    refuses to create one without an active base card behind it.
    """

    def __init__(self, repository: Optional[RateCardRepository] = None):
        self.repository = repository or RateCardRepository()

    # ============================================
    # RESOLUTION
    # ============================================

    def get_seller(self, seller_id: int) -> SellerModel:
        seller = self.repository.get_seller(seller_id)
        if seller is None:
            raise NotFound("Seller {} not found".format(seller_id))
        return seller

    @staticmethod
    def seller_rate_band(seller: SellerModel) -> str:
        return seller.rate_band or settings.DEFAULT_RATE_BAND

    def resolve_effective_rates(self, seller_id: int) -> List[EffectiveRate]:
        """
        Merge the seller's active overrides onto the base cards of their rate band.

        Base cards without an override come back unmodified with
        is_override=False. Overrides whose base card is not in the band (or no
        longer active) are ignored.
        """
        seller = self.get_seller(seller_id)
        rate_band = self.seller_rate_band(seller)

        base_cards = self.repository.find_rate_cards(rate_band=rate_band)
        overrides = {
            override.key(): override
            for override in self.repository.find_overrides_by_seller(seller_id)
        }

        effective_rates = [
            EffectiveRate.merge(card, overrides.get(card.key())) for card in base_cards
        ]

        logger.info(
            extra=context_user_data.get(),
            msg="Resolved {} effective rates for seller {} (band {}, {} overrides)".format(
                len(effective_rates), seller_id, rate_band, len(overrides)
            ),
        )
        return effective_rates

    # ============================================
    # OVERRIDES
    # ============================================

    def get_seller_overrides(self, seller_id: int) -> List[SellerRateOverrideModel]:
        self.get_seller(seller_id)
        return self.repository.find_overrides_by_seller(seller_id, active_only=False)

    def create_or_update_override(
        self, seller_id: int, patch, actor_id: int
    ) -> Tuple[SellerRateOverrideModel, bool]:
        patch = parse_model(OverridePatchModel, patch)
        seller = self.get_seller(seller_id)
        rate_band = self.seller_rate_band(seller)

        courier, product_name, mode, zone = patch.key()
        base_card = self.repository.find_rate_card_by_tuple(
            courier, product_name, mode, zone, rate_band
        )
        if base_card is None:
            logger.warning(
                extra=context_user_data.get(),
                msg="Rejected override for seller {}: no active base card {} in band {}".format(
                    seller_id, patch.key(), rate_band
                ),
            )
            raise NotFound(
                "No active base rate card for {} / {} / {} / {} in band {}".format(
                    courier, product_name, mode, zone, rate_band
                )
            )

        override, is_new = self.repository.upsert_override(
            seller_id, base_card, patch, actor_id
        )

        logger.info(
            extra=context_user_data.get(),
            msg="{} override {} for seller {} by {}".format(
                "Created" if is_new else "Updated", override.id, seller_id, actor_id
            ),
        )
        return override, is_new

    def remove_override(self, seller_id: int, override_id: int) -> None:
        override = self.repository.get_override(override_id)
        if override is None or override.seller_id != seller_id:
            raise NotFound(
                "Override {} not found for seller {}".format(override_id, seller_id)
            )

        if not self.repository.delete_override(seller_id, override_id):
            raise NotFound(
                "Override {} not found for seller {}".format(override_id, seller_id)
            )

        logger.info(
            extra=context_user_data.get(),
            msg="Removed override {} for seller {}".format(override_id, seller_id),
        )

    # ============================================
    # BASE RATE CARDS (ADMIN)
    # ============================================

    def list_rate_cards(
        self,
        zone: Optional[str] = None,
        courier: Optional[str] = None,
        mode: Optional[str] = None,
        rate_band: Optional[str] = None,
    ) -> List[RateCardModel]:
        return self.repository.find_rate_cards(
            rate_band=rate_band, zone=zone, courier=courier, mode=mode
        )

    def create_or_update_rate_card(self, data) -> Tuple[RateCardModel, bool]:
        data = parse_model(RateCardUpsertModel, data)
        rate_card, is_new = self.repository.upsert_rate_card(data)

        logger.info(
            extra=context_user_data.get(),
            msg="{} rate card {} ({} / {} / {} / {} / {})".format(
                "Created" if is_new else "Updated",
                rate_card.id,
                rate_card.courier,
                rate_card.product_name,
                rate_card.mode,
                rate_card.zone,
                rate_card.rate_band,
            ),
        )
        return rate_card, is_new

    def deactivate_rate_card(self, rate_card_id: int) -> RateCardModel:
        rate_card = self.repository.deactivate_rate_card(rate_card_id)
        if rate_card is None:
            raise NotFound("Rate card {} not found".format(rate_card_id))
        return rate_card

    def get_active_couriers(self) -> List[str]:
        return self.repository.get_active_couriers()

    def get_statistics(self) -> RateCardStatisticsModel:
        by_courier: Dict[str, int] = self.repository.count_rate_cards("courier")

        return RateCardStatisticsModel(
            total_rate_cards=self.repository.count_rate_cards(active_only=False),
            active_rate_cards=sum(by_courier.values()),
            active_couriers=sorted(by_courier.keys()),
            by_courier=by_courier,
            by_zone=self.repository.count_rate_cards("zone"),
            by_mode=self.repository.count_rate_cards("mode"),
        )
