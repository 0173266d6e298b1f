"""
SQLAlchemy persistence for rate cards, seller overrides, sellers and pincodes.

Every method opens its own session from the injected factory and returns
pydantic models, so nothing handed to callers is bound to a session.
"""

from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from context_manager.context import context_user_data
from database import get_db_session
from logger import logger

# models
from models import Rate_Card, Seller, Seller_Rate_Override, Pincode_Mapping

# schema
from modules.rate_card.rate_card_schema import (
    OVERRIDABLE_FIELDS,
    OverridePatchModel,
    RateCardModel,
    RateCardUpsertModel,
    SellerModel,
    SellerRateOverrideModel,
)


class RateCardRepository:
    def __init__(self, session_factory: Callable[[], Session] = get_db_session):
        self.session_factory = session_factory

    # ============================================
    # SELLERS AND PINCODES
    # ============================================

    def get_seller(self, seller_id: int) -> Optional[SellerModel]:
        with self.session_factory() as db:
            seller = db.query(Seller).filter(Seller.id == seller_id).first()
            return SellerModel.model_validate(seller) if seller else None

    def get_pincode(self, pincode: str) -> Optional[Pincode_Mapping]:
        with self.session_factory() as db:
            return (
                db.query(Pincode_Mapping)
                .filter(Pincode_Mapping.pincode == str(pincode))
                .first()
            )

    # ============================================
    # RATE CARDS
    # ============================================

    def find_rate_cards(
        self,
        rate_band: Optional[str] = None,
        zone: Optional[str] = None,
        courier: Optional[str] = None,
        mode: Optional[str] = None,
        active_only: bool = True,
    ) -> List[RateCardModel]:
        with self.session_factory() as db:
            query = db.query(Rate_Card)

            if active_only:
                query = query.filter(Rate_Card.is_active == True)
            if rate_band is not None:
                query = query.filter(Rate_Card.rate_band == rate_band)
            if zone is not None:
                query = query.filter(Rate_Card.zone == zone)
            if courier is not None:
                query = query.filter(Rate_Card.courier == courier)
            if mode is not None:
                query = query.filter(Rate_Card.mode == mode)

            rows = query.order_by(
                Rate_Card.courier, Rate_Card.zone, Rate_Card.mode, Rate_Card.id
            ).all()
            return [RateCardModel.model_validate(row) for row in rows]

    def find_rate_card_by_tuple(
        self, courier, product_name, mode, zone, rate_band
    ) -> Optional[RateCardModel]:
        with self.session_factory() as db:
            row = (
                db.query(Rate_Card)
                .filter(
                    Rate_Card.courier == courier,
                    Rate_Card.product_name == product_name,
                    Rate_Card.mode == mode,
                    Rate_Card.zone == zone,
                    Rate_Card.rate_band == rate_band,
                    Rate_Card.is_active == True,
                )
                .first()
            )
            return RateCardModel.model_validate(row) if row else None

    def upsert_rate_card(self, data: RateCardUpsertModel) -> Tuple[RateCardModel, bool]:
        values = data.model_dump()
        values["mode"] = data.mode.value
        values["zone"] = data.zone.value

        with self.session_factory() as db:
            row = (
                db.query(Rate_Card)
                .filter(
                    Rate_Card.courier == values["courier"],
                    Rate_Card.product_name == values["product_name"],
                    Rate_Card.mode == values["mode"],
                    Rate_Card.zone == values["zone"],
                    Rate_Card.rate_band == values["rate_band"],
                    Rate_Card.is_active == True,
                )
                .first()
            )

            is_new = row is None
            if is_new:
                row = Rate_Card(**values)
                db.add(row)
            else:
                for key, value in values.items():
                    setattr(row, key, value)

            db.commit()
            db.refresh(row)
            return RateCardModel.model_validate(row), is_new

    def deactivate_rate_card(self, rate_card_id: int) -> Optional[RateCardModel]:
        with self.session_factory() as db:
            row = db.query(Rate_Card).filter(Rate_Card.id == rate_card_id).first()
            if row is None:
                return None

            row.is_active = False
            db.commit()
            db.refresh(row)
            return RateCardModel.model_validate(row)

    def get_active_couriers(self) -> List[str]:
        with self.session_factory() as db:
            rows = (
                db.query(Rate_Card.courier)
                .filter(Rate_Card.is_active == True)
                .distinct()
                .order_by(Rate_Card.courier)
                .all()
            )
            return [row[0] for row in rows]

    def count_rate_cards(self, group_by: Optional[str] = None, active_only=True):
        with self.session_factory() as db:
            if group_by is None:
                query = db.query(func.count(Rate_Card.id))
                if active_only:
                    query = query.filter(Rate_Card.is_active == True)
                return query.scalar() or 0

            column = getattr(Rate_Card, group_by)
            query = db.query(column, func.count(Rate_Card.id))
            if active_only:
                query = query.filter(Rate_Card.is_active == True)

            return {key: count for key, count in query.group_by(column).all()}

    # ============================================
    # SELLER OVERRIDES
    # ============================================

    def find_overrides_by_seller(
        self, seller_id: int, active_only: bool = True
    ) -> List[SellerRateOverrideModel]:
        with self.session_factory() as db:
            query = db.query(Seller_Rate_Override).filter(
                Seller_Rate_Override.seller_id == seller_id
            )
            if active_only:
                query = query.filter(Seller_Rate_Override.is_active == True)

            rows = query.order_by(Seller_Rate_Override.id).all()
            return [SellerRateOverrideModel.model_validate(row) for row in rows]

    def get_override(self, override_id: int) -> Optional[SellerRateOverrideModel]:
        with self.session_factory() as db:
            row = (
                db.query(Seller_Rate_Override)
                .filter(Seller_Rate_Override.id == override_id)
                .first()
            )
            return SellerRateOverrideModel.model_validate(row) if row else None

    def upsert_override(
        self,
        seller_id: int,
        base_card: RateCardModel,
        patch: OverridePatchModel,
        actor_id: int,
    ) -> Tuple[SellerRateOverrideModel, bool]:
        """
        Insert or update the seller's override for the tuple of `base_card`.

        A concurrent insert of the same tuple loses on the unique constraint
        and is retried once as an update.
        """
        values: Dict = {field: getattr(patch, field) for field in OVERRIDABLE_FIELDS}
        values.update(
            base_rate_card_id=base_card.id,
            is_active=patch.is_active,
            notes=patch.notes,
        )

        for attempt in range(2):
            with self.session_factory() as db:
                row = self._find_override_row(db, seller_id, base_card)

                is_new = row is None
                if is_new:
                    row = Seller_Rate_Override(
                        seller_id=seller_id,
                        courier=base_card.courier,
                        product_name=base_card.product_name,
                        mode=base_card.mode,
                        zone=base_card.zone,
                        created_by=actor_id,
                        **values,
                    )
                    db.add(row)
                else:
                    for key, value in values.items():
                        setattr(row, key, value)
                    row.updated_by = actor_id

                try:
                    db.commit()
                except IntegrityError as e:
                    db.rollback()
                    if attempt:
                        raise
                    logger.warning(
                        extra=context_user_data.get(),
                        msg="Concurrent override insert, retrying as update: {}".format(
                            str(e)
                        ),
                    )
                    continue

                db.refresh(row)
                return SellerRateOverrideModel.model_validate(row), is_new

    @staticmethod
    def _find_override_row(db: Session, seller_id: int, base_card: RateCardModel):
        return (
            db.query(Seller_Rate_Override)
            .filter(
                Seller_Rate_Override.seller_id == seller_id,
                Seller_Rate_Override.courier == base_card.courier,
                Seller_Rate_Override.product_name == base_card.product_name,
                Seller_Rate_Override.mode == base_card.mode,
                Seller_Rate_Override.zone == base_card.zone,
            )
            .first()
        )

    def delete_override(self, seller_id: int, override_id: int) -> bool:
        with self.session_factory() as db:
            deleted = (
                db.query(Seller_Rate_Override)
                .filter(
                    Seller_Rate_Override.id == override_id,
                    Seller_Rate_Override.seller_id == seller_id,
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            return deleted > 0
