from sqlalchemy import (
    Column,
    String,
    Numeric,
    Boolean,
    Integer,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import DBBaseClass, DBBase


class Seller_Rate_Override(DBBase, DBBaseClass):
    __tablename__ = "seller_rate_override"

    seller_id = Column(Integer, ForeignKey("seller.id"), nullable=False, index=True)
    base_rate_card_id = Column(
        Integer, ForeignKey("rate_card.id"), nullable=False, index=True
    )

    base_rate_card = relationship("Rate_Card", lazy="joined")

    # duplicated from the base card for lookups
    courier = Column(String(100), nullable=False)
    product_name = Column(String(150), nullable=False)
    mode = Column(String(50), nullable=False)
    zone = Column(String(100), nullable=False)

    # null means "inherit from the base card"
    base_rate = Column(Numeric(10, 2), nullable=True)
    additional_rate = Column(Numeric(10, 2), nullable=True)
    cod_flat_amount = Column(Numeric(10, 2), nullable=True)
    cod_percent = Column(Numeric(5, 2), nullable=True)
    rto_charge = Column(Numeric(10, 2), nullable=True)
    minimum_billable_weight = Column(Numeric(6, 3), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    # audit
    created_by = Column(Integer, nullable=False)
    updated_by = Column(Integer, nullable=True)
    notes = Column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "seller_id",
            "courier",
            "product_name",
            "mode",
            "zone",
            name="uq_seller_rate_override_tuple",
        ),
        Index("ix_seller_rate_override_seller_active", "seller_id", "is_active"),
    )
