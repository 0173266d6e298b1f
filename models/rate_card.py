from sqlalchemy import Column, String, Numeric, Boolean, Index, text

from database import DBBaseClass, DBBase


class Rate_Card(DBBase, DBBaseClass):
    __tablename__ = "rate_card"

    courier = Column(String(100), nullable=False, index=True)
    product_name = Column(String(150), nullable=False)
    # Surface / Air / Express / Standard / Premium
    mode = Column(String(50), nullable=False)
    # stored with the display value of RateCardZone, e.g. "Rest of India"
    zone = Column(String(100), nullable=False, index=True)

    # rate band decides which sellers get this card
    rate_band = Column(String(50), nullable=False, default="RBX1", index=True)

    base_rate = Column(Numeric(10, 2), nullable=False)
    additional_rate = Column(Numeric(10, 2), nullable=False)
    cod_flat_amount = Column(Numeric(10, 2), nullable=False, default=0)
    cod_percent = Column(Numeric(5, 2), nullable=False, default=0)
    rto_charge = Column(Numeric(10, 2), nullable=False, default=0)
    minimum_billable_weight = Column(Numeric(6, 3), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_rate_card_courier_zone_mode", "courier", "zone", "mode"),
        Index("ix_rate_card_rate_band_active", "rate_band", "is_active"),
        # one active card per (courier, product, mode, zone, band)
        Index(
            "uq_rate_card_active_tuple",
            "courier",
            "product_name",
            "mode",
            "zone",
            "rate_band",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
