from sqlalchemy import Column, String, Index, Boolean

from database import DBBaseClass, DBBase


class Pincode_Mapping(DBBase, DBBaseClass):

    __tablename__ = "pincode_mapping"

    # stored as the 6 digit string, leading zeros are not valid in India but
    # the column stays a string so malformed imports are visible
    pincode = Column(String(6), nullable=False, unique=True)
    # City, district and state are stored in lowercase for case-insensitive comparisons
    city = Column(String(100), nullable=False)
    district = Column(String(100), nullable=True)
    state = Column(String(100), nullable=False)

    # filled by the enrichment batch job
    zone = Column(String(100), nullable=True)
    is_metro = Column(Boolean, nullable=False, default=False)
    is_serviceable = Column(Boolean, nullable=False, default=True)
    # comma separated courier ids that deliver here, empty means unknown
    courier_partners = Column(String(500), nullable=True)

    # Composite covering index for queries that fetch pincode, city, state together
    __table_args__ = (
        Index("ix_pincode_mapping_pincode_city_state", "pincode", "city", "state"),
    )
