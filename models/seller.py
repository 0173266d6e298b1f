from sqlalchemy import Column, String

from database import DBBaseClass, DBBase


class Seller(DBBase, DBBaseClass):
    __tablename__ = "seller"

    business_name = Column(String(255), nullable=False)
    # null means the default band (RBX1)
    rate_band = Column(String(50), nullable=True)
