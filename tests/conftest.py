from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import DBBase

# models
from models import Pincode_Mapping, Rate_Card, Seller

from modules.rate_card.rate_card_repository import RateCardRepository
from modules.rate_card.rate_card_service import RateCardService
from utils.cache import InMemoryCacheBackend, QuoteCache, TokenCache


ACME_CARD = {
    "courier": "acme",
    "product_name": "Acme Surface",
    "mode": "Surface",
    "zone": "Rest of India",
    "rate_band": "RBX1",
    "base_rate": Decimal("30"),
    "additional_rate": Decimal("15"),
    "cod_flat_amount": Decimal("0"),
    "cod_percent": Decimal("0"),
    "rto_charge": Decimal("0"),
    "minimum_billable_weight": Decimal("0.5"),
}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    DBBase.metadata.create_all(bind=engine)

    yield engine

    DBBase.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def repository(session_factory):
    return RateCardRepository(session_factory=session_factory)


@pytest.fixture
def rate_card_service(repository):
    return RateCardService(repository=repository)


@pytest.fixture
def make_seller(session_factory):
    def _make(business_name="Acme Traders", rate_band=None) -> int:
        with session_factory() as db:
            seller = Seller(business_name=business_name, rate_band=rate_band)
            db.add(seller)
            db.commit()
            return seller.id

    return _make


@pytest.fixture
def make_rate_card(session_factory):
    def _make(**fields) -> int:
        values = dict(ACME_CARD)
        values.update(fields)
        with session_factory() as db:
            card = Rate_Card(**values)
            db.add(card)
            db.commit()
            return card.id

    return _make


@pytest.fixture
def make_pincode(session_factory):
    def _make(pincode, is_serviceable=True, city="other", state="other"):
        with session_factory() as db:
            db.add(
                Pincode_Mapping(
                    pincode=pincode,
                    city=city,
                    state=state,
                    is_serviceable=is_serviceable,
                )
            )
            db.commit()

    return _make


@pytest.fixture
def cache_backend():
    return InMemoryCacheBackend()


@pytest.fixture
def quote_cache(cache_backend):
    return QuoteCache(cache_backend)


@pytest.fixture
def token_cache(cache_backend):
    return TokenCache(cache_backend)
