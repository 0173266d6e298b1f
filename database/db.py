"""
Database Configuration Module

The engine is created on first use from settings.DATABASE_URL so that the
models can be imported (and bound to another engine, e.g. in tests) without a
PostgreSQL server being configured.

Connection Pooling Strategy:
- Direct connection: pool_size=30, max_overflow=20 (50 total)
- For production at scale, use PgBouncer as connection pooler
"""

import uuid as uuid
from datetime import datetime

from pytz import timezone
from sqlalchemy import Column, TIMESTAMP, Integer, Uuid, create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

import settings
from logger import logger


# ============================================
# CONNECTION POOL SETTINGS
# ============================================

POOL_CONFIG = {
    # Base pool size - always maintain this many connections
    "pool_size": 30,
    # Additional connections allowed during peak load
    "max_overflow": 20,
    # Timeout waiting for a connection from pool (seconds)
    "pool_timeout": 30,
    # Test connection health before using (handles stale connections)
    "pool_pre_ping": True,
    # Recycle connections after 30 minutes (prevents stale connections)
    "pool_recycle": 1800,
    "echo": False,
    "poolclass": QueuePool,
}

# ============================================
# SESSION CONFIGURATION
# ============================================

SessionLocal = sessionmaker(
    autoflush=False,  # Manual flush for better control
    expire_on_commit=False,  # Prevent attribute expiration on commit
)

_db_engine = None

UTC = timezone("UTC")


def time_now():
    """Get current UTC time"""
    return datetime.now(UTC)


def get_engine():
    """Create (once) the engine for settings.DATABASE_URL and bind SessionLocal to it."""
    global _db_engine

    if _db_engine is None:
        _db_engine = create_engine(settings.DATABASE_URL, **POOL_CONFIG)
        SessionLocal.configure(bind=_db_engine)

        @event.listens_for(_db_engine, "checkout")
        def receive_checkout(dbapi_connection, connection_record, connection_proxy):
            logger.debug("Connection checked out from pool")

        @event.listens_for(_db_engine, "checkin")
        def receive_checkin(dbapi_connection, connection_record):
            logger.debug("Connection returned to pool")

    return _db_engine


def get_db_session():
    """Open a new session on the configured engine; use it as a context manager."""
    get_engine()
    return SessionLocal()


def init_models():
    """Create the tables of every registered model (idempotent)."""
    import models  # noqa: F401  registers the tables on DBBase

    DBBase.metadata.create_all(bind=get_engine())
    logger.info("Database tables initialised")


# ============================================
# DECLARATIVE BASE
# ============================================

DBBase = declarative_base()


class DBBaseClass:
    """
    Base class for all database models.

    Provides:
    - Auto-incrementing primary key (id)
    - UUID for external references
    - Created/updated timestamps
    """

    id = Column(Integer, primary_key=True, unique=True, autoincrement=True)

    # UUID for external API references (don't expose internal IDs)
    uuid = Column(Uuid(as_uuid=True), default=uuid.uuid4, unique=True, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=time_now, nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=True),
        default=time_now,
        onupdate=time_now,
        nullable=False,
    )
