"""
Runtime configuration for the rate resolution and courier layer.

Every value is read from the environment (a local .env file is honoured) and
falls back to the defaults below.
"""

import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _env_float(name, default):
    value = os.environ.get(name)
    return float(value) if value not in (None, "") else default


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


# ============================================
# DATABASE
# ============================================

DBTYPE_POSTGRES = "postgresql"

DATABASE_URL = os.environ.get("DATABASE_URL") or "%s://%s:%s@%s:%s/%s" % (
    DBTYPE_POSTGRES,
    os.environ.get("db_user"),
    quote_plus(os.environ.get("db_password", "")),
    os.environ.get("db_host"),
    os.environ.get("db_port"),
    os.environ.get("db_name"),
)

# ============================================
# PRICING
# ============================================

# rate band used when a seller has none assigned
DEFAULT_RATE_BAND = os.environ.get("DEFAULT_RATE_BAND", "RBX1")

VOLUMETRIC_DIVISOR = _env_int("VOLUMETRIC_DIVISOR", 5000)

FUEL_SURCHARGE_PERCENT = _env_float("FUEL_SURCHARGE_PERCENT", 0.0)

# GST on shipping services
TAX_PERCENT = _env_float("TAX_PERCENT", 18.0)

# legacy express pricing, only used when no express rate card exists
EXPRESS_FALLBACK_MULTIPLIER = _env_float("EXPRESS_FALLBACK_MULTIPLIER", 1.5)

# ============================================
# COURIER CALLS
# ============================================

UPSTREAM_TIMEOUT_SECONDS = _env_float("UPSTREAM_TIMEOUT_SECONDS", 30.0)

# retries for idempotent calls (tracking, rate) on timeout
SAFE_RETRY_COUNT = _env_int("SAFE_RETRY_COUNT", 2)

# ============================================
# CACHE
# ============================================

# "memory" or "redis"
CACHE_BACKEND = os.environ.get("CACHE_BACKEND", "memory")

CACHE_MAX_SIZE = _env_int("CACHE_MAX_SIZE", 10000)

QUOTE_CACHE_TTL_SECONDS = _env_int("QUOTE_CACHE_TTL_SECONDS", 300)

# tokens are refreshed this long before the courier says they expire
TOKEN_REFRESH_MARGIN_SECONDS = _env_int("TOKEN_REFRESH_MARGIN_SECONDS", 300)

REDIS_HOST = os.environ.get("REDIS_HOST", "localhost")
REDIS_PORT = os.environ.get("REDIS_PORT", "6379")
REDIS_PASSWORD = os.environ.get("REDIS_PASSWORD", "")
REDIS_DB = os.environ.get("REDIS_DB", "0")

if REDIS_PASSWORD:
    REDIS_URL = f"redis://:{REDIS_PASSWORD}@{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
else:
    REDIS_URL = f"redis://{REDIS_HOST}:{REDIS_PORT}/{REDIS_DB}"
