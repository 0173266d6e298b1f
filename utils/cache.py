"""
Cache layer shared by courier adapters and the serviceability service.

Two caches sit on top of one key/value backend:

    TokenCache  - courier auth tokens, kept until shortly before they expire
    QuoteCache  - priced quote sets, kept for a few minutes

Both go through SingleFlight, so on a miss exactly one coroutine computes the
value while concurrent callers for the same key await that same result.
"""

import asyncio
import json
import math
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import pytz
from cachetools import TLRUCache
from pydantic import BaseModel

import settings
from context_manager.context import context_user_data
from logger import logger

# utils
from utils.zone import Zone


class Token(BaseModel):
    """Courier credential with its absolute expiry."""

    access_token: str
    expires_at: datetime
    token_type: str = "Bearer"

    def seconds_left(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(pytz.utc)
        return (self.expires_at - now).total_seconds()


# ============================================
# BACKENDS
# ============================================


class CacheBackend(ABC):
    """Short TTL key/value store. Values must be JSON serializable."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass


class InMemoryCacheBackend(CacheBackend):
    def __init__(
        self,
        maxsize: int = settings.CACHE_MAX_SIZE,
        timer: Callable[[], float] = time.monotonic,
    ):
        # every entry carries its own ttl, stored next to the value
        self._cache = TLRUCache(maxsize=maxsize, ttu=self._ttu, timer=timer)

    @staticmethod
    def _ttu(key, value, now):
        return now + value[0]

    async def get(self, key):
        entry = self._cache.get(key)
        return None if entry is None else entry[1]

    async def set(self, key, value, ttl):
        if ttl <= 0:
            self._cache.pop(key, None)
            return
        self._cache[key] = (ttl, value)

    async def delete(self, key):
        self._cache.pop(key, None)

    def clear(self):
        self._cache.clear()


class RedisCacheBackend(CacheBackend):
    def __init__(self, url: str = settings.REDIS_URL, client=None):
        if client is None:
            from redis import asyncio as aioredis

            client = aioredis.Redis.from_url(url, decode_responses=True)
        self._client = client

    async def get(self, key):
        raw = await self._client.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key, value, ttl):
        if ttl <= 0:
            await self._client.delete(key)
            return
        await self._client.set(key, json.dumps(value), ex=max(1, math.floor(ttl)))

    async def delete(self, key):
        await self._client.delete(key)


def get_cache_backend(kind: str = None) -> CacheBackend:
    kind = (kind or settings.CACHE_BACKEND).lower()
    if kind == "redis":
        return RedisCacheBackend()
    if kind == "memory":
        return InMemoryCacheBackend()
    raise ValueError("Unknown cache backend: {}".format(kind))


# ============================================
# SINGLE FLIGHT
# ============================================


class SingleFlight:
    """
    Collapse concurrent computations of the same key into one.

    The computation runs as its own task, so a caller that times out or is
    cancelled does not take the shared result down for everyone else.
    """

    def __init__(self):
        self._in_flight: Dict[str, asyncio.Future] = {}

    async def do(self, key: str, factory: Callable[[], Awaitable[Any]]):
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda done, key=key: self._forget(key, done))

        return await asyncio.shield(task)

    def _forget(self, key, task):
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

        # nobody may be left awaiting a failed computation
        if not task.cancelled():
            task.exception()

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight


class _SingleFlightCache:
    namespace = "cache"

    def __init__(self, backend: Optional[CacheBackend] = None):
        self.backend = backend or get_cache_backend()
        self._single_flight = SingleFlight()

    def _key(self, key: str) -> str:
        return "{}:{}".format(self.namespace, key)

    async def _get_or_create(
        self,
        key: str,
        creator: Callable[[], Awaitable[Any]],
        ttl: Union[float, Callable[[Any], float]],
        dump: Callable[[Any], Any] = lambda value: value,
        load: Callable[[Any], Any] = lambda value: value,
    ):
        full_key = self._key(key)

        cached = await self.backend.get(full_key)
        if cached is not None:
            return load(cached)

        async def _create():
            # another flight may have filled the key while we were waiting
            cached = await self.backend.get(full_key)
            if cached is not None:
                return load(cached)

            value = await creator()
            ttl_value = ttl(value) if callable(ttl) else ttl
            await self.backend.set(full_key, dump(value), ttl_value)
            return value

        return await self._single_flight.do(full_key, _create)

    async def invalidate(self, key: str):
        await self.backend.delete(self._key(key))


class TokenCache(_SingleFlightCache):
    namespace = "courier_token"

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        refresh_margin_seconds: float = settings.TOKEN_REFRESH_MARGIN_SECONDS,
    ):
        super().__init__(backend)
        self.refresh_margin_seconds = refresh_margin_seconds

    def _ttl(self, token: Token) -> float:
        lifetime = token.seconds_left()
        if lifetime <= 0:
            logger.warning(
                extra=context_user_data.get(),
                msg="Received an already expired token, not caching it",
            )
            return 0

        # short lived tokens are refreshed at half life instead
        return max(lifetime - self.refresh_margin_seconds, lifetime / 2)

    async def get_or_create(
        self, courier_id: str, login: Callable[[], Awaitable[Token]]
    ) -> Token:
        return await self._get_or_create(
            courier_id,
            login,
            ttl=self._ttl,
            dump=lambda token: token.model_dump(mode="json"),
            load=Token.model_validate,
        )


class QuoteCache(_SingleFlightCache):
    namespace = "quote"

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        ttl_seconds: float = settings.QUOTE_CACHE_TTL_SECONDS,
    ):
        super().__init__(backend)
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def build_key(
        origin_pincode,
        destination_pincode,
        chargeable_weight,
        service_type=None,
        seller_id=None,
        cod_amount=0,
        courier=None,
        include_rto=False,
        zone: Optional[Zone] = None,
    ) -> str:
        parts = [
            courier or "all",
            str(origin_pincode),
            str(destination_pincode),
            zone.value if zone is not None else "-",
            "{:.3f}".format(float(chargeable_weight)),
            (service_type or "any").upper(),
            str(seller_id) if seller_id is not None else "-",
            "{:.2f}".format(float(cod_amount or 0)),
            "rto" if include_rto else "fwd",
        ]
        return ":".join(parts)

    async def get_or_create(self, key: str, creator: Callable[[], Awaitable[Any]]):
        """Values must already be JSON serializable (dumped models)."""
        return await self._get_or_create(key, creator, ttl=self.ttl_seconds)
