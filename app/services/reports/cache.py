import asyncio
import hashlib
import logging
from functools import lru_cache
from typing import Dict, Optional, Protocol

import redis.asyncio as redis

from app.core.config import get_settings
from app.schemas.customer_report import CustomerReportQuery, CustomerReportResult

logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Key-value store with atomic get, set and increment."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def incr(self, key: str) -> int: ...


class InMemoryCacheBackend:
    """Process-local backend, used for tests and single worker deployments."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            self._values[key] = value

    async def incr(self, key: str) -> int:
        async with self._lock:
            value = int(self._values.get(key, 0)) + 1
            self._values[key] = str(value)
            return value

    def __len__(self) -> int:
        return len(self._values)


class RedisCacheBackend:
    """Backend shared by every API worker through Redis."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None) -> None:
        self.redis_url = redis_url
        self.redis_client: Optional[redis.Redis] = client

    async def connect(self) -> None:
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info(f"Connected report cache to {self.redis_url}")

    async def disconnect(self) -> None:
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None

    async def get(self, key: str) -> Optional[str]:
        if not self.redis_client:
            await self.connect()
        return await self.redis_client.get(key)

    async def set(self, key: str, value: str) -> None:
        if not self.redis_client:
            await self.connect()
        await self.redis_client.set(key, value)

    async def incr(self, key: str) -> int:
        if not self.redis_client:
            await self.connect()
        return int(await self.redis_client.incr(key))


class ReportCache:
    """Memoizes report results by a hash of their normalized arguments.

    Entries never expire on their own. Writers invalidate a whole namespace at
    once with clear(), which bumps the namespace generation so that every key
    written before becomes unreachable.
    """

    def __init__(self, backend: CacheBackend, prefix: str = "reports") -> None:
        self.backend = backend
        self.prefix = prefix

    def _generation_key(self, namespace: str) -> str:
        return f"{self.prefix}:{namespace}:generation"

    async def _generation(self, namespace: str) -> int:
        value = await self.backend.get(self._generation_key(namespace))
        return int(value) if value else 0

    @staticmethod
    def query_digest(query: CustomerReportQuery) -> str:
        return hashlib.sha256(query.canonical_json().encode()).hexdigest()

    async def make_key(self, namespace: str, query: CustomerReportQuery) -> str:
        generation = await self._generation(namespace)
        return f"{self.prefix}:{namespace}:v{generation}:{self.query_digest(query)}"

    async def get_by_key(self, key: str) -> Optional[CustomerReportResult]:
        payload = await self.backend.get(key)
        if payload is None:
            logger.debug(f"Report cache miss for {key}")
            return None
        logger.debug(f"Report cache hit for {key}")
        return CustomerReportResult.model_validate_json(payload)

    async def set_by_key(self, key: str, result: CustomerReportResult) -> None:
        """Store a result under a key made before its queries ran.

        A clear() in between has moved the namespace to a newer generation, so
        the stale result lands under a key nobody reads anymore.
        """
        # Unselected row fields stay out of the payload so they stay unset on the way back
        await self.backend.set(key, result.model_dump_json(exclude_unset=True))

    async def get(self, namespace: str, query: CustomerReportQuery) -> Optional[CustomerReportResult]:
        return await self.get_by_key(await self.make_key(namespace, query))

    async def set(self, namespace: str, query: CustomerReportQuery, result: CustomerReportResult) -> None:
        await self.set_by_key(await self.make_key(namespace, query), result)

    async def clear(self, namespace: str) -> int:
        generation = await self.backend.incr(self._generation_key(namespace))
        logger.info(f"Cleared report cache namespace '{namespace}' (generation {generation})")
        return generation


def build_report_cache(backend_name: Optional[str] = None) -> ReportCache:
    settings = get_settings()
    backend_name = (backend_name or settings.REPORTS_CACHE_BACKEND).lower()
    if backend_name == "redis":
        backend = RedisCacheBackend(settings.REDIS_URL)
    elif backend_name == "memory":
        backend = InMemoryCacheBackend()
    else:
        raise ValueError(f"Unknown report cache backend: {backend_name}")
    return ReportCache(backend, prefix=settings.REPORTS_CACHE_PREFIX)


@lru_cache()
def get_report_cache() -> ReportCache:
    """Process wide report cache, usable as a FastAPI dependency."""
    return build_report_cache()
