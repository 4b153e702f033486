import asyncio
import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config import settings
from app.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)


class CacheClient:
    """
    String-keyed key/value store with expiry, backed by Redis.

    A miss (absent or expired key) is reported as ``None``.  Anything that
    prevents the store from answering -- no connection, a transport error or
    an operation exceeding ``timeout`` seconds -- raises
    ``CacheUnavailableError`` so callers can tell the two apart.

    One instance is created by the application lifespan and shared by every
    request; it is never constructed per request.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = settings.CACHE_OPERATION_TIMEOUT,
        default_ttl: int = settings.CACHE_TTL_LIKES,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.default_ttl = default_ttl
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0
        self._errors: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        # Ping to surface mis-configuration early (non-fatal).
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", self.url)
        except (RedisError, OSError) as exc:
            logger.warning("Redis ping failed, counts will be served from the database: %s", exc)

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def ping(self) -> bool:
        try:
            return bool(await self._call("PING", lambda r: r.ping()))
        except CacheUnavailableError:
            return False

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def _call(self, op: str, fn):
        if self._redis is None:
            self._errors += 1
            raise CacheUnavailableError("cache is not connected")
        try:
            return await asyncio.wait_for(fn(self._redis), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            self._errors += 1
            raise CacheUnavailableError(f"cache {op} timed out after {self.timeout}s") from exc
        except (RedisError, OSError) as exc:
            self._errors += 1
            raise CacheUnavailableError(f"cache {op} failed: {exc}") from exc

    async def get(self, key: str) -> str | None:
        """Return the stored value for *key*, or None when it is absent or expired."""
        value = await self._call("GET", lambda r: r.get(key))
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    async def set(self, key: str, value: str | int, ttl: int | None = None) -> None:
        """Store *value* under *key*, replacing any previous entry."""
        ttl = self.default_ttl if ttl is None else ttl
        await self._call("SET", lambda r: r.set(key, value, ex=ttl))

    async def delete(self, key: str) -> None:
        """Remove *key*.  Deleting an absent key is a no-op."""
        await self._call("DEL", lambda r: r.delete(key))

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._redis is not None

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss/error counters for metrics endpoints."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }
