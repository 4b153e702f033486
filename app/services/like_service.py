"""
Like service — aggregate like counts for albums, cached in Redis.

Design notes
------------
- Reads are cache-aside: the counter key is looked up first; on a miss the
  count is recomputed from the database and written back with a TTL.
- Cached values are always full recounts.  Mutations delete the key instead
  of adjusting it, so the cache can never drift from the database.
- Concurrent misses for the same album are coalesced through a shared
  ``SingleFlight``; only one recount query runs per key at a time.
- The cache is an accelerator only.  Unreachable or slow Redis degrades to
  database reads; a failed invalidation is reported, never raised.
- Mutations commit before invalidating, so a recount triggered by another
  request after the delete can only observe committed state.  Invalidation
  also detaches any recount still in flight, and a detached recount does
  not write back, since it may have counted before the commit.
"""
import enum
import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheClient
from app.config import settings
from app.exceptions import CacheUnavailableError, ConflictError, NotFoundError
from app.models import Album, AlbumLike
from app.singleflight import SingleFlight

logger = logging.getLogger(__name__)


def counter_key(album_id: str) -> str:
    return f"album_likes:{album_id}"


class CountOrigin(str, enum.Enum):
    CACHE = "cache"
    SOURCE = "server"


@dataclass(frozen=True)
class AggregationResult:
    count: int
    origin: CountOrigin


@dataclass(frozen=True)
class LikeMutation:
    # False when the write succeeded but the cached count could not be dropped;
    # readers may see the old count until the entry expires.
    cache_invalidated: bool


# ---------------------------------------------------------------------------
# Source of truth
# ---------------------------------------------------------------------------

class AlbumLikeStore:
    """Authoritative like queries against the relational store."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def entity_exists(self, album_id: str) -> bool:
        found = await self.db.execute(select(Album.id).where(Album.id == album_id))
        return found.scalar_one_or_none() is not None

    async def count_likes_for(self, album_id: str) -> int:
        q = select(func.count()).select_from(AlbumLike).where(AlbumLike.album_id == album_id)
        return (await self.db.execute(q)).scalar_one()

    async def find_like(self, album_id: str, user_id: str) -> str | None:
        q = select(AlbumLike.id).where(
            AlbumLike.album_id == album_id, AlbumLike.user_id == user_id
        )
        return (await self.db.execute(q)).scalar_one_or_none()

    async def insert_like_record(self, album_id: str, user_id: str) -> str:
        """Insert and commit.  Raises ``ConflictError`` if the pair already exists."""
        like = AlbumLike(album_id=album_id, user_id=user_id)
        self.db.add(like)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("Album is already liked by this user") from exc
        return like.id

    async def delete_like_record(self, album_id: str, user_id: str) -> bool:
        """Delete and commit.  Returns False when there was nothing to delete."""
        result = await self.db.execute(
            delete(AlbumLike).where(
                AlbumLike.album_id == album_id, AlbumLike.user_id == user_id
            )
        )
        await self.db.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Aggregation service
# ---------------------------------------------------------------------------

class LikeAggregationService:
    """
    Owns the cache-aside protocol for album like counters.

    This is the only component that writes or deletes ``album_likes:*``
    keys.  *cache* and *flights* are process-wide and shared between
    requests; *store* is bound to the current request's session.
    """

    def __init__(
        self,
        store: AlbumLikeStore,
        cache: CacheClient,
        flights: SingleFlight,
        ttl: int = settings.CACHE_TTL_LIKES,
    ) -> None:
        self.store = store
        self.cache = cache
        self.flights = flights
        self.ttl = ttl

    async def get_count(self, album_id: str) -> AggregationResult:
        key = counter_key(album_id)
        try:
            cached = await self.cache.get(key)
        except CacheUnavailableError as exc:
            logger.debug("Like count cache read skipped for %s: %s", album_id, exc)
            cached = None
        if cached is not None:
            try:
                return AggregationResult(int(cached), CountOrigin.CACHE)
            except ValueError:
                logger.warning("Ignoring unparsable cached like count %r for %s", cached, album_id)

        count, shared = await self.flights.do(key, lambda: self._recount(album_id))
        if shared:
            logger.debug("Reused in-flight like recount for %s", album_id)
        return AggregationResult(count, CountOrigin.SOURCE)

    async def _recount(self, album_id: str) -> int:
        key = counter_key(album_id)
        generation = self.flights.generation(key)
        if not await self.store.entity_exists(album_id):
            raise NotFoundError("Album not found")
        count = await self.store.count_likes_for(album_id)
        if self.flights.generation(key) != generation:
            # Invalidated while counting; the snapshot may predate the mutation.
            logger.debug("Discarding superseded like recount for %s", album_id)
            return count
        try:
            await self.cache.set(key, count, ttl=self.ttl)
            if self.flights.generation(key) != generation:
                # Invalidated during the write; its delete may have landed first.
                await self.cache.delete(key)
        except CacheUnavailableError as exc:
            logger.debug("Like count cache write skipped for %s: %s", album_id, exc)
        return count

    async def like(self, album_id: str, user_id: str) -> LikeMutation:
        if not await self.store.entity_exists(album_id):
            raise NotFoundError("Album not found")
        if await self.store.find_like(album_id, user_id) is not None:
            raise ConflictError("Album is already liked by this user")
        await self.store.insert_like_record(album_id, user_id)
        logger.info("User %s liked album %s", user_id, album_id)
        return LikeMutation(cache_invalidated=await self.invalidate(album_id))

    async def unlike(self, album_id: str, user_id: str) -> LikeMutation:
        """Remove the user's like.  Unliking an album that was not liked is a no-op."""
        if not await self.store.entity_exists(album_id):
            raise NotFoundError("Album not found")
        removed = await self.store.delete_like_record(album_id, user_id)
        if removed:
            logger.info("User %s unliked album %s", user_id, album_id)
        return LikeMutation(cache_invalidated=await self.invalidate(album_id))

    async def invalidate(self, album_id: str) -> bool:
        """
        Drop the cached count for *album_id*.  Call only after the change
        that made it stale has committed.

        A recount already in flight is detached and will not write its
        result back.  Returns False when the cache could not be reached.
        """
        self.flights.forget(counter_key(album_id))
        try:
            await self.cache.delete(counter_key(album_id))
        except CacheUnavailableError as exc:
            logger.warning(
                "Could not invalidate like count for %s, it may be stale until expiry: %s",
                album_id,
                exc,
            )
            return False
        return True
