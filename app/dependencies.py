"""
FastAPI dependencies.

Process-wide clients (cache, single-flight registry, cover storage) are
created by the application lifespan and stored on ``app.state``; these
functions hand them to request handlers so nothing reaches for a module
global.  Tests override them with ``app.dependency_overrides``.
"""
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheClient
from app.database import get_db
from app.exceptions import AuthenticationError
from app.services.like_service import AlbumLikeStore, LikeAggregationService
from app.singleflight import SingleFlight
from app.storage import CoverStorage


def get_cache(request: Request) -> CacheClient:
    return request.app.state.cache


def get_flights(request: Request) -> SingleFlight:
    return request.app.state.flights


def get_cover_storage(request: Request) -> CoverStorage:
    return request.app.state.cover_storage


def get_like_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
    flights: SingleFlight = Depends(get_flights),
) -> LikeAggregationService:
    return LikeAggregationService(AlbumLikeStore(db), cache, flights)


def get_current_user_id(x_user_id: str | None = Header(None)) -> str:
    """
    Identity of the caller, as asserted by the upstream authenticator in
    the ``X-User-Id`` header.
    """
    if not x_user_id:
        raise AuthenticationError("Missing authentication")
    return x_user_id
