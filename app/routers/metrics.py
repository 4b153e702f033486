from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import CacheClient
from app.database import get_db
from app.dependencies import get_cache
from app.models import Album, AlbumLike, Song
from app.schemas import MetricsResponse

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):

    total_albums = (await db.execute(select(func.count()).select_from(Album))).scalar_one()

    total_songs = (await db.execute(select(func.count()).select_from(Song))).scalar_one()

    total_likes = (await db.execute(select(func.count()).select_from(AlbumLike))).scalar_one()

    return MetricsResponse(
        total_albums=total_albums,
        total_songs=total_songs,
        total_likes=total_likes,
        cache_info=cache.stats,
    )
