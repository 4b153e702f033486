from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.dependencies import get_cover_storage, get_current_user_id, get_like_service
from app.schemas import AlbumPayload
from app.services import album_service
from app.services.like_service import LikeAggregationService, LikeMutation
from app.storage import CoverStorage

router = APIRouter(prefix="/albums", tags=["albums"])


def _mark_degraded(response: Response, outcome: LikeMutation) -> None:
    if not outcome.cache_invalidated:
        response.headers["X-Cache-Invalidated"] = "false"


@router.post("", status_code=201)
async def post_album(data: AlbumPayload, db: AsyncSession = Depends(get_db)):
    album_id = await album_service.add_album(db, data)
    return {"status": "success", "message": "Album added", "data": {"albumId": album_id}}


@router.get("")
async def get_albums(db: AsyncSession = Depends(get_db)):
    albums = await album_service.get_albums(db)
    return {"status": "success", "data": {"albums": albums}}


@router.get("/{album_id}")
async def get_album(album_id: str, db: AsyncSession = Depends(get_db)):
    album = await album_service.get_album(db, album_id)
    return {"status": "success", "data": {"album": album}}


@router.put("/{album_id}")
async def put_album(album_id: str, data: AlbumPayload, db: AsyncSession = Depends(get_db)):
    await album_service.update_album(db, album_id, data)
    return {"status": "success", "message": "Album updated"}


@router.delete("/{album_id}")
async def delete_album(
    album_id: str,
    response: Response,
    db: AsyncSession = Depends(get_db),
    likes: LikeAggregationService = Depends(get_like_service),
):
    await album_service.delete_album(db, album_id)
    # The album's likes go with it; drop the counter once that is durable.
    await db.commit()
    _mark_degraded(response, LikeMutation(cache_invalidated=await likes.invalidate(album_id)))
    return {"status": "success", "message": "Album deleted"}


@router.post("/{album_id}/covers", status_code=201)
async def post_cover(
    album_id: str,
    cover: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: CoverStorage = Depends(get_cover_storage),
):
    await album_service.ensure_album(db, album_id)
    filename = await storage.save(cover)
    cover_url = f"http://{settings.HOST}:{settings.PORT}/albums/covers/{filename}"
    await album_service.set_cover(db, album_id, cover_url)
    return {"status": "success", "message": "Cover uploaded"}


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

@router.post("/{album_id}/likes", status_code=201)
async def post_like(
    album_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    likes: LikeAggregationService = Depends(get_like_service),
):
    _mark_degraded(response, await likes.like(album_id, user_id))
    return {"status": "success", "message": "Album liked"}


@router.get("/{album_id}/likes")
async def get_likes(
    album_id: str,
    response: Response,
    likes: LikeAggregationService = Depends(get_like_service),
):
    result = await likes.get_count(album_id)
    response.headers["X-Data-Source"] = result.origin.value
    return {"status": "success", "data": {"likes": result.count}}


@router.delete("/{album_id}/likes")
async def delete_like(
    album_id: str,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    likes: LikeAggregationService = Depends(get_like_service),
):
    _mark_degraded(response, await likes.unlike(album_id, user_id))
    return {"status": "success", "message": "Album unliked"}
