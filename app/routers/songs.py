from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import SongPayload
from app.services import song_service

router = APIRouter(prefix="/songs", tags=["songs"])


@router.post("", status_code=201)
async def post_song(data: SongPayload, db: AsyncSession = Depends(get_db)):
    song_id = await song_service.add_song(db, data)
    return {"status": "success", "message": "Song added", "data": {"songId": song_id}}


@router.get("")
async def get_songs(
    title: str = Query("", description="Case-insensitive title fragment."),
    performer: str = Query("", description="Case-insensitive performer fragment."),
    db: AsyncSession = Depends(get_db),
):
    songs = await song_service.get_songs(db, title, performer)
    return {"status": "success", "data": {"songs": songs}}


@router.get("/{song_id}")
async def get_song(song_id: str, db: AsyncSession = Depends(get_db)):
    song = await song_service.get_song(db, song_id)
    return {"status": "success", "data": {"song": song}}


@router.put("/{song_id}")
async def put_song(song_id: str, data: SongPayload, db: AsyncSession = Depends(get_db)):
    await song_service.update_song(db, song_id, data)
    return {"status": "success", "message": "Song updated"}


@router.delete("/{song_id}")
async def delete_song(song_id: str, db: AsyncSession = Depends(get_db)):
    await song_service.delete_song(db, song_id)
    return {"status": "success", "message": "Song deleted"}
