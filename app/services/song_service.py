"""
Song service — CRUD and search for the Song aggregate.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvariantError, NotFoundError
from app.models import Album, Song
from app.schemas import SongPayload


def song_summary_to_dict(song: Song) -> dict:
    """Lightweight shape used in list views and inside album detail."""
    return {"id": song.id, "title": song.title, "performer": song.performer}


def song_to_dict(song: Song) -> dict:
    return {
        "id": song.id,
        "title": song.title,
        "year": song.year,
        "performer": song.performer,
        "genre": song.genre,
        "duration": song.duration,
        "albumId": song.album_id,
    }


async def _check_album_reference(db: AsyncSession, album_id: str | None) -> None:
    if album_id is None:
        return
    found = await db.execute(select(Album.id).where(Album.id == album_id))
    if found.scalar_one_or_none() is None:
        raise InvariantError("albumId does not refer to an existing album")


async def _get_or_404(db: AsyncSession, song_id: str) -> Song:
    song = (await db.execute(select(Song).where(Song.id == song_id))).scalar_one_or_none()
    if song is None:
        raise NotFoundError("Song not found")
    return song


async def add_song(db: AsyncSession, data: SongPayload) -> str:
    await _check_album_reference(db, data.album_id)
    song = Song(
        title=data.title,
        year=data.year,
        performer=data.performer,
        genre=data.genre,
        duration=data.duration,
        album_id=data.album_id,
    )
    db.add(song)
    await db.flush()
    return song.id


async def get_songs(db: AsyncSession, title: str = "", performer: str = "") -> list[dict]:
    """
    Return songs whose title and performer contain the given fragments
    (case-insensitive).  Empty fragments match everything.
    """
    q = select(Song).order_by(Song.created_at)
    if title:
        q = q.where(Song.title.ilike(f"%{title}%"))
    if performer:
        q = q.where(Song.performer.ilike(f"%{performer}%"))
    result = await db.execute(q)
    return [song_summary_to_dict(s) for s in result.scalars().all()]


async def get_song(db: AsyncSession, song_id: str) -> dict:
    return song_to_dict(await _get_or_404(db, song_id))


async def update_song(db: AsyncSession, song_id: str, data: SongPayload) -> None:
    song = await _get_or_404(db, song_id)
    await _check_album_reference(db, data.album_id)
    for field, value in data.model_dump().items():
        setattr(song, field, value)
    await db.flush()


async def delete_song(db: AsyncSession, song_id: str) -> None:
    song = await _get_or_404(db, song_id)
    await db.delete(song)
    await db.flush()
