"""
Album service — CRUD for the Album aggregate.

Every lookup that misses raises ``NotFoundError``; routers never build
failure envelopes themselves.  Service functions flush but do not commit;
the transaction boundary is owned by the ``get_db`` dependency.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.exceptions import NotFoundError
from app.models import Album
from app.schemas import AlbumPayload
from app.services.song_service import song_summary_to_dict


def album_to_dict(album: Album) -> dict:
    return {
        "id": album.id,
        "name": album.name,
        "year": album.year,
        "coverUrl": album.cover_url,
    }


async def _get_or_404(db: AsyncSession, album_id: str, *, with_songs: bool = False) -> Album:
    q = select(Album).where(Album.id == album_id)
    if with_songs:
        q = q.options(selectinload(Album.songs))
    album = (await db.execute(q)).scalar_one_or_none()
    if album is None:
        raise NotFoundError("Album not found")
    return album


async def add_album(db: AsyncSession, data: AlbumPayload) -> str:
    album = Album(name=data.name, year=data.year)
    db.add(album)
    await db.flush()
    return album.id


async def get_albums(db: AsyncSession) -> list[dict]:
    result = await db.execute(select(Album).order_by(Album.created_at))
    return [album_to_dict(a) for a in result.scalars().all()]


async def get_album(db: AsyncSession, album_id: str) -> dict:
    """Return the album with a summary of its songs."""
    album = await _get_or_404(db, album_id, with_songs=True)
    data = album_to_dict(album)
    data["songs"] = [song_summary_to_dict(s) for s in album.songs]
    return data


async def update_album(db: AsyncSession, album_id: str, data: AlbumPayload) -> None:
    album = await _get_or_404(db, album_id)
    album.name = data.name
    album.year = data.year
    await db.flush()


async def delete_album(db: AsyncSession, album_id: str) -> None:
    album = await _get_or_404(db, album_id)
    await db.delete(album)
    await db.flush()


async def set_cover(db: AsyncSession, album_id: str, cover_url: str) -> None:
    album = await _get_or_404(db, album_id)
    album.cover_url = cover_url
    await db.flush()


async def ensure_album(db: AsyncSession, album_id: str) -> None:
    """Raise ``NotFoundError`` unless the album exists."""
    await _get_or_404(db, album_id)
