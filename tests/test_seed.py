"""Seed script smoke test against a throwaway SQLite file."""
import pytest
from sqlalchemy import func, select

from app.database import create_engine, create_session_factory
from app.models import Album, AlbumLike, Song
from scripts.seed import seed


@pytest.mark.asyncio
async def test_small_seed_populates_catalog(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'seed.db'}"
    await seed(small=True, database_url=url)

    engine = create_engine(url)
    async with create_session_factory(engine)() as session:
        albums = (await session.execute(select(func.count()).select_from(Album))).scalar_one()
        songs = (await session.execute(select(func.count()).select_from(Song))).scalar_one()
        likes = (await session.execute(select(func.count()).select_from(AlbumLike))).scalar_one()
    await engine.dispose()

    assert albums == 10
    assert songs == 50
    assert 0 <= likes <= 10 * 20
