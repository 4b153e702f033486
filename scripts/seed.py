"""Database seeder for the music catalog: albums, songs and album likes."""
import asyncio
import argparse
import random
import time

from app.config import settings
from app.database import Base, create_engine, create_session_factory
from app.models import Album, AlbumLike, Song

GENRES = ["Rock", "Pop", "Jazz", "Indie", "Electronic", "Hip-Hop", "Folk", "Metal"]
PERFORMERS = ["Coldplay", "Radiohead", "Norah Jones", "Daft Punk", "Adele",
              "Kendrick Lamar", "Bon Iver", "Metallica"]


async def seed(small: bool = False, database_url: str = settings.DATABASE_URL):
    num_albums = 10 if small else 500
    songs_per_album = 5 if small else 12
    num_users = 20 if small else 1000

    print(f"Seeding: {num_albums} albums, {num_albums * songs_per_album} songs, up to {num_users} likes per album")
    start = time.perf_counter()

    engine = create_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    session_factory = create_session_factory(engine)
    total_likes = 0
    async with session_factory() as session:
        for i in range(num_albums):
            performer = random.choice(PERFORMERS)
            year = random.randint(1970, 2024)
            album = Album(name=f"Album {i}", year=year)
            session.add(album)
            await session.flush()

            for track in range(songs_per_album):
                session.add(Song(
                    title=f"Track {track + 1} of Album {i}",
                    year=year,
                    performer=performer,
                    genre=random.choice(GENRES),
                    duration=random.randint(120, 420),
                    album_id=album.id,
                ))

            # Each user likes an album at most once.
            likers = random.sample(range(num_users), k=random.randint(0, num_users))
            for user in likers:
                session.add(AlbumLike(user_id=f"user-{user:05d}", album_id=album.id))
            total_likes += len(likers)

            if i % 50 == 49:
                await session.flush()
                print(f"  Albums 0-{i}: created")

        await session.commit()
    await engine.dispose()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Albums: {num_albums}")
    print(f"  Songs: {num_albums * songs_per_album}")
    print(f"  Likes: {total_likes}")


def main():
    parser = argparse.ArgumentParser(description="Seed the music catalog database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (10 albums)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
