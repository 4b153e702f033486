from __future__ import annotations

import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


def generate_id(prefix: str) -> str:
    """Return an opaque public id such as ``album-Xq3v...``."""
    return f"{prefix}-{secrets.token_urlsafe(12)}"


# ---------------------------------------------------------------------------
# Album
# ---------------------------------------------------------------------------
class Album(Base):
    __tablename__ = "albums"

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=lambda: generate_id("album")
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    cover_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    # Relationships — lazy="noload" enforces explicit eager loading in services
    songs: Mapped[List["Song"]] = relationship(
        "Song", back_populates="album", lazy="noload"
    )


# ---------------------------------------------------------------------------
# Song
# ---------------------------------------------------------------------------
class Song(Base):
    __tablename__ = "songs"

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=lambda: generate_id("song")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    performer: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    genre: Mapped[str] = mapped_column(String(100), nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    album_id: Mapped[Optional[str]] = mapped_column(
        String(50), ForeignKey("albums.id", ondelete="SET NULL"), nullable=True, index=True
    )

    album: Mapped[Optional["Album"]] = relationship(
        "Album", back_populates="songs", lazy="noload"
    )


# ---------------------------------------------------------------------------
# AlbumLike — one row per (user, album)
# ---------------------------------------------------------------------------
class AlbumLike(Base):
    __tablename__ = "user_album_likes"

    __table_args__ = (
        UniqueConstraint("user_id", "album_id", name="uq_user_album_likes_user_album"),
    )

    id: Mapped[str] = mapped_column(
        String(50), primary_key=True, default=lambda: generate_id("album-like")
    )
    user_id: Mapped[str] = mapped_column(String(50), nullable=False)
    album_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("albums.id", ondelete="CASCADE"), nullable=False, index=True
    )
