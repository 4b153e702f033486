from pydantic import BaseModel, ConfigDict, Field


# --- Album ---

class AlbumPayload(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    year: int = Field(ge=1000, le=9999)


# --- Song ---

class SongPayload(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    year: int = Field(ge=1000, le=9999)
    performer: str = Field(min_length=1, max_length=255)
    genre: str = Field(min_length=1, max_length=100)
    duration: int | None = Field(None, ge=0)
    album_id: str | None = Field(None, alias="albumId")

    model_config = ConfigDict(populate_by_name=True)


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_albums: int
    total_songs: int
    total_likes: int
    cache_info: dict = {}
