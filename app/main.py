from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.cache import CacheClient
from app.config import configure_logging, settings
from app.database import create_engine, create_session_factory
from app.dependencies import get_cache
from app.middleware import install_response_normalizer
from app.routers import albums, metrics, songs
from app.singleflight import SingleFlight
from app.storage import CoverStorage


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: every process-wide client is built here and torn down below.
    configure_logging()
    engine = create_engine(settings.DATABASE_URL)
    app.state.session_factory = create_session_factory(engine)
    app.state.cache = CacheClient(settings.REDIS_URL)
    await app.state.cache.connect()  # App works without Redis
    app.state.flights = SingleFlight()
    app.state.cover_storage = CoverStorage(settings.UPLOAD_DIR, settings.MAX_COVER_BYTES)
    yield
    # Shutdown
    await app.state.cache.disconnect()
    await engine.dispose()


app = FastAPI(
    title="Music Catalog API",
    description="Albums, songs and cached album like counts",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware: the normalizer is added first so CORS wraps its responses too.
install_response_normalizer(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(albums.router)
app.include_router(songs.router)
app.include_router(metrics.router)

app.mount("/albums/covers", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="covers")


@app.get("/health")
async def health(cache: CacheClient = Depends(get_cache)):
    return {
        "status": "healthy",
        "version": "1.0.0",
        "cache": "up" if await cache.ping() else "down",
    }
