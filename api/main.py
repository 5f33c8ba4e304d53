import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes.health import router as health_router
from api.db.session import init_engine, get_sessionmaker, get_db
from api.routes.user import router as user_router
from api.routes.recommend import router as recommend_router
from api.routes.creators import router as creators_router
from api.routes.watch import router as watch_router
from api.config import RAPIDAPI_HOST, RAPIDAPI_KEY, TMDB_API_KEY, TMDB_RATE_PER_SEC
from providers.errors import ConfigurationError
from providers.streaming_client import StreamingAvailabilityClient
from providers.tmdb_client import TMDBClient

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logging.getLogger("api.core.batch_fetcher").setLevel(logging.DEBUG)
# Reduce noise from other modules
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.INFO)

logger = logging.getLogger(__name__)


def _build_clients(app: FastAPI) -> None:
    try:
        app.state.tmdb_client = TMDBClient(TMDB_API_KEY, rate_per_sec=TMDB_RATE_PER_SEC)
    except ConfigurationError as exc:
        logger.error("Metadata provider disabled: %s", exc)
        app.state.tmdb_client = None
    try:
        app.state.streaming_client = StreamingAvailabilityClient(
            RAPIDAPI_KEY, host=RAPIDAPI_HOST
        )
    except ConfigurationError as exc:
        logger.error("Availability provider disabled, cache only: %s", exc)
        app.state.streaming_client = None


async def _close_clients(app: FastAPI) -> None:
    for name in ("tmdb_client", "streaming_client"):
        client = getattr(app.state, name, None)
        if client is not None:
            await client.aclose()
            setattr(app.state, name, None)


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    _initialise_application(app)
    _build_clients(app)
    yield
    await _close_clients(app)


app = FastAPI(title="CreatorFeed", version="0.1.0", lifespan=app_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="")
app.include_router(user_router)
app.include_router(creators_router)
app.include_router(recommend_router)
app.include_router(watch_router)


def _initialise_application(app: FastAPI) -> None:
    # When tests override get_db we skip touching the real database.
    if get_db in app.dependency_overrides:
        return
    init_engine()
    get_sessionmaker()
