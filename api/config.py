import os
from dotenv import load_dotenv

load_dotenv()


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


DATABASE_URL = os.getenv(
    "DATABASE_URL", "postgresql+psycopg2://app:app@db:5432/creatorfeed"
)

# Provider credentials are validated by the client constructors.
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")
TMDB_RATE_PER_SEC = _float_from_env("TMDB_RATE_PER_SEC", 3.0)
RAPIDAPI_KEY = os.getenv("RAPIDAPI_KEY", "")
RAPIDAPI_HOST = os.getenv("RAPIDAPI_HOST", "streaming-availability.p.rapidapi.com")

COUNTRY_DEFAULT = os.getenv("AVAILABILITY_COUNTRY", "pl").lower()
AVAILABILITY_CACHE_TTL_HOURS = _int_from_env("AVAILABILITY_CACHE_TTL_HOURS", 24)

# The availability provider allows ~100 calls/day shared by every user.
RECOMMENDATION_TARGET = _int_from_env("RECOMMENDATION_TARGET", 20)
RECOMMENDATION_BATCH_SIZE = _int_from_env("RECOMMENDATION_BATCH_SIZE", 10)
RECOMMENDATION_MAX_API_CALLS = _int_from_env("RECOMMENDATION_MAX_API_CALLS", 15)
RECOMMENDATION_MAX_RESULTS = _int_from_env("RECOMMENDATION_MAX_RESULTS", 50)
