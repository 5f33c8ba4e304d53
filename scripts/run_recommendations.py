from __future__ import annotations

import argparse
import asyncio
import json
from typing import Optional

from api.config import (
    COUNTRY_DEFAULT,
    RAPIDAPI_HOST,
    RAPIDAPI_KEY,
    TMDB_API_KEY,
    TMDB_RATE_PER_SEC,
)
from api.core.availability_cache import AvailabilityCache
from api.core.batch_fetcher import BatchFetcher, FetchLimits
from api.core.candidates import CandidateAggregator
from api.core.recommendations import RecommendationService
from api.core.repository import UserRepository
from api.db.session import session_scope
from providers.errors import ConfigurationError
from providers.streaming_client import StreamingAvailabilityClient
from providers.tmdb_client import TMDBClient


async def _run(user_id: str, limit: int, cache_only: bool) -> None:
    try:
        tmdb = TMDBClient(TMDB_API_KEY, rate_per_sec=TMDB_RATE_PER_SEC)
    except ConfigurationError as exc:
        raise SystemExit(f"[feed] {exc}; cannot build candidates without TMDB") from exc
    streaming: Optional[StreamingAvailabilityClient] = None
    if not cache_only:
        try:
            streaming = StreamingAvailabilityClient(RAPIDAPI_KEY, host=RAPIDAPI_HOST)
        except ConfigurationError as exc:
            print(f"[feed] {exc}; using cached availability only")
    try:
        with session_scope() as db:
            service = RecommendationService(
                UserRepository(db),
                CandidateAggregator(tmdb),
                BatchFetcher(
                    AvailabilityCache(db),
                    streaming,
                    limits=FetchLimits.from_config(),
                    country=COUNTRY_DEFAULT,
                ),
            )
            records = await service.get(user_id, limit=limit)
    finally:
        await tmdb.aclose()
        if streaming is not None:
            await streaming.aclose()
    print(json.dumps([record.to_dict() for record in records], indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Compute the recommendation feed for one user."
    )
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--limit", type=int, default=50)
    parser.add_argument(
        "--cache-only",
        action="store_true",
        help="Do not spend availability provider quota.",
    )
    args = parser.parse_args()
    asyncio.run(_run(args.user_id, args.limit, args.cache_only))


if __name__ == "__main__":
    main()
