from __future__ import annotations

import argparse
import asyncio
import json

from api.config import COUNTRY_DEFAULT, RAPIDAPI_HOST, RAPIDAPI_KEY
from providers.streaming_client import StreamingAvailabilityClient


async def _check(tmdb_id: int, country: str) -> None:
    client = StreamingAvailabilityClient(RAPIDAPI_KEY, host=RAPIDAPI_HOST)
    try:
        records = await client.get_availability(tmdb_id, country)
    finally:
        await client.aclose()
    print(json.dumps([record.to_dict() for record in records], indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Fetch streaming availability for one TMDB movie (bypasses the cache)."
    )
    parser.add_argument("--tmdb-id", type=int, required=True)
    parser.add_argument(
        "--country",
        default=COUNTRY_DEFAULT,
        help="ISO country code, defaults to AVAILABILITY_COUNTRY env or pl.",
    )
    args = parser.parse_args()
    asyncio.run(_check(args.tmdb_id, args.country))


if __name__ == "__main__":
    main()
