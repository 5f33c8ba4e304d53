from __future__ import annotations

import logging
from typing import Any, Dict, List

from cachetools import TTLCache
from fastapi import APIRouter, HTTPException, Query, Request

from providers.errors import ExternalApiError, RateLimitError

router = APIRouter(prefix="/creators", tags=["creators"])
logger = logging.getLogger(__name__)

# Search-as-you-type repeats queries; keep TMDB traffic under its rate limit.
CREATOR_SEARCH_CACHE: TTLCache[str, List[Dict[str, Any]]] = TTLCache(
    maxsize=1000, ttl=300
)


@router.get("/search")
async def search_creators(
    request: Request,
    q: str = Query(..., min_length=2, description="Actor or director name"),
) -> List[Dict[str, Any]]:
    client = getattr(request.app.state, "tmdb_client", None)
    if client is None:
        raise HTTPException(
            status_code=503,
            detail="Metadata provider is not configured. Set TMDB_API_KEY.",
        )
    key = " ".join(q.lower().split())
    cached = CREATOR_SEARCH_CACHE.get(key)
    if cached is not None:
        return cached
    try:
        creators = await client.search_creators(q)
    except RateLimitError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except ExternalApiError as exc:
        logger.warning("Creator search failed for %r: %s", q, exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    result = [creator.to_dict() for creator in creators]
    CREATOR_SEARCH_CACHE[key] = result
    return result
