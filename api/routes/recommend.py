from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.config import COUNTRY_DEFAULT
from api.core.availability_cache import AvailabilityCache
from api.core.batch_fetcher import BatchFetcher, FetchLimits
from api.core.candidates import CandidateAggregator
from api.core.recommendations import RecommendationService
from api.core.repository import UserRepository
from api.db.session import get_db

router = APIRouter(prefix="/recommendations", tags=["recommendations"])
logger = logging.getLogger(__name__)


def build_service(request: Request, db: Session) -> RecommendationService:
    tmdb_client = getattr(request.app.state, "tmdb_client", None)
    if tmdb_client is None:
        raise HTTPException(
            status_code=503, detail="Metadata provider is not configured"
        )
    streaming_client = getattr(request.app.state, "streaming_client", None)
    if streaming_client is None:
        logger.warning("Availability provider unconfigured; serving cached availability only")
    fetcher = BatchFetcher(
        AvailabilityCache(db),
        streaming_client,
        limits=FetchLimits.from_config(),
        country=COUNTRY_DEFAULT,
    )
    return RecommendationService(
        UserRepository(db), CandidateAggregator(tmdb_client), fetcher
    )


@router.get("")
async def recommendations(
    request: Request,
    user_id: str = Query(..., description="Authenticated user id"),
    limit: int = Query(50, ge=1, le=50),
    cursor: str | None = Query(
        None, description="Id of the last recommendation seen on the previous page."
    ),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    """
    Movies by the user's favourite creators that stream on their platforms.
    """
    service = build_service(request, db)
    try:
        records = await service.get(user_id, limit=limit, cursor=cursor)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load preferences for %s", user_id)
        raise HTTPException(
            status_code=500, detail="Failed to load user preferences"
        ) from exc
    return [record.to_dict() for record in records]
