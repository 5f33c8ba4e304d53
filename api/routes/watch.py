from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from api.config import COUNTRY_DEFAULT
from api.core.assembler import PLATFORM_SERVICE_IDS, subscription_only
from api.core.availability_cache import AvailabilityCache
from api.db.session import get_db

router = APIRouter(tags=["watch"])


@router.get("/watch-link/{tmdb_id}")
def get_watch_link(
    tmdb_id: int,
    platform: str = Query(..., description="Platform slug (e.g., 'hbo-max')"),
    country: str = Query(
        COUNTRY_DEFAULT, description="ISO 3166-1 alpha-2 country code"
    ),
    db: Session = Depends(get_db),
):
    """Redirect to the cached subscription deep link for a title on a platform."""
    service_id = PLATFORM_SERVICE_IDS.get(platform)
    if service_id is None:
        raise HTTPException(status_code=404, detail="Unknown platform")

    records = AvailabilityCache(db).get(tmdb_id, country) or []
    for record in subscription_only(records):
        if record.service_id == service_id and record.link:
            return RedirectResponse(url=record.link)
    raise HTTPException(status_code=404, detail="Link not found")
