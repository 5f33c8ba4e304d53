from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.config import AVAILABILITY_CACHE_TTL_HOURS
from api.core.types import AvailabilityRecord
from api.db.models import VodAvailabilityCache

logger = logging.getLogger(__name__)

CACHE_TTL = timedelta(hours=AVAILABILITY_CACHE_TTL_HOURS)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _decode(raw: Optional[Iterable[dict]]) -> List[AvailabilityRecord]:
    records: List[AvailabilityRecord] = []
    for entry in raw or []:
        if not isinstance(entry, dict):
            continue
        record = AvailabilityRecord.from_dict(entry)
        if record is not None:
            records.append(record)
    return records


class AvailabilityCache:
    """
    Per-(title, country) availability cache stored in ``vod_availability_cache``.

    Expiry is lazy: rows older than the TTL stay in the table but are never
    returned. An empty record list is a valid cached value.
    """

    def __init__(
        self,
        db: Session,
        ttl: timedelta = CACHE_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db = db
        self.ttl = ttl
        self.clock = clock

    def _cutoff(self) -> datetime:
        return self.clock() - self.ttl

    def get_many(
        self, tmdb_ids: Iterable[int], country: str
    ) -> Dict[int, List[AvailabilityRecord]]:
        ids = list(dict.fromkeys(int(i) for i in tmdb_ids))
        if not ids:
            return {}
        stmt = select(
            VodAvailabilityCache.tmdb_id, VodAvailabilityCache.availability_data
        ).where(
            VodAvailabilityCache.tmdb_id.in_(ids),
            VodAvailabilityCache.country_code == country.lower(),
            VodAvailabilityCache.last_updated_at > self._cutoff(),
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Availability cache read failed; treating as miss: %s", exc)
            return {}
        return {int(tmdb_id): _decode(data) for tmdb_id, data in rows}

    def get(self, tmdb_id: int, country: str) -> Optional[List[AvailabilityRecord]]:
        return self.get_many([tmdb_id], country).get(int(tmdb_id))

    def put(
        self, tmdb_id: int, country: str, records: Iterable[AvailabilityRecord]
    ) -> None:
        country = country.lower()
        try:
            self.db.execute(
                delete(VodAvailabilityCache).where(
                    VodAvailabilityCache.tmdb_id == tmdb_id,
                    VodAvailabilityCache.country_code == country,
                )
            )
            self.db.add(
                VodAvailabilityCache(
                    tmdb_id=tmdb_id,
                    country_code=country,
                    availability_data=[record.to_dict() for record in records],
                    last_updated_at=self.clock(),
                )
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Failed to cache availability for %s/%s: %s", tmdb_id, country, exc)
