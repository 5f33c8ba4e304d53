from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from api.core.batch_fetcher import BatchFetcher
from api.core.candidates import CandidateAggregator, parse_creator_ids
from api.core.repository import UserRepository
from api.core.types import RecommendationRecord

logger = logging.getLogger(__name__)


def paginate(
    records: Sequence[RecommendationRecord], limit: int, cursor: Optional[str] = None
) -> List[RecommendationRecord]:
    """
    Slice the freshly computed feed after ``cursor``.

    The feed is recomputed per request, so an unknown cursor restarts from the
    first record instead of failing.
    """
    start = 0
    if cursor:
        for idx, record in enumerate(records):
            if record.id == cursor:
                start = idx + 1
                break
    return list(records[start : start + limit])


class RecommendationService:
    def __init__(
        self,
        repository: UserRepository,
        aggregator: CandidateAggregator,
        fetcher: BatchFetcher,
    ) -> None:
        self.repository = repository
        self.aggregator = aggregator
        self.fetcher = fetcher

    async def compute(self, user_id: str) -> List[RecommendationRecord]:
        # Repository errors here propagate: without them the feed is meaningless.
        creator_ids = self.repository.get_favorite_creator_external_ids(user_id)
        platform_slugs = self.repository.get_subscribed_platform_slugs(user_id)
        if not creator_ids or not platform_slugs:
            logger.info(
                "No feed for %s: %d favourite creators, %d platforms",
                user_id,
                len(creator_ids),
                len(platform_slugs),
            )
            return []

        tmdb_ids = parse_creator_ids(creator_ids)
        if not tmdb_ids:
            logger.warning("No valid TMDB creator ids for %s", user_id)
            return []

        watched = self.repository.get_watched_external_ids(user_id)
        candidate_set = await self.aggregator.build(tmdb_ids, watched)
        records = await self.fetcher.fetch(candidate_set, platform_slugs, set(tmdb_ids))
        logger.info(
            "Feed for %s: %d recommendations from %d candidates",
            user_id,
            len(records),
            len(candidate_set.candidates),
        )
        return records

    async def get(
        self, user_id: str, limit: int, cursor: Optional[str] = None
    ) -> List[RecommendationRecord]:
        return paginate(await self.compute(user_id), limit, cursor)
