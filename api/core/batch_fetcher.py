from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Set

from api import config
from api.core.assembler import assemble, is_available_to_user, subscription_only
from api.core.availability_cache import AvailabilityCache
from api.core.candidates import CandidateSet
from api.core.outcomes import Outcome, capture, partition
from api.core.types import AvailabilityRecord, CandidateTitle, RecommendationRecord

logger = logging.getLogger(__name__)


class AvailabilitySource(Protocol):
    async def get_availability(
        self, tmdb_id: int, country: str
    ) -> List[AvailabilityRecord]: ...


@dataclass(frozen=True)
class FetchLimits:
    target: int = 20
    batch_size: int = 10
    max_api_calls: int = 15
    max_results: int = 50

    def __post_init__(self) -> None:
        if self.target < 1 or self.batch_size < 1 or self.max_results < 1:
            raise ValueError(
                "target, batch_size and max_results must be positive: "
                f"{self.target}, {self.batch_size}, {self.max_results}"
            )
        if self.max_api_calls < 0:
            raise ValueError(f"max_api_calls must not be negative: {self.max_api_calls}")

    @classmethod
    def from_config(cls) -> "FetchLimits":
        return cls(
            target=config.RECOMMENDATION_TARGET,
            batch_size=config.RECOMMENDATION_BATCH_SIZE,
            max_api_calls=config.RECOMMENDATION_MAX_API_CALLS,
            max_results=config.RECOMMENDATION_MAX_RESULTS,
        )


@dataclass(slots=True)
class AvailabilityResolution:
    availability: Dict[int, List[AvailabilityRecord]]
    calls_made: int = 0
    cache_hits: int = 0


@dataclass(slots=True)
class BatchState:
    """Running totals for one feed computation."""

    total: int
    limits: FetchLimits
    recommendations: List[RecommendationRecord] = field(default_factory=list)
    api_calls_used: int = 0
    processed: int = 0
    cache_hits: int = 0
    batches: int = 0

    @property
    def target_reached(self) -> bool:
        return len(self.recommendations) >= self.limits.target

    @property
    def remaining_budget(self) -> int:
        return max(0, self.limits.max_api_calls - self.api_calls_used)

    def should_continue(self) -> bool:
        return (
            not self.target_reached
            and self.processed < self.total
            and self.api_calls_used < self.limits.max_api_calls
        )

    def next_batch(self, candidates: Sequence[CandidateTitle]) -> List[CandidateTitle]:
        return list(candidates[self.processed : self.processed + self.limits.batch_size])

    def record_resolution(self, resolution: AvailabilityResolution) -> None:
        self.api_calls_used += resolution.calls_made
        self.cache_hits += resolution.cache_hits

    def finish_batch(self, size: int) -> None:
        self.processed += size
        self.batches += 1

    def add(self, record: RecommendationRecord) -> None:
        self.recommendations.append(record)

    def results(self) -> List[RecommendationRecord]:
        return self.recommendations[: self.limits.max_results]


class BatchFetcher:
    """
    Walks release-date-sorted candidates in fixed-size batches, resolving
    availability from the cache first and spending the per-request provider
    budget only on cache misses. Stops at the target count, when the budget is
    spent, or when candidates run out.
    """

    def __init__(
        self,
        cache: AvailabilityCache,
        availability: Optional[AvailabilitySource],
        limits: FetchLimits | None = None,
        country: str = config.COUNTRY_DEFAULT,
    ) -> None:
        self.cache = cache
        self.availability = availability
        self.limits = limits or FetchLimits()
        self.country = country

    async def resolve_availability(
        self, tmdb_ids: Sequence[int], limit: int
    ) -> AvailabilityResolution:
        found = self.cache.get_many(tmdb_ids, self.country)
        cache_hits = len(found)
        misses = [tmdb_id for tmdb_id in tmdb_ids if tmdb_id not in found]
        if self.availability is None:
            # Provider unconfigured: serve what the cache already knows.
            return AvailabilityResolution(found, 0, cache_hits)

        # Misses beyond the budget stay unresolved for this request.
        to_fetch = misses[: max(0, limit)]
        outcomes: List[Outcome[List[AvailabilityRecord]]] = []
        for tmdb_id in to_fetch:
            outcome = await capture(
                tmdb_id, self.availability.get_availability(tmdb_id, self.country)
            )
            outcomes.append(outcome)
            if outcome.ok:
                records = outcome.value or []
                self.cache.put(tmdb_id, self.country, records)
                found[tmdb_id] = records

        partition(outcomes, logger, "availability")
        logger.debug(
            "Availability for %d titles: %d cached, %d fetched, %d left unresolved",
            len(tmdb_ids),
            cache_hits,
            len(to_fetch),
            len(misses) - len(to_fetch),
        )
        return AvailabilityResolution(found, len(to_fetch), cache_hits)

    async def fetch(
        self,
        candidate_set: CandidateSet,
        platform_slugs: Sequence[str],
        favorite_ids: Set[int],
    ) -> List[RecommendationRecord]:
        candidates = candidate_set.candidates
        state = BatchState(total=len(candidates), limits=self.limits)

        while state.should_continue():
            batch = state.next_batch(candidates)
            resolution = await self.resolve_availability(
                [title.tmdb_id for title in batch], state.remaining_budget
            )
            state.record_resolution(resolution)

            for title in batch:
                offers = subscription_only(resolution.availability.get(title.tmdb_id, []))
                if not is_available_to_user(offers, platform_slugs):
                    continue
                state.add(
                    assemble(
                        title,
                        offers,
                        platform_slugs,
                        favorite_ids,
                        candidate_set.contributions,
                    )
                )
                if state.target_reached:
                    break
            state.finish_batch(len(batch))
            logger.info(
                "Batch %d: %d recommendations, %d/%d candidates processed, %d/%d API calls",
                state.batches,
                len(state.recommendations),
                state.processed,
                state.total,
                state.api_calls_used,
                self.limits.max_api_calls,
            )

        return state.results()
