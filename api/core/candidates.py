from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Protocol, Sequence, Set

from api.core.outcomes import Outcome, capture, partition
from api.core.types import CandidateTitle, Contribution, CreatorRole, Filmography

logger = logging.getLogger(__name__)


class FilmographySource(Protocol):
    async def get_filmography(self, creator_id: int) -> Filmography: ...


ContributionMap = Dict[int, List[Contribution]]


@dataclass(slots=True)
class CandidateSet:
    candidates: List[CandidateTitle] = field(default_factory=list)
    contributions: ContributionMap = field(default_factory=dict)


def parse_creator_ids(raw_ids: Iterable[str]) -> List[int]:
    """Convert stored TMDB person ids to ints, dropping anything non-numeric."""
    parsed: List[int] = []
    for raw in raw_ids:
        try:
            parsed.append(int(str(raw).strip()))
        except ValueError:
            logger.warning("Skipping creator id %r: not a TMDB person id", raw)
    return list(dict.fromkeys(parsed))


def add_contribution(
    contributions: ContributionMap,
    tmdb_id: int,
    creator_id: int,
    role: CreatorRole,
    name: str,
) -> None:
    existing = contributions.setdefault(tmdb_id, [])
    if any(c.creator_id == creator_id and c.role == role for c in existing):
        return
    existing.append(Contribution(creator_id=creator_id, role=role, name=name))


def deduplicate(candidates: Iterable[CandidateTitle]) -> List[CandidateTitle]:
    seen: Set[int] = set()
    unique: List[CandidateTitle] = []
    for candidate in candidates:
        if candidate.tmdb_id in seen:
            continue
        seen.add(candidate.tmdb_id)
        unique.append(candidate)
    return unique


def sort_by_release_date(candidates: Sequence[CandidateTitle]) -> List[CandidateTitle]:
    # ISO dates compare correctly as strings; sorted() is stable for ties.
    dated = [c for c in candidates if c.release_date]
    undated = [c for c in candidates if not c.release_date]
    dated = sorted(dated, key=lambda c: c.release_date, reverse=True)
    return dated + undated


class CandidateAggregator:
    def __init__(self, metadata: FilmographySource) -> None:
        self.metadata = metadata

    async def _fetch_all(self, creator_ids: Sequence[int]) -> List[Outcome[Filmography]]:
        outcomes: List[Outcome[Filmography]] = []
        # One creator at a time: the metadata provider rate-limits bursts.
        for creator_id in creator_ids:
            outcomes.append(
                await capture(creator_id, self.metadata.get_filmography(creator_id))
            )
        return outcomes

    async def build(
        self, creator_ids: Sequence[int], watched_ids: Set[str]
    ) -> CandidateSet:
        if not creator_ids:
            return CandidateSet()

        outcomes = await self._fetch_all(creator_ids)
        successes, _ = partition(outcomes, logger, "filmography")

        merged: List[CandidateTitle] = []
        contributions: ContributionMap = {}
        for outcome in successes:
            film = outcome.value
            for movie in film.cast_credits:
                merged.append(movie)
                add_contribution(contributions, movie.tmdb_id, film.creator_id, "actor", film.name)
            for movie in film.crew_credits:
                merged.append(movie)
                add_contribution(
                    contributions, movie.tmdb_id, film.creator_id, "director", film.name
                )

        unwatched = [m for m in merged if str(m.tmdb_id) not in watched_ids]
        candidates = sort_by_release_date(deduplicate(unwatched))
        logger.info(
            "Built %d candidates from %d creators (%d credits, %d watched filtered)",
            len(candidates),
            len(successes),
            len(merged),
            len(merged) - len(unwatched),
        )
        return CandidateSet(candidates=candidates, contributions=contributions)
