from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set

from api.core.types import (
    AvailabilityRecord,
    CandidateTitle,
    Contribution,
    RecommendationCreator,
    RecommendationRecord,
)
from providers.tmdb_client import TMDB_IMAGE_BASE_URL

# Platform slug (platforms.slug) -> streaming provider service id
PLATFORM_SERVICE_IDS: Dict[str, str] = {
    "netflix": "netflix",
    "hbo-max": "hbo",
    "disney-plus": "disney",
    "amazon-prime": "prime",
    "apple-tv-plus": "apple",
    "hulu": "hulu",
    "mubi": "mubi",
}
SERVICE_PLATFORM_SLUGS: Dict[str, str] = {
    service_id: slug for slug, service_id in PLATFORM_SERVICE_IDS.items()
}


def subscription_only(records: Iterable[AvailabilityRecord]) -> List[AvailabilityRecord]:
    return [r for r in records if r.type == "subscription"]


def user_service_ids(platform_slugs: Iterable[str]) -> Set[str]:
    return {
        PLATFORM_SERVICE_IDS[slug] for slug in platform_slugs if slug in PLATFORM_SERVICE_IDS
    }


def is_available_to_user(
    records: Iterable[AvailabilityRecord], platform_slugs: Iterable[str]
) -> bool:
    services = user_service_ids(platform_slugs)
    return any(r.service_id in services for r in records)


def platform_slugs_for(
    records: Iterable[AvailabilityRecord], platform_slugs: Sequence[str]
) -> List[str]:
    subscribed = set(platform_slugs)
    slugs: List[str] = []
    for record in records:
        slug = SERVICE_PLATFORM_SLUGS.get(record.service_id)
        if slug and slug in subscribed and slug not in slugs:
            slugs.append(slug)
    return slugs


def release_year(release_date: Optional[str]) -> Optional[int]:
    if not release_date or len(release_date) < 4:
        return None
    try:
        return int(release_date[:4])
    except ValueError:
        return None


def assemble(
    title: CandidateTitle,
    availability: Sequence[AvailabilityRecord],
    platform_slugs: Sequence[str],
    favorite_ids: Set[int],
    contributions: Dict[int, List[Contribution]],
) -> RecommendationRecord:
    """
    Build the outward recommendation for a title that passed the platform filter.

    ``availability`` is expected to be subscription offers only. Every
    contributor is listed; ``is_favorite`` marks the user's favourites.
    """
    creators = tuple(
        RecommendationCreator(
            id=str(c.creator_id),
            name=c.name,
            creator_role=c.role,
            is_favorite=c.creator_id in favorite_ids,
        )
        for c in contributions.get(title.tmdb_id, [])
    )
    poster_url = f"{TMDB_IMAGE_BASE_URL}{title.poster_path}" if title.poster_path else None
    return RecommendationRecord(
        id=f"tmdb-movie-{title.tmdb_id}",
        external_movie_id=str(title.tmdb_id),
        media_type="movie",
        title=title.title,
        year=release_year(title.release_date),
        creators=creators,
        platforms=tuple(platform_slugs_for(availability, platform_slugs)),
        poster_url=poster_url,
    )
