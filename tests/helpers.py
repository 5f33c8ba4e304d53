from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from api.core.types import AvailabilityRecord, CandidateTitle, Filmography
from api.db.models import (
    Creator,
    Platform,
    UserCreator,
    UserPlatform,
    WatchedItem,
)
from providers.errors import ExternalApiError


def movie(
    tmdb_id: int,
    release_date: Optional[str] = None,
    title: Optional[str] = None,
    poster_path: Optional[str] = None,
) -> CandidateTitle:
    return CandidateTitle(
        tmdb_id=tmdb_id,
        title=title or f"Movie {tmdb_id}",
        release_date=release_date,
        poster_path=poster_path,
    )


def offer(
    service_id: str, offer_type: str = "subscription", link: str = "x"
) -> AvailabilityRecord:
    return AvailabilityRecord(
        service_id=service_id, name=service_id.title(), link=link, type=offer_type
    )


class FakeMetadata:
    """
    Stand-in for TMDBClient: filmographies keyed by creator id, or an exception to raise.
    """

    def __init__(self, filmographies: Dict[int, Filmography | Exception]):
        self.filmographies = filmographies
        self.calls: List[int] = []
        self.closed = False

    async def get_filmography(self, creator_id: int) -> Filmography:
        self.calls.append(creator_id)
        result = self.filmographies.get(creator_id)
        if result is None:
            raise ExternalApiError(f"person {creator_id} not found", status_code=404)
        if isinstance(result, Exception):
            raise result
        return result

    async def search_creators(self, query: str):
        return []

    async def aclose(self) -> None:
        self.closed = True


class FakeAvailability:
    """
    Stand-in for StreamingAvailabilityClient that counts calls.
    """

    def __init__(
        self,
        offers: Dict[int, List[AvailabilityRecord] | Exception] | None = None,
        default: Sequence[AvailabilityRecord] = (),
    ):
        self.offers = offers or {}
        self.default = list(default)
        self.calls: List[tuple[int, str]] = []
        self.closed = False

    async def get_availability(self, tmdb_id: int, country: str) -> List[AvailabilityRecord]:
        self.calls.append((tmdb_id, country))
        result = self.offers.get(tmdb_id, self.default)
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def aclose(self) -> None:
        self.closed = True


class FakeCache:
    """
    In-memory AvailabilityCache double (no TTL).
    """

    def __init__(self, entries: Dict[int, List[AvailabilityRecord]] | None = None):
        self.entries = dict(entries or {})
        self.puts: List[tuple[int, str, List[AvailabilityRecord]]] = []

    def get_many(self, tmdb_ids: Iterable[int], country: str):
        return {i: list(self.entries[i]) for i in tmdb_ids if i in self.entries}

    def put(self, tmdb_id: int, country: str, records: Iterable[AvailabilityRecord]) -> None:
        records = list(records)
        self.puts.append((tmdb_id, country, records))
        self.entries[tmdb_id] = records


def seed_user(
    db: Session,
    user_id: str,
    *,
    platforms: Sequence[str] = (),
    creators: Sequence[tuple[str, str, str]] = (),
    watched: Sequence[str] = (),
) -> None:
    """Insert platforms, favourite creators ``(external_id, name, role)`` and watched ids."""
    for slug in platforms:
        platform = db.query(Platform).filter(Platform.slug == slug).one_or_none()
        if platform is None:
            platform = Platform(slug=slug, name=slug.replace("-", " ").title())
            db.add(platform)
            db.flush()
        db.add(UserPlatform(user_id=user_id, platform_id=platform.id))
    for external_id, name, role in creators:
        creator = Creator(external_api_id=external_id, name=name, creator_role=role)
        db.add(creator)
        db.flush()
        db.add(UserCreator(user_id=user_id, creator_id=creator.id))
    for external_id in watched:
        db.add(
            WatchedItem(
                user_id=user_id,
                external_movie_id=external_id,
                media_type="movie",
                title=f"Watched {external_id}",
            )
        )
    db.commit()

