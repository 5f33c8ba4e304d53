from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from api.core.availability_cache import AvailabilityCache
from api.core.batch_fetcher import BatchFetcher
from api.core.candidates import CandidateAggregator
from api.core.recommendations import RecommendationService, paginate
from api.core.repository import UserRepository
from api.core.types import Filmography, RecommendationRecord
from tests.helpers import FakeAvailability, FakeMetadata, movie, offer, seed_user


def _service(db, metadata, availability) -> RecommendationService:
    return RecommendationService(
        UserRepository(db),
        CandidateAggregator(metadata),
        BatchFetcher(AvailabilityCache(db), availability, country="pl"),
    )


def _record(idx: int) -> RecommendationRecord:
    return RecommendationRecord(
        id=f"tmdb-movie-{idx}",
        external_movie_id=str(idx),
        media_type="movie",
        title=f"Movie {idx}",
        year=None,
        creators=(),
        platforms=("netflix",),
    )


def test_feed_for_directed_title_on_subscribed_platform(db_session):
    seed_user(
        db_session,
        "u1",
        platforms=["netflix"],
        creators=[("123", "Celine Song", "director")],
    )
    metadata = FakeMetadata(
        {
            123: Filmography(
                creator_id=123,
                name="Celine Song",
                crew_credits=[movie(999, "2023-06-02", title="Past Lives")],
            )
        }
    )
    availability = FakeAvailability({999: [offer("netflix", link="https://netflix/999")]})

    records = asyncio.run(_service(db_session, metadata, availability).compute("u1"))

    assert [r.to_dict() for r in records] == [
        {
            "id": "tmdb-movie-999",
            "external_movie_id": "999",
            "media_type": "movie",
            "title": "Past Lives",
            "year": 2023,
            "creators": [
                {
                    "id": "123",
                    "name": "Celine Song",
                    "creator_role": "director",
                    "is_favorite": True,
                }
            ],
            "platforms": ["netflix"],
            "poster_url": None,
        }
    ]
    assert AvailabilityCache(db_session).get(999, "pl") == [
        offer("netflix", link="https://netflix/999")
    ]


def test_unavailable_title_is_cached_and_not_refetched(db_session):
    seed_user(
        db_session, "u1", platforms=["netflix"], creators=[("5", "Actor", "actor")]
    )
    metadata = FakeMetadata(
        {5: Filmography(creator_id=5, name="Actor", cast_credits=[movie(42, "2001-01-01")])}
    )
    # Provider 404 surfaces as an empty availability list.
    availability = FakeAvailability({42: []})
    service = _service(db_session, metadata, availability)

    assert asyncio.run(service.compute("u1")) == []
    assert asyncio.run(service.compute("u1")) == []

    assert availability.calls == [(42, "pl")]
    assert AvailabilityCache(db_session).get(42, "pl") == []


def test_watched_titles_are_excluded(db_session):
    seed_user(
        db_session,
        "u1",
        platforms=["netflix"],
        creators=[("5", "Actor", "actor")],
        watched=["42"],
    )
    metadata = FakeMetadata(
        {
            5: Filmography(
                creator_id=5,
                name="Actor",
                cast_credits=[movie(42, "2001-01-01"), movie(43, "2002-01-01")],
            )
        }
    )
    availability = FakeAvailability(default=[offer("netflix")])

    records = asyncio.run(_service(db_session, metadata, availability).compute("u1"))

    assert [r.external_movie_id for r in records] == ["43"]
    assert availability.calls == [(43, "pl")]


@pytest.mark.parametrize(
    "platforms, creators",
    [
        ([], [("5", "Actor", "actor")]),
        (["netflix"], []),
        (["netflix"], [("not-a-number", "Broken", "actor")]),
    ],
)
def test_short_circuits_without_provider_calls(db_session, platforms, creators):
    seed_user(db_session, "u1", platforms=platforms, creators=creators)
    metadata = FakeMetadata({})
    availability = FakeAvailability(default=[offer("netflix")])

    records = asyncio.run(_service(db_session, metadata, availability).compute("u1"))

    assert records == []
    assert metadata.calls == []
    assert availability.calls == []


class _FailingRepository:
    def get_favorite_creator_external_ids(self, user_id):
        raise OperationalError("SELECT", {}, Exception("db down"))


def test_repository_errors_propagate():
    service = RecommendationService(
        _FailingRepository(),
        CandidateAggregator(FakeMetadata({})),
        BatchFetcher(None, FakeAvailability()),
    )

    with pytest.raises(OperationalError):
        asyncio.run(service.compute("u1"))


def test_paginate_by_cursor():
    records = [_record(i) for i in range(1, 6)]

    assert [r.id for r in paginate(records, 2)] == ["tmdb-movie-1", "tmdb-movie-2"]
    assert [r.id for r in paginate(records, 2, "tmdb-movie-2")] == [
        "tmdb-movie-3",
        "tmdb-movie-4",
    ]
    assert paginate(records, 2, "tmdb-movie-5") == []


def test_paginate_unknown_cursor_restarts():
    records = [_record(i) for i in range(1, 4)]

    assert [r.id for r in paginate(records, 2, "tmdb-movie-404")] == [
        "tmdb-movie-1",
        "tmdb-movie-2",
    ]


def test_get_applies_limit(db_session):
    seed_user(
        db_session, "u1", platforms=["netflix"], creators=[("5", "Actor", "actor")]
    )
    metadata = FakeMetadata(
        {
            5: Filmography(
                creator_id=5,
                name="Actor",
                cast_credits=[movie(i, f"20{i:02d}-01-01") for i in range(1, 6)],
            )
        }
    )
    availability = FakeAvailability(default=[offer("netflix")])

    page = asyncio.run(
        _service(db_session, metadata, availability).get("u1", limit=2, cursor="tmdb-movie-5")
    )

    # Newest first: 5, 4, 3, 2, 1
    assert [r.id for r in page] == ["tmdb-movie-4", "tmdb-movie-3"]
