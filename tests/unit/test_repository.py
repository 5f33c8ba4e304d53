from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from api.core.repository import (
    AlreadyExistsError,
    NotFoundError,
    UnknownPlatformError,
    UserRepository,
)
from api.db.models import Creator, Platform
from tests.helpers import seed_user


@pytest.fixture
def platforms(db_session):
    db_session.add_all(
        [
            Platform(slug="netflix", name="Netflix"),
            Platform(slug="hbo-max", name="HBO Max"),
            Platform(slug="mubi", name="Mubi"),
        ]
    )
    db_session.commit()


def test_feed_inputs(db_session):
    seed_user(
        db_session,
        "u1",
        platforms=["netflix", "hbo-max"],
        creators=[("525", "Christopher Nolan", "director"), ("6193", "Leo", "actor")],
        watched=["27205"],
    )
    seed_user(db_session, "u2", platforms=["mubi"])
    repo = UserRepository(db_session)

    assert repo.get_favorite_creator_external_ids("u1") == ["525", "6193"]
    assert repo.get_subscribed_platform_slugs("u1") == ["netflix", "hbo-max"]
    assert repo.get_watched_external_ids("u1") == {"27205"}
    assert repo.get_subscribed_platform_slugs("u2") == ["mubi"]
    assert repo.get_favorite_creator_external_ids("u2") == []


class _BrokenSession:
    def __init__(self):
        self.rollbacks = 0

    def execute(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("db down"))

    def rollback(self):
        self.rollbacks += 1


def test_watched_lookup_fails_open_and_rolls_back():
    session = _BrokenSession()

    assert UserRepository(session).get_watched_external_ids("u1") == set()
    assert session.rollbacks == 1


def test_creator_lookup_propagates_errors():
    with pytest.raises(OperationalError):
        UserRepository(_BrokenSession()).get_favorite_creator_external_ids("u1")


def test_replace_user_platforms(db_session, platforms):
    repo = UserRepository(db_session)

    repo.replace_user_platforms("u1", ["netflix", "mubi"])
    result = repo.replace_user_platforms("u1", [" HBO-MAX ", "netflix", "netflix"])

    assert [p["slug"] for p in result] == ["hbo-max", "netflix"]
    assert sorted(p["slug"] for p in repo.list_user_platforms("u1")) == [
        "hbo-max",
        "netflix",
    ]


def test_replace_user_platforms_rejects_unknown(db_session, platforms):
    repo = UserRepository(db_session)
    repo.replace_user_platforms("u1", ["netflix"])

    with pytest.raises(UnknownPlatformError) as excinfo:
        repo.replace_user_platforms("u1", ["netflix", "blockbuster"])

    assert excinfo.value.slugs == ["blockbuster"]
    assert [p["slug"] for p in repo.list_user_platforms("u1")] == ["netflix"]


def test_list_platforms_sorted_by_name(db_session, platforms):
    names = [p["name"] for p in UserRepository(db_session).list_platforms()]

    assert names == ["HBO Max", "Mubi", "Netflix"]


def test_add_favorite_creator_upserts_creator(db_session):
    repo = UserRepository(db_session)

    created = repo.add_favorite_creator(
        "u1", external_api_id="525", name="Nolan", creator_role="director", avatar_url=None
    )
    repo.add_favorite_creator(
        "u2",
        external_api_id="525",
        name="Christopher Nolan",
        creator_role="director",
        avatar_url="https://image.tmdb.org/t/p/w500/n.jpg",
    )

    assert created["id"] == "tmdb-525"
    assert db_session.query(Creator).count() == 1
    assert repo.list_favorite_creators("u1")[0]["name"] == "Christopher Nolan"


def test_add_favorite_creator_twice_conflicts(db_session):
    repo = UserRepository(db_session)
    kwargs = dict(external_api_id="525", name="Nolan", creator_role="director", avatar_url=None)
    repo.add_favorite_creator("u1", **kwargs)

    with pytest.raises(AlreadyExistsError):
        repo.add_favorite_creator("u1", **kwargs)

    assert len(repo.list_favorite_creators("u1")) == 1


def test_remove_favorite_creator(db_session):
    repo = UserRepository(db_session)
    repo.add_favorite_creator(
        "u1", external_api_id="525", name="Nolan", creator_role="director", avatar_url=None
    )

    repo.remove_favorite_creator("u1", "525")

    assert repo.list_favorite_creators("u1") == []
    with pytest.raises(NotFoundError):
        repo.remove_favorite_creator("u1", "525")
    with pytest.raises(NotFoundError):
        repo.remove_favorite_creator("u1", "999")


def test_watched_items_paginate_newest_first(db_session):
    repo = UserRepository(db_session)
    for idx in range(5):
        repo.add_watched("u1", external_movie_id=str(idx), media_type="movie", title=f"M{idx}")
    repo.add_watched("u2", external_movie_id="77", media_type="movie", title="Other")

    first, cursor = repo.list_watched("u1", limit=3)
    second, last_cursor = repo.list_watched("u1", limit=3, cursor=cursor)

    assert [item["external_movie_id"] for item in first] == ["4", "3", "2"]
    assert [item["external_movie_id"] for item in second] == ["1", "0"]
    assert cursor == first[-1]["id"]
    assert last_cursor is None


def test_add_watched_twice_conflicts(db_session):
    repo = UserRepository(db_session)
    repo.add_watched("u1", external_movie_id="1", media_type="movie", title="M")

    with pytest.raises(AlreadyExistsError):
        repo.add_watched("u1", external_movie_id="1", media_type="movie", title="M")

    # Same id as a series is a different item.
    repo.add_watched("u1", external_movie_id="1", media_type="series", title="M")


def test_remove_watched_scoped_to_user(db_session):
    repo = UserRepository(db_session)
    item = repo.add_watched("u1", external_movie_id="1", media_type="movie", title="M")

    with pytest.raises(NotFoundError):
        repo.remove_watched("u2", item["id"])

    repo.remove_watched("u1", item["id"])
    assert repo.get_watched_external_ids("u1") == set()
