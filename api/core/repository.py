from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from api.db.models import Creator, Platform, UserCreator, UserPlatform, WatchedItem

logger = logging.getLogger(__name__)


class AlreadyExistsError(Exception):
    pass


class NotFoundError(Exception):
    pass


class UnknownPlatformError(ValueError):
    def __init__(self, slugs: Sequence[str]):
        super().__init__(f"Unknown platform slugs: {', '.join(slugs)}")
        self.slugs = list(slugs)


def _platform_dict(platform: Platform) -> Dict[str, Any]:
    return {
        "id": platform.id,
        "slug": platform.slug,
        "name": platform.name,
        "logo_url": platform.logo_url,
    }


def _creator_dict(creator: Creator) -> Dict[str, Any]:
    return {
        "id": f"tmdb-{creator.external_api_id}",
        "name": creator.name,
        "creator_role": creator.creator_role,
        "avatar_url": creator.avatar_url,
    }


def _watched_dict(item: WatchedItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "external_movie_id": item.external_movie_id,
        "media_type": item.media_type,
        "title": item.title,
        "year": item.year,
        "created_at": item.created_at,
    }


class UserRepository:
    """
    Per-user preference storage: platforms, favourite creators, watched items.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    # Feed inputs ---------------------------------------------------------
    def get_favorite_creator_external_ids(self, user_id: str) -> List[str]:
        stmt = (
            select(Creator.external_api_id)
            .join(UserCreator, UserCreator.creator_id == Creator.id)
            .where(UserCreator.user_id == user_id)
            .order_by(UserCreator.created_at, UserCreator.id)
        )
        return [str(row) for row in self.db.execute(stmt).scalars().all()]

    def get_subscribed_platform_slugs(self, user_id: str) -> List[str]:
        stmt = (
            select(Platform.slug)
            .join(UserPlatform, UserPlatform.platform_id == Platform.id)
            .where(UserPlatform.user_id == user_id)
            .order_by(UserPlatform.created_at, UserPlatform.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_watched_external_ids(self, user_id: str) -> Set[str]:
        stmt = select(WatchedItem.external_movie_id).where(WatchedItem.user_id == user_id)
        try:
            rows = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as exc:
            self.db.rollback()
            # Fail open: a missing history only means watched titles may reappear.
            logger.warning("Failed to load watched items for %s: %s", user_id, exc)
            return set()
        return {str(row) for row in rows}

    # Platforms -------------------------------------------------------------
    def list_platforms(self) -> List[Dict[str, Any]]:
        platforms = self.db.execute(select(Platform).order_by(Platform.name)).scalars()
        return [_platform_dict(p) for p in platforms]

    def list_user_platforms(self, user_id: str) -> List[Dict[str, Any]]:
        stmt = (
            select(Platform)
            .join(UserPlatform, UserPlatform.platform_id == Platform.id)
            .where(UserPlatform.user_id == user_id)
            .order_by(UserPlatform.created_at, UserPlatform.id)
        )
        return [_platform_dict(p) for p in self.db.execute(stmt).scalars()]

    def replace_user_platforms(self, user_id: str, slugs: Sequence[str]) -> List[Dict[str, Any]]:
        wanted = list(dict.fromkeys(s.strip().lower() for s in slugs if s and s.strip()))
        platforms = {
            p.slug: p
            for p in self.db.execute(
                select(Platform).where(Platform.slug.in_(wanted))
            ).scalars()
        }
        unknown = [slug for slug in wanted if slug not in platforms]
        if unknown:
            raise UnknownPlatformError(unknown)

        self.db.execute(delete(UserPlatform).where(UserPlatform.user_id == user_id))
        for slug in wanted:
            self.db.add(UserPlatform(user_id=user_id, platform_id=platforms[slug].id))
        self.db.commit()
        return [_platform_dict(platforms[slug]) for slug in wanted]

    # Favourite creators ----------------------------------------------------
    def list_favorite_creators(self, user_id: str) -> List[Dict[str, Any]]:
        stmt = (
            select(Creator)
            .join(UserCreator, UserCreator.creator_id == Creator.id)
            .where(UserCreator.user_id == user_id)
            .order_by(UserCreator.created_at, UserCreator.id)
        )
        return [_creator_dict(c) for c in self.db.execute(stmt).scalars()]

    def _find_creator(self, external_api_id: str) -> Optional[Creator]:
        stmt = select(Creator).where(Creator.external_api_id == external_api_id)
        return self.db.execute(stmt).scalars().first()

    def add_favorite_creator(
        self,
        user_id: str,
        *,
        external_api_id: str,
        name: str,
        creator_role: str,
        avatar_url: Optional[str],
    ) -> Dict[str, Any]:
        creator = self._find_creator(external_api_id)
        if creator is None:
            creator = Creator(external_api_id=external_api_id)
            self.db.add(creator)
        creator.name = name
        creator.creator_role = creator_role
        creator.avatar_url = avatar_url
        self.db.flush()

        exists = self.db.execute(
            select(UserCreator.id).where(
                UserCreator.user_id == user_id, UserCreator.creator_id == creator.id
            )
        ).first()
        if exists:
            self.db.rollback()
            raise AlreadyExistsError("Creator is already in favorites")

        self.db.add(UserCreator(user_id=user_id, creator_id=creator.id))
        self.db.commit()
        return _creator_dict(creator)

    def remove_favorite_creator(self, user_id: str, external_api_id: str) -> None:
        creator = self._find_creator(external_api_id)
        if creator is None:
            raise NotFoundError("Favorite creator not found")
        result = self.db.execute(
            delete(UserCreator).where(
                UserCreator.user_id == user_id, UserCreator.creator_id == creator.id
            )
        )
        if not result.rowcount:
            self.db.rollback()
            raise NotFoundError("Favorite creator not found")
        self.db.commit()

    # Watched items -----------------------------------------------------------
    def list_watched(
        self, user_id: str, limit: int, cursor: Optional[int] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        stmt = select(WatchedItem).where(WatchedItem.user_id == user_id)
        if cursor is not None:
            stmt = stmt.where(WatchedItem.id < cursor)
        # Fetch one extra row to know whether another page exists.
        rows = list(
            self.db.execute(stmt.order_by(WatchedItem.id.desc()).limit(limit + 1)).scalars()
        )
        page = rows[:limit]
        next_cursor = page[-1].id if len(rows) > limit and page else None
        return [_watched_dict(item) for item in page], next_cursor

    def add_watched(
        self,
        user_id: str,
        *,
        external_movie_id: str,
        media_type: str,
        title: str,
        year: Optional[int] = None,
        meta_data: Optional[dict] = None,
    ) -> Dict[str, Any]:
        item = WatchedItem(
            user_id=user_id,
            external_movie_id=external_movie_id,
            media_type=media_type,
            title=title,
            year=year,
            meta_data=meta_data,
        )
        self.db.add(item)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise AlreadyExistsError("Already marked as watched") from exc
        self.db.refresh(item)
        return _watched_dict(item)

    def remove_watched(self, user_id: str, item_id: int) -> None:
        result = self.db.execute(
            delete(WatchedItem).where(
                WatchedItem.user_id == user_id, WatchedItem.id == item_id
            )
        )
        if not result.rowcount:
            self.db.rollback()
            raise NotFoundError("Watched item not found")
        self.db.commit()
