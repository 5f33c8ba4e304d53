from __future__ import annotations

from datetime import datetime
from typing import Optional, List

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import (
    Integer,
    String,
    ForeignKey,
    DateTime,
    func,
    JSON,
    UniqueConstraint,
)


class Base(DeclarativeBase):
    pass


class Platform(Base):
    __tablename__ = "platforms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, index=True)  # 'hbo-max'
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    logo_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)


class Creator(Base):
    __tablename__ = "creators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # TMDB person id, stored as text
    external_api_id: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    creator_role: Mapped[str] = mapped_column(String(16))  # 'actor' or 'director'
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)


class UserPlatform(Base):
    __tablename__ = "user_platforms"
    __table_args__ = (
        UniqueConstraint("user_id", "platform_id", name="uq_user_platform"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    platform_id: Mapped[int] = mapped_column(
        ForeignKey("platforms.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class UserCreator(Base):
    __tablename__ = "user_creators"
    __table_args__ = (
        UniqueConstraint("user_id", "creator_id", name="uq_user_creator"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    creator_id: Mapped[int] = mapped_column(
        ForeignKey("creators.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class WatchedItem(Base):
    __tablename__ = "watched_items"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "external_movie_id",
            "media_type",
            name="uq_watched_item_user_movie_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    external_movie_id: Mapped[str] = mapped_column(String(64), nullable=False)
    media_type: Mapped[str] = mapped_column(String(10), nullable=False)  # movie/series
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    meta_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class VodAvailabilityCache(Base):
    __tablename__ = "vod_availability_cache"
    __table_args__ = (
        UniqueConstraint("tmdb_id", "country_code", name="uq_vod_cache_tmdb_country"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    country_code: Mapped[str] = mapped_column(String(8), index=True)
    availability_data: Mapped[List[dict]] = mapped_column(JSON, nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
