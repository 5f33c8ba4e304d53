"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

PLATFORMS = [
    ("netflix", "Netflix"),
    ("hbo-max", "HBO Max"),
    ("disney-plus", "Disney+"),
    ("amazon-prime", "Amazon Prime Video"),
    ("apple-tv-plus", "Apple TV+"),
    ("hulu", "Hulu"),
    ("mubi", "Mubi"),
]


def upgrade():
    platforms = op.create_table(
        "platforms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("slug", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("logo_url", sa.String(length=1024), nullable=True),
    )
    op.create_index("ix_platforms_slug", "platforms", ["slug"])

    op.create_table(
        "creators",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_api_id", sa.String(length=64), nullable=False, unique=True),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("creator_role", sa.String(length=16), nullable=False),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
    )
    op.create_index("ix_creators_external_api_id", "creators", ["external_api_id"])
    op.create_index("ix_creators_name", "creators", ["name"])

    op.create_table(
        "user_platforms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column(
            "platform_id",
            sa.Integer(),
            sa.ForeignKey("platforms.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")
        ),
        sa.UniqueConstraint("user_id", "platform_id", name="uq_user_platform"),
    )
    op.create_index("ix_user_platforms_user_id", "user_platforms", ["user_id"])

    op.create_table(
        "user_creators",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column(
            "creator_id",
            sa.Integer(),
            sa.ForeignKey("creators.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")
        ),
        sa.UniqueConstraint("user_id", "creator_id", name="uq_user_creator"),
    )
    op.create_index("ix_user_creators_user_id", "user_creators", ["user_id"])

    op.create_table(
        "watched_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("external_movie_id", sa.String(length=64), nullable=False),
        sa.Column("media_type", sa.String(length=10), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("meta_data", sa.JSON(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()")
        ),
        sa.UniqueConstraint(
            "user_id",
            "external_movie_id",
            "media_type",
            name="uq_watched_item_user_movie_type",
        ),
    )
    op.create_index("ix_watched_items_user_id", "watched_items", ["user_id"])

    op.create_table(
        "vod_availability_cache",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tmdb_id", sa.Integer(), nullable=False),
        sa.Column("country_code", sa.String(length=8), nullable=False),
        sa.Column("availability_data", sa.JSON(), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("tmdb_id", "country_code", name="uq_vod_cache_tmdb_country"),
    )
    op.create_index(
        "ix_vod_availability_cache_tmdb_id", "vod_availability_cache", ["tmdb_id"]
    )
    op.create_index(
        "ix_vod_availability_cache_last_updated_at",
        "vod_availability_cache",
        ["last_updated_at"],
    )

    op.bulk_insert(platforms, [{"slug": slug, "name": name} for slug, name in PLATFORMS])


def downgrade():
    op.drop_table("vod_availability_cache")
    op.drop_table("watched_items")
    op.drop_table("user_creators")
    op.drop_table("user_platforms")
    op.drop_table("creators")
    op.drop_table("platforms")
