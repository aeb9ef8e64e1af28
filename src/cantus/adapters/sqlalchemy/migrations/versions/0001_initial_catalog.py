"""initial catalog schema

Revision ID: 0001_initial_catalog
Revises:
Create Date: 2026-10-18 12:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

from cantus.adapters.sqlalchemy.mappings import StringListType, UTCDateTime

# revision identifiers, used by Alembic.
revision = "0001_initial_catalog"
down_revision = None
branch_labels = None
depends_on = None

RELATION_TABLES = {
    "release_artists": "releases",
    "track_artists": "tracks",
    "track_performers": "tracks",
    "track_engineers": "tracks",
    "track_mixers": "tracks",
    "track_producers": "tracks",
    "track_lyricists": "tracks",
    "track_writers": "tracks",
    "track_composers": "tracks",
}

TRACK_STATUSES = ("resolved", "unmatched")
UNMATCHED_REASONS = ("no_candidate", "below_threshold", "ambiguous")


def upgrade() -> None:
    op.create_table(
        "artists",
        sa.Column("mbid", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sort_name", sa.String(), nullable=True),
        sa.Column("instruments", StringListType(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("mbid", name="pk_artists"),
    )
    op.create_table(
        "releases",
        sa.Column("mbid", sa.Uuid(), nullable=False),
        sa.Column("release_group_mbid", sa.Uuid(), nullable=True),
        sa.Column("asin", sa.String(), nullable=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("discs", sa.Integer(), nullable=True),
        sa.Column("media", sa.String(), nullable=True),
        sa.Column("tracks", sa.Integer(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("label", sa.String(), nullable=True),
        sa.Column("catalog_no", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=True),
        sa.Column("release_type", sa.String(), nullable=True),
        sa.Column("date", sa.String(), nullable=True),
        sa.Column("original_date", sa.String(), nullable=True),
        sa.Column("script", sa.String(), nullable=True),
        sa.Column("fingerprint", sa.String(length=64), nullable=True),
        sa.PrimaryKeyConstraint("mbid", name="pk_releases"),
    )
    op.create_table(
        "tracks",
        sa.Column("mbid", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("length", sa.Integer(), nullable=True),
        sa.Column("disc", sa.Integer(), nullable=True),
        sa.Column("disc_mbid", sa.Uuid(), nullable=True),
        sa.Column("number", sa.Integer(), nullable=True),
        sa.Column("genres", StringListType(), nullable=False),
        sa.Column("release", sa.Uuid(), nullable=True),
        sa.Column("format", sa.String(), nullable=False),
        sa.Column("path", sa.String(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*TRACK_STATUSES, name="trackstatus", native_enum=False, length=16),
            nullable=False,
        ),
        sa.Column(
            "unmatched_reason",
            sa.Enum(*UNMATCHED_REASONS, name="unmatchedreason", native_enum=False, length=32),
            nullable=True,
        ),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("fingerprint", sa.String(length=64), nullable=True),
        sa.Column("tags_fingerprint", sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(
            ["release"],
            ["releases.mbid"],
            name="fk_tracks_tracks_release_releases",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("mbid", name="pk_tracks"),
        sa.UniqueConstraint("path", name="uq_tracks_tracks_path"),
    )
    op.create_index("ix_tracks_status", "tracks", ["status"])
    op.create_index("ix_tracks_release", "tracks", ["release"])

    op.create_table(
        "artist_credits",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("artist", sa.Uuid(), nullable=False),
        sa.Column("join_phrase", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(
            ["artist"],
            ["artists.mbid"],
            name="fk_artist_credits_artist_credits_artist_artists",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_artist_credits"),
        sa.UniqueConstraint(
            "artist", "join_phrase", name="uq_artist_credits_artist_credits_artist"
        ),
    )

    for name, ref_table in RELATION_TABLES.items():
        op.create_table(
            name,
            sa.Column("ref", sa.Uuid(), nullable=False),
            sa.Column("artist", sa.Uuid(), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("credit", sa.String(), nullable=True),
            sa.ForeignKeyConstraint(
                ["ref"],
                [f"{ref_table}.mbid"],
                name=f"fk_{name}_{name}_ref_{ref_table}",
                ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["artist"],
                ["artists.mbid"],
                name=f"fk_{name}_{name}_artist_artists",
                ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["credit"],
                ["artist_credits.id"],
                name=f"fk_{name}_{name}_credit_artist_credits",
                ondelete="SET NULL",
            ),
            sa.PrimaryKeyConstraint("ref", "artist", name=f"pk_{name}"),
            sa.UniqueConstraint("ref", "position", name=f"uq_{name}_{name}_ref"),
        )
        op.create_index(f"ix_{name}_artist", name, ["artist"])

    op.create_table(
        "artist_urls",
        sa.Column("artist", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(
            ["artist"],
            ["artists.mbid"],
            name="fk_artist_urls_artist_urls_artist_artists",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("artist", "url", name="pk_artist_urls"),
    )
    op.create_table(
        "release_images",
        sa.Column("release", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(
            ["release"],
            ["releases.mbid"],
            name="fk_release_images_release_images_release_releases",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("release", "url", name="pk_release_images"),
    )
    op.create_table(
        "fingerprints",
        sa.Column("subject", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("value", sa.String(length=64), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("subject", "kind", name="pk_fingerprints"),
    )


def downgrade() -> None:
    op.drop_table("fingerprints")
    op.drop_table("release_images")
    op.drop_table("artist_urls")
    for name in reversed(list(RELATION_TABLES)):
        op.drop_index(f"ix_{name}_artist", table_name=name)
        op.drop_table(name)
    op.drop_table("artist_credits")
    op.drop_index("ix_tracks_release", table_name="tracks")
    op.drop_index("ix_tracks_status", table_name="tracks")
    op.drop_table("tracks")
    op.drop_table("releases")
    op.drop_table("artists")
