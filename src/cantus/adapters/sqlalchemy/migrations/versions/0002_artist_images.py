"""artist images

Revision ID: 0002_artist_images
Revises: 0001_initial_catalog
Create Date: 2026-10-18 16:00:00.000000
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0002_artist_images"
down_revision = "0001_initial_catalog"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "artist_images",
        sa.Column("artist", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(
            ["artist"],
            ["artists.mbid"],
            name="fk_artist_images_artist_images_artist_artists",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("artist", "url", name="pk_artist_images"),
    )


def downgrade() -> None:
    op.drop_table("artist_images")
