"""create catalog and import tables

Revision ID: a1c0de5e0001
Revises:
Create Date: 2026-01-01 10:00:00.000000

Hey future me - the five tables of the import pipeline:

- artists: unique by NAME (the find-or-create key), provider ids added over time
- releases: UNIQUE (artist_id, title), the de-duplication safety net for racing jobs
- discography_cache: one album id snapshot per (artist, provider)
- import_jobs: background playlist imports, polled by the admin routes
- import_logs: one row per scheduled multi-playlist run
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c0de5e0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "artists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("deezer_id", sa.String(50), nullable=True),
        sa.Column("itunes_id", sa.String(50), nullable=True),
        sa.Column("external_playlist_id", sa.String(100), nullable=True),
        sa.Column("genres", sa.JSON(), nullable=True),
        sa.Column("popularity", sa.Integer(), nullable=True),
        sa.Column("followers", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_artists_deezer_id", "artists", ["deezer_id"])
    op.create_index("ix_artists_itunes_id", "artists", ["itunes_id"])
    op.create_index("ix_artists_name_lower", "artists", [sa.text("lower(name)")])
    op.create_index("ix_artists_last_updated", "artists", ["last_updated"])

    op.create_table(
        "releases",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("release_type", sa.String(20), nullable=False, server_default="album"),
        sa.Column("release_date", sa.String(10), nullable=True),
        sa.Column("deezer_id", sa.String(50), nullable=True),
        sa.Column("itunes_id", sa.String(50), nullable=True),
        sa.Column("cover_url", sa.String(512), nullable=True),
        sa.Column("cover_small", sa.String(512), nullable=True),
        sa.Column("cover_medium", sa.String(512), nullable=True),
        sa.Column("cover_big", sa.String(512), nullable=True),
        sa.Column("cover_xl", sa.String(512), nullable=True),
        sa.Column("total_tracks", sa.Integer(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("explicit_lyrics", sa.Boolean(), nullable=True),
        sa.Column("explicit_content_lyrics", sa.Integer(), nullable=True),
        sa.Column("explicit_content_cover", sa.Integer(), nullable=True),
        sa.Column("genres", sa.JSON(), nullable=True),
        sa.Column("upc", sa.String(50), nullable=True),
        sa.Column("label", sa.String(255), nullable=True),
        sa.Column("contributors", sa.JSON(), nullable=True),
        sa.Column("streaming_links", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("artist_id", "title", name="uq_releases_artist_title"),
    )
    op.create_index("ix_releases_deezer_id", "releases", ["deezer_id"])
    op.create_index("ix_releases_itunes_id", "releases", ["itunes_id"])
    op.create_index("ix_releases_missing_date", "releases", ["release_date"])

    op.create_table(
        "discography_cache",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("album_ids", sa.JSON(), nullable=False),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "artist_id", "source", name="uq_discography_cache_artist_source"
        ),
    )

    op.create_table(
        "import_jobs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("playlist_url", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_by", sa.String(100), nullable=True),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("total_artists", sa.Integer(), nullable=False),
        sa.Column("processed_artists", sa.Integer(), nullable=False),
        sa.Column("new_artists", sa.Integer(), nullable=False),
        sa.Column("updated_artists", sa.Integer(), nullable=False),
        sa.Column("new_releases", sa.Integer(), nullable=False),
        sa.Column("skipped_releases", sa.Integer(), nullable=False),
        sa.Column("error_count", sa.Integer(), nullable=False),
        sa.Column("errors", sa.JSON(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_import_jobs_status", "import_jobs", ["status"])
    op.create_index("ix_import_jobs_created", "import_jobs", ["created_at"])

    op.create_table(
        "import_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_import_logs_created", "import_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("import_logs")
    op.drop_table("import_jobs")
    op.drop_table("discography_cache")
    op.drop_table("releases")
    op.drop_table("artists")
