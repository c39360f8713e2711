"""Rich menu publish ledger tables.

- rm_line_channels: per-user LINE channel credentials (Fernet-encrypted token)
- rm_drafts: editor projects, menus stored as JSONB
- rm_publish_jobs: one row per publish attempt, progress as JSONB array
- rm_richmenu_versions: alias -> remote menu history, one active row per alias
- updated_at touch trigger on every table

Revision ID: 20261019_0001
Revises:
"""

from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

_TABLES = ("rm_line_channels", "rm_drafts", "rm_publish_jobs", "rm_richmenu_versions")


def _common_columns():
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade():
    # set_updated_at(): generic touch trigger
    op.execute("""
    CREATE OR REPLACE FUNCTION set_updated_at() RETURNS trigger
    LANGUAGE plpgsql AS $$
    BEGIN
      NEW.updated_at := NOW();
      RETURN NEW;
    END;
    $$;
    """)

    op.create_table(
        "rm_line_channels",
        *_common_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("channel_id", sa.String(64), nullable=True),
        sa.Column("access_token_encrypted", sa.Text(), nullable=False),
    )
    op.create_index("ix_rm_line_channels_user_id", "rm_line_channels", ["user_id"], unique=True)

    op.create_table(
        "rm_drafts",
        *_common_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("folder_id", sa.String(64), nullable=True),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.CheckConstraint("status IN ('draft','scheduled','published','active')", name="ck_rm_drafts_status"),
    )
    op.create_index("ix_rm_drafts_user_id", "rm_drafts", ["user_id"])

    op.create_table(
        "rm_publish_jobs",
        *_common_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("draft_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="publishing"),
        sa.Column("current_step", sa.String(32), nullable=False, server_default="create_menu"),
        sa.Column("progress", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('publishing','completed','failed')", name="ck_rm_publish_jobs_status"),
    )
    op.create_index("ix_rm_publish_jobs_user_id_created_at", "rm_publish_jobs", ["user_id", "created_at"])

    op.create_table(
        "rm_richmenu_versions",
        *_common_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("alias_id", sa.String(32), nullable=False),
        sa.Column("rich_menu_id", sa.String(64), nullable=False),
        sa.Column("menu_name", sa.String(300), nullable=False, server_default=""),
        sa.Column("is_main", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("draft_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_index(
        "ix_rm_richmenu_versions_user_alias_active",
        "rm_richmenu_versions",
        ["user_id", "alias_id", "is_active"],
    )

    for table in _TABLES:
        op.execute(f"""
        CREATE TRIGGER trg_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW EXECUTE FUNCTION set_updated_at();
        """)


def downgrade():
    for table in reversed(_TABLES):
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_updated_at ON {table};")
    op.drop_index("ix_rm_richmenu_versions_user_alias_active", table_name="rm_richmenu_versions")
    op.drop_table("rm_richmenu_versions")
    op.drop_index("ix_rm_publish_jobs_user_id_created_at", table_name="rm_publish_jobs")
    op.drop_table("rm_publish_jobs")
    op.drop_index("ix_rm_drafts_user_id", table_name="rm_drafts")
    op.drop_table("rm_drafts")
    op.drop_index("ix_rm_line_channels_user_id", table_name="rm_line_channels")
    op.drop_table("rm_line_channels")
