"""SQLAlchemy ORM models for the rich menu publish ledger."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.shared.database import Base


class LineChannelModel(Base):
    """Per-user LINE channel credentials."""

    __tablename__ = "rm_line_channels"
    __table_args__ = (Index("ix_rm_line_channels_user_id", "user_id", unique=True),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    channel_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    access_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)  # Fernet


class DraftModel(Base):
    """Editor project; `data` holds {"menus": [...]} in the editor's camelCase shape."""

    __tablename__ = "rm_drafts"
    __table_args__ = (Index("ix_rm_drafts_user_id", "user_id"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft")
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    folder_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)


class PublishJobModel(Base):
    """One publish attempt; `progress` is the per-menu array, rewritten on every step."""

    __tablename__ = "rm_publish_jobs"
    __table_args__ = (Index("ix_rm_publish_jobs_user_id_created_at", "user_id", "created_at"),)

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    draft_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="publishing")
    current_step: Mapped[str] = mapped_column(String(32), nullable=False, default="create_menu")
    progress: Mapped[List[Dict[str, Any]]] = mapped_column(JSONB, nullable=False, default=list)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class RichMenuVersionModel(Base):
    """Alias -> remote menu binding history. At most one active row per (user, alias)."""

    __tablename__ = "rm_richmenu_versions"
    __table_args__ = (
        Index("ix_rm_richmenu_versions_user_alias_active", "user_id", "alias_id", "is_active"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    alias_id: Mapped[str] = mapped_column(String(32), nullable=False)
    rich_menu_id: Mapped[str] = mapped_column(String(64), nullable=False)
    menu_name: Mapped[str] = mapped_column(String(300), nullable=False, default="")
    is_main: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    draft_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
    job_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)
