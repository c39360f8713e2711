"""Rich menu version: one historical alias -> remote menu binding."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class RichMenuVersion:
    """
    Append-only ledger row.

    The "current" version for an alias is the one row with is_active=True;
    older rows are deactivated, never deleted.
    """
    id: UUID
    user_id: UUID
    alias_id: str
    rich_menu_id: str
    menu_name: str
    is_main: bool
    is_active: bool = True
    draft_id: Optional[UUID] = None
    job_id: Optional[UUID] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def record(
        cls,
        *,
        user_id: UUID,
        alias_id: str,
        rich_menu_id: str,
        menu_name: str,
        is_main: bool,
        draft_id: Optional[UUID] = None,
        job_id: Optional[UUID] = None,
    ) -> "RichMenuVersion":
        return cls(
            id=uuid4(),
            user_id=user_id,
            alias_id=alias_id,
            rich_menu_id=rich_menu_id,
            menu_name=menu_name,
            is_main=is_main,
            is_active=True,
            draft_id=draft_id,
            job_id=job_id,
        )
