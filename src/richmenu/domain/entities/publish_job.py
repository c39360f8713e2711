"""Publish job entity: one publish attempt and its per-menu progress."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from ..exceptions import InvariantViolation
from ..value_objects import JobStatus, ProgressStatus, PublishStep


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class MenuProgress:
    """Progress of one menu through the provisioning steps."""
    alias_id: str
    step: PublishStep = PublishStep.CREATE_MENU
    status: ProgressStatus = ProgressStatus.PENDING
    rich_menu_id: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "MenuProgress":
        return cls(
            alias_id=raw["aliasId"],
            step=PublishStep(raw.get("step", PublishStep.CREATE_MENU.value)),
            status=ProgressStatus(raw.get("status", ProgressStatus.PENDING.value)),
            rich_menu_id=raw.get("richMenuId"),
            error=raw.get("error"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aliasId": self.alias_id,
            "step": self.step.value,
            "status": self.status.value,
            "richMenuId": self.rich_menu_id,
            "error": self.error,
        }


@dataclass(slots=True)
class PublishJob:
    """
    Durable record of one publish attempt.

    Owned by a single orchestrator invocation and mutated in place; the
    orchestrator serializes it to the ledger after every transition.

    Invariants:
    - progress has one entry per menu, in publish order
    - once status is terminal it never changes again
    """
    id: UUID
    user_id: UUID
    progress: List[MenuProgress]
    draft_id: Optional[UUID] = None
    status: JobStatus = JobStatus.PUBLISHING
    current_step: PublishStep = PublishStep.CREATE_MENU
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @classmethod
    def start(
        cls,
        user_id: UUID,
        alias_ids: List[str],
        draft_id: Optional[UUID] = None,
    ) -> "PublishJob":
        """New job in `publishing`, every menu pending at create_menu."""
        return cls(
            id=uuid4(),
            user_id=user_id,
            draft_id=draft_id,
            progress=[MenuProgress(alias_id=a) for a in alias_ids],
        )

    def advance(self, index: int, step: PublishStep) -> None:
        """Move menu `index` (and the job) to `step`."""
        self._ensure_open()
        self.progress[index].step = step
        self.current_step = step
        self._touch()

    def mark_menu_success(self, index: int, rich_menu_id: str) -> None:
        self._ensure_open()
        entry = self.progress[index]
        entry.status = ProgressStatus.SUCCESS
        entry.rich_menu_id = rich_menu_id
        entry.error = None
        self._touch()

    def mark_menu_failed(self, index: int, error: str, rich_menu_id: Optional[str] = None) -> None:
        self._ensure_open()
        entry = self.progress[index]
        entry.status = ProgressStatus.FAILED
        entry.error = error
        if rich_menu_id:
            entry.rich_menu_id = rich_menu_id
        self._touch()

    def set_step(self, step: PublishStep) -> None:
        """Job-level step that is not tied to one menu (e.g. set_default)."""
        self._ensure_open()
        self.current_step = step
        self._touch()

    def complete(self) -> None:
        self._ensure_open()
        self.status = JobStatus.COMPLETED
        self.current_step = PublishStep.COMPLETED
        self.completed_at = self._touch()

    def fail(self, error: str) -> None:
        if self.status.is_terminal:
            return
        self.status = JobStatus.FAILED
        self.error_message = error
        self.completed_at = self._touch()

    def progress_snapshot(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.progress]

    def _ensure_open(self) -> None:
        if self.status.is_terminal:
            raise InvariantViolation(f"Publish job {self.id} is already {self.status.value}")

    def _touch(self) -> datetime:
        self.updated_at = _utcnow()
        return self.updated_at
