"""Application-layer request/result objects for the publish pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID


@dataclass(frozen=True, slots=True)
class PublishMenuItem:
    """One menu as submitted to the orchestrator (already built payload)."""
    menu_data: Dict[str, Any]
    alias_id: str
    is_main: bool
    menu_name: str
    image_base64: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def image_reference(self) -> Optional[str]:
        return self.image_base64 or self.image_url or None

    @classmethod
    def from_request_entry(cls, entry: Dict[str, Any]) -> "PublishMenuItem":
        """From one `buildPublishRequest` entry (camelCase keys)."""
        menu_data = entry["menuData"]
        return cls(
            menu_data=menu_data,
            alias_id=entry["aliasId"],
            is_main=bool(entry.get("isMain", False)),
            menu_name=entry.get("menuName") or menu_data.get("name", ""),
            image_base64=entry.get("imageBase64"),
            image_url=entry.get("imageUrl"),
        )


@dataclass(frozen=True, slots=True)
class PublishRequest:
    menus: List[PublishMenuItem]
    draft_id: Optional[UUID] = None
    clean_old_menus: bool = False


@dataclass(frozen=True, slots=True)
class MenuPublishResult:
    alias_id: str
    rich_menu_id: str
    is_main: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"aliasId": self.alias_id, "richMenuId": self.rich_menu_id, "isMain": self.is_main}


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    """
    Result of one orchestrator invocation. Never raised, always returned.

    success=False carries the error text verbatim (remote bodies included).
    """
    success: bool
    job_id: Optional[UUID]
    results: List[MenuPublishResult] = field(default_factory=list)
    main_menu_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ProjectPublishOutcome:
    """Aggregate of the per-menu chunks of a project publish."""
    success: bool
    job_ids: List[UUID]
    results: List[MenuPublishResult] = field(default_factory=list)
    main_menu_id: Optional[str] = None
    error: Optional[str] = None
