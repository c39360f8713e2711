"""Menu graph: menus, hotspots and their actions."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from ..types import AliasId
from ..value_objects import ActionType, Bounds, DraftStatus, derive_alias_id


@dataclass(frozen=True, slots=True)
class Action:
    """
    Hotspot action.

    `data` depends on type: free text for message, a URL for uri, the target
    menu id for switch, unused for none.
    """
    type: ActionType = ActionType.NONE
    data: str = ""
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Action":
        return cls(
            type=ActionType(raw.get("type") or ActionType.NONE.value),
            data=raw.get("data") or "",
            label=raw.get("label") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type.value, "data": self.data}
        if self.label:
            out["label"] = self.label
        return out


@dataclass(frozen=True, slots=True)
class Hotspot:
    """Rectangular tappable region on a menu."""
    id: str
    x: int
    y: int
    width: int
    height: int
    action: Action = field(default_factory=Action)

    @property
    def bounds(self) -> Bounds:
        return Bounds(x=self.x, y=self.y, width=self.width, height=self.height)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Hotspot":
        return cls(
            id=str(raw["id"]),
            x=raw["x"],
            y=raw["y"],
            width=raw["width"],
            height=raw["height"],
            action=Action.from_dict(raw.get("action") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "action": self.action.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class Menu:
    """
    One rich menu layout within a project.

    Invariants (checked by the validation engine, not here):
    - exactly one menu per project has is_main=True
    - at most 9 non-main menus per project
    - bar_text is 1..20 characters
    """
    id: str
    name: str
    bar_text: str
    is_main: bool = False
    image_data: Optional[str] = None
    hotspots: List[Hotspot] = field(default_factory=list)
    status: Optional[DraftStatus] = None
    scheduled_at: Optional[str] = None
    folder_id: Optional[str] = None
    line_rich_menu_id: Optional[str] = None
    line_alias_id: Optional[str] = None

    @property
    def alias_id(self) -> AliasId:
        return derive_alias_id(self.id)

    @property
    def has_image(self) -> bool:
        return bool(self.image_data and self.image_data.strip())

    def with_remote_binding(self, rich_menu_id: str, alias_id: str) -> "Menu":
        """Copy of this menu carrying the LINE identifiers from a publish."""
        return replace(self, line_rich_menu_id=rich_menu_id, line_alias_id=alias_id)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Menu":
        """Build from the editor's camelCase JSON (as stored in drafts)."""
        status = raw.get("status")
        return cls(
            id=str(raw["id"]),
            name=raw.get("name") or "",
            bar_text=raw.get("barText") or "",
            is_main=bool(raw.get("isMain", False)),
            image_data=raw.get("imageData"),
            hotspots=[Hotspot.from_dict(h) for h in raw.get("hotspots") or []],
            status=DraftStatus(status) if status else None,
            scheduled_at=raw.get("scheduledAt"),
            folder_id=raw.get("folderId"),
            line_rich_menu_id=raw.get("lineRichMenuId"),
            line_alias_id=raw.get("lineAliasId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "barText": self.bar_text,
            "isMain": self.is_main,
            "imageData": self.image_data,
            "hotspots": [h.to_dict() for h in self.hotspots],
        }
        optional = {
            "status": self.status.value if self.status else None,
            "scheduledAt": self.scheduled_at,
            "folderId": self.folder_id,
            "lineRichMenuId": self.line_rich_menu_id,
            "lineAliasId": self.line_alias_id,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out


@dataclass(slots=True)
class Draft:
    """Persisted project: a named set of menus owned by one user."""
    id: UUID
    user_id: UUID
    name: str
    menus: List[Menu]
    status: DraftStatus = DraftStatus.DRAFT
    scheduled_at: Optional[datetime] = None
    folder_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    def record_publish(
        self,
        menus: Sequence[Menu],
        bindings: Dict[str, Dict[str, str]],
        scheduled_at: Optional[datetime] = None,
    ) -> None:
        """
        Replace the draft's menus with the published graph, carrying the
        remote identifiers, and move the draft to published (or scheduled,
        when a schedule time was recorded).

        Args:
            menus: The menus exactly as they were published
            bindings: menu id -> {"aliasId": ..., "richMenuId": ...}
            scheduled_at: When set, the draft is marked scheduled
        """
        updated: List[Menu] = []
        for menu in menus:
            bound = bindings.get(menu.id)
            if bound:
                menu = menu.with_remote_binding(bound["richMenuId"], bound["aliasId"])
            updated.append(menu)
        self.menus = updated
        if scheduled_at is not None:
            self.status = DraftStatus.SCHEDULED
            self.scheduled_at = scheduled_at
        else:
            self.status = DraftStatus.PUBLISHED
