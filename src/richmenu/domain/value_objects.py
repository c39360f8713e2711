# src/richmenu/domain/value_objects.py
"""
Rich menu value objects, enums and LINE platform constants.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .types import AliasId

# LINE rich menu canvas (logical resolution used by the editor)
CANVAS_WIDTH = 2500
CANVAS_HEIGHT = 1686

# LINE platform limits
MAX_ALIAS_ID_LENGTH = 32
MAX_CHAT_BAR_TEXT_LENGTH = 20
MAX_ACTION_LABEL_LENGTH = 20
MAX_SUB_MENUS = 9

MIN_IMAGE_WIDTH = 800
MAX_IMAGE_WIDTH = 2500
MIN_IMAGE_HEIGHT = 250
MIN_ASPECT_RATIO = 1.45
MAX_IMAGE_BYTES = 1024 * 1024

RECOMMENDED_IMAGE_SIZES = (
    (2500, 1686),
    (2500, 843),
    (1200, 810),
    (1200, 405),
    (800, 540),
    (800, 270),
)

_ALIAS_STRIP = re.compile(r"[^A-Za-z0-9_]")


class ActionType(str, Enum):
    """Editor-side hotspot action kinds."""
    NONE = "none"
    MESSAGE = "message"
    URI = "uri"
    SWITCH = "switch"


class JobStatus(str, Enum):
    """
    Publish job lifecycle.

    Flow: publishing → completed
    Any fatal step failure → failed
    """
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PUBLISHING


class ProgressStatus(str, Enum):
    """Per-menu progress within a publish job."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class PublishStep(str, Enum):
    """Remote provisioning steps, in execution order."""
    CREATE_MENU = "create_menu"
    UPLOAD_IMAGE = "upload_image"
    SET_ALIAS = "set_alias"
    RECORD_VERSION = "record_version"
    SET_DEFAULT = "set_default"
    COMPLETED = "completed"


class DraftStatus(str, Enum):
    """Project/draft publication state as shown in the editor."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"
    ACTIVE = "active"


@dataclass(frozen=True, slots=True)
class Bounds:
    """Axis-aligned rectangle on the rich menu canvas."""
    x: int
    y: int
    width: int
    height: int

    def is_within_canvas(self) -> bool:
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= CANVAS_WIDTH
            and self.y + self.height <= CANVAS_HEIGHT
        )

    def overlaps(self, other: "Bounds") -> bool:
        return (
            self.x < other.x + other.width
            and other.x < self.x + self.width
            and self.y < other.y + other.height
            and other.y < self.y + self.height
        )

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class ImagePayload:
    """Decoded image bytes ready for upload."""
    data: bytes
    content_type: str = "image/png"

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def derive_alias_id(menu_id: str) -> AliasId:
    """
    Derive the LINE richMenuAliasId for an editor menu.

    Strips every character LINE does not accept in an alias (UUID hyphens
    included) and caps the result at 32 characters, so a UUID maps to its
    32 hex digits. Pure function of the menu id.

    Raises:
        ValueError: If nothing usable is left after stripping
    """
    alias = _ALIAS_STRIP.sub("", menu_id or "")[:MAX_ALIAS_ID_LENGTH]
    if not alias:
        raise ValueError(f"Cannot derive an alias id from menu id {menu_id!r}")
    return AliasId(alias)
