"""
Pre-flight validation of a project's menus.

Two independent categories:
- field checks (validate_menus): synchronous, structural
- image checks (validate_menu_images): async, decode each image and apply
  LINE's file-size and pixel-dimension limits

Nothing here mutates menus; callers must refuse to publish when either
category returns any issue.
"""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import asdict, dataclass
from io import BytesIO
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from src.richmenu.domain.entities import Menu
from src.richmenu.domain.exceptions import ImageLoadError
from src.richmenu.domain.protocols import ImageLoader
from src.richmenu.domain.value_objects import (
    MAX_CHAT_BAR_TEXT_LENGTH,
    MAX_IMAGE_BYTES,
    MAX_IMAGE_WIDTH,
    MAX_SUB_MENUS,
    MIN_ASPECT_RATIO,
    MIN_IMAGE_HEIGHT,
    MIN_IMAGE_WIDTH,
    RECOMMENDED_IMAGE_SIZES,
    ActionType,
)
from src.shared.logging import get_logger

logger = get_logger(__name__)

FIELD_MENUS = "menus"
FIELD_BACKGROUND_IMAGE = "background_image"
FIELD_CHAT_BAR_TEXT = "chat_bar_text"
FIELD_HOTSPOT_BOUNDS = "hotspot_bounds"
FIELD_HOTSPOT_ACTION = "hotspot_action"
FIELD_HOTSPOT_ID = "hotspot_id"
FIELD_MENU_ID = "menu_id"

_PROJECT = "(project)"
_RECOMMENDED = ", ".join(f"{w}x{h}" for w, h in RECOMMENDED_IMAGE_SIZES)
_ALIAS_CHARS = re.compile(r"[A-Za-z0-9_]")


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One reason a menu cannot be published."""
    menu_name: str
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ImageDimensionCheck:
    valid: bool
    error: Optional[str] = None


# ---------------------------------------------------------------------
# Image primitives
# ---------------------------------------------------------------------

def strip_data_url(value: str) -> str:
    """Drop a `data:image/...;base64,` prefix if present."""
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def validate_image_dimensions(width: int, height: int) -> ImageDimensionCheck:
    """
    LINE rich menu pixel limits: width 800..2500, height >= 250,
    width/height >= 1.45.
    """
    if width < MIN_IMAGE_WIDTH:
        return ImageDimensionCheck(False, f"Image width {width}px is below the {MIN_IMAGE_WIDTH}px minimum")
    if width > MAX_IMAGE_WIDTH:
        return ImageDimensionCheck(False, f"Image width {width}px exceeds the {MAX_IMAGE_WIDTH}px maximum")
    if height < MIN_IMAGE_HEIGHT:
        return ImageDimensionCheck(False, f"Image height {height}px is below the {MIN_IMAGE_HEIGHT}px minimum")
    ratio = width / height
    if ratio < MIN_ASPECT_RATIO:
        return ImageDimensionCheck(
            False,
            f"Aspect ratio {ratio:.2f} (width/height) is below the {MIN_ASPECT_RATIO} minimum",
        )
    return ImageDimensionCheck(True)


def estimate_base64_size(value: str) -> int:
    """Approximate decoded byte size of a base64 string (or data URL)."""
    return len(strip_data_url(value)) * 3 // 4


def validate_image_file_size(value: str) -> bool:
    """True when the encoded image decodes to at most 1 MiB."""
    return estimate_base64_size(value) <= MAX_IMAGE_BYTES


def image_dimensions_from_bytes(data: bytes) -> Tuple[int, int]:
    try:
        with Image.open(BytesIO(data)) as im:
            return im.size
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError("Image data is not a readable PNG/JPEG") from e


def get_image_dimensions(value: str) -> Tuple[int, int]:
    """
    Decode a base64 image (or data URL) and return (width, height).

    Raises:
        ImageLoadError: If the string is not valid base64 image data
    """
    try:
        raw = base64.b64decode(strip_data_url(value), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError("Image data is not valid base64") from e
    return image_dimensions_from_bytes(raw)


# ---------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------

def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_project(menus: Sequence[Menu]) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    main_count = sum(1 for m in menus if m.is_main)
    if main_count == 0:
        issues.append(ValidationIssue(_PROJECT, FIELD_MENUS, "A main menu is required"))
    elif main_count > 1:
        issues.append(ValidationIssue(_PROJECT, FIELD_MENUS, f"Only one main menu is allowed (found {main_count})"))
    sub_count = len(menus) - main_count
    if sub_count > MAX_SUB_MENUS:
        issues.append(
            ValidationIssue(_PROJECT, FIELD_MENUS, f"At most {MAX_SUB_MENUS} sub-menus are allowed (found {sub_count})")
        )
    return issues


def _validate_menu(menu: Menu, known_ids: Sequence[str]) -> List[ValidationIssue]:
    name = menu.name or menu.id
    issues: List[ValidationIssue] = []

    if not _ALIAS_CHARS.search(menu.id or ""):
        issues.append(ValidationIssue(name, FIELD_MENU_ID, "Menu id has no characters usable in a LINE alias"))

    if not menu.has_image:
        issues.append(ValidationIssue(name, FIELD_BACKGROUND_IMAGE, "Background image is missing"))

    bar_text = (menu.bar_text or "").strip()
    if not bar_text:
        issues.append(ValidationIssue(name, FIELD_CHAT_BAR_TEXT, "Chat bar text is required"))
    elif len(bar_text) > MAX_CHAT_BAR_TEXT_LENGTH:
        issues.append(
            ValidationIssue(name, FIELD_CHAT_BAR_TEXT, f"Chat bar text exceeds {MAX_CHAT_BAR_TEXT_LENGTH} characters")
        )

    seen: set = set()
    for pos, hotspot in enumerate(menu.hotspots, start=1):
        where = f"Hotspot #{pos}"
        if hotspot.id in seen:
            issues.append(ValidationIssue(name, FIELD_HOTSPOT_ID, f"{where}: duplicate hotspot id {hotspot.id!r}"))
        seen.add(hotspot.id)

        coords = (hotspot.x, hotspot.y, hotspot.width, hotspot.height)
        if not all(_is_int(c) for c in coords) or not hotspot.bounds.is_within_canvas():
            issues.append(ValidationIssue(name, FIELD_HOTSPOT_BOUNDS, f"{where}: bounds must lie inside the canvas"))

        action = hotspot.action
        data = (action.data or "").strip()
        if action.type is ActionType.URI and not data:
            issues.append(ValidationIssue(name, FIELD_HOTSPOT_ACTION, f"{where}: link URL is required"))
        elif action.type is ActionType.MESSAGE and not data:
            issues.append(ValidationIssue(name, FIELD_HOTSPOT_ACTION, f"{where}: message text is required"))
        elif action.type is ActionType.SWITCH:
            if not data:
                issues.append(ValidationIssue(name, FIELD_HOTSPOT_ACTION, f"{where}: switch target menu is required"))
            elif data == menu.id:
                issues.append(ValidationIssue(name, FIELD_HOTSPOT_ACTION, f"{where}: a menu cannot switch to itself"))
            elif data not in known_ids:
                issues.append(ValidationIssue(name, FIELD_HOTSPOT_ACTION, f"{where}: switch target menu does not exist"))
    return issues


def validate_menus(menus: Sequence[Menu]) -> List[ValidationIssue]:
    """
    Field-presence and structural checks for every menu in a project.

    Returns:
        Ordered issues; empty means publishable (image checks aside)
    """
    known_ids = [m.id for m in menus]
    issues = _validate_project(menus)
    for menu in menus:
        issues.extend(_validate_menu(menu, known_ids))
    return issues


# ---------------------------------------------------------------------
# Image checks
# ---------------------------------------------------------------------

async def check_image(name: str, reference: str, loader: ImageLoader) -> List[ValidationIssue]:
    """
    Load one image reference and apply LINE's size/dimension limits.

    Args:
        name: Menu name the issues are reported under
        reference: Data URL, bare base64 or http(s) URL
    """
    try:
        payload = await loader.load(reference)
        width, height = image_dimensions_from_bytes(payload.data)
    except ImageLoadError as e:
        logger.info("Menu image unreadable", menu_name=name, error=str(e))
        return [ValidationIssue(name, FIELD_BACKGROUND_IMAGE, f"Background image could not be read: {e}")]

    issues: List[ValidationIssue] = []
    if payload.size_bytes > MAX_IMAGE_BYTES:
        issues.append(
            ValidationIssue(
                name,
                FIELD_BACKGROUND_IMAGE,
                f"Background image is {payload.size_bytes} bytes; the limit is {MAX_IMAGE_BYTES} bytes (1MB)",
            )
        )
    check = validate_image_dimensions(width, height)
    if not check.valid:
        message = f"{check.error or 'Invalid image dimensions'}. Recommended sizes: {_RECOMMENDED}"
        issues.append(ValidationIssue(name, FIELD_BACKGROUND_IMAGE, message))
    return issues


async def validate_menu_images(menus: Sequence[Menu], loader: ImageLoader) -> List[ValidationIssue]:
    """
    Decode every menu image and apply LINE's size/dimension limits.

    Menus without an image are skipped; their absence is a field issue.
    """
    issues: List[ValidationIssue] = []
    for menu in menus:
        if menu.has_image:
            issues.extend(await check_image(menu.name or menu.id, menu.image_data or "", loader))
    return issues


def find_overlapping_hotspots(menu: Menu) -> List[Tuple[str, str]]:
    """Pairs of hotspot ids whose bounds overlap. A UI warning, never an error."""
    pairs: List[Tuple[str, str]] = []
    spots = menu.hotspots
    for i, a in enumerate(spots):
        for b in spots[i + 1:]:
            if a.bounds.overlaps(b.bounds):
                pairs.append((a.id, b.id))
    return pairs
