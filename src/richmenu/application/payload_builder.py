"""
Menu graph -> LINE rich menu payload.

Pure, synchronous transformation. Always yields a structurally valid LINE
payload: unknown switch targets and no-op actions degrade to harmless
message actions instead of raising.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from src.richmenu.domain.entities import Hotspot, Menu
from src.richmenu.domain.value_objects import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    MAX_ACTION_LABEL_LENGTH,
    ActionType,
)
from src.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MESSAGE_LABEL = "Message"
DEFAULT_MESSAGE_TEXT = "Default message"
DEFAULT_URI_LABEL = "Open link"
DEFAULT_URI = "https://line.me"
MISSING_TARGET_LABEL = "Error"
MISSING_TARGET_TEXT = "Target menu does not exist"
NOOP_LABEL = "-"
NOOP_TEXT = " "


def _label(value: str) -> str:
    return value[:MAX_ACTION_LABEL_LENGTH]


def _index_menus(menus: Sequence[Menu]) -> Dict[str, Menu]:
    return {m.id: m for m in menus}


def convert_hotspot_to_area(hotspot: Hotspot, menus_by_id: Mapping[str, Menu]) -> Dict[str, Any]:
    """
    Convert one editor hotspot into a LINE area.

    Args:
        hotspot: Hotspot to convert
        menus_by_id: Every menu in the project, keyed by id (switch lookup)

    Returns:
        {"bounds": {...}, "action": {...}}
    """
    action = hotspot.action
    out: Dict[str, Any]

    if action.type is ActionType.MESSAGE:
        out = {
            "type": "message",
            "label": _label(action.label or DEFAULT_MESSAGE_LABEL),
            "text": action.data or DEFAULT_MESSAGE_TEXT,
        }
    elif action.type is ActionType.URI:
        out = {
            "type": "uri",
            "label": _label(action.label or DEFAULT_URI_LABEL),
            "uri": action.data or DEFAULT_URI,
        }
    elif action.type is ActionType.SWITCH:
        target = menus_by_id.get(action.data)
        if target is not None:
            out = {
                "type": "richmenuswitch",
                "label": _label(action.label or target.name),
                "richMenuAliasId": target.alias_id,
                "data": f"switch_to_{target.id}",
            }
        else:
            logger.warning(
                "Switch target not found, emitting message action",
                hotspot_id=hotspot.id,
                target_menu_id=action.data,
            )
            out = {"type": "message", "label": MISSING_TARGET_LABEL, "text": MISSING_TARGET_TEXT}
    else:
        # LINE has no no-op action type
        out = {"type": "message", "label": NOOP_LABEL, "text": NOOP_TEXT}

    return {"bounds": hotspot.bounds.to_dict(), "action": out}


def build_rich_menu_payload(menu: Menu, all_menus: Sequence[Menu]) -> Dict[str, Any]:
    """
    Build the POST /richmenu body for one menu.

    Args:
        menu: Menu to convert
        all_menus: Every menu in the project, needed to resolve switch targets
    """
    menus_by_id = _index_menus(all_menus)
    return {
        "size": {"width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
        "selected": menu.is_main,
        "name": menu.name,
        "chatBarText": menu.bar_text,
        "areas": [convert_hotspot_to_area(h, menus_by_id) for h in menu.hotspots],
    }


def build_publish_request(menus: Sequence[Menu]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Build the full publish request for a project.

    Returns:
        {"menus": [{"menuData", "imageBase64", "aliasId", "isMain", "menuName"}]}
    """
    return {
        "menus": [
            {
                "menuData": build_rich_menu_payload(menu, menus),
                "imageBase64": menu.image_data,
                "aliasId": menu.alias_id,
                "isMain": menu.is_main,
                "menuName": menu.name,
            }
            for menu in menus
        ]
    }
