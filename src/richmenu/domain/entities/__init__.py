from .menu import Action, Draft, Hotspot, Menu
from .publish_job import MenuProgress, PublishJob
from .rich_menu_version import RichMenuVersion

__all__ = [
    "Action",
    "Draft",
    "Hotspot",
    "Menu",
    "MenuProgress",
    "PublishJob",
    "RichMenuVersion",
]
