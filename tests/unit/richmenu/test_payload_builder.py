import pytest

from src.richmenu.application.payload_builder import (
    MISSING_TARGET_TEXT,
    build_publish_request,
    build_rich_menu_payload,
    convert_hotspot_to_area,
)
from src.richmenu.domain.value_objects import ActionType, derive_alias_id
from tests.unit.richmenu.fakes import hotspot, make_menu


def test_alias_is_deterministic_and_capped():
    menu_id = "3f2b8c1e-9a7d-4e21-b0c4-5d6e7f8a9b0c"
    first = derive_alias_id(menu_id)
    assert first == derive_alias_id(menu_id)
    assert first == "3f2b8c1e9a7d4e21b0c45d6e7f8a9b0c"
    assert len(derive_alias_id("x" * 80)) == 32
    assert derive_alias_id("main-menu.v2") == "mainmenuv2"


def test_alias_rejects_id_without_usable_characters():
    with pytest.raises(ValueError):
        derive_alias_id("---")


def test_switch_resolves_to_target_alias():
    a = make_menu("menu-a", is_main=True, hotspots=[hotspot("h1", ActionType.SWITCH, "menu-b")])
    b = make_menu("menu-b", name="Coupons")
    c = make_menu("menu-c")

    payload = build_rich_menu_payload(a, [a, b, c])

    action = payload["areas"][0]["action"]
    assert action["type"] == "richmenuswitch"
    assert action["richMenuAliasId"] == b.alias_id == "menub"
    assert action["data"] == "switch_to_menu-b"
    assert action["label"] == "Coupons"


def test_dangling_switch_becomes_message():
    a = make_menu("menu-a", is_main=True)
    area = convert_hotspot_to_area(hotspot("h1", ActionType.SWITCH, "gone"), {a.id: a})

    assert area["action"]["type"] == "message"
    assert area["action"]["text"] == MISSING_TARGET_TEXT


def test_none_action_is_a_valid_message():
    area = convert_hotspot_to_area(hotspot("h1", ActionType.NONE), {})

    assert area["action"]["type"] == "message"
    assert area["action"]["text"].strip() == "" and area["action"]["text"] != ""
    assert area["action"]["label"]


def test_labels_are_truncated_to_line_limit():
    area = convert_hotspot_to_area(
        hotspot("h1", ActionType.MESSAGE, "hi", label="A very long label that LINE would reject"), {}
    )
    assert len(area["action"]["label"]) == 20


def test_empty_message_and_uri_get_defaults():
    msg = convert_hotspot_to_area(hotspot("h1", ActionType.MESSAGE), {})["action"]
    uri = convert_hotspot_to_area(hotspot("h2", ActionType.URI), {})["action"]
    assert msg["text"] and msg["label"]
    assert uri["uri"] == "https://line.me"


def test_payload_shape(valid_image_data_url):
    menu = make_menu(
        "m1",
        is_main=True,
        image=valid_image_data_url,
        hotspots=[hotspot("h1", ActionType.MESSAGE, "hello", x=10, y=20, width=300, height=400)],
    )

    payload = build_rich_menu_payload(menu, [menu])

    assert payload["size"] == {"width": 2500, "height": 1686}
    assert payload["selected"] is True
    assert payload["chatBarText"] == "Menu"
    assert payload["areas"][0]["bounds"] == {"x": 10, "y": 20, "width": 300, "height": 400}


def test_publish_request_for_single_uri_menu(valid_image_data_url):
    menu = make_menu(
        "m1",
        is_main=True,
        image=valid_image_data_url,
        hotspots=[hotspot("h1", ActionType.URI, "https://example.com")],
    )

    request = build_publish_request([menu])

    assert len(request["menus"]) == 1
    entry = request["menus"][0]
    action = entry["menuData"]["areas"][0]["action"]
    assert action["type"] == "uri"
    assert action["uri"] == "https://example.com"
    assert action["label"]
    assert entry["aliasId"] == "m1"
    assert entry["isMain"] is True
    assert entry["imageBase64"] == valid_image_data_url
    assert entry["menuName"] == menu.name
