import base64

import pytest

from src.richmenu.application.validation import (
    FIELD_BACKGROUND_IMAGE,
    FIELD_CHAT_BAR_TEXT,
    FIELD_HOTSPOT_ACTION,
    FIELD_HOTSPOT_BOUNDS,
    FIELD_HOTSPOT_ID,
    FIELD_MENU_ID,
    FIELD_MENUS,
    estimate_base64_size,
    find_overlapping_hotspots,
    get_image_dimensions,
    validate_image_dimensions,
    validate_image_file_size,
    validate_menu_images,
    validate_menus,
)
from src.richmenu.domain.exceptions import ImageLoadError
from src.richmenu.domain.value_objects import ActionType
from src.richmenu.infrastructure.image_loader import HttpImageLoader
from tests.unit.richmenu.fakes import hotspot, make_menu, make_png_data_url


def _fields(issues, menu_name=None):
    return [i.field for i in issues if menu_name is None or i.menu_name == menu_name]


def test_missing_image_yields_exactly_one_background_issue():
    main = make_menu("main", name="Main", is_main=True, image=None)
    sub = make_menu("sub", name="Sub", bar_text="")

    issues = validate_menus([main, sub])

    assert _fields(issues, "Main").count(FIELD_BACKGROUND_IMAGE) == 1
    assert _fields(issues, "Sub") == [FIELD_CHAT_BAR_TEXT]

    fixed = validate_menus([make_menu("main", name="Main", is_main=True), sub])
    assert _fields(fixed, "Main") == []
    assert _fields(fixed, "Sub") == [FIELD_CHAT_BAR_TEXT]


def test_project_requires_exactly_one_main():
    assert _fields(validate_menus([make_menu("a")])) == [FIELD_MENUS]
    two_mains = validate_menus([make_menu("a", is_main=True), make_menu("b", is_main=True)])
    assert _fields(two_mains) == [FIELD_MENUS]


def test_at_most_nine_sub_menus():
    menus = [make_menu("main", is_main=True)] + [make_menu(f"s{i}") for i in range(10)]
    issues = validate_menus(menus)
    assert [i.message for i in issues if i.field == FIELD_MENUS] == ["At most 9 sub-menus are allowed (found 10)"]


def test_bar_text_limit():
    issues = validate_menus([make_menu("m", is_main=True, bar_text="x" * 21)])
    assert _fields(issues) == [FIELD_CHAT_BAR_TEXT]


def test_hotspot_action_checks():
    menu = make_menu(
        "m",
        is_main=True,
        hotspots=[
            hotspot("h1", ActionType.URI, ""),
            hotspot("h2", ActionType.MESSAGE, "  "),
            hotspot("h3", ActionType.SWITCH, ""),
            hotspot("h4", ActionType.SWITCH, "m"),
            hotspot("h5", ActionType.SWITCH, "nowhere"),
            hotspot("h6", ActionType.NONE),
        ],
    )

    issues = validate_menus([menu])

    assert _fields(issues) == [FIELD_HOTSPOT_ACTION] * 5
    assert "Hotspot #4" in issues[3].message and "itself" in issues[3].message


def test_hotspot_bounds_and_duplicate_ids():
    menu = make_menu(
        "m",
        is_main=True,
        hotspots=[
            hotspot("h1", ActionType.NONE, x=2000, width=600),
            hotspot("h1", ActionType.NONE),
        ],
    )

    assert _fields(validate_menus([menu])) == [FIELD_HOTSPOT_BOUNDS, FIELD_HOTSPOT_ID]


def test_menu_id_must_yield_an_alias():
    menus = [make_menu("main", is_main=True), make_menu("---", name="Dashes")]

    issues = validate_menus(menus)

    assert _fields(issues, "Dashes") == [FIELD_MENU_ID]
    assert _fields(issues, "Menu main") == []


def test_dimension_limits():
    rejected = validate_image_dimensions(600, 500)
    assert rejected.valid is False
    assert rejected.error

    assert validate_image_dimensions(2500, 1686).valid
    assert validate_image_dimensions(800, 270).valid
    assert not validate_image_dimensions(2600, 1686).valid
    assert not validate_image_dimensions(1000, 200).valid
    assert not validate_image_dimensions(1000, 800).valid  # ratio 1.25


def test_file_size_estimate():
    small = base64.b64encode(b"\0" * 999).decode()
    big = base64.b64encode(b"\0" * (1024 * 1024 + 3)).decode()
    assert estimate_base64_size("data:image/png;base64," + small) == 999
    assert validate_image_file_size(small)
    assert not validate_image_file_size(big)


def test_get_image_dimensions_reads_png():
    assert get_image_dimensions(make_png_data_url(1200, 810)) == (1200, 810)

    with pytest.raises(ImageLoadError):
        get_image_dimensions("not base64 at all!")


@pytest.mark.anyio
async def test_image_checks_flag_small_images():
    loader = HttpImageLoader(timeout=1.0)
    good = make_menu("good", name="Good", is_main=True, image=make_png_data_url())
    small = make_menu("small", name="Small", image=make_png_data_url(600, 500))
    missing = make_menu("missing", name="Missing", image=None)

    issues = await validate_menu_images([good, small, missing], loader)

    assert [(i.menu_name, i.field) for i in issues] == [("Small", FIELD_BACKGROUND_IMAGE)]
    assert "800" in issues[0].message


@pytest.mark.anyio
async def test_image_checks_report_unreadable_data():
    loader = HttpImageLoader(timeout=1.0)
    garbage = base64.b64encode(b"definitely not an image").decode()
    menu = make_menu("m", name="Broken", is_main=True, image=garbage)

    issues = await validate_menu_images([menu], loader)

    assert len(issues) == 1
    assert issues[0].field == FIELD_BACKGROUND_IMAGE


def test_overlaps_are_reported_not_rejected():
    menu = make_menu(
        "m",
        is_main=True,
        hotspots=[
            hotspot("a", ActionType.NONE, x=0, y=0, width=500, height=500),
            hotspot("b", ActionType.NONE, x=400, y=400, width=500, height=500),
            hotspot("c", ActionType.NONE, x=1500, y=0, width=500, height=500),
        ],
    )

    assert find_overlapping_hotspots(menu) == [("a", "b")]
    assert validate_menus([menu]) == []
