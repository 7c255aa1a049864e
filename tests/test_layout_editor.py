"""Unit tests for the layout editor state machine and field operations."""

import pytest

from cvstudio.errors import InputValidationError, TemplateStoreError
from cvstudio.schemas.template import CustomTemplate, FieldType, TemplateField
from cvstudio.services.layout_editor import (
    AlignKind,
    EditorError,
    FieldPropertiesUpdate,
    InteractionMode,
    LayoutEditor,
    Point,
    ResizeDirection,
    snap,
)


def _editor(*fields, pages=1, office_name="AL NOOR", snap_to_grid=False):
    template = CustomTemplate(
        office_name=office_name,
        pages=[f"https://cdn.test/page{i}.png" for i in range(1, pages + 1)],
        fields=list(fields),
    )
    return LayoutEditor(template, snap_to_grid=snap_to_grid)


def _field(field_id, x, y, width=10.0, height=5.0, page=1):
    return TemplateField(id=field_id, key="fullName", x=x, y=y, width=width, height=height, page=page)


def _click(editor, field_id, multi=False):
    editor.pointer_down(Point(0, 0), field_id=field_id, multi=multi)
    editor.pointer_up()


@pytest.mark.unit
def test_snap_rounds_half_up():
    assert snap(13.3, 2) == 14
    assert snap(12.9, 2) == 12
    assert snap(3.5, 1) == 4


@pytest.mark.unit
def test_add_field_requires_a_page():
    editor = LayoutEditor()

    with pytest.raises(EditorError):
        editor.add_field("fullName")

    assert editor.fields == []
    assert isinstance(EditorError("x"), InputValidationError)


@pytest.mark.unit
def test_add_field_places_default_box_and_selects():
    editor = _editor()

    text = editor.add_field("fullName")
    assert (text.x, text.y, text.width, text.height) == (10, 10, 40, 6)
    assert text.page == 1
    assert editor.selected_ids == [text.id]

    check = editor.add_field("skillCooking")
    assert check.type == FieldType.CHECKMARK
    assert (check.width, check.height) == (4, 4)
    assert editor.selected_ids == [check.id]


@pytest.mark.unit
def test_add_unknown_field_rejected():
    editor = _editor()

    with pytest.raises(EditorError):
        editor.add_field("noSuchKey")


@pytest.mark.unit
def test_drag_moves_by_delta_and_clamps():
    editor = _editor(TemplateField(id="a", key="fullName", x=10, y=10, width=40, height=6))

    assert editor.pointer_down(Point(20, 20), field_id="a") == InteractionMode.DRAGGING
    editor.pointer_move(Point(25, 23))
    field = editor.template.field_by_id("a")
    assert (field.x, field.y) == (15, 13)

    editor.pointer_move(Point(200, -50))
    assert field.x == 60  # 100 - width
    assert field.y == 0
    editor.pointer_up()
    assert editor.mode == InteractionMode.IDLE


@pytest.mark.unit
def test_drag_snaps_to_grid_before_clamping():
    editor = _editor(_field("a", 10, 10), snap_to_grid=True)

    editor.pointer_down(Point(50, 50), field_id="a")
    editor.pointer_move(Point(53.3, 50.4))

    field = editor.template.field_by_id("a")
    assert field.x == 14
    assert field.y == 10


@pytest.mark.unit
def test_drag_moves_whole_selection():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 20))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    editor.pointer_down(Point(12, 12), field_id="a")
    editor.pointer_move(Point(17, 14))
    editor.pointer_up()

    a, b = editor.template.field_by_id("a"), editor.template.field_by_id("b")
    assert (a.x, a.y) == (15, 12)
    assert (b.x, b.y) == (35, 22)


@pytest.mark.unit
def test_resize_enforces_minimum_size():
    editor = _editor(TemplateField(id="a", key="fullName", x=10, y=10, width=40, height=6))

    mode = editor.pointer_down(Point(50, 16), field_id="a", handle=ResizeDirection.SE)
    assert mode == InteractionMode.RESIZING
    editor.pointer_move(Point(0, 0))

    field = editor.template.field_by_id("a")
    assert field.width == 5
    assert field.height == 5
    assert (field.x, field.y) == (10, 10)


@pytest.mark.unit
def test_resize_north_west_moves_origin():
    editor = _editor(TemplateField(id="a", key="fullName", x=10, y=10, width=40, height=6))
    _click(editor, "a")

    editor.pointer_down(Point(10, 10), field_id="a", handle=ResizeDirection.NW)
    editor.pointer_move(Point(4, 8))
    field = editor.template.field_by_id("a")
    assert (field.x, field.y, field.width, field.height) == (4, 8, 46, 8)

    # Past the opposite edge the floor holds
    editor.pointer_move(Point(99, 99))
    assert (field.x, field.width) == (45, 5)
    assert (field.y, field.height) == (11, 5)


@pytest.mark.unit
def test_snapped_resize_stays_on_page():
    editor = _editor(
        TemplateField(id="a", key="fullName", x=50.5, y=80.5, width=20, height=10),
        snap_to_grid=True,
    )

    editor.pointer_down(Point(70.5, 90.5), field_id="a", handle=ResizeDirection.SE)
    editor.pointer_move(Point(100, 100))

    field = editor.template.field_by_id("a")
    assert field.x + field.width <= 100
    assert field.y + field.height <= 100
    assert field.width >= 5
    assert field.height >= 5


@pytest.mark.unit
def test_resize_is_disabled_with_multiple_selected():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 10))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    mode = editor.pointer_down(Point(20, 15), field_id="a", handle=ResizeDirection.SE)
    editor.pointer_move(Point(60, 60))

    assert mode == InteractionMode.IDLE
    assert editor.template.field_by_id("a").width == 10


@pytest.mark.unit
def test_marquee_selects_only_fully_enclosed_fields():
    editor = _editor(
        _field("a", 10, 10),
        _field("b", 30, 10),
        _field("c", 45, 10, width=20),
    )

    assert editor.pointer_down(Point(50, 20)) == InteractionMode.MARQUEE
    editor.pointer_move(Point(5, 5))
    selection = editor.pointer_up()

    assert set(selection) == {"a", "b"}


@pytest.mark.unit
def test_marquee_ignores_other_pages():
    editor = _editor(_field("a", 10, 10), _field("b", 10, 10, page=2), pages=2)

    editor.pointer_down(Point(0, 0))
    editor.pointer_move(Point(100, 100))
    assert editor.pointer_up() == ["a"]


@pytest.mark.unit
def test_marquee_with_modifier_keeps_selection():
    editor = _editor(_field("a", 10, 10), _field("b", 60, 60))
    _click(editor, "b")

    editor.pointer_down(Point(0, 0), multi=True)
    editor.pointer_move(Point(30, 30))
    editor.pointer_up()
    assert set(editor.selected_ids) == {"a", "b"}

    editor.pointer_down(Point(90, 90))
    editor.pointer_up()
    assert editor.selected_ids == []


@pytest.mark.unit
def test_multi_select_toggles():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 10))

    _click(editor, "a")
    _click(editor, "b", multi=True)
    _click(editor, "a", multi=True)

    assert editor.selected_ids == ["b"]
    assert editor.primary_field.id == "b"


@pytest.mark.unit
def test_toggle_off_does_not_start_drag():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 10))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    mode = editor.pointer_down(Point(0, 0), field_id="a", multi=True)

    assert mode == InteractionMode.IDLE


@pytest.mark.unit
def test_align_left_and_vertical_center():
    editor = _editor(_field("a", 10, 10, height=4), _field("b", 30, 20, height=8))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    editor.align_selected(AlignKind.LEFT)
    a, b = editor.template.field_by_id("a"), editor.template.field_by_id("b")
    assert a.x == b.x == 10
    assert (a.y, b.y) == (10, 20)

    editor.align_selected(AlignKind.VERTICAL_CENTER)
    # centers 12 and 24 -> 18
    assert a.center_y == pytest.approx(18)
    assert b.center_y == pytest.approx(18)
    assert (a.height, b.height) == (4, 8)


@pytest.mark.unit
def test_align_right_and_bottom():
    editor = _editor(_field("a", 10, 10, width=10), _field("b", 30, 20, width=20))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    editor.align_selected(AlignKind.RIGHT)
    editor.align_selected(AlignKind.BOTTOM)

    a, b = editor.template.field_by_id("a"), editor.template.field_by_id("b")
    assert a.right == b.right == 50
    assert a.bottom == b.bottom == 25


@pytest.mark.unit
def test_align_requires_two_fields():
    editor = _editor(_field("a", 10, 10))
    _click(editor, "a")

    with pytest.raises(EditorError):
        editor.align_selected(AlignKind.LEFT)


@pytest.mark.unit
def test_delete_selected_clears_selection():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 10), _field("c", 50, 10))
    _click(editor, "a")
    _click(editor, "c", multi=True)

    assert editor.delete_selected() == 2
    assert [f.id for f in editor.fields] == ["b"]
    assert editor.selected_ids == []


@pytest.mark.unit
def test_batch_style_applies_to_every_selected_field():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 10))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    editor.apply_properties(FieldPropertiesUpdate(fontSize=9, color="ff0000", bold=True))

    for field in editor.fields:
        assert field.font_size == 9
        assert field.color == "#ff0000"
        assert field.bold is True


@pytest.mark.unit
def test_type_and_label_need_single_selection():
    editor = _editor(_field("a", 10, 10), _field("b", 30, 10))
    _click(editor, "a")
    _click(editor, "b", multi=True)

    with pytest.raises(EditorError):
        editor.apply_properties(FieldPropertiesUpdate(type=FieldType.CHECKMARK))
    assert all(f.type == FieldType.TEXT for f in editor.fields)

    # Empty-canvas click clears, then pick one field
    editor.pointer_down(Point(95, 95))
    editor.pointer_up()
    _click(editor, "a")
    editor.apply_properties(FieldPropertiesUpdate(type=FieldType.BOOLEAN, customLabel="DRIVER"))
    field = editor.template.field_by_id("a")
    assert field.type == FieldType.BOOLEAN
    assert field.custom_label == "DRIVER"

    with pytest.raises(EditorError):
        editor.apply_properties(FieldPropertiesUpdate(type=FieldType.IMAGE))


@pytest.mark.unit
def test_select_page_filters_fields_and_clears_selection():
    editor = _editor(_field("a", 10, 10), _field("b", 10, 10, page=2), pages=2)
    _click(editor, "a")

    editor.select_page(1)

    assert editor.current_page == 2
    assert [f.id for f in editor.page_fields] == ["b"]
    assert editor.selected_ids == []
    with pytest.raises(EditorError):
        editor.select_page(5)


@pytest.mark.unit
def test_add_page_keeps_raw_asset_for_upload(png_bytes):
    editor = _editor()

    number = editor.add_page(png_bytes, "image/png")

    assert number == 2
    assert editor.template.pages[1].startswith("data:image/png;base64,")
    assert editor.page_assets[1] == png_bytes


class _RecordingStore:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def save(self, owner_id, template, page_assets):
        self.calls.append((owner_id, template, page_assets))
        if self.fail:
            raise TemplateStoreError("database unavailable")
        return template


@pytest.mark.anyio
async def test_save_requires_office_name():
    editor = _editor(office_name="")
    store = _RecordingStore()

    with pytest.raises(EditorError):
        await editor.save(store, "owner-1")
    assert store.calls == []


@pytest.mark.anyio
async def test_save_success_ends_session():
    editor = _editor(_field("a", 10, 10))
    store = _RecordingStore()

    saved = await editor.save(store, "owner-1")

    assert editor.closed is True
    owner_id, template, assets = store.calls[0]
    assert owner_id == "owner-1"
    assert assets == ["https://cdn.test/page1.png"]
    assert saved.fields[0].id == "a"


@pytest.mark.anyio
async def test_failed_save_keeps_state_for_retry():
    editor = _editor(_field("a", 10, 10))
    store = _RecordingStore(fail=True)

    with pytest.raises(TemplateStoreError):
        await editor.save(store, "owner-1")

    assert editor.closed is False
    assert [f.id for f in editor.fields] == ["a"]

    store.fail = False
    await editor.save(store, "owner-1")
    assert editor.closed is True
