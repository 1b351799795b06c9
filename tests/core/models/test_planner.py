import pytest

from planner_toolkit.core.exceptions import (
    IndexOutOfRangeError,
    SectionKindError,
    UnknownColumnError,
    UnknownItemError,
    UnknownSectionError,
    ValidationError,
)
from planner_toolkit.core.models import Item, Planner, Section, SectionKind
from planner_toolkit.core.models.planner import (
    MAX_COLUMNS,
    MAX_SECTIONS_PER_COLUMN,
    MAX_TOTAL_SECTIONS,
    column_container_id,
    parse_column_container_id,
)


def _item_ids(planner, section_id):
    return [item.id for item in planner.get_section(section_id).items]


def _placed_ids(planner):
    return [sid for column in planner.columns_order for sid in column]


def _assert_ordering_invariants(planner):
    placed = _placed_ids(planner)
    assert len(placed) == len(set(placed))
    assert all(planner.has_section(sid) for sid in placed)
    assert planner.get_column_count() >= 1


# ---------------------------------------------------------------- construction


def test_new_planner_has_one_empty_column():
    planner = Planner()
    assert planner.columns_order == [[]]
    assert planner.get_section_count() == 0
    assert planner.orientation == "portrait"


def test_columns_order_is_a_copy(planner):
    order = planner.columns_order
    order[0].append("bogus")
    assert "bogus" not in planner.get_column_sections(0)


def test_validation_collects_every_violation():
    with pytest.raises(ValidationError) as exc_info:
        Planner(columns_order=[["ghost", "ghost"]], orientation="diagonal", format_version="2")
    errors = exc_info.value.errors
    assert any("orientation" in e for e in errors)
    assert any("semantic versioning" in e for e in errors)
    assert any("unknown section 'ghost'" in e for e in errors)
    assert any("more than once" in e for e in errors)


def test_item_text_limit_enforced():
    with pytest.raises(ValidationError):
        Item.from_dict({"text": "x" * 501})
    assert Item.from_dict({"text": "x" * 500}).text == "x" * 500


def test_freeform_section_cannot_hold_items():
    with pytest.raises(SectionKindError):
        Section(kind=SectionKind.FREEFORM, items=[Item(text="nope")])


def test_section_kind_is_fixed(planner):
    section = planner.get_section("todo")
    with pytest.raises(SectionKindError):
        section.update(kind="freeform")


# ---------------------------------------------------------------- sections


def test_add_section_ignores_supplied_id_and_starts_orphaned():
    planner = Planner()
    section = planner.add_section({"id": "mine", "title": "Today"})
    assert section.id != "mine"
    assert section.title == "Today"
    assert [s.id for s in planner.get_orphaned_sections()] == [section.id]


def test_add_section_respects_total_limit():
    planner = Planner()
    for _ in range(MAX_TOTAL_SECTIONS):
        planner.add_section()
    with pytest.raises(ValidationError):
        planner.add_section()


def test_remove_section_removes_from_columns(planner):
    removed = planner.remove_section("todo")
    assert removed is not None and removed.id == "todo"
    assert planner.get_column_sections(0) == ["notes"]
    assert planner.remove_section("todo") is None
    _assert_ordering_invariants(planner)


def test_add_section_to_column_moves_instead_of_duplicating(planner):
    assert planner.add_section_to_column("todo", 1, 0)
    assert planner.columns_order == [["notes"], ["todo", "later"]]
    assert planner.get_section("todo").column_index == 1
    _assert_ordering_invariants(planner)


def test_add_section_to_column_is_idempotent(planner):
    planner.add_section_to_column("notes", 1, 0)
    first = planner.columns_order
    planner.add_section_to_column("notes", 1, 0)
    assert planner.columns_order == first


def test_add_section_to_column_grows_columns_and_clamps_position(planner):
    planner.add_section_to_column("notes", 3, 99)
    assert planner.get_column_count() == 4
    assert planner.get_column_sections(3) == ["notes"]
    assert planner.get_column_sections(2) == []


def test_add_section_to_column_rejects_bad_input(planner):
    with pytest.raises(UnknownSectionError):
        planner.add_section_to_column("ghost", 0)
    with pytest.raises(IndexOutOfRangeError):
        planner.add_section_to_column("todo", MAX_COLUMNS)
    with pytest.raises(IndexOutOfRangeError):
        planner.add_section_to_column("todo", -1)


def test_column_capacity_limit():
    planner = Planner()
    for _ in range(MAX_SECTIONS_PER_COLUMN):
        planner.add_section_to_column(planner.add_section().id, 0)
    extra = planner.add_section()
    with pytest.raises(ValidationError):
        planner.add_section_to_column(extra.id, 0)
    # moving a section already in the column is still allowed
    first = planner.get_column_sections(0)[0]
    planner.add_section_to_column(first, 0)
    assert planner.get_column_sections(0)[-1] == first


def test_move_section_in_column(planner):
    assert planner.move_section_in_column("notes", 0)
    assert planner.get_column_sections(0) == ["notes", "todo"]
    with pytest.raises(IndexOutOfRangeError):
        planner.move_section_in_column("notes", 2)
    planner.remove_section_from_columns("later")
    assert planner.move_section_in_column("later", 0) is False


def test_orphaned_sections_report_no_column(planner):
    assert planner.add_section().column_index == -1
    assert planner.remove_section_from_columns("todo")
    todo = planner.get_section("todo")
    assert todo.column_index == -1
    assert todo.column_index == planner.find_section_column("todo")
    restored = Planner.from_snapshot(planner.to_snapshot())
    assert restored.get_section("todo").column_index == -1
    assert restored.get_section("later").column_index == 1


def test_get_column_sections_out_of_range_is_empty(planner):
    assert planner.get_column_sections(7) == []
    assert planner.get_column_sections(-1) == []


def test_remove_column_orphans_its_sections(planner):
    assert planner.remove_column(0) == ["todo", "notes"]
    assert planner.columns_order == [["later"]]
    assert planner.get_section("later").column_index == 0
    assert {s.id for s in planner.get_orphaned_sections()} == {"todo", "notes"}
    assert planner.get_section("todo").column_index == -1
    assert planner.get_section("notes").column_index == -1
    with pytest.raises(UnknownColumnError):
        planner.remove_column(5)


def test_removing_last_column_leaves_an_empty_one():
    planner = Planner()
    planner.remove_column(0)
    assert planner.columns_order == [[]]


def test_add_column_limit():
    planner = Planner()
    for _ in range(MAX_COLUMNS - 1):
        planner.add_column()
    with pytest.raises(ValidationError):
        planner.add_column()


def test_column_container_ids():
    assert column_container_id(2) == "column-2"
    assert parse_column_container_id("column-2") == 2
    with pytest.raises(UnknownColumnError):
        parse_column_container_id("todo")


# ---------------------------------------------------------------- items


def test_move_item_within_section(planner):
    planner.move_item_within_section("todo", "a", 2)
    assert _item_ids(planner, "todo") == ["b", "c", "a"]


def test_move_item_within_section_rejects_out_of_range(planner):
    with pytest.raises(IndexOutOfRangeError):
        planner.move_item_within_section("todo", "a", 3)
    assert _item_ids(planner, "todo") == ["a", "b", "c"]


def test_move_item_between_sections(planner):
    planner.move_item_between_sections("b", "todo", "later", 0)
    assert _item_ids(planner, "todo") == ["a", "c"]
    assert _item_ids(planner, "later") == ["b", "d"]


def test_move_item_between_sections_appends_by_default(planner):
    planner.move_item_between_sections("a", "todo", "later")
    assert _item_ids(planner, "later") == ["d", "a"]


def test_move_item_same_section_without_position_goes_last(planner):
    planner.move_item_between_sections("a", "todo", "todo")
    assert _item_ids(planner, "todo") == ["b", "c", "a"]


def test_move_item_failures_leave_planner_unchanged(planner):
    before = planner.to_snapshot()
    with pytest.raises(UnknownItemError):
        planner.move_item_between_sections("zzz", "todo", "later")
    with pytest.raises(UnknownSectionError):
        planner.move_item_between_sections("a", "todo", "ghost")
    with pytest.raises(IndexOutOfRangeError):
        planner.move_item_between_sections("a", "todo", "later", 5)
    with pytest.raises(SectionKindError):
        planner.move_item_between_sections("a", "todo", "notes")
    assert planner.to_snapshot() == before


def test_find_item(planner):
    section, index = planner.find_item("c")
    assert section.id == "todo" and index == 2
    with pytest.raises(UnknownItemError):
        planner.find_item("nope")


def test_item_crud(planner):
    item = planner.add_item("todo", {"text": "Echo"}, 0)
    assert _item_ids(planner, "todo")[0] == item.id
    planner.update_item("todo", item.id, text="Echo!")
    assert planner.get_section("todo").items[0].text == "Echo!"
    assert planner.toggle_item("todo", item.id) is True
    assert planner.remove_item("todo", item.id).id == item.id
    assert planner.remove_item("todo", item.id) is None


def test_add_item_to_freeform_section_fails(planner):
    with pytest.raises(SectionKindError):
        planner.add_item("notes", {"text": "x"})


def test_update_item_rejects_long_text_without_change(planner):
    with pytest.raises(ValidationError):
        planner.update_item("todo", "a", text="y" * 600)
    assert planner.get_section("todo").items[0].text == "Alpha"


def test_freeform_content(planner):
    planner.set_freeform_content("notes", "bye")
    assert planner.get_section("notes").freeform_content == "bye"
    with pytest.raises(SectionKindError):
        planner.set_freeform_content("todo", "nope")


def test_set_orientation(planner):
    planner.set_orientation("landscape")
    assert planner.orientation == "landscape"
    with pytest.raises(ValidationError):
        planner.set_orientation("square")


# ---------------------------------------------------------------- snapshots


def test_snapshot_restores_equal_planner(planner):
    restored = Planner.from_snapshot(planner.to_snapshot())
    assert restored == planner
    assert restored.columns_order == planner.columns_order
    assert _item_ids(restored, "todo") == ["a", "b", "c"]


def test_snapshot_is_independent(planner):
    snapshot = planner.to_snapshot()
    snapshot["columns_order"][0].clear()
    snapshot["sections"]["todo"]["items"].clear()
    assert planner.get_column_sections(0) == ["todo", "notes"]
    assert len(planner.get_section("todo").items) == 3


@pytest.mark.parametrize(
    "snapshot",
    [
        "not a mapping",
        {"sections": ["x"]},
        {"sections": {"x": {"id": "y"}}},
        {"columns_order": "nope"},
        {"sections": {"f": {"id": "f", "kind": "freeform", "items": [{"id": "i"}]}}},
        {"sections": {"s": {"id": "s", "kind": "table"}}},
    ],
)
def test_from_snapshot_rejects_malformed_data(snapshot):
    with pytest.raises(ValidationError):
        Planner.from_snapshot(snapshot)


def test_clone_uses_fresh_ids(planner):
    clone = planner.clone()
    assert clone.id != planner.id
    assert not set(s.id for s in clone.get_sections()) & set(s.id for s in planner.get_sections())
    assert [len(col) for col in clone.columns_order] == [2, 1]
    first = clone.get_section(clone.get_column_sections(0)[0])
    assert [i.text for i in first.items] == ["Alpha", "Bravo", "Charlie"]
    assert first.items[0].id != "a"


def test_copy_is_equal_but_independent(planner):
    copy = planner.copy()
    assert copy == planner
    copy.move_item_within_section("todo", "a", 1)
    assert copy != planner
