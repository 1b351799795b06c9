import pytest

from planner_toolkit.core.events import NotificationType
from planner_toolkit.core.services.structure_editing_service import OperationResult


def _item_ids(editing, section_id):
    return [item.id for item in editing.planner.get_section(section_id).items]


def test_add_section_and_place_it(editing, state_service):
    result = editing.add_section({"title": "Today"}, column_index=1, position=0)
    assert isinstance(result, OperationResult)
    assert result.success
    section_id = result.details["section_id"]
    assert editing.planner.get_column_sections(1) == [section_id, "later"]
    assert state_service.history.undo_labels() == ["Add section 'Today'"]


def test_add_section_unplaced(editing):
    result = editing.add_section({"title": "Loose"})
    assert result.success
    assert [s.id for s in editing.planner.get_orphaned_sections()] == [result.details["section_id"]]


def test_failed_add_section_leaves_no_trace(editing, state_service):
    result = editing.add_section({"title": "Bad"}, column_index=99)
    assert not result.success
    assert result.details["upper"] == 9
    assert editing.planner.get_section_count() == 3
    assert not state_service.can_undo()


def test_remove_section(editing):
    missing = editing.remove_section("ghost")
    assert not missing.success and missing.details == {"section_id": "ghost"}
    assert editing.remove_section("notes").success
    assert editing.planner.columns_order == [["todo"], ["later"]]


def test_rename_section(editing):
    assert editing.rename_section("todo", "Now").success
    assert editing.planner.get_section("todo").title == "Now"
    assert not editing.rename_section("ghost", "x").success


def test_freeform_content_only_on_freeform_sections(editing):
    assert editing.set_freeform_content("notes", "updated").success
    assert editing.planner.get_section("notes").freeform_content == "updated"
    assert not editing.set_freeform_content("todo", "nope").success


def test_move_section_publishes_notification(editing, recorder):
    result = editing.move_section("todo", 1)
    assert result.success
    assert editing.planner.columns_order == [["notes"], ["later", "todo"]]
    payload = recorder.of(NotificationType.SECTION_MOVED)[0].payload
    assert payload == {"section_id": "todo", "from_column": 0, "to_column": 1, "position": 1}


def test_move_section_in_column(editing):
    assert editing.move_section_in_column("notes", 0).success
    assert editing.planner.get_column_sections(0) == ["notes", "todo"]
    assert not editing.move_section_in_column("notes", 5).success
    editing.unplace_section("notes")
    assert not editing.move_section_in_column("notes", 0).success


def test_unplace_section(editing):
    assert editing.unplace_section("later").success
    assert editing.planner.columns_order == [["todo", "notes"], []]
    assert not editing.unplace_section("later").success


def test_column_management(editing):
    added = editing.add_column()
    assert added.success and added.details["column_index"] == 2
    removed = editing.remove_column(0)
    assert removed.success and removed.details["orphaned"] == ["todo", "notes"]
    assert not editing.remove_column(7).success


def test_set_orientation(editing, state_service):
    unchanged = editing.set_orientation("portrait")
    assert unchanged.success and not unchanged.details["changed"]
    assert not state_service.can_undo()
    assert editing.set_orientation("landscape").details["changed"]
    assert not editing.set_orientation("round").success
    assert editing.planner.orientation == "landscape"


def test_item_editing(editing):
    added = editing.add_item("todo", {"text": "Echo"}, 1)
    item_id = added.details["item_id"]
    assert _item_ids(editing, "todo") == ["a", item_id, "b", "c"]

    assert editing.update_item("todo", item_id, text="Echo 2").success
    assert not editing.update_item("todo", item_id, text="x" * 501).success
    assert editing.planner.get_section("todo").items[1].text == "Echo 2"

    toggled = editing.toggle_item("todo", item_id)
    assert toggled.success and toggled.details["checked"] is True

    assert editing.remove_item("todo", item_id).success
    assert not editing.remove_item("todo", item_id).success


def test_add_item_to_freeform_section_fails(editing):
    result = editing.add_item("notes", {"text": "x"})
    assert not result.success
    assert result.details["section_id"] == "notes"


def test_move_item_publishes_notification(editing, recorder):
    result = editing.move_item("a", "todo", "later", 1)
    assert result.success
    assert _item_ids(editing, "later") == ["d", "a"]
    payload = recorder.of(NotificationType.ITEM_MOVED)[0].payload
    assert payload["position"] == 1 and payload["to_section_id"] == "later"


def test_move_item_appends_when_position_omitted(editing):
    assert editing.move_item("a", "todo", "todo").success
    assert _item_ids(editing, "todo") == ["b", "c", "a"]


@pytest.mark.parametrize(
    "args",
    [
        ("zzz", "todo", "later", None),
        ("a", "todo", "ghost", None),
        ("a", "todo", "later", 9),
        ("a", "todo", "notes", None),
    ],
)
def test_move_item_failures(editing, recorder, args):
    before = editing.planner.to_snapshot()
    result = editing.move_item(*args)
    assert not result.success
    assert editing.planner.to_snapshot() == before
    assert recorder.of(NotificationType.ITEM_MOVED) == []


def test_each_successful_edit_is_one_history_step(editing, state_service):
    editing.rename_section("todo", "Now")
    editing.move_item("a", "todo", "later")
    editing.toggle_item("later", "a")
    editing.rename_section("ghost", "fails")
    assert len(state_service.history.undo_labels()) == 3
    state_service.undo()
    state_service.undo()
    state_service.undo()
    assert editing.planner.get_section("todo").title == "Todo"
    assert _item_ids(editing, "todo") == ["a", "b", "c"]


def test_clear_sections(editing):
    assert editing.clear_sections().success
    assert editing.planner.get_section_count() == 0
    assert editing.planner.columns_order == [[]]
