import asyncio

from planner_toolkit.config import ConfigManager
from planner_toolkit.core.context import PlannerSession, get_session, set_session
from planner_toolkit.core.services.drag_service import DragKind
from planner_toolkit.core.storage import JsonFileGateway, MemoryGateway


def _write_overrides(tmp_path, monkeypatch, text):
    user_dir = tmp_path / "overrides"
    user_dir.mkdir()
    (user_dir / "default_planner.yml").write_text(text, encoding="utf-8")
    monkeypatch.setenv("PLANNER_CONFIG_DIR", str(user_dir))
    ConfigManager.reset()


def test_from_config_builds_file_backed_session(tmp_path, monkeypatch):
    _write_overrides(
        tmp_path,
        monkeypatch,
        f"storage:\n  directory: {tmp_path / 'data'}\n  key: my-planner\nhistory:\n  max_steps: 7\n",
    )
    session = PlannerSession.from_config()
    assert isinstance(session.gateway, JsonFileGateway)
    assert session.state.storage_key == "my-planner"
    assert session.state.history.max_history == 7
    assert session.editing.planner is session.state.planner
    assert session.drag.state.kind is DragKind.NONE


def test_session_round_trip_through_storage(tmp_path, monkeypatch):
    _write_overrides(tmp_path, monkeypatch, "storage:\n  backend: memory\n")
    session = PlannerSession.from_config()
    assert isinstance(session.gateway, MemoryGateway)

    async def scenario():
        result = session.editing.add_section({"title": "Today"}, column_index=0)
        await session.close()
        reopened = PlannerSession(session.gateway, autosave=False)
        await reopened.open()
        return result.details["section_id"], reopened

    section_id, reopened = asyncio.run(scenario())
    assert reopened.state.planner.get_column_sections(0) == [section_id]


def test_scroll_velocity_only_while_dragging():
    session = PlannerSession(MemoryGateway(), autosave=False)
    assert session.scroll_velocity(0, 500) == 0.0
    section = session.state.apply(lambda p: p.add_section({"title": "S"}), "Add")
    session.drag.start(DragKind.SECTION, section.id, "column-0")
    assert session.scroll_velocity(0, 500) == -5.0


def test_global_session():
    session = PlannerSession(MemoryGateway(), autosave=False)
    set_session(session)
    try:
        assert get_session() is session
    finally:
        set_session(None)
