"""Shared fixtures for the planner core tests."""

import logging
from pathlib import Path
import sys
from typing import List

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from planner_toolkit.config import ConfigManager
from planner_toolkit.core.events import EventBus, Notification, NotificationType
from planner_toolkit.core.models import Planner
from planner_toolkit.core.services.drag_service import DragController
from planner_toolkit.core.services.state_service import StateService
from planner_toolkit.core.services.structure_editing_service import StructureEditingService
from planner_toolkit.core.storage import MemoryGateway

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class Recorder:
    """Collects every notification published on a bus."""

    def __init__(self, bus: EventBus) -> None:
        self.received: List[Notification] = []
        for notification_type in NotificationType:
            bus.subscribe(notification_type, self.received.append)

    def types(self) -> List[NotificationType]:
        return [n.type for n in self.received]

    def of(self, notification_type: NotificationType) -> List[Notification]:
        return [n for n in self.received if n.type is notification_type]

    def clear(self) -> None:
        self.received.clear()


def build_planner() -> Planner:
    """Two columns: column 0 holds "todo" and "notes", column 1 holds "later".

    "todo" has items a, b, c; "later" has item d; "notes" is freeform.
    """
    snapshot = {
        "planner_id": "planner-1",
        "sections": {
            "todo": {
                "id": "todo",
                "title": "Todo",
                "kind": "list",
                "items": [
                    {"id": "a", "text": "Alpha"},
                    {"id": "b", "text": "Bravo"},
                    {"id": "c", "text": "Charlie"},
                ],
            },
            "notes": {"id": "notes", "title": "Notes", "kind": "freeform", "freeform_content": "hello"},
            "later": {
                "id": "later",
                "title": "Later",
                "kind": "list",
                "column_index": 1,
                "items": [{"id": "d", "text": "Delta"}],
            },
        },
        "columns_order": [["todo", "notes"], ["later"]],
        "orientation": "portrait",
        "format_version": "2.0.0",
        "created_at": 1000.0,
        "last_modified": 1000.0,
    }
    return Planner.from_snapshot(snapshot)


@pytest.fixture
def planner():
    return build_planner()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def recorder(bus):
    return Recorder(bus)


@pytest.fixture
def gateway():
    return MemoryGateway()


@pytest.fixture
def state_service(gateway, bus):
    return StateService(gateway, bus, autosave=False, planner=build_planner())


@pytest.fixture
def editing(state_service, bus):
    return StructureEditingService(state_service, bus)


@pytest.fixture
def drag(state_service, bus):
    return DragController(state_service, bus)


@pytest.fixture(autouse=True)
def reset_singletons(tmp_path, monkeypatch):
    """Isolate ConfigManager from the real user config between tests."""
    monkeypatch.setenv("PLANNER_CONFIG_DIR", str(tmp_path / "user-config"))
    ConfigManager.reset()
    yield
    ConfigManager.reset()
