"""Top-level package for the planner layout engine.

This package hosts the GUI-agnostic core: the planner model, drag-and-drop
placement, undo/redo history and persistence. Front-ends should only depend
on the public API exposed here rather than importing internal modules
directly.
"""

from .core.models import Item, Planner, Section, SectionKind  # re-export for convenience
from .core.context import PlannerSession

__all__: list[str] = [
    "Item",
    "Planner",
    "Section",
    "SectionKind",
    "PlannerSession",
]
