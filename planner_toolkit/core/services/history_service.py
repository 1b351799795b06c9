from __future__ import annotations

"""Undo/redo snapshot management for the planner.

This service is UI-agnostic and performs pure in-memory history tracking of
full planner snapshots (as produced by ``Planner.to_snapshot()``). It has no
knowledge of persistence: callers that want an autosave after undo/redo
schedule it themselves.

Design principles
-----------------
- No UI imports and no I/O (filesystem/console).
- Snapshots are deep-copied on the way in and on the way out, so mutating the
  live planner can never alter a stored entry.
- The redo stack is cleared on every new commit (no branching history).
- Memory usage controlled by a max_history policy (trim oldest, FIFO).
"""

import copy
from dataclasses import dataclass, field
import time
from typing import Any, Dict, List, Optional

__all__ = ["HistoryEntry", "HistoryManager"]

Snapshot = Dict[str, Any]


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable history record.

    Attributes
    ----------
    snapshot :
        Full serialized planner state.
    timestamp :
        Epoch seconds when the entry was recorded.
    label :
        Human-readable description of the change that left this state.
    """

    snapshot: Snapshot
    timestamp: float = field(default_factory=time.time)
    label: str = ""


class HistoryManager:
    """Manage bounded undo/redo stacks of planner snapshots.

    The manager tracks a *current* snapshot plus two stacks. ``commit`` moves
    the previous current state onto the undo stack; ``undo``/``redo`` swap
    states between the stacks and the current slot.

    Parameters
    ----------
    max_history : int, default=50
        Maximum number of entries kept per stack. Oldest entries are discarded
        when the capacity is exceeded. Values lower than 1 are coerced to 1.

    Examples
    --------
    >>> history = HistoryManager(max_history=10)
    >>> history.commit({"v": 0}, "Initial state")
    >>> history.commit({"v": 1}, "Edit")
    >>> history.undo()
    True
    >>> history.current
    {'v': 0}
    """

    def __init__(self, max_history: int = 50) -> None:
        self._max_history: int = max(1, int(max_history))
        self._undo_stack: List[HistoryEntry] = []
        self._redo_stack: List[HistoryEntry] = []
        self._current: Optional[HistoryEntry] = None

    # --------------------------------------------------------------------- API

    @property
    def max_history(self) -> int:
        return self._max_history

    @property
    def current(self) -> Optional[Snapshot]:
        """Deep copy of the current snapshot, or None before the first commit."""
        if self._current is None:
            return None
        return copy.deepcopy(self._current.snapshot)

    def push(self, entry: HistoryEntry) -> None:
        """Append a copy of ``entry`` to the undo stack, evicting the oldest beyond the bound."""
        self._push_owned(HistoryEntry(copy.deepcopy(entry.snapshot), entry.timestamp, entry.label))

    def commit(self, new_snapshot: Snapshot, label: str = "") -> None:
        """Record ``new_snapshot`` as the current state.

        The previous current snapshot (not the new one) goes onto the undo
        stack labelled with ``label``, and the redo stack is cleared.
        """
        if self._current is not None:
            self._push_owned(HistoryEntry(self._current.snapshot, time.time(), label))
        self._redo_stack.clear()
        self._current = HistoryEntry(copy.deepcopy(new_snapshot), time.time(), label)

    def undo(self) -> bool:
        """Restore the previous snapshot; False when there is nothing to undo."""
        if not self._undo_stack or self._current is None:
            return False
        entry = self._undo_stack.pop()
        self._redo_stack.append(HistoryEntry(self._current.snapshot, time.time(), entry.label))
        self._trim(self._redo_stack)
        self._current = entry
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone snapshot; False when there is none."""
        if not self._redo_stack or self._current is None:
            return False
        entry = self._redo_stack.pop()
        self._push_owned(HistoryEntry(self._current.snapshot, time.time(), entry.label))
        self._current = entry
        return True

    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    def undo_labels(self) -> List[str]:
        """Labels of undoable changes, most recent last."""
        return [entry.label for entry in self._undo_stack]

    def redo_labels(self) -> List[str]:
        """Labels of redoable changes, next redo last."""
        return [entry.label for entry in self._redo_stack]

    def undo_snapshots(self) -> List[Snapshot]:
        return [copy.deepcopy(entry.snapshot) for entry in self._undo_stack]

    def redo_snapshots(self) -> List[Snapshot]:
        return [copy.deepcopy(entry.snapshot) for entry in self._redo_stack]

    def clear(self) -> None:
        """Clear both undo and redo histories, keeping the current snapshot."""
        self._undo_stack.clear()
        self._redo_stack.clear()

    def reset(self, snapshot: Optional[Snapshot] = None, label: str = "") -> None:
        """Drop all history and start over from ``snapshot``."""
        self.clear()
        self._current = None
        if snapshot is not None:
            self.commit(snapshot, label)

    # --------------------------------------------------------------- Internals

    def _push_owned(self, entry: HistoryEntry) -> None:
        # entry.snapshot is already private to the manager
        self._undo_stack.append(entry)
        self._trim(self._undo_stack)

    def _trim(self, stack: List[HistoryEntry]) -> None:
        overflow = len(stack) - self._max_history
        if overflow > 0:
            del stack[0:overflow]
