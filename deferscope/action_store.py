"""Deferred Action Store — one arena shared by the frames of an activation.

Frames never own a list of their own. Each frame records the arena length
at entry (its *mark*); the frame's actions are exactly the entries above
that mark while it is the innermost frame. Draining pops down to the mark,
so frame entry and exit cost O(1) and no two frames ever see each other's
actions.
"""

from __future__ import annotations

from .engine_types import DeferredAction


class DeferredActionStore:
    def __init__(self):
        self._arena: list[DeferredAction] = []

    def __len__(self) -> int:
        return len(self._arena)

    def mark(self) -> int:
        return len(self._arena)

    def push(self, action: DeferredAction) -> int:
        """Append *action*; returns its arena index."""
        self._arena.append(action)
        return len(self._arena) - 1

    def pop(self, mark: int) -> DeferredAction | None:
        """Pop the most recent action above *mark*, or None when none remain."""
        if len(self._arena) <= mark:
            return None
        return self._arena.pop()

    def above(self, mark: int) -> tuple[DeferredAction, ...]:
        """Actions above *mark* in registration order (diagnostics only)."""
        return tuple(self._arena[mark:])

    def truncate(self, mark: int) -> None:
        del self._arena[mark:]
