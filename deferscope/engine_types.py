"""Deferred-action engine — data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .ir import NO_SOURCE_LOCATION, SourceLocation


class FrameKind(str, Enum):
    FUNCTION = "function"
    BLOCK = "block"
    LOOP_ITERATION_BODY = "loop_iteration_body"
    SWITCH_BODY = "switch_body"
    MODULE = "module"


class ActionKind(str, Enum):
    STATEMENT = "statement"
    BLOCK = "block"


class ActionMode(str, Enum):
    SYNC = "sync"
    ASYNC = "async"


class ControlTransfer(str, Enum):
    """Control transfers a deferred body may not perform."""

    RETURN = "return"
    BREAK = "break"
    CONTINUE = "continue"
    YIELD = "yield"
    AWAIT = "await"


@dataclass(frozen=True)
class DeferredAction:
    """One registered unit of work.

    ``body`` is called with no arguments when the owning frame drains. For
    ``ActionMode.ASYNC`` it may return an awaitable, which the coordinator
    settles before the next action starts.
    """

    body: Callable[[], Any]
    kind: ActionKind = ActionKind.STATEMENT
    mode: ActionMode = ActionMode.SYNC
    source_location: SourceLocation = NO_SOURCE_LOCATION
    escaping_transfers: frozenset[ControlTransfer] = frozenset()

    def describe(self) -> str:
        where = "" if self.source_location.is_unknown() else f" at {self.source_location}"
        return f"{self.mode.value} {self.kind.value} action{where}"


@dataclass(frozen=True)
class FrameHandle:
    """Opaque reference to one frame activation inside a registry."""

    frame_id: int
    depth: int


@dataclass
class ScopeFrame:
    frame_id: int
    kind: FrameKind
    is_async_context: bool
    mark: int  # arena length when the frame was entered
    parent_id: int | None = None
    source_location: SourceLocation = NO_SOURCE_LOCATION
    async_actions: int = 0
    registered: int = 0
    drained: bool = False
    draining: bool = False
