"""Scope Frame Registry — frame bookkeeping for one function activation.

Each activation (a function call, a generator, an async function, the
module body) owns one registry. Frames inside an activation are strictly
nested, so a single arena with per-frame marks is enough; activations never
share a registry, which keeps suspended generators and concurrently running
async functions from interleaving their frames.
"""

from __future__ import annotations

import logging
from typing import Iterator

from . import constants
from .action_store import DeferredActionStore
from .engine_types import (
    ActionMode,
    DeferredAction,
    FrameHandle,
    FrameKind,
    ScopeFrame,
)
from .errors import EngineError, StaticSemanticsError
from .ir import NO_SOURCE_LOCATION, SourceLocation

logger = logging.getLogger(__name__)


class ScopeFrameRegistry:
    """Allocates frames and accepts registrations for one activation."""

    def __init__(self, name: str = constants.MAIN_FRAME_NAME):
        self.name = name
        self._store = DeferredActionStore()
        self._frames: list[ScopeFrame] = []
        self._next_id = 0

    # ── frame lifecycle ──────────────────────────────────────────

    def enter_frame(
        self,
        kind: FrameKind,
        is_async_context: bool = False,
        source_location: SourceLocation = NO_SOURCE_LOCATION,
    ) -> FrameHandle:
        parent_id = self._frames[-1].frame_id if self._frames else None
        frame = ScopeFrame(
            frame_id=self._next_id,
            kind=kind,
            is_async_context=is_async_context,
            mark=self._store.mark(),
            parent_id=parent_id,
            source_location=source_location,
        )
        self._next_id += 1
        self._frames.append(frame)
        return FrameHandle(frame_id=frame.frame_id, depth=len(self._frames) - 1)

    def exit_frame(self, handle: FrameHandle) -> None:
        frame = self._innermost(handle, "exit")
        if not frame.drained and self.pending(handle):
            raise EngineError(
                f"Frame {frame.frame_id} ({frame.kind.value}) exited with "
                f"{self.pending(handle)} undrained deferred actions"
            )
        self._frames.pop()
        self._store.truncate(frame.mark)

    # ── registration ─────────────────────────────────────────────

    def register_action(self, handle: FrameHandle, action: DeferredAction) -> None:
        """Push *action* onto the frame's store after checking it may live there."""
        frame = self._innermost(handle, "register into")
        if frame.drained or frame.draining:
            raise EngineError(
                f"Frame {frame.frame_id} ({frame.kind.value}) is no longer accepting "
                "deferred actions"
            )
        if action.mode == ActionMode.ASYNC and not frame.is_async_context:
            raise StaticSemanticsError(
                "deferAwait is only allowed inside an async function or module",
                action.source_location,
            )
        if action.escaping_transfers:
            names = ", ".join(sorted(t.value for t in action.escaping_transfers))
            raise StaticSemanticsError(
                f"A deferred action may not contain {names} that leaves the action",
                action.source_location,
            )
        self._store.push(action)
        frame.registered += 1
        if action.mode == ActionMode.ASYNC:
            frame.async_actions += 1
        logger.debug(
            "[%s] registered %s in frame %d (%s)",
            self.name,
            action.describe(),
            frame.frame_id,
            frame.kind.value,
        )

    # ── drain support (used by the executors) ────────────────────

    def begin_drain(self, handle: FrameHandle) -> ScopeFrame:
        frame = self._innermost(handle, "drain")
        if frame.drained or frame.draining:
            raise EngineError(
                f"Frame {frame.frame_id} ({frame.kind.value}) was already drained"
            )
        frame.draining = True
        return frame

    def pop_action(self, handle: FrameHandle) -> DeferredAction | None:
        frame = self.frame(handle)
        if not frame.draining:
            raise EngineError(f"Frame {frame.frame_id} is not draining")
        return self._store.pop(frame.mark)

    def finish_drain(self, handle: FrameHandle) -> None:
        frame = self.frame(handle)
        frame.draining = False
        frame.drained = True

    # ── queries ──────────────────────────────────────────────────

    def frame(self, handle: FrameHandle) -> ScopeFrame:
        if handle.depth >= len(self._frames):
            raise EngineError(f"Stale frame handle {handle.frame_id}")
        frame = self._frames[handle.depth]
        if frame.frame_id != handle.frame_id:
            raise EngineError(f"Stale frame handle {handle.frame_id}")
        return frame

    def pending(self, handle: FrameHandle) -> int:
        frame = self.frame(handle)
        if handle.depth != len(self._frames) - 1:
            # Inner frames sit above this one in the arena; count only ours.
            inner_mark = self._frames[handle.depth + 1].mark
            return inner_mark - frame.mark
        return len(self._store) - frame.mark

    def pending_actions(self, handle: FrameHandle) -> tuple[DeferredAction, ...]:
        frame = self.frame(handle)
        actions = self._store.above(frame.mark)
        return actions[: self.pending(handle)]

    def has_async_actions(self, handle: FrameHandle) -> bool:
        return self.frame(handle).async_actions > 0

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def innermost(self) -> FrameHandle | None:
        if not self._frames:
            return None
        frame = self._frames[-1]
        return FrameHandle(frame_id=frame.frame_id, depth=len(self._frames) - 1)

    def lineage(self, handle: FrameHandle) -> Iterator[ScopeFrame]:
        """Yield the frame and its lexically enclosing frames, innermost first."""
        for frame in reversed(self._frames[: handle.depth + 1]):
            yield frame

    def _innermost(self, handle: FrameHandle, action: str) -> ScopeFrame:
        frame = self.frame(handle)
        if handle.depth != len(self._frames) - 1:
            raise EngineError(
                f"Cannot {action} frame {frame.frame_id} ({frame.kind.value}): "
                "it is not the innermost live frame"
            )
        return frame
