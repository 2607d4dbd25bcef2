"""Unwind Executor — runs a frame's deferred actions, most recent first."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .engine_types import ActionMode, FrameHandle, ScopeFrame
from .errors import DeferscopeError, EngineError
from .exit_reasons import ExitReason
from .failures import FailureAggregator, FailureChain
from .registry import ScopeFrameRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrainOutcome:
    """What one drain did, and the exit reason that must propagate after it."""

    frame: ScopeFrame
    mode: ActionMode
    pending: ExitReason
    reason: ExitReason
    executed: int
    failures: int
    chain: FailureChain | None

    @property
    def overridden(self) -> bool:
        return self.reason is not self.pending


class UnwindExecutor:
    """Synchronous drain: pop, run, record failures, repeat until empty."""

    def __init__(self, registry: ScopeFrameRegistry):
        self._registry = registry

    def drain(
        self, handle: FrameHandle, pending: ExitReason = ExitReason.normal()
    ) -> FailureChain | None:
        return self.run(handle, pending).chain

    def run(self, handle: FrameHandle, pending: ExitReason) -> DrainOutcome:
        if self._registry.has_async_actions(handle):
            raise EngineError(
                "Frame holds asynchronous deferred actions; drain it with "
                "AsyncSuspensionCoordinator.drain_async"
            )
        frame = self._registry.begin_drain(handle)
        aggregator = FailureAggregator(pending)
        executed = 0
        try:
            while True:
                action = self._registry.pop_action(handle)
                if action is None:
                    break
                executed += 1
                try:
                    action.body()
                except DeferscopeError:
                    raise
                except Exception as exc:
                    aggregator.record(exc)
        finally:
            self._registry.finish_drain(handle)

        if executed:
            logger.debug(
                "[%s] drained frame %d (%s) on %s: %d run, %d failed",
                self._registry.name,
                frame.frame_id,
                frame.kind.value,
                pending.kind.value,
                executed,
                aggregator.failures,
            )
        return DrainOutcome(
            frame=frame,
            mode=ActionMode.SYNC,
            pending=pending,
            reason=aggregator.resolve(),
            executed=executed,
            failures=aggregator.failures,
            chain=aggregator.chain,
        )
