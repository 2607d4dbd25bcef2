"""Exit-Event Dispatcher — drains a frame before its exit reason may propagate.

Every exit event (return, throw, break, continue, fall-through, end of a
loop iteration) is handed to ``dispatch`` together with the frame it is
leaving. The dispatcher drains that frame exactly once, exits it, and
returns the reason the caller must substitute for the one in flight: the
same reason when nothing failed, otherwise ``Throw`` carrying the
aggregated failure.
"""

from __future__ import annotations

import logging
from typing import Callable

from .async_coordinator import AsyncSuspensionCoordinator
from .engine_types import FrameHandle
from .exit_reasons import ExitReason
from .registry import ScopeFrameRegistry
from .trace_types import DrainRecord
from .unwind import DrainOutcome, UnwindExecutor

logger = logging.getLogger(__name__)

DrainListener = Callable[[DrainRecord], None]


class ExitEventDispatcher:
    def __init__(
        self,
        registry: ScopeFrameRegistry,
        listener: DrainListener | None = None,
    ):
        self.registry = registry
        self._executor = UnwindExecutor(registry)
        self._coordinator = AsyncSuspensionCoordinator(registry)
        self._listener = listener

    def needs_async(self, handle: FrameHandle) -> bool:
        """True when the frame's drain may suspend (it holds deferAwait actions)."""
        return self.registry.has_async_actions(handle)

    def dispatch(self, handle: FrameHandle, reason: ExitReason) -> ExitReason:
        try:
            outcome = self._executor.run(handle, reason)
        finally:
            self.registry.exit_frame(handle)
        self._report(outcome)
        return outcome.reason

    async def dispatch_async(
        self, handle: FrameHandle, reason: ExitReason
    ) -> ExitReason:
        try:
            outcome = await self._coordinator.run(handle, reason)
        finally:
            self.registry.exit_frame(handle)
        self._report(outcome)
        return outcome.reason

    def _report(self, outcome: DrainOutcome) -> None:
        if outcome.executed == 0:
            return
        if outcome.overridden:
            logger.debug(
                "[%s] frame %d exit %s overridden by deferred failure",
                self.registry.name,
                outcome.frame.frame_id,
                outcome.pending,
            )
        if self._listener is not None:
            self._listener(
                DrainRecord(
                    activation=self.registry.name,
                    frame_id=outcome.frame.frame_id,
                    frame_kind=outcome.frame.kind,
                    mode=outcome.mode,
                    pending=outcome.pending.kind,
                    outcome=outcome.reason.kind,
                    executed=outcome.executed,
                    failures=outcome.failures,
                )
            )
