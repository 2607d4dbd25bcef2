"""Async Suspension Coordinator — drains frames that hold ``deferAwait`` actions.

Actions are settled strictly one after another: action *i* finishes (or
fails) before action *i+1* starts, exactly as in the synchronous drain.
Sync actions in the same frame still run without suspending. Work an
action starts but does not await is left alone.
"""

from __future__ import annotations

import inspect
import logging

from .engine_types import ActionMode, FrameHandle
from .errors import DeferscopeError
from .exit_reasons import ExitReason
from .failures import FailureAggregator, FailureChain
from .registry import ScopeFrameRegistry
from .unwind import DrainOutcome

logger = logging.getLogger(__name__)


class AsyncSuspensionCoordinator:
    def __init__(self, registry: ScopeFrameRegistry):
        self._registry = registry

    async def drain_async(
        self, handle: FrameHandle, pending: ExitReason = ExitReason.normal()
    ) -> FailureChain | None:
        outcome = await self.run(handle, pending)
        return outcome.chain

    async def run(self, handle: FrameHandle, pending: ExitReason) -> DrainOutcome:
        frame = self._registry.begin_drain(handle)
        aggregator = FailureAggregator(pending)
        executed = 0
        suspended = 0
        try:
            while True:
                action = self._registry.pop_action(handle)
                if action is None:
                    break
                executed += 1
                try:
                    result = action.body()
                    if action.mode == ActionMode.ASYNC and inspect.isawaitable(result):
                        suspended += 1
                        await result
                except DeferscopeError:
                    raise
                except Exception as exc:
                    aggregator.record(exc)
        finally:
            self._registry.finish_drain(handle)

        logger.debug(
            "[%s] async-drained frame %d (%s) on %s: %d run, %d awaited, %d failed",
            self._registry.name,
            frame.frame_id,
            frame.kind.value,
            pending.kind.value,
            executed,
            suspended,
            aggregator.failures,
        )
        return DrainOutcome(
            frame=frame,
            mode=ActionMode.ASYNC,
            pending=pending,
            reason=aggregator.resolve(),
            executed=executed,
            failures=aggregator.failures,
            chain=aggregator.chain,
        )
