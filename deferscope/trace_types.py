"""Trace data types for replaying what every frame drain did."""

from __future__ import annotations

from dataclasses import dataclass, field

from .engine_types import ActionMode, FrameKind
from .exit_reasons import ExitKind
from .run_types import ExecutionStats


@dataclass(frozen=True)
class DrainRecord:
    """One frame drain, as seen by the Exit-Event Dispatcher.

    Only drains that ran at least one action are recorded.
    """

    activation: str
    frame_id: int
    frame_kind: FrameKind
    mode: ActionMode
    pending: ExitKind
    outcome: ExitKind
    executed: int
    failures: int

    @property
    def overridden(self) -> bool:
        return self.failures > 0


@dataclass(frozen=True)
class ExecutionTrace:
    """Complete drain trace of an execution run, in drain order."""

    drains: list[DrainRecord] = field(default_factory=list)
    stats: ExecutionStats = field(default_factory=ExecutionStats)

    def for_kind(self, kind: FrameKind) -> list[DrainRecord]:
        return [record for record in self.drains if record.frame_kind == kind]
