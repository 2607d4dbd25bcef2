"""Exit reasons — the tagged control-transfer kind in flight when a scope ends.

The evaluator also uses ``ExitReason`` as the completion record of every
statement, so one value flows from the statement that caused the exit,
through each frame's drain, to the construct that finally consumes it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ExitKind(str, Enum):
    RETURN = "return"
    THROW = "throw"
    BREAK = "break"
    CONTINUE = "continue"
    NORMAL = "normal"
    ITERATION_END = "iteration_end"


@dataclass(frozen=True)
class ExitReason:
    kind: ExitKind
    value: Any = None
    error: BaseException | None = None
    label: str | None = None

    @classmethod
    def normal(cls) -> ExitReason:
        return _NORMAL

    @classmethod
    def iteration_end(cls) -> ExitReason:
        return _ITERATION_END

    @classmethod
    def returning(cls, value: Any = None) -> ExitReason:
        return cls(kind=ExitKind.RETURN, value=value)

    @classmethod
    def throwing(cls, error: BaseException) -> ExitReason:
        return cls(kind=ExitKind.THROW, error=error)

    @classmethod
    def breaking(cls, label: str | None = None) -> ExitReason:
        return cls(kind=ExitKind.BREAK, label=label)

    @classmethod
    def continuing(cls, label: str | None = None) -> ExitReason:
        return cls(kind=ExitKind.CONTINUE, label=label)

    @property
    def is_throw(self) -> bool:
        return self.kind == ExitKind.THROW

    @property
    def is_abrupt(self) -> bool:
        return self.kind not in (ExitKind.NORMAL, ExitKind.ITERATION_END)

    def targets(self, labels: frozenset[str]) -> bool:
        """True when this break/continue is aimed at a construct carrying *labels*."""
        return self.label is None or self.label in labels

    def __str__(self) -> str:
        if self.kind == ExitKind.THROW:
            return f"throw({self.error!r})"
        if self.kind == ExitKind.RETURN:
            return f"return({self.value!r})"
        if self.label:
            return f"{self.kind.value}({self.label})"
        return self.kind.value


_NORMAL = ExitReason(kind=ExitKind.NORMAL)
_ITERATION_END = ExitReason(kind=ExitKind.ITERATION_END)
