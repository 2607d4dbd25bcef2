"""Failure Aggregator — folds drain-time errors into an immutable chain.

A ``FailureChain`` is either ``Simple(error)`` (``suppressed is None``) or
``Suppressing(error, previous)``. Chains are only ever extended at the head,
so they stay linear and no chain is shared between two drains.

Host-facing, a chain of one error surfaces as that error itself; longer
chains surface as nested ``SuppressedError`` values whose ``error`` is the
primary and whose ``suppressed`` is the rest of the chain.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator

from . import constants
from .exit_reasons import ExitReason

logger = logging.getLogger(__name__)


class SuppressedError(Exception):
    """An error raised while an earlier failure was already pending."""

    def __init__(
        self,
        error: BaseException,
        suppressed: BaseException,
        message: str = constants.SUPPRESSED_ERROR_MESSAGE,
    ):
        super().__init__(message)
        self.message = message
        self.error = error
        self.suppressed = suppressed
        self.__cause__ = suppressed


@dataclass(frozen=True)
class FailureChain:
    primary: BaseException
    suppressed: FailureChain | None = None

    @classmethod
    def simple(cls, error: BaseException) -> FailureChain:
        return cls(primary=error)

    def suppressing(self, error: BaseException) -> FailureChain:
        """Return a new chain headed by *error* that suppresses this one."""
        return FailureChain(primary=error, suppressed=self)

    def __iter__(self) -> Iterator[BaseException]:
        link: FailureChain | None = self
        while link is not None:
            yield link.primary
            link = link.suppressed

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def errors(self) -> list[BaseException]:
        """All errors, most recent first."""
        return list(self)

    def to_exception(self) -> BaseException:
        """Materialise the chain as one throwable host value."""
        errors = self.errors()
        result = errors[-1]
        for error in reversed(errors[:-1]):
            result = SuppressedError(error, result)
        return result


def record(existing: FailureChain | None, new_error: BaseException) -> FailureChain:
    """Fold *new_error* into *existing*, making it the new primary."""
    if existing is None:
        return FailureChain.simple(new_error)
    return existing.suppressing(new_error)


def walk_suppressed(error: BaseException) -> Iterator[BaseException]:
    """Yield every error folded into *error*, most recent first."""
    current = error
    while isinstance(current, SuppressedError):
        yield current.error
        current = current.suppressed
    yield current


class FailureAggregator:
    """Collects the failures of one drain against the exit reason it started with."""

    def __init__(self, pending: ExitReason):
        self._pending = pending
        self._chain: FailureChain | None = (
            FailureChain.simple(pending.error)
            if pending.is_throw and pending.error is not None
            else None
        )
        self.failures = 0

    def record(self, error: BaseException) -> FailureChain:
        self._chain = record(self._chain, error)
        self.failures += 1
        logger.debug(
            "Deferred action failed (%d so far this drain): %r", self.failures, error
        )
        return self._chain

    @property
    def chain(self) -> FailureChain | None:
        """The chain built by this drain, or None when no action failed."""
        if self.failures == 0:
            return None
        return self._chain

    def resolve(self) -> ExitReason:
        """The exit reason that should propagate once the drain is over."""
        chain = self.chain
        if chain is None:
            return self._pending
        return ExitReason.throwing(chain.to_exception())
