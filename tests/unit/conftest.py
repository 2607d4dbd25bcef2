"""Shared fixtures for the engine and evaluator unit tests."""

from __future__ import annotations

import pytest

from deferscope.dispatcher import ExitEventDispatcher
from deferscope.registry import ScopeFrameRegistry


class Recorder:
    """Collects the order in which deferred bodies ran."""

    def __init__(self):
        self.events: list[str] = []

    def note(self, event: str):
        def body():
            self.events.append(event)

        return body

    def fail(self, error: BaseException, event: str = ""):
        def body():
            if event:
                self.events.append(event)
            raise error

        return body


@pytest.fixture
def registry() -> ScopeFrameRegistry:
    return ScopeFrameRegistry("test")


@pytest.fixture
def dispatcher(registry) -> ExitEventDispatcher:
    return ExitEventDispatcher(registry)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
