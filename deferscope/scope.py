"""Python-native surface for the deferred-action engine.

``DeferScope`` is one frame used as a context manager::

    with DeferScope() as scope:
        conn = connect()
        scope.defer(conn.close)
        ...

``deferrable`` turns a whole function into a ``Function`` frame and passes
the scope in as the ``defer`` keyword argument. Generators keep their frame
across ``yield``; closing one early drains it as if it had returned.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Callable

from .dispatcher import ExitEventDispatcher
from .engine_types import ActionKind, ActionMode, DeferredAction, FrameHandle, FrameKind
from .errors import EngineError
from .exit_reasons import ExitReason
from .registry import ScopeFrameRegistry

logger = logging.getLogger(__name__)


class DeferScope:
    def __init__(self, kind: FrameKind = FrameKind.BLOCK, *, name: str = ""):
        self.kind = kind
        self._registry = ScopeFrameRegistry(name or f"<scope:{kind.value}>")
        self._dispatcher = ExitEventDispatcher(self._registry)
        self._handle: FrameHandle | None = None

    # ── registration ─────────────────────────────────────────────

    def __call__(self, callback: Callable, *args: Any, **kwargs: Any) -> Callable:
        return self.defer(callback, *args, **kwargs)

    def defer(self, callback: Callable, *args: Any, **kwargs: Any) -> Callable:
        """Run ``callback(*args, **kwargs)`` when the scope exits."""
        self._register(
            DeferredAction(body=functools.partial(callback, *args, **kwargs))
        )
        return callback

    def defer_block(self, fn: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator form: the decorated function runs as one deferred block."""
        self._register(DeferredAction(body=fn, kind=ActionKind.BLOCK))
        return fn

    def defer_await(self, callback: Callable, *args: Any, **kwargs: Any) -> Callable:
        """Await ``callback(*args, **kwargs)`` when the scope exits (``async with`` only)."""
        self._register(
            DeferredAction(
                body=functools.partial(callback, *args, **kwargs),
                mode=ActionMode.ASYNC,
            )
        )
        return callback

    def _register(self, action: DeferredAction) -> None:
        if self._handle is None:
            raise EngineError("DeferScope is not active; enter it with 'with'")
        self._registry.register_action(self._handle, action)

    @property
    def pending(self) -> int:
        if self._handle is None:
            return 0
        return self._registry.pending(self._handle)

    # ── frame lifecycle ──────────────────────────────────────────

    def _enter(self, is_async_context: bool) -> DeferScope:
        if self._handle is not None:
            raise EngineError("DeferScope is already active")
        self._handle = self._registry.enter_frame(self.kind, is_async_context)
        return self

    def _leave(self) -> FrameHandle:
        handle = self._handle
        self._handle = None
        return handle

    def __enter__(self) -> DeferScope:
        return self._enter(is_async_context=False)

    def __exit__(self, exc_type, exc, tb) -> bool:
        reason = self._dispatcher.dispatch(self._leave(), _pending_reason(exc))
        return _settle(exc, reason)

    async def __aenter__(self) -> DeferScope:
        return self._enter(is_async_context=True)

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        handle = self._leave()
        pending = _pending_reason(exc)
        if self._dispatcher.needs_async(handle):
            reason = await self._dispatcher.dispatch_async(handle, pending)
        else:
            reason = self._dispatcher.dispatch(handle, pending)
        return _settle(exc, reason)


def _pending_reason(exc: BaseException | None) -> ExitReason:
    if exc is None:
        return ExitReason.normal()
    if isinstance(exc, GeneratorExit):
        # Early close of a suspended generator unwinds like a return.
        return ExitReason.returning(None)
    return ExitReason.throwing(exc)


def _settle(exc: BaseException | None, reason: ExitReason) -> bool:
    if not reason.is_throw or reason.error is exc:
        return False
    raise reason.error


def deferrable(func: Callable) -> Callable:
    """Give *func* its own function frame, passed in as ``defer=``."""
    name = getattr(func, "__qualname__", repr(func))

    if inspect.isasyncgenfunction(func):
        raise TypeError(f"{name}: async generator functions are not supported")

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            async with DeferScope(FrameKind.FUNCTION, name=name) as scope:
                return await func(*args, defer=scope, **kwargs)

        return async_wrapper

    if inspect.isgeneratorfunction(func):

        @functools.wraps(func)
        def generator_wrapper(*args: Any, **kwargs: Any) -> Any:
            with DeferScope(FrameKind.FUNCTION, name=name) as scope:
                return (yield from func(*args, defer=scope, **kwargs))

        return generator_wrapper

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        with DeferScope(FrameKind.FUNCTION, name=name) as scope:
            return func(*args, defer=scope, **kwargs)

    return wrapper
