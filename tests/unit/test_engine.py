"""Tests for the deferred-action engine: registry, store, unwind and dispatch."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from deferscope.engine_types import (
    ActionKind,
    ActionMode,
    ControlTransfer,
    DeferredAction,
    FrameKind,
    ScopeFrame,
)
from deferscope.errors import EngineError, StaticSemanticsError
from deferscope.exit_reasons import ExitKind, ExitReason
from deferscope.failures import SuppressedError, walk_suppressed
from deferscope.ir import NO_SOURCE_LOCATION, SourceLocation
from deferscope.unwind import UnwindExecutor


def _action(body, kind: ActionKind = ActionKind.STATEMENT) -> DeferredAction:
    return DeferredAction(body=body, kind=kind)


def _raiser(error: BaseException):
    def body():
        raise error

    return body


class TestLifoOrdering:
    def test_drain_runs_most_recent_first(self, registry, dispatcher, recorder):
        handle = registry.enter_frame(FrameKind.FUNCTION)
        for name in ("d1", "d2", "d3"):
            registry.register_action(handle, _action(recorder.note(name)))

        reason = dispatcher.dispatch(handle, ExitReason.normal())

        assert recorder.events == ["d3", "d2", "d1"]
        assert reason.kind == ExitKind.NORMAL

    def test_block_action_runs_contiguously(self, registry, dispatcher, recorder):
        handle = registry.enter_frame(FrameKind.FUNCTION)

        def block():
            recorder.events.append("1")
            recorder.events.append("2")

        registry.register_action(handle, _action(recorder.note("3")))
        registry.register_action(handle, _action(block, ActionKind.BLOCK))
        dispatcher.dispatch(handle, ExitReason.normal())

        assert recorder.events == ["1", "2", "3"]

    def test_empty_frame_drains_without_effect(self, registry, dispatcher):
        handle = registry.enter_frame(FrameKind.BLOCK)
        reason = dispatcher.dispatch(handle, ExitReason.breaking("outer"))
        assert reason.kind == ExitKind.BREAK
        assert reason.label == "outer"
        assert registry.depth == 0


class TestIsolation:
    def test_inner_frame_drains_only_its_own_actions(self, registry, dispatcher, recorder):
        outer = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(outer, _action(recorder.note("outer")))
        inner = registry.enter_frame(FrameKind.BLOCK)
        registry.register_action(inner, _action(recorder.note("inner")))

        dispatcher.dispatch(inner, ExitReason.normal())
        assert recorder.events == ["inner"]
        assert registry.pending(outer) == 1

        dispatcher.dispatch(outer, ExitReason.normal())
        assert recorder.events == ["inner", "outer"]

    def test_pending_counts_exclude_nested_frames(self, registry):
        outer = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(outer, _action(lambda: None))
        inner = registry.enter_frame(FrameKind.BLOCK)
        registry.register_action(inner, _action(lambda: None))
        registry.register_action(inner, _action(lambda: None))

        assert registry.pending(outer) == 1
        assert registry.pending(inner) == 2
        assert len(registry.pending_actions(outer)) == 1

    def test_separate_registries_never_share_actions(self, recorder):
        from deferscope.dispatcher import ExitEventDispatcher
        from deferscope.registry import ScopeFrameRegistry

        first = ScopeFrameRegistry("first")
        second = ScopeFrameRegistry("second")
        h1 = first.enter_frame(FrameKind.FUNCTION)
        h2 = second.enter_frame(FrameKind.FUNCTION)
        first.register_action(h1, _action(recorder.note("first")))
        second.register_action(h2, _action(recorder.note("second")))

        ExitEventDispatcher(second).dispatch(h2, ExitReason.normal())
        assert recorder.events == ["second"]
        assert first.pending(h1) == 1

    def test_iterations_drain_separately(self, registry, dispatcher, recorder):
        loop = registry.enter_frame(FrameKind.FUNCTION)
        for i in range(3):
            handle = registry.enter_frame(FrameKind.LOOP_ITERATION_BODY)
            registry.register_action(handle, _action(recorder.note(f"a{i}")))
            registry.register_action(handle, _action(recorder.note(f"b{i}")))
            dispatcher.dispatch(handle, ExitReason.iteration_end())
        dispatcher.dispatch(loop, ExitReason.normal())

        assert recorder.events == ["b0", "a0", "b1", "a1", "b2", "a2"]


class TestFrameContract:
    def test_draining_twice_is_an_engine_error(self, registry):
        handle = registry.enter_frame(FrameKind.BLOCK)
        executor = UnwindExecutor(registry)
        executor.drain(handle)
        with pytest.raises(EngineError, match="already drained"):
            executor.drain(handle)

    def test_exit_with_undrained_actions_is_an_engine_error(self, registry):
        handle = registry.enter_frame(FrameKind.BLOCK)
        registry.register_action(handle, _action(lambda: None))
        with pytest.raises(EngineError, match="undrained"):
            registry.exit_frame(handle)

    def test_exit_of_non_innermost_frame_is_rejected(self, registry):
        outer = registry.enter_frame(FrameKind.FUNCTION)
        registry.enter_frame(FrameKind.BLOCK)
        with pytest.raises(EngineError, match="not the innermost"):
            registry.exit_frame(outer)

    def test_registration_into_drained_frame_is_rejected(self, registry):
        handle = registry.enter_frame(FrameKind.BLOCK)
        UnwindExecutor(registry).drain(handle)
        with pytest.raises(EngineError, match="no longer accepting"):
            registry.register_action(handle, _action(lambda: None))

    def test_stale_handle_is_rejected(self, registry, dispatcher):
        handle = registry.enter_frame(FrameKind.BLOCK)
        dispatcher.dispatch(handle, ExitReason.normal())
        registry.enter_frame(FrameKind.BLOCK)
        with pytest.raises(EngineError, match="Stale"):
            registry.frame(handle)

    def test_sync_drain_refuses_async_actions(self, registry):
        handle = registry.enter_frame(FrameKind.FUNCTION, is_async_context=True)
        registry.register_action(
            handle, DeferredAction(body=lambda: None, mode=ActionMode.ASYNC)
        )
        with pytest.raises(EngineError, match="drain_async"):
            UnwindExecutor(registry).drain(handle)

    def test_arena_returns_to_mark_after_exit(self, registry, dispatcher):
        outer = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(outer, _action(lambda: None))
        inner = registry.enter_frame(FrameKind.BLOCK)
        assert registry.frame(inner).mark == 1
        registry.register_action(inner, _action(lambda: None))
        dispatcher.dispatch(inner, ExitReason.normal())
        assert registry.pending(outer) == 1

    def test_lineage_walks_innermost_first(self, registry):
        registry.enter_frame(FrameKind.FUNCTION)
        registry.enter_frame(FrameKind.LOOP_ITERATION_BODY)
        inner = registry.enter_frame(FrameKind.BLOCK)
        kinds = [frame.kind for frame in registry.lineage(inner)]
        assert kinds == [
            FrameKind.BLOCK,
            FrameKind.LOOP_ITERATION_BODY,
            FrameKind.FUNCTION,
        ]


class TestRegistrationChecks:
    def test_async_action_in_sync_frame_is_rejected(self, registry):
        handle = registry.enter_frame(FrameKind.FUNCTION, is_async_context=False)
        with pytest.raises(StaticSemanticsError, match="deferAwait"):
            registry.register_action(
                handle, DeferredAction(body=lambda: None, mode=ActionMode.ASYNC)
            )
        assert registry.pending(handle) == 0

    def test_escaping_transfer_is_rejected(self, registry):
        handle = registry.enter_frame(FrameKind.FUNCTION)
        action = DeferredAction(
            body=lambda: None,
            escaping_transfers=frozenset({ControlTransfer.RETURN, ControlTransfer.YIELD}),
        )
        with pytest.raises(StaticSemanticsError, match="return, yield"):
            registry.register_action(handle, action)


class TestFailureAggregation:
    def test_every_action_runs_despite_failures(self, registry, dispatcher, recorder):
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(recorder.note("first")))
        registry.register_action(handle, _action(recorder.fail(ValueError("x"), "second")))
        registry.register_action(handle, _action(recorder.note("third")))

        reason = dispatcher.dispatch(handle, ExitReason.normal())

        assert recorder.events == ["third", "second", "first"]
        assert reason.is_throw
        assert isinstance(reason.error, ValueError)

    def test_chain_primary_is_last_executed_failure(self, registry, dispatcher):
        a, b = RuntimeError("A"), RuntimeError("B")
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(_raiser(a)))
        registry.register_action(handle, _action(_raiser(b)))

        reason = dispatcher.dispatch(handle, ExitReason.normal())

        assert isinstance(reason.error, SuppressedError)
        assert reason.error.error is a
        assert reason.error.suppressed is b
        assert reason.error.__cause__ is b

    def test_chain_walks_most_recent_first(self, registry, dispatcher):
        errors = [RuntimeError(f"e{i}") for i in range(1, 4)]
        handle = registry.enter_frame(FrameKind.FUNCTION)
        for error in reversed(errors):
            registry.register_action(handle, _action(_raiser(error)))

        reason = dispatcher.dispatch(handle, ExitReason.normal())

        # e1 ran first, e3 ran last
        assert list(walk_suppressed(reason.error)) == list(reversed(errors))

    def test_pending_throw_is_chained_last(self, registry, dispatcher):
        pending = KeyError("pending")
        cleanup = RuntimeError("cleanup")
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(_raiser(cleanup)))

        reason = dispatcher.dispatch(handle, ExitReason.throwing(pending))

        assert list(walk_suppressed(reason.error)) == [cleanup, pending]

    def test_pending_throw_passes_through_unchanged(self, registry, dispatcher, recorder):
        pending = ExitReason.throwing(KeyError("pending"))
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(recorder.note("ok")))

        reason = dispatcher.dispatch(handle, pending)

        assert reason is pending

    @pytest.mark.parametrize(
        "pending",
        [
            ExitReason.returning(7),
            ExitReason.breaking(),
            ExitReason.continuing("outer"),
            ExitReason.iteration_end(),
        ],
    )
    def test_failure_overrides_non_throw_reason(self, registry, dispatcher, pending):
        error = RuntimeError("late")
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(_raiser(error)))

        reason = dispatcher.dispatch(handle, pending)

        assert reason.is_throw
        assert reason.error is error

    def test_drain_listener_reports_override(self, registry):
        from deferscope.dispatcher import ExitEventDispatcher

        records = []
        dispatcher = ExitEventDispatcher(registry, listener=records.append)
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(_raiser(RuntimeError("x"))))
        dispatcher.dispatch(handle, ExitReason.returning(1))

        assert len(records) == 1
        record = records[0]
        assert record.pending == ExitKind.RETURN
        assert record.outcome == ExitKind.THROW
        assert record.executed == 1
        assert record.overridden

    def test_contract_errors_inside_actions_are_not_aggregated(self, registry, dispatcher):
        handle = registry.enter_frame(FrameKind.FUNCTION)
        registry.register_action(handle, _action(_raiser(RuntimeError("aggregated"))))
        registry.register_action(handle, _action(_raiser(EngineError("misuse"))))

        with pytest.raises(EngineError, match="misuse"):
            dispatcher.dispatch(handle, ExitReason.normal())
        assert registry.depth == 0


class TestDataModel:
    def test_default_source_locations_are_unknown(self):
        action = DeferredAction(body=lambda: None)
        frame = ScopeFrame(frame_id=1, kind=FrameKind.BLOCK, is_async_context=False, mark=0)
        assert action.source_location.is_unknown()
        assert frame.source_location is NO_SOURCE_LOCATION

    def test_actions_are_hashable(self):
        body = lambda: None  # noqa: E731
        assert hash(DeferredAction(body=body)) == hash(DeferredAction(body=body))

    def test_source_location_is_immutable(self):
        location = SourceLocation(start_line=1, start_col=0, end_line=1, end_col=4)
        with pytest.raises(ValidationError):
            location.start_line = 2
        assert location in {location}
