"""Evaluator — a generator-based tree walker that feeds the deferred-action engine.

Every ``_exec_*`` and ``_eval_*`` method that may reach a suspension point
is a generator. ``await`` and ``yield`` are handed to a driver as
``AwaitRequest`` / ``YieldRequest``; everything else runs straight through.
Throws travel as Python exceptions. Every other completion is an
``ExitReason`` returned by the statement that produced it, and every frame
boundary routes it through the activation's ``ExitEventDispatcher``.
"""

from __future__ import annotations

import asyncio
import contextlib
import functools
import inspect
import logging
import sys
from typing import Any, Callable, Generator, Iterator

from . import constants
from .builtins import (
    Builtins,
    array_member,
    error_to_value,
    is_script_error,
    string_member,
)
from .dispatcher import ExitEventDispatcher
from .engine_types import ActionKind, ActionMode, DeferredAction, FrameKind
from .errors import EvaluatorError
from .exit_reasons import ExitKind, ExitReason
from .ir import LOOP_KINDS, Node, NodeKind, SourceLocation
from .operators import Operators, is_number, strict_equals, to_number, to_string, truthy
from .registry import ScopeFrameRegistry
from .run_types import ExecutionStats, RunConfig
from .trace_types import DrainRecord
from .validation import escaping_transfers
from .vm_types import (
    UNDEFINED,
    Activation,
    AwaitRequest,
    Environment,
    ForcedReturn,
    JSFunction,
    JSObject,
    JSRuntimeError,
    JSThrow,
    NativeFunction,
    YieldRequest,
)

logger = logging.getLogger(__name__)

Completion = Generator[Any, Any, ExitReason]

_NULLISH = (None, UNDEFINED)


def _iter_result(value: Any, done: bool) -> JSObject:
    return JSObject(properties={"value": value, "done": done})


def _type_error(message: str) -> JSRuntimeError:
    return JSRuntimeError(constants.TYPE_ERROR_NAME, message)


def _array_index(key: Any) -> int | None:
    if is_number(key) and float(key).is_integer() and key >= 0:
        return int(key)
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return None


def _after_iteration(completion: ExitReason, labels: frozenset[str]) -> ExitReason | None:
    """None to keep looping, otherwise the completion that ends the loop."""
    if completion.kind in (ExitKind.NORMAL, ExitKind.ITERATION_END):
        return None
    if completion.kind == ExitKind.CONTINUE and completion.targets(labels):
        return None
    if completion.kind == ExitKind.BREAK and completion.targets(labels):
        return ExitReason.normal()
    return completion


def _clause_statements(clause: Node) -> list[Node]:
    if clause.kind == NodeKind.CASE:
        return clause.children[1:]
    return clause.children


def _stack_overflow() -> JSRuntimeError:
    return JSRuntimeError(constants.RANGE_ERROR_NAME, "Maximum call stack size exceeded")


@contextlib.contextmanager
def recursion_headroom(max_call_depth: int) -> Iterator[None]:
    """Raise the recursion limit so *max_call_depth* nested script calls fit."""
    previous = sys.getrecursionlimit()
    wanted = previous + max_call_depth * constants.PYTHON_FRAMES_PER_CALL
    limit = max(previous, min(wanted, constants.MAX_RECURSION_LIMIT))
    sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


# ── Generators ───────────────────────────────────────────────────


class JSGenerator:
    """Script generator object driving one suspended activation."""

    js_tag = "Generator"

    def __init__(self, body: Generator, name: str):
        self._body = body
        self.name = name
        self._started = False
        self._done = False
        self._running = False

    def member(self, name: str) -> Any:
        if name not in ("next", "return", "throw"):
            return UNDEFINED

        def method(args: list[Any], interp) -> Any:
            value, done = self.step(name, args[0] if args else UNDEFINED)
            return _iter_result(value, done)

        return NativeFunction(name, method)

    def step(self, mode: str, value: Any = UNDEFINED) -> tuple[Any, bool]:
        """Resume with next / return / throw; returns ``(value, done)``."""
        if self._running:
            raise _type_error("Generator is already running")
        if self._done or not self._started and mode != "next":
            if not self._done:
                self._done = True
                self._body.close()
            if mode == "throw":
                raise JSThrow(value)
            return (value if mode == "return" else UNDEFINED), True

        self._running = True
        try:
            if not self._started:
                self._started = True
                request = self._body.send(None)
            elif mode == "next":
                request = self._body.send(value)
            elif mode == "return":
                # Surfaces at the suspended yield as a Return completion
                request = self._body.throw(ForcedReturn(value))
            else:
                request = self._body.throw(JSThrow(value))
        except StopIteration as stop:
            self._done = True
            return stop.value, True
        except BaseException:
            self._done = True
            raise
        finally:
            self._running = False

        if not isinstance(request, YieldRequest):
            self._done = True
            self._body.close()
            raise EvaluatorError(f"Generator {self.name} suspended on {request!r}")
        return request.value, False


# ── Interpreter ──────────────────────────────────────────────────


class Interpreter:
    """Evaluates a lowered program; one instance per run."""

    def __init__(self, config: RunConfig = RunConfig()):
        self.config = config
        self.output: list[str] = []
        self.stats = ExecutionStats()
        self.drains: list[DrainRecord] = []
        self.globals = Environment(
            bindings=Builtins.global_bindings(), is_function_scope=True
        )
        self._tasks: list[asyncio.Future] = []
        self._observed: set[asyncio.Future] = set()
        self._transfers: dict[int, frozenset] = {}
        self._depth = 0
        self.module_env: Environment | None = None

        self._SIMPLE_STMT_DISPATCH: dict[NodeKind, Callable] = {
            NodeKind.BREAK: lambda n, e: ExitReason.breaking(n.label),
            NodeKind.CONTINUE: lambda n, e: ExitReason.continuing(n.label),
            NodeKind.FUNCTION: lambda n, e: ExitReason.normal(),
            NodeKind.EMPTY: lambda n, e: ExitReason.normal(),
            NodeKind.DEFER: self._exec_defer,
        }
        self._STMT_DISPATCH: dict[NodeKind, Callable] = {
            NodeKind.EXPRESSION_STATEMENT: self._exec_expression_statement,
            NodeKind.DECLARATION: self._exec_declaration,
            NodeKind.BLOCK: self._exec_block,
            NodeKind.IF: self._exec_if,
            NodeKind.WHILE: self._exec_while,
            NodeKind.DO_WHILE: self._exec_do_while,
            NodeKind.FOR: self._exec_for,
            NodeKind.FOR_OF: self._exec_for_of,
            NodeKind.SWITCH: self._exec_switch,
            NodeKind.RETURN: self._exec_return,
            NodeKind.THROW: self._exec_throw,
            NodeKind.TRY: self._exec_try,
            NodeKind.LABELED: self._exec_labeled,
        }
        self._SIMPLE_EXPR_DISPATCH: dict[NodeKind, Callable] = {
            NodeKind.LITERAL: lambda n, e: n.value,
            NodeKind.IDENTIFIER: lambda n, e: self._lookup(n.value, e),
            NodeKind.FUNCTION_EXPR: self._make_function,
        }
        self._EXPR_DISPATCH: dict[NodeKind, Callable] = {
            NodeKind.TEMPLATE: self._eval_template,
            NodeKind.BINARY: self._eval_binary,
            NodeKind.LOGICAL: self._eval_logical,
            NodeKind.UNARY: self._eval_unary,
            NodeKind.UPDATE: self._eval_update,
            NodeKind.ASSIGN: self._eval_assign,
            NodeKind.CALL: self._eval_call,
            NodeKind.MEMBER: self._eval_member,
            NodeKind.INDEX: self._eval_index,
            NodeKind.ARRAY: self._eval_array,
            NodeKind.OBJECT: self._eval_object,
            NodeKind.NEW: self._eval_new,
            NodeKind.AWAIT: self._eval_await,
            NodeKind.YIELD: self._eval_yield,
            NodeKind.CONDITIONAL: self._eval_conditional,
            NodeKind.SEQUENCE: self._eval_sequence,
        }

    # ── entry points ─────────────────────────────────────────────

    async def execute(self, program: Node) -> Environment:
        """Run *program* as the module body; returns the module environment."""
        act = self._new_activation(
            constants.MAIN_FRAME_NAME, is_async=self.config.allow_top_level_await
        )
        env = Environment(parent=self.globals, activation=act, is_function_scope=True)
        self.module_env = env
        await self.drive_async(self._exec_module(program, env))
        return env

    async def settle_background(self) -> None:
        """Wait until every task the program started has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.wait(pending)

    def unhandled_rejections(self) -> list[BaseException]:
        """Failures of async work nobody awaited."""
        rejected = []
        for task in self._tasks:
            if not task.done() or task.cancelled():
                continue
            error = task.exception()
            if error is not None and task not in self._observed:
                logger.warning("Unhandled rejection: %r", error)
                rejected.append(error)
        self.stats.unhandled_rejections = len(rejected)
        return rejected

    def spawn(self, awaitable) -> asyncio.Future:
        """Schedule *awaitable* as a background task owned by this run."""
        return self._track(asyncio.ensure_future(awaitable))

    # ── drivers ──────────────────────────────────────────────────

    def drive_sync(self, gen: Generator) -> Any:
        """Run *gen* to completion; synchronous code may not suspend."""
        try:
            request = gen.send(None)
        except StopIteration as stop:
            return stop.value
        gen.close()
        raise EvaluatorError(f"Unexpected suspension in synchronous code: {request!r}")

    async def drive_async(self, gen: Generator, request: Any = None) -> Any:
        """Run *gen* to completion, settling each ``AwaitRequest`` in turn."""
        if request is None:
            try:
                request = gen.send(None)
            except StopIteration as stop:
                return stop.value
        while True:
            if not isinstance(request, AwaitRequest):
                gen.close()
                raise EvaluatorError(f"Unexpected suspension in async code: {request!r}")
            try:
                value = await self._settle(request.value)
            except Exception as exc:
                resume = functools.partial(gen.throw, exc)
            else:
                resume = functools.partial(gen.send, value)
            try:
                request = resume()
            except StopIteration as stop:
                return stop.value

    async def _settle(self, value: Any) -> Any:
        if isinstance(value, asyncio.Future):
            self._observed.add(value)
        if inspect.isawaitable(value):
            return await value
        await asyncio.sleep(0)
        return value

    def _track(self, future: asyncio.Future) -> asyncio.Future:
        self._tasks.append(future)
        return future

    # ── activations and frames ───────────────────────────────────

    def _new_activation(
        self, name: str, is_async: bool, is_generator: bool = False
    ) -> Activation:
        registry = ScopeFrameRegistry(name)
        self.stats.activations += 1
        return Activation(
            name=name,
            registry=registry,
            dispatcher=ExitEventDispatcher(registry, listener=self._on_drain),
            is_async_context=is_async,
            is_generator=is_generator,
            depth=self._depth,
        )

    def _on_drain(self, record: DrainRecord) -> None:
        self.stats.drains += 1
        self.stats.actions_executed += record.executed
        self.stats.action_failures += record.failures
        if self.config.record_trace:
            self.drains.append(record)

    def _run_frame(
        self,
        kind: FrameKind,
        env: Environment,
        body: Completion,
        location: SourceLocation,
        normal: ExitReason = ExitReason.normal(),
    ) -> Completion:
        """Run *body* inside a new frame and drain it on the way out."""
        act: Activation = env.activation
        handle = act.registry.enter_frame(kind, act.is_async_context, location)
        self.stats.frames_entered += 1
        try:
            completion = yield from body
        except ForcedReturn as forced:
            completion = ExitReason.returning(forced.value)
        except Exception as exc:
            completion = ExitReason.throwing(exc)
        if completion.kind == ExitKind.NORMAL:
            completion = normal

        if act.dispatcher.needs_async(handle):
            reason = yield AwaitRequest(act.dispatcher.dispatch_async(handle, completion))
        else:
            reason = act.dispatcher.dispatch(handle, completion)
        if reason.is_throw:
            raise reason.error
        return reason

    def _exec_module(self, program: Node, env: Environment) -> Completion:
        return (
            yield from self._run_frame(
                FrameKind.MODULE,
                env,
                self._exec_statements(program.children, env),
                program.source_location,
            )
        )

    # ── statements ───────────────────────────────────────────────

    def _hoist(self, statements: list[Node], env: Environment) -> None:
        for stmt in statements:
            if stmt.kind == NodeKind.FUNCTION:
                env.bindings[stmt.value] = self._make_function(stmt, env)

    def _exec_statements(self, statements: list[Node], env: Environment) -> Completion:
        self._hoist(statements, env)
        for stmt in statements:
            completion = yield from self._exec_stmt(stmt, env)
            if completion.is_abrupt:
                return completion
        return ExitReason.normal()

    def _exec_stmt(self, node: Node, env: Environment) -> Completion:
        self.stats.statements += 1
        simple = self._SIMPLE_STMT_DISPATCH.get(node.kind)
        if simple is not None:
            return simple(node, env)
        handler = self._STMT_DISPATCH.get(node.kind)
        if handler is None:
            raise EvaluatorError(f"Unhandled statement kind {node.kind.value}")
        try:
            return (yield from handler(node, env))
        except ForcedReturn as forced:
            return ExitReason.returning(forced.value)

    def _exec_expression_statement(self, node: Node, env: Environment) -> Completion:
        yield from self._eval(node.children[0], env)
        return ExitReason.normal()

    def _exec_declaration(self, node: Node, env: Environment) -> Completion:
        decl_kind = node.value
        target = env.function_scope() if decl_kind == "var" else env
        for declarator in node.children:
            init = declarator.child(0)
            if init is None and decl_kind == "var" and declarator.value in target.bindings:
                continue
            value = (yield from self._eval(init, env)) if init is not None else UNDEFINED
            target.bindings[declarator.value] = value
            if decl_kind == "const":
                target.constants.add(declarator.value)
        return ExitReason.normal()

    def _exec_block(self, node: Node, env: Environment) -> Completion:
        block_env = env.child()
        return (
            yield from self._run_frame(
                FrameKind.BLOCK,
                block_env,
                self._exec_statements(node.children, block_env),
                node.source_location,
            )
        )

    def _exec_if(self, node: Node, env: Environment) -> Completion:
        condition = yield from self._eval(node.children[0], env)
        if truthy(condition):
            return (yield from self._exec_stmt(node.children[1], env))
        alternative = node.child(2)
        if alternative is not None:
            return (yield from self._exec_stmt(alternative, env))
        return ExitReason.normal()

    def _exec_return(self, node: Node, env: Environment) -> Completion:
        value = UNDEFINED
        if node.child(0) is not None:
            value = yield from self._eval(node.children[0], env)
        return ExitReason.returning(value)

    def _exec_throw(self, node: Node, env: Environment) -> Completion:
        value = yield from self._eval(node.children[0], env)
        raise JSThrow(value)

    def _exec_labeled(self, node: Node, env: Environment) -> Completion:
        labels: set[str] = set()
        target = node
        while target.kind == NodeKind.LABELED:
            labels.add(target.label)
            target = target.children[0]
        label_set = frozenset(labels)

        if target.kind in LOOP_KINDS or target.kind == NodeKind.SWITCH:
            completion = yield from self._STMT_DISPATCH[target.kind](target, env, label_set)
        else:
            completion = yield from self._exec_stmt(target, env)
        if completion.kind == ExitKind.BREAK and completion.label in label_set:
            return ExitReason.normal()
        return completion

    # ── defer ────────────────────────────────────────────────────

    def _exec_defer(self, node: Node, env: Environment) -> ExitReason:
        act: Activation = env.activation
        body = node.children[0]
        action = DeferredAction(
            body=self._action_body(node, env),
            kind=ActionKind.BLOCK if body.kind == NodeKind.BLOCK else ActionKind.STATEMENT,
            mode=ActionMode.ASYNC if node.is_async else ActionMode.SYNC,
            source_location=node.source_location,
            escaping_transfers=self._transfers_for(node),
        )
        act.registry.register_action(act.registry.innermost, action)
        return ExitReason.normal()

    def _action_body(self, node: Node, env: Environment) -> Callable[[], Any]:
        body = node.children[0]
        if node.is_async:

            async def run_async_action() -> None:
                await self.drive_async(self._exec_stmt(body, env))

            return run_async_action
        return lambda: self.drive_sync(self._exec_stmt(body, env))

    def _transfers_for(self, node: Node) -> frozenset:
        key = id(node)
        if key not in self._transfers:
            self._transfers[key] = escaping_transfers(node.children[0], node.is_async)
        return self._transfers[key]

    # ── loops ────────────────────────────────────────────────────

    def _run_iteration(self, body: Node, env: Environment) -> Completion:
        """One pass over a loop body inside a fresh LoopIterationBody frame."""
        iteration_env = env.child()
        statements = body.children if body.kind == NodeKind.BLOCK else [body]
        return (
            yield from self._run_frame(
                FrameKind.LOOP_ITERATION_BODY,
                iteration_env,
                self._exec_statements(statements, iteration_env),
                body.source_location,
                normal=ExitReason.iteration_end(),
            )
        )

    def _exec_while(
        self, node: Node, env: Environment, labels: frozenset[str] = frozenset()
    ) -> Completion:
        condition, body = node.children
        while truthy((yield from self._eval(condition, env))):
            completion = yield from self._run_iteration(body, env)
            finished = _after_iteration(completion, labels)
            if finished is not None:
                return finished
        return ExitReason.normal()

    def _exec_do_while(
        self, node: Node, env: Environment, labels: frozenset[str] = frozenset()
    ) -> Completion:
        body, condition = node.children
        while True:
            completion = yield from self._run_iteration(body, env)
            finished = _after_iteration(completion, labels)
            if finished is not None:
                return finished
            if not truthy((yield from self._eval(condition, env))):
                return ExitReason.normal()

    def _exec_for(
        self, node: Node, env: Environment, labels: frozenset[str] = frozenset()
    ) -> Completion:
        init, condition, update, body = node.children
        loop_env = env.child()
        if init.kind != NodeKind.EMPTY:
            completion = yield from self._exec_stmt(init, loop_env)
            if completion.is_abrupt:
                return completion
        per_iteration = init.kind == NodeKind.DECLARATION and init.value != "var"

        iteration_env = _copy_env(loop_env) if per_iteration else loop_env
        while True:
            if condition.kind != NodeKind.EMPTY and not truthy(
                (yield from self._eval(condition, iteration_env))
            ):
                return ExitReason.normal()
            completion = yield from self._run_iteration(body, iteration_env)
            finished = _after_iteration(completion, labels)
            if finished is not None:
                return finished
            if per_iteration:
                # Each iteration closes over its own copy of the let bindings
                iteration_env = _copy_env(iteration_env)
            if update.kind != NodeKind.EMPTY:
                yield from self._eval(update, iteration_env)

    def _exec_for_of(
        self, node: Node, env: Environment, labels: frozenset[str] = frozenset()
    ) -> Completion:
        iterable = yield from self._eval(node.children[0], env)
        body = node.children[1]
        for value in self._iterate(iterable):
            binding_env = env.child()
            binding_env.bindings[node.value] = value
            try:
                completion = yield from self._run_iteration(body, binding_env)
            except Exception as exc:
                self._close_iterator(iterable, exc)
                raise
            finished = _after_iteration(completion, labels)
            if finished is not None:
                self._close_iterator(iterable, None)
                return finished
        return ExitReason.normal()

    def _iterate(self, iterable: Any) -> Iterator[Any]:
        if isinstance(iterable, JSGenerator):
            return _generator_values(iterable)
        if isinstance(iterable, (list, str)):
            return _sequence_values(iterable)
        raise _type_error(f"{to_string(iterable)} is not iterable")

    def _close_iterator(self, iterable: Any, pending: BaseException | None) -> None:
        if not isinstance(iterable, JSGenerator):
            return
        if pending is None:
            iterable.step("return")
            return
        try:
            iterable.step("return")
        except Exception as close_error:
            logger.warning(
                "Closing iterator failed while %r was propagating: %r",
                pending,
                close_error,
            )

    # ── switch ───────────────────────────────────────────────────

    def _exec_switch(
        self, node: Node, env: Environment, labels: frozenset[str] = frozenset()
    ) -> Completion:
        discriminant = yield from self._eval(node.children[0], env)
        switch_env = env.child()
        completion = yield from self._run_frame(
            FrameKind.SWITCH_BODY,
            switch_env,
            self._switch_body(discriminant, node.children[1:], switch_env),
            node.source_location,
        )
        if completion.kind == ExitKind.BREAK and completion.targets(labels):
            return ExitReason.normal()
        return completion

    def _switch_body(
        self, discriminant: Any, clauses: list[Node], env: Environment
    ) -> Completion:
        self._hoist([s for clause in clauses for s in _clause_statements(clause)], env)
        start = None
        default_index = None
        for index, clause in enumerate(clauses):
            if clause.kind == NodeKind.DEFAULT:
                default_index = index
                continue
            test = yield from self._eval(clause.children[0], env)
            if strict_equals(discriminant, test):
                start = index
                break
        if start is None:
            start = default_index
        if start is None:
            return ExitReason.normal()

        # Fall through every clause after the matching one
        for clause in clauses[start:]:
            for stmt in _clause_statements(clause):
                completion = yield from self._exec_stmt(stmt, env)
                if completion.is_abrupt:
                    return completion
        return ExitReason.normal()

    # ── try / catch / finally ────────────────────────────────────

    def _exec_try(self, node: Node, env: Environment) -> Completion:
        block, handler, finalizer = node.children
        try:
            completion = yield from self._exec_stmt(block, env)
        except Exception as exc:
            if handler.kind == NodeKind.EMPTY or not is_script_error(exc):
                completion = ExitReason.throwing(exc)
            else:
                completion = yield from self._exec_catch(handler, exc, env)

        if finalizer.kind != NodeKind.EMPTY:
            final = yield from self._exec_stmt(finalizer, env)
            if final.is_abrupt:
                return final
        if completion.is_throw:
            raise completion.error
        return completion

    def _exec_catch(self, handler: Node, error: Exception, env: Environment) -> Completion:
        catch_env = env.child()
        if handler.value is not None:
            catch_env.bindings[handler.value] = error_to_value(error)
        try:
            return (yield from self._exec_stmt(handler.children[0], catch_env))
        except Exception as exc:
            return ExitReason.throwing(exc)

    # ── expressions ──────────────────────────────────────────────

    def _eval(self, node: Node, env: Environment) -> Generator[Any, Any, Any]:
        simple = self._SIMPLE_EXPR_DISPATCH.get(node.kind)
        if simple is not None:
            return simple(node, env)
        handler = self._EXPR_DISPATCH.get(node.kind)
        if handler is None:
            raise EvaluatorError(f"Unhandled expression kind {node.kind.value}")
        return (yield from handler(node, env))

    def _lookup(self, name: str, env: Environment) -> Any:
        scope = env.resolve(name)
        if scope is None:
            raise JSRuntimeError(constants.REFERENCE_ERROR_NAME, f"{name} is not defined")
        return scope.bindings[name]

    def _assign(self, name: str, value: Any, env: Environment) -> None:
        scope = env.resolve(name)
        if scope is None:
            raise JSRuntimeError(constants.REFERENCE_ERROR_NAME, f"{name} is not defined")
        if name in scope.constants:
            raise _type_error("Assignment to constant variable.")
        scope.bindings[name] = value

    def _make_function(self, node: Node, env: Environment) -> JSFunction:
        return JSFunction(
            name=node.value or constants.ANONYMOUS_FUNCTION_NAME,
            params=node.params,
            body=node.children[0],
            env=env,
            is_async=node.is_async,
            is_generator=node.is_generator,
        )

    def _eval_template(self, node: Node, env: Environment):
        parts = []
        for part in node.children:
            parts.append(to_string((yield from self._eval(part, env))))
        return "".join(parts)

    def _eval_binary(self, node: Node, env: Environment):
        left = yield from self._eval(node.children[0], env)
        right = yield from self._eval(node.children[1], env)
        return Operators.eval_binop(node.value, left, right)

    def _eval_logical(self, node: Node, env: Environment):
        left = yield from self._eval(node.children[0], env)
        op = node.value
        if op == "&&" and not truthy(left):
            return left
        if op == "||" and truthy(left):
            return left
        if op == "??" and left not in _NULLISH:
            return left
        return (yield from self._eval(node.children[1], env))

    def _eval_unary(self, node: Node, env: Environment):
        operand = node.children[0]
        if node.value == "typeof" and operand.kind == NodeKind.IDENTIFIER:
            if env.resolve(operand.value) is None:
                return "undefined"
        if node.value == "delete":
            raise _type_error("delete is not supported")
        value = yield from self._eval(operand, env)
        return Operators.eval_unop(node.value, value)

    def _reference(self, node: Node, env: Environment):
        """Evaluate an assignment target once; returns ``(get, set)``."""
        if node.kind == NodeKind.IDENTIFIER:
            name = node.value
            return (
                lambda: self._lookup(name, env),
                lambda value: self._assign(name, value, env),
            )
        obj = yield from self._eval(node.children[0], env)
        if node.kind == NodeKind.MEMBER:
            key = node.value
        else:
            key = yield from self._eval(node.children[1], env)
        return (
            lambda: self._get_property(obj, key),
            lambda value: self._set_property(obj, key, value),
        )

    def _eval_update(self, node: Node, env: Environment):
        get, put = yield from self._reference(node.children[0], env)
        old = to_number(get())
        new = Operators.eval_binop("+" if node.value == "++" else "-", old, 1)
        put(new)
        return new if node.prefix else old

    def _eval_assign(self, node: Node, env: Environment):
        target, rhs = node.children
        op = node.value
        get, put = yield from self._reference(target, env)
        if op == "=":
            value = yield from self._eval(rhs, env)
        elif op in ("&&=", "||=", "??="):
            current = get()
            if (
                (op == "&&=" and not truthy(current))
                or (op == "||=" and truthy(current))
                or (op == "??=" and current not in _NULLISH)
            ):
                return current
            value = yield from self._eval(rhs, env)
        else:
            current = get()
            operand = yield from self._eval(rhs, env)
            value = Operators.eval_binop(op[:-1], current, operand)
        put(value)
        return value

    def _eval_call(self, node: Node, env: Environment):
        callee = node.children[0]
        if callee.kind in (NodeKind.MEMBER, NodeKind.INDEX):
            obj = yield from self._eval(callee.children[0], env)
            if callee.kind == NodeKind.MEMBER:
                key = callee.value
            else:
                key = yield from self._eval(callee.children[1], env)
            fn = self._get_property(obj, key)
            name = to_string(key)
        else:
            fn = yield from self._eval(callee, env)
            name = callee.value if callee.kind == NodeKind.IDENTIFIER else "expression"
        args = []
        for arg in node.children[1:]:
            args.append((yield from self._eval(arg, env)))
        return self.call(fn, args, name)

    def _eval_member(self, node: Node, env: Environment):
        obj = yield from self._eval(node.children[0], env)
        return self._get_property(obj, node.value)

    def _eval_index(self, node: Node, env: Environment):
        obj = yield from self._eval(node.children[0], env)
        key = yield from self._eval(node.children[1], env)
        return self._get_property(obj, key)

    def _eval_array(self, node: Node, env: Environment):
        items = []
        for element in node.children:
            items.append((yield from self._eval(element, env)))
        return items

    def _eval_object(self, node: Node, env: Environment):
        obj = JSObject()
        for prop in node.children:
            obj.properties[prop.value] = yield from self._eval(prop.children[0], env)
        return obj

    def _eval_new(self, node: Node, env: Environment):
        ctor = yield from self._eval(node.children[0], env)
        args = []
        for arg in node.children[1:]:
            args.append((yield from self._eval(arg, env)))
        if isinstance(ctor, NativeFunction) and ctor.is_constructor:
            return ctor.impl(args, self)
        raise _type_error(f"{to_string(ctor)} is not a constructor")

    def _eval_await(self, node: Node, env: Environment):
        value = yield from self._eval(node.children[0], env)
        return (yield AwaitRequest(value))

    def _eval_yield(self, node: Node, env: Environment):
        value = UNDEFINED
        if node.child(0) is not None:
            value = yield from self._eval(node.children[0], env)
        return (yield YieldRequest(value))

    def _eval_conditional(self, node: Node, env: Environment):
        condition = yield from self._eval(node.children[0], env)
        branch = node.children[1] if truthy(condition) else node.children[2]
        return (yield from self._eval(branch, env))

    def _eval_sequence(self, node: Node, env: Environment):
        value = UNDEFINED
        for expr in node.children:
            value = yield from self._eval(expr, env)
        return value

    # ── properties ───────────────────────────────────────────────

    def _get_property(self, obj: Any, key: Any) -> Any:
        if obj is UNDEFINED or obj is None:
            raise _type_error(
                f"Cannot read properties of {to_string(obj)} (reading '{to_string(key)}')"
            )
        if isinstance(obj, (list, str)):
            index = _array_index(key)
            if index is not None:
                return obj[index] if index < len(obj) else UNDEFINED
            if isinstance(obj, list):
                return array_member(obj, to_string(key))
            return string_member(obj, to_string(key))
        if isinstance(obj, JSObject):
            return obj.properties.get(to_string(key), UNDEFINED)
        if isinstance(obj, JSGenerator):
            return obj.member(to_string(key))
        if isinstance(obj, (JSFunction, NativeFunction)) and key == "name":
            return obj.name
        return UNDEFINED

    def _set_property(self, obj: Any, key: Any, value: Any) -> None:
        if isinstance(obj, JSObject):
            obj.properties[to_string(key)] = value
            return
        if isinstance(obj, list):
            index = _array_index(key)
            if index is None:
                raise _type_error(f"Cannot set array property '{to_string(key)}'")
            if index >= len(obj):
                obj.extend([UNDEFINED] * (index + 1 - len(obj)))
            obj[index] = value
            return
        raise _type_error(
            f"Cannot set properties of {to_string(obj)} (setting '{to_string(key)}')"
        )

    # ── calls ────────────────────────────────────────────────────

    def call(self, fn: Any, args: list[Any], name: str = "") -> Any:
        if isinstance(fn, NativeFunction):
            return fn.impl(args, self)
        if not isinstance(fn, JSFunction):
            raise _type_error(f"{name or to_string(fn)} is not a function")
        if self._depth >= self.config.max_call_depth:
            raise _stack_overflow()

        act = self._new_activation(fn.name, fn.is_async, fn.is_generator)
        body = self._activation_body(fn, args, act)
        if fn.is_generator:
            return JSGenerator(body, fn.name)
        self._depth += 1
        try:
            if fn.is_async:
                return self._start_async(body)
            return self.drive_sync(body)
        except RecursionError as exc:
            # The host stack ran out before max_call_depth was reached
            raise _stack_overflow() from exc
        finally:
            self._depth -= 1

    def _activation_body(self, fn: JSFunction, args: list[Any], act: Activation):
        env = Environment(parent=fn.env, activation=act, is_function_scope=True)
        for index, param in enumerate(fn.params):
            value = args[index] if index < len(args) else UNDEFINED
            default = param.child(0)
            if value is UNDEFINED and default is not None:
                value = yield from self._eval(default, env)
            env.bindings[param.value] = value

        body = fn.body
        if body.kind != NodeKind.BLOCK:
            # Arrow function with an expression body
            return (yield from self._eval(body, env))
        completion = yield from self._run_frame(
            FrameKind.FUNCTION,
            env,
            self._exec_statements(body.children, env),
            body.source_location,
        )
        if completion.kind == ExitKind.RETURN:
            return completion.value
        return UNDEFINED

    def _start_async(self, body: Generator) -> asyncio.Future:
        """Run an async body synchronously up to its first await."""
        loop = asyncio.get_running_loop()
        try:
            request = body.send(None)
        except StopIteration as stop:
            future = loop.create_future()
            future.set_result(stop.value)
            return self._track(future)
        except Exception as exc:
            future = loop.create_future()
            future.set_exception(exc)
            return self._track(future)
        return self._track(loop.create_task(self.drive_async(body, request)))


def _copy_env(env: Environment) -> Environment:
    return Environment(
        parent=env.parent,
        activation=env.activation,
        bindings=dict(env.bindings),
        constants=set(env.constants),
    )


def _generator_values(generator: JSGenerator) -> Iterator[Any]:
    while True:
        value, done = generator.step("next")
        if done:
            return
        yield value


def _sequence_values(items: list | str) -> Iterator[Any]:
    index = 0
    while index < len(items):
        yield items[index]
        index += 1
