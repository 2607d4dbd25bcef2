"""Static validation of deferred actions, run once after lowering.

Rejects, before any code runs:

- ``deferAwait`` outside an async function (or a module that allows
  top-level await);
- a deferred body that returns, yields, breaks or continues to a target
  outside itself, or awaits when the action is synchronous;
- a ``defer`` that is the whole unbraced body of a loop, or that sits inside
  another deferred action without a block of its own;
- ``await`` outside an async context, ``yield`` outside a generator, and
  async generator functions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .engine_types import ControlTransfer
from .errors import StaticSemanticsError
from .ir import FUNCTION_KINDS, LOOP_KINDS, Node, NodeKind

logger = logging.getLogger(__name__)

# Statements that open a frame of their own when they run
_FRAMED_KINDS: frozenset[NodeKind] = (
    LOOP_KINDS | FUNCTION_KINDS | frozenset({NodeKind.BLOCK, NodeKind.SWITCH})
)


@dataclass(frozen=True)
class _Context:
    is_async: bool
    is_generator: bool


def loop_body(node: Node) -> Node:
    """The statement a loop node repeats."""
    if node.kind == NodeKind.DO_WHILE:
        return node.children[0]
    return node.children[-1]


def escaping_transfers(body: Node, is_async: bool) -> frozenset[ControlTransfer]:
    """Control transfers inside *body* that would leave a deferred action."""
    found: set[ControlTransfer] = set()
    _scan(body, is_async, frozenset(), 0, 0, found)
    return frozenset(found)


def _scan(
    node: Node,
    is_async: bool,
    labels: frozenset[str],
    loops: int,
    breakables: int,
    found: set[ControlTransfer],
) -> None:
    kind = node.kind
    if kind in FUNCTION_KINDS:
        return
    if kind == NodeKind.DEFER:
        # Nested actions are checked on their own
        if node.is_async and not is_async:
            found.add(ControlTransfer.AWAIT)
        return
    if kind == NodeKind.RETURN:
        found.add(ControlTransfer.RETURN)
    elif kind == NodeKind.YIELD:
        found.add(ControlTransfer.YIELD)
    elif kind == NodeKind.AWAIT and not is_async:
        found.add(ControlTransfer.AWAIT)
    elif kind == NodeKind.BREAK:
        if (node.label is None and breakables == 0) or (
            node.label is not None and node.label not in labels
        ):
            found.add(ControlTransfer.BREAK)
    elif kind == NodeKind.CONTINUE:
        if (node.label is None and loops == 0) or (
            node.label is not None and node.label not in labels
        ):
            found.add(ControlTransfer.CONTINUE)

    if kind == NodeKind.LABELED:
        labels = labels | {node.label}
    elif kind in LOOP_KINDS:
        loops += 1
        breakables += 1
    elif kind == NodeKind.SWITCH:
        breakables += 1

    for child in node.children:
        _scan(child, is_async, labels, loops, breakables, found)


def validate_program(program: Node, allow_top_level_await: bool = True) -> list[Node]:
    """Check every deferred action in *program*; return the DEFER nodes found."""
    defers: list[Node] = []
    _validate(program, _Context(is_async=allow_top_level_await, is_generator=False), defers)
    logger.info("Validated %d deferred actions", len(defers))
    return defers


def _validate(node: Node, ctx: _Context, defers: list[Node]) -> None:
    kind = node.kind

    if kind in FUNCTION_KINDS:
        if node.is_async and node.is_generator:
            raise StaticSemanticsError(
                "Async generator functions are not supported", node.source_location
            )
        ctx = _Context(is_async=node.is_async, is_generator=node.is_generator)
        for param in node.params:
            _validate(param, ctx, defers)
    elif kind == NodeKind.DEFER:
        _check_defer(node, ctx)
        defers.append(node)
    elif kind in LOOP_KINDS and loop_body(node).kind == NodeKind.DEFER:
        raise StaticSemanticsError(
            "A deferred action cannot be the unbraced body of a loop; wrap it in a block",
            loop_body(node).source_location,
        )
    elif kind == NodeKind.AWAIT and not ctx.is_async:
        raise StaticSemanticsError(
            "await is only valid in async functions and the top level of modules",
            node.source_location,
        )
    elif kind == NodeKind.YIELD and not ctx.is_generator:
        raise StaticSemanticsError(
            "yield is only valid inside generator functions", node.source_location
        )

    for child in node.children:
        _validate(child, ctx, defers)


def _check_defer(node: Node, ctx: _Context) -> None:
    body = node.children[0]
    if node.is_async and not ctx.is_async:
        raise StaticSemanticsError(
            "deferAwait is only allowed inside an async function or module",
            node.source_location,
        )
    nested = _unframed_defer(body)
    if nested is not None:
        raise StaticSemanticsError(
            "A deferred action cannot directly contain another; wrap it in a block",
            nested.source_location,
        )
    transfers = escaping_transfers(body, node.is_async)
    if transfers:
        names = ", ".join(sorted(t.value for t in transfers))
        raise StaticSemanticsError(
            f"A deferred action may not contain {names} that leaves the action",
            node.source_location,
        )


def _unframed_defer(node: Node) -> Node | None:
    """A DEFER reachable from *node* without entering a new frame."""
    if node.kind == NodeKind.DEFER:
        return node
    if node.kind in _FRAMED_KINDS:
        return None
    for child in node.children:
        found = _unframed_defer(child)
        if found is not None:
            return found
    return None
