"""IR Design — structured statement/expression tree lowered from tree-sitter.

Every node is a ``Node`` whose ``kind`` fixes the meaning of its
positional ``children``:

    PROGRAM / BLOCK           statements...
    EXPRESSION_STATEMENT      [expr]
    DECLARATION (value=kind)  DECLARATOR...    DECLARATOR (value=name) [init?]
    IF                        [cond, consequence, alternative?]
    WHILE                     [cond, body]
    DO_WHILE                  [body, cond]
    FOR                       [init, cond, update, body]   (EMPTY when absent)
    FOR_OF (value=name)       [iterable, body]
    SWITCH                    [discriminant, CASE | DEFAULT...]
    CASE                      [test, statements...]
    DEFAULT                   statements...
    BREAK / CONTINUE          label = target label or None
    RETURN / THROW            [expr?]
    TRY                       [block, CATCH | EMPTY, finalizer | EMPTY]
    CATCH (value=param)       [block]
    FUNCTION (value=name)     params=[PARAM...], [body]
    LABELED (label=name)      [statement]
    DEFER (is_async)          [body]
    PARAM (value=name)        [default?]
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class NodeKind(str, Enum):
    # Statements
    PROGRAM = "PROGRAM"
    BLOCK = "BLOCK"
    EXPRESSION_STATEMENT = "EXPRESSION_STATEMENT"
    DECLARATION = "DECLARATION"
    DECLARATOR = "DECLARATOR"
    IF = "IF"
    WHILE = "WHILE"
    DO_WHILE = "DO_WHILE"
    FOR = "FOR"
    FOR_OF = "FOR_OF"
    SWITCH = "SWITCH"
    CASE = "CASE"
    DEFAULT = "DEFAULT"
    BREAK = "BREAK"
    CONTINUE = "CONTINUE"
    RETURN = "RETURN"
    THROW = "THROW"
    TRY = "TRY"
    CATCH = "CATCH"
    FUNCTION = "FUNCTION"
    LABELED = "LABELED"
    DEFER = "DEFER"
    EMPTY = "EMPTY"
    # Expressions
    IDENTIFIER = "IDENTIFIER"
    LITERAL = "LITERAL"
    TEMPLATE = "TEMPLATE"
    BINARY = "BINARY"
    LOGICAL = "LOGICAL"
    UNARY = "UNARY"
    UPDATE = "UPDATE"
    ASSIGN = "ASSIGN"
    CALL = "CALL"
    MEMBER = "MEMBER"
    INDEX = "INDEX"
    ARRAY = "ARRAY"
    OBJECT = "OBJECT"
    PROPERTY = "PROPERTY"
    FUNCTION_EXPR = "FUNCTION_EXPR"
    NEW = "NEW"
    AWAIT = "AWAIT"
    YIELD = "YIELD"
    CONDITIONAL = "CONDITIONAL"
    SEQUENCE = "SEQUENCE"
    # Function parameters
    PARAM = "PARAM"


LOOP_KINDS: frozenset[NodeKind] = frozenset(
    {NodeKind.WHILE, NodeKind.DO_WHILE, NodeKind.FOR, NodeKind.FOR_OF}
)

FUNCTION_KINDS: frozenset[NodeKind] = frozenset(
    {NodeKind.FUNCTION, NodeKind.FUNCTION_EXPR}
)


class SourceLocation(BaseModel, frozen=True):
    """Structured source span from tree-sitter AST nodes."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def is_unknown(self) -> bool:
        return (
            self.start_line == 0
            and self.start_col == 0
            and self.end_line == 0
            and self.end_col == 0
        )

    def __str__(self) -> str:
        if self.is_unknown():
            return "<unknown>"
        return f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"


NO_SOURCE_LOCATION = SourceLocation(start_line=0, start_col=0, end_line=0, end_col=0)


class Node(BaseModel):
    kind: NodeKind
    value: Any = None  # identifier name / literal / operator / declaration kind
    label: str | None = None  # break/continue target or statement label
    params: list[Node] = []
    children: list[Node] = []
    is_async: bool = False
    is_generator: bool = False
    prefix: bool = False  # update expressions: ++x vs x++
    source_location: SourceLocation = NO_SOURCE_LOCATION

    def child(self, index: int) -> Node | None:
        """Return the positional child at *index*, or None when absent/EMPTY."""
        if index >= len(self.children):
            return None
        found = self.children[index]
        if found.kind == NodeKind.EMPTY:
            return None
        return found

    def walk(self):
        """Yield this node and every descendant in source order."""
        yield self
        for param in self.params:
            yield from param.walk()
        for node in self.children:
            yield from node.walk()

    def __str__(self) -> str:
        parts: list[str] = [self.kind.value.lower()]
        if self.is_async:
            parts.append("async")
        if self.is_generator:
            parts.append("generator")
        if self.value is not None:
            parts.append(repr(self.value))
        if self.label:
            parts.append(f"@{self.label}")
        if self.params:
            parts.append("(" + ", ".join(str(p.value) for p in self.params) + ")")
        base = " ".join(parts)
        if not self.source_location.is_unknown():
            return f"{base}  # {self.source_location}"
        return base

    def dump(self, indent: int = 0) -> str:
        """Render the subtree as an indented, one-node-per-line listing."""
        lines = [f"{'  ' * indent}{self}"]
        for node in self.children:
            lines.append(node.dump(indent + 1))
        return "\n".join(lines)


EMPTY_NODE = Node(kind=NodeKind.EMPTY)
