"""BaseFrontend — language-agnostic tree-sitter AST → IR lowering infrastructure."""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..errors import FrontendError
from ..frontend import Frontend
from ..ir import EMPTY_NODE, NO_SOURCE_LOCATION, Node, NodeKind, SourceLocation
from .. import constants

logger = logging.getLogger(__name__)


class BaseFrontend(Frontend):
    """Base class for deterministic tree-sitter frontends.

    Subclasses populate ``_STMT_DISPATCH`` and ``_EXPR_DISPATCH`` tables and
    override field-name / literal constants where the grammar differs from
    the defaults.
    """

    # ── overridable constants ────────────────────────────────────

    FUNC_NAME_FIELD: str = "name"
    FUNC_PARAMS_FIELD: str = "parameters"
    FUNC_BODY_FIELD: str = "body"

    IF_CONDITION_FIELD: str = "condition"
    IF_CONSEQUENCE_FIELD: str = "consequence"
    IF_ALTERNATIVE_FIELD: str = "alternative"

    WHILE_CONDITION_FIELD: str = "condition"
    WHILE_BODY_FIELD: str = "body"

    CALL_FUNCTION_FIELD: str = "function"
    CALL_ARGUMENTS_FIELD: str = "arguments"

    ATTR_OBJECT_FIELD: str = "object"
    ATTR_ATTRIBUTE_FIELD: str = "property"

    SUBSCRIPT_VALUE_FIELD: str = "object"
    SUBSCRIPT_INDEX_FIELD: str = "index"

    ASSIGN_LEFT_FIELD: str = "left"
    ASSIGN_RIGHT_FIELD: str = "right"

    LOGICAL_OPERATORS: frozenset[str] = frozenset({"&&", "||", "??"})

    COMMENT_TYPES: frozenset[str] = frozenset({"comment"})
    NOISE_TYPES: frozenset[str] = frozenset({"\n"})

    # ── init ─────────────────────────────────────────────────────

    def __init__(self):
        self._source: bytes = b""
        self._STMT_DISPATCH: dict[str, Callable] = {}
        self._EXPR_DISPATCH: dict[str, Callable] = {}

    # ── helpers ──────────────────────────────────────────────────

    def _make(
        self,
        kind: NodeKind,
        *,
        value: Any = None,
        label: str | None = None,
        children: list[Node] | None = None,
        params: list[Node] | None = None,
        is_async: bool = False,
        is_generator: bool = False,
        prefix: bool = False,
        node=None,
    ) -> Node:
        return Node(
            kind=kind,
            value=value,
            label=label,
            children=children or [],
            params=params or [],
            is_async=is_async,
            is_generator=is_generator,
            prefix=prefix,
            source_location=self._source_loc(node) if node is not None else NO_SOURCE_LOCATION,
        )

    def _node_text(self, node) -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8")

    def _source_loc(self, node) -> SourceLocation:
        s, e = node.start_point, node.end_point
        return SourceLocation(
            start_line=s[0] + 1,
            start_col=s[1],
            end_line=e[0] + 1,
            end_col=e[1],
        )

    def _named(self, node) -> list:
        """Named children of *node*, without comments."""
        return [c for c in node.named_children if c.type not in self.COMMENT_TYPES]

    def _has_token(self, node, token: str) -> bool:
        return any(c.type == token for c in node.children)

    def _unsupported(self, node, what: str = ""):
        raise FrontendError(
            f"Unsupported syntax: {what or node.type}", self._source_loc(node)
        )

    # ── entry point ──────────────────────────────────────────────

    def lower(self, tree, source: bytes) -> Node:
        self._source = source
        root = tree.root_node
        program = self._make(
            NodeKind.PROGRAM, children=self._lower_statements(root), node=root
        )
        logger.debug("Lowered program with %d top-level statements", len(program.children))
        return program

    # ── dispatchers ──────────────────────────────────────────────

    def _lower_statements(self, node) -> list[Node]:
        """Lower every statement child of a program / block / clause body."""
        lowered = []
        for child in node.children:
            if not child.is_named:
                continue
            stmt = self._lower_stmt(child)
            if stmt.kind != NodeKind.EMPTY:
                lowered.append(stmt)
        return lowered

    def _lower_stmt(self, node) -> Node:
        ntype = node.type
        if ntype in self.COMMENT_TYPES or ntype in self.NOISE_TYPES:
            return EMPTY_NODE
        handler = self._STMT_DISPATCH.get(ntype)
        if handler:
            return handler(node)
        # Fallback: an expression in statement position
        return self._make(
            NodeKind.EXPRESSION_STATEMENT, children=[self._lower_expr(node)], node=node
        )

    def _lower_expr(self, node) -> Node:
        handler = self._EXPR_DISPATCH.get(node.type)
        if handler:
            return handler(node)
        self._unsupported(node)

    def _lower_optional_expr(self, node) -> Node:
        if node is None:
            return EMPTY_NODE
        return self._lower_expr(node)

    # ── common statement lowerers ────────────────────────────────

    def _lower_block(self, node) -> Node:
        return self._make(NodeKind.BLOCK, children=self._lower_statements(node), node=node)

    def _lower_expression_statement(self, node) -> Node:
        named = self._named(node)
        if not named:
            return EMPTY_NODE
        return self._make(
            NodeKind.EXPRESSION_STATEMENT, children=[self._lower_expr(named[0])], node=node
        )

    def _lower_return(self, node) -> Node:
        named = self._named(node)
        children = [self._lower_expr(named[0])] if named else []
        return self._make(NodeKind.RETURN, children=children, node=node)

    def _lower_throw(self, node) -> Node:
        named = self._named(node)
        if not named:
            self._unsupported(node, "throw without a value")
        return self._make(NodeKind.THROW, children=[self._lower_expr(named[0])], node=node)

    def _lower_break(self, node) -> Node:
        return self._make(NodeKind.BREAK, label=self._jump_label(node), node=node)

    def _lower_continue(self, node) -> Node:
        return self._make(NodeKind.CONTINUE, label=self._jump_label(node), node=node)

    def _jump_label(self, node) -> str | None:
        label_node = node.child_by_field_name("label")
        return self._node_text(label_node) if label_node else None

    def _lower_if(self, node) -> Node:
        cond_node = node.child_by_field_name(self.IF_CONDITION_FIELD)
        body_node = node.child_by_field_name(self.IF_CONSEQUENCE_FIELD)
        alt_node = node.child_by_field_name(self.IF_ALTERNATIVE_FIELD)

        children = [self._lower_expr(cond_node), self._lower_stmt(body_node)]
        if alt_node:
            children.append(self._lower_alternative(alt_node))
        return self._make(NodeKind.IF, children=children, node=node)

    def _lower_alternative(self, alt_node) -> Node:
        named = self._named(alt_node)
        if alt_node.type == "else_clause" and named:
            return self._lower_stmt(named[0])
        return self._lower_stmt(alt_node)

    def _lower_while(self, node) -> Node:
        cond_node = node.child_by_field_name(self.WHILE_CONDITION_FIELD)
        body_node = node.child_by_field_name(self.WHILE_BODY_FIELD)
        return self._make(
            NodeKind.WHILE,
            children=[self._lower_expr(cond_node), self._lower_stmt(body_node)],
            node=node,
        )

    def _lower_do_statement(self, node) -> Node:
        body_node = node.child_by_field_name("body")
        cond_node = node.child_by_field_name("condition")
        return self._make(
            NodeKind.DO_WHILE,
            children=[self._lower_stmt(body_node), self._lower_expr(cond_node)],
            node=node,
        )

    def _lower_c_style_for(self, node) -> Node:
        """Lower a C-style for(init; cond; update) loop."""
        init_node = node.child_by_field_name("initializer")
        cond_node = node.child_by_field_name("condition")
        update_node = node.child_by_field_name("increment") or node.child_by_field_name(
            "update"
        )
        body_node = node.child_by_field_name("body")

        return self._make(
            NodeKind.FOR,
            children=[
                self._lower_for_initializer(init_node),
                self._lower_for_condition(cond_node),
                self._lower_optional_expr(update_node),
                self._lower_stmt(body_node),
            ],
            node=node,
        )

    def _lower_for_initializer(self, init_node) -> Node:
        if init_node is None or init_node.type in ("empty_statement", ";"):
            return EMPTY_NODE
        if init_node.type in self._STMT_DISPATCH:
            return self._lower_stmt(init_node)
        return self._make(
            NodeKind.EXPRESSION_STATEMENT,
            children=[self._lower_expr(init_node)],
            node=init_node,
        )

    def _lower_for_condition(self, cond_node) -> Node:
        if cond_node is None or cond_node.type in ("empty_statement", ";"):
            return EMPTY_NODE
        if cond_node.type == "expression_statement":
            named = self._named(cond_node)
            return self._lower_expr(named[0]) if named else EMPTY_NODE
        return self._lower_expr(cond_node)

    def _lower_labeled_statement(self, node) -> Node:
        """Lower `label: stmt`; the defer labels become DEFER nodes."""
        label_node = node.child_by_field_name("label")
        body_node = node.child_by_field_name("body")
        label_name = self._node_text(label_node)
        body = self._lower_stmt(body_node)

        if label_name in (constants.DEFER_LABEL, constants.DEFER_AWAIT_LABEL):
            return self._make(
                NodeKind.DEFER,
                children=[body],
                is_async=label_name == constants.DEFER_AWAIT_LABEL,
                node=node,
            )
        return self._make(NodeKind.LABELED, label=label_name, children=[body], node=node)

    # ── common expression lowerers ───────────────────────────────

    def _lower_identifier(self, node) -> Node:
        return self._make(NodeKind.IDENTIFIER, value=self._node_text(node), node=node)

    def _lower_paren(self, node) -> Node:
        named = self._named(node)
        if not named:
            self._unsupported(node, "empty parentheses")
        return self._lower_expr(named[0])

    def _lower_binop(self, node) -> Node:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        op_node = node.child_by_field_name("operator")
        op = self._node_text(op_node) if op_node else self._node_text(node.children[1])
        kind = NodeKind.LOGICAL if op in self.LOGICAL_OPERATORS else NodeKind.BINARY
        return self._make(
            kind,
            value=op,
            children=[self._lower_expr(left), self._lower_expr(right)],
            node=node,
        )

    def _lower_unop(self, node) -> Node:
        op_node = node.child_by_field_name("operator")
        arg_node = node.child_by_field_name("argument")
        if op_node is None or arg_node is None:
            op_node, arg_node = node.children[0], node.children[-1]
        return self._make(
            NodeKind.UNARY,
            value=self._node_text(op_node),
            children=[self._lower_expr(arg_node)],
            node=node,
        )

    def _lower_update_expr(self, node) -> Node:
        arg_node = node.child_by_field_name("argument")
        op_node = node.child_by_field_name("operator")
        if arg_node is None:
            arg_node = next(c for c in node.children if c.is_named)
        op = self._node_text(op_node) if op_node else next(
            c.type for c in node.children if c.type in ("++", "--")
        )
        return self._make(
            NodeKind.UPDATE,
            value=op,
            prefix=node.children[0].type in ("++", "--"),
            children=[self._lower_target(arg_node)],
            node=node,
        )

    def _lower_assignment_expr(self, node) -> Node:
        left = node.child_by_field_name(self.ASSIGN_LEFT_FIELD)
        right = node.child_by_field_name(self.ASSIGN_RIGHT_FIELD)
        op_node = node.child_by_field_name("operator")
        op = self._node_text(op_node) if op_node else "="
        return self._make(
            NodeKind.ASSIGN,
            value=op,
            children=[self._lower_target(left), self._lower_expr(right)],
            node=node,
        )

    def _lower_target(self, node) -> Node:
        target = self._lower_expr(node)
        if target.kind not in (NodeKind.IDENTIFIER, NodeKind.MEMBER, NodeKind.INDEX):
            self._unsupported(node, f"assignment to {node.type}")
        return target

    def _lower_call(self, node) -> Node:
        func_node = node.child_by_field_name(self.CALL_FUNCTION_FIELD)
        args_node = node.child_by_field_name(self.CALL_ARGUMENTS_FIELD)
        return self._make(
            NodeKind.CALL,
            children=[self._lower_expr(func_node)] + self._extract_call_args(args_node),
            node=node,
        )

    def _extract_call_args(self, args_node) -> list[Node]:
        """Lower the argument expressions of a call arguments node."""
        if args_node is None:
            return []
        if args_node.type not in ("arguments",):
            self._unsupported(args_node, "tagged template call")
        return [self._lower_expr(c) for c in self._named(args_node)]

    def _lower_attribute(self, node) -> Node:
        obj_node = node.child_by_field_name(self.ATTR_OBJECT_FIELD)
        attr_node = node.child_by_field_name(self.ATTR_ATTRIBUTE_FIELD)
        return self._make(
            NodeKind.MEMBER,
            value=self._node_text(attr_node),
            children=[self._lower_expr(obj_node)],
            node=node,
        )

    def _lower_subscript(self, node) -> Node:
        obj_node = node.child_by_field_name(self.SUBSCRIPT_VALUE_FIELD)
        idx_node = node.child_by_field_name(self.SUBSCRIPT_INDEX_FIELD)
        return self._make(
            NodeKind.INDEX,
            children=[self._lower_expr(obj_node), self._lower_expr(idx_node)],
            node=node,
        )

    def _lower_ternary(self, node) -> Node:
        return self._make(
            NodeKind.CONDITIONAL,
            children=[
                self._lower_expr(node.child_by_field_name("condition")),
                self._lower_expr(node.child_by_field_name("consequence")),
                self._lower_expr(node.child_by_field_name("alternative")),
            ],
            node=node,
        )

    def _lower_list_literal(self, node) -> Node:
        return self._make(
            NodeKind.ARRAY,
            children=[self._lower_expr(c) for c in self._named(node)],
            node=node,
        )

    def _lower_sequence_expression(self, node) -> Node:
        return self._make(
            NodeKind.SEQUENCE,
            children=[self._lower_expr(c) for c in self._named(node)],
            node=node,
        )

    def _lower_await_expression(self, node) -> Node:
        named = self._named(node)
        return self._make(NodeKind.AWAIT, children=[self._lower_expr(named[0])], node=node)

    def _lower_yield_expression(self, node) -> Node:
        if self._has_token(node, "*"):
            self._unsupported(node, "yield* delegation")
        named = self._named(node)
        children = [self._lower_expr(named[0])] if named else []
        return self._make(NodeKind.YIELD, children=children, node=node)
