"""JavaScriptFrontend — tree-sitter JavaScript AST → IR lowering."""

from __future__ import annotations

import re
from typing import Callable

from ._base import BaseFrontend
from ..ir import EMPTY_NODE, Node, NodeKind
from .. import constants

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_DECLARATION_TYPES = frozenset({"lexical_declaration", "variable_declaration"})


def decode_escape(text: str) -> str:
    """Decode one JavaScript escape sequence such as ``\\n`` or ``\\u{1F600}``."""
    body = text[1:]
    if not body:
        return ""
    head = body[0]
    if head in _SIMPLE_ESCAPES and len(body) == 1:
        return _SIMPLE_ESCAPES[head]
    if head == "x" and len(body) == 3:
        return chr(int(body[1:], 16))
    if head == "u":
        digits = body[2:-1] if body.startswith("u{") else body[1:]
        return chr(int(digits, 16))
    if head in "\r\n":
        # Line continuation
        return ""
    return body


def parse_number(text: str) -> int | float:
    """Parse a JavaScript numeric literal (decimal, hex, octal, binary, bigint)."""
    cleaned = text.replace("_", "")
    if cleaned.endswith("n"):
        return int(cleaned[:-1], 0)
    if re.fullmatch(r"0[xXoObB][0-9a-fA-F]+", cleaned):
        return int(cleaned, 0)
    if re.fullmatch(r"\d+", cleaned):
        return int(cleaned)
    return float(cleaned)


class JavaScriptFrontend(BaseFrontend):
    """Lowers a JavaScript tree-sitter AST into the structured IR tree."""

    def __init__(self):
        super().__init__()
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "identifier": self._lower_identifier,
            "number": self._lower_number,
            "string": self._lower_string,
            "template_string": self._lower_template_string,
            "true": self._lower_keyword_literal,
            "false": self._lower_keyword_literal,
            "null": self._lower_keyword_literal,
            "undefined": self._lower_identifier,
            "binary_expression": self._lower_binop,
            "augmented_assignment_expression": self._lower_assignment_expr,
            "unary_expression": self._lower_unop,
            "update_expression": self._lower_update_expr,
            "call_expression": self._lower_call,
            "new_expression": self._lower_new_expression,
            "member_expression": self._lower_attribute,
            "subscript_expression": self._lower_subscript,
            "parenthesized_expression": self._lower_paren,
            "array": self._lower_list_literal,
            "object": self._lower_js_object_literal,
            "assignment_expression": self._lower_assignment_expr,
            "arrow_function": self._lower_function_expression,
            "ternary_expression": self._lower_ternary,
            "await_expression": self._lower_await_expression,
            "yield_expression": self._lower_yield_expression,
            "sequence_expression": self._lower_sequence_expression,
            "function": self._lower_function_expression,
            "function_expression": self._lower_function_expression,
            "generator_function": self._lower_function_expression,
        }
        self._STMT_DISPATCH: dict[str, Callable] = {
            "expression_statement": self._lower_expression_statement,
            "lexical_declaration": self._lower_var_declaration,
            "variable_declaration": self._lower_var_declaration,
            "return_statement": self._lower_return,
            "if_statement": self._lower_if,
            "while_statement": self._lower_while,
            "do_statement": self._lower_do_statement,
            "for_statement": self._lower_c_style_for,
            "for_in_statement": self._lower_for_of,
            "function_declaration": self._lower_function_def,
            "generator_function_declaration": self._lower_function_def,
            "throw_statement": self._lower_throw,
            "statement_block": self._lower_block,
            "empty_statement": lambda _: EMPTY_NODE,
            "break_statement": self._lower_break,
            "continue_statement": self._lower_continue,
            "try_statement": self._lower_try,
            "switch_statement": self._lower_switch_statement,
            "labeled_statement": self._lower_labeled_statement,
        }

    # ── declarations ─────────────────────────────────────────────

    def _lower_var_declaration(self, node) -> Node:
        """Lower lexical_declaration / variable_declaration."""
        decl_kind = node.children[0].type
        declarators = []
        for child in node.children:
            if child.type != "variable_declarator":
                continue
            name_node = child.child_by_field_name("name")
            if name_node.type != "identifier":
                self._unsupported(name_node, "destructuring declaration")
            value_node = child.child_by_field_name("value")
            declarators.append(
                self._make(
                    NodeKind.DECLARATOR,
                    value=self._node_text(name_node),
                    children=[self._lower_expr(value_node)] if value_node else [],
                    node=child,
                )
            )
        return self._make(
            NodeKind.DECLARATION, value=decl_kind, children=declarators, node=node
        )

    # ── literals ─────────────────────────────────────────────────

    def _lower_number(self, node) -> Node:
        return self._make(
            NodeKind.LITERAL, value=parse_number(self._node_text(node)), node=node
        )

    def _lower_keyword_literal(self, node) -> Node:
        value = {"true": True, "false": False, "null": None}[node.type]
        return self._make(NodeKind.LITERAL, value=value, node=node)

    def _lower_string(self, node) -> Node:
        return self._make(NodeKind.LITERAL, value=self._string_value(node), node=node)

    def _string_value(self, node) -> str:
        parts = []
        for child in node.children:
            if child.type == "string_fragment":
                parts.append(self._node_text(child))
            elif child.type == "escape_sequence":
                parts.append(decode_escape(self._node_text(child)))
        return "".join(parts)

    def _lower_template_string(self, node) -> Node:
        """Lower `a${b}c` into TEMPLATE [literal, expr, literal]."""
        parts: list[Node] = []
        cursor = node.start_byte + 1
        for child in node.children:
            if child.type not in ("template_substitution", "escape_sequence"):
                continue
            if child.start_byte > cursor:
                parts.append(self._template_chunk(cursor, child.start_byte, child))
            if child.type == "escape_sequence":
                parts.append(
                    self._make(
                        NodeKind.LITERAL,
                        value=decode_escape(self._node_text(child)),
                        node=child,
                    )
                )
            else:
                parts.append(self._lower_expr(self._named(child)[0]))
            cursor = child.end_byte
        if node.end_byte - 1 > cursor:
            parts.append(self._template_chunk(cursor, node.end_byte - 1, node))
        return self._make(NodeKind.TEMPLATE, children=parts, node=node)

    def _template_chunk(self, start: int, end: int, near) -> Node:
        return self._make(
            NodeKind.LITERAL,
            value=self._source[start:end].decode("utf-8"),
            node=near,
        )

    def _lower_js_object_literal(self, node) -> Node:
        properties = []
        for child in self._named(node):
            if child.type == "pair":
                key_node = child.child_by_field_name("key")
                value = self._lower_expr(child.child_by_field_name("value"))
            elif child.type == "shorthand_property_identifier":
                key_node = child
                value = self._lower_identifier(child)
            elif child.type == "method_definition":
                key_node = child.child_by_field_name("name")
                value = self._lower_function_expression(child)
            else:
                self._unsupported(child, f"object member {child.type}")
            properties.append(
                self._make(
                    NodeKind.PROPERTY,
                    value=self._property_key(key_node),
                    children=[value],
                    node=child,
                )
            )
        return self._make(NodeKind.OBJECT, children=properties, node=node)

    def _property_key(self, key_node) -> str:
        if key_node.type == "string":
            return self._string_value(key_node)
        if key_node.type == "number":
            return str(parse_number(self._node_text(key_node)))
        if key_node.type == "computed_property_name":
            self._unsupported(key_node, "computed property name")
        return self._node_text(key_node)

    def _lower_new_expression(self, node) -> Node:
        ctor_node = node.child_by_field_name("constructor")
        args_node = node.child_by_field_name("arguments")
        return self._make(
            NodeKind.NEW,
            children=[self._lower_expr(ctor_node)] + self._extract_call_args(args_node),
            node=node,
        )

    # ── functions ────────────────────────────────────────────────

    def _lower_function_def(self, node) -> Node:
        return self._lower_function_common(node, NodeKind.FUNCTION)

    def _lower_function_expression(self, node) -> Node:
        return self._lower_function_common(node, NodeKind.FUNCTION_EXPR)

    def _lower_function_common(self, node, kind: NodeKind) -> Node:
        name_node = node.child_by_field_name(self.FUNC_NAME_FIELD)
        body_node = node.child_by_field_name(self.FUNC_BODY_FIELD)
        name = self._node_text(name_node) if name_node else constants.ANONYMOUS_FUNCTION_NAME

        if body_node.type == "statement_block":
            body = self._lower_block(body_node)
        else:
            # Arrow function with an expression body
            body = self._lower_expr(body_node)

        return self._make(
            kind,
            value=name,
            params=self._lower_params(node),
            children=[body],
            is_async=self._has_token(node, "async"),
            is_generator=self._has_token(node, "*"),
            node=node,
        )

    def _lower_params(self, func_node) -> list[Node]:
        single = func_node.child_by_field_name("parameter")
        if single is not None:
            return [self._lower_param(single)]
        params_node = func_node.child_by_field_name(self.FUNC_PARAMS_FIELD)
        if params_node is None:
            return []
        return [self._lower_param(p) for p in self._named(params_node)]

    def _lower_param(self, child) -> Node:
        if child.type == "identifier":
            return self._make(NodeKind.PARAM, value=self._node_text(child), node=child)
        if child.type == "assignment_pattern":
            left = child.child_by_field_name("left")
            right = child.child_by_field_name("right")
            if left.type != "identifier":
                self._unsupported(left, "destructuring parameter")
            return self._make(
                NodeKind.PARAM,
                value=self._node_text(left),
                children=[self._lower_expr(right)],
                node=child,
            )
        self._unsupported(child, f"parameter {child.type}")

    # ── loops ────────────────────────────────────────────────────

    def _lower_for_of(self, node) -> Node:
        """Lower for (let x of iterable) body; for...in is not supported."""
        operator = node.child_by_field_name("operator")
        if operator is None or self._node_text(operator) != "of":
            self._unsupported(node, "for...in loop")
        if self._has_token(node, "await"):
            self._unsupported(node, "for await...of loop")
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        body = node.child_by_field_name("body")
        return self._make(
            NodeKind.FOR_OF,
            value=self._loop_variable(left),
            children=[self._lower_expr(right), self._lower_stmt(body)],
            node=node,
        )

    def _loop_variable(self, left) -> str:
        if left.type == "identifier":
            return self._node_text(left)
        if left.type in _DECLARATION_TYPES:
            for child in left.children:
                if child.type == "variable_declarator":
                    return self._loop_variable(child.child_by_field_name("name"))
        self._unsupported(left, "destructuring loop variable")

    # ── switch ───────────────────────────────────────────────────

    def _lower_switch_statement(self, node) -> Node:
        value_node = node.child_by_field_name("value")
        body_node = node.child_by_field_name("body")
        clauses = []
        for case in self._named(body_node):
            statements = [
                self._lower_stmt(s)
                for s in case.children_by_field_name("body")
                if s.type not in self.COMMENT_TYPES
            ]
            statements = [s for s in statements if s.kind != NodeKind.EMPTY]
            if case.type == "switch_default":
                clauses.append(self._make(NodeKind.DEFAULT, children=statements, node=case))
            else:
                test = self._lower_expr(case.child_by_field_name("value"))
                clauses.append(
                    self._make(NodeKind.CASE, children=[test] + statements, node=case)
                )
        return self._make(
            NodeKind.SWITCH,
            children=[self._lower_expr(value_node)] + clauses,
            node=node,
        )

    # ── try / catch / finally ────────────────────────────────────

    def _lower_try(self, node) -> Node:
        body_node = node.child_by_field_name("body")
        handler = node.child_by_field_name("handler")
        finalizer = node.child_by_field_name("finalizer")

        catch = EMPTY_NODE
        if handler is not None:
            param = handler.child_by_field_name("parameter")
            if param is not None and param.type != "identifier":
                self._unsupported(param, "destructuring catch parameter")
            catch = self._make(
                NodeKind.CATCH,
                value=self._node_text(param) if param else None,
                children=[self._lower_block(handler.child_by_field_name("body"))],
                node=handler,
            )
        final = EMPTY_NODE
        if finalizer is not None:
            final = self._lower_block(finalizer.child_by_field_name("body"))

        return self._make(
            NodeKind.TRY,
            children=[self._lower_block(body_node), catch, final],
            node=node,
        )
