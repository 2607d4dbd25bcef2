"""TypeScriptFrontend — tree-sitter TypeScript AST → IR lowering."""

from __future__ import annotations

from .javascript import JavaScriptFrontend
from ..ir import EMPTY_NODE, Node, NodeKind


class TypeScriptFrontend(JavaScriptFrontend):
    """Lowers TypeScript AST to IR. Extends JavaScriptFrontend, skipping type annotations."""

    def __init__(self):
        super().__init__()
        # Additional TS expression types
        self._EXPR_DISPATCH.update(
            {
                "as_expression": self._lower_type_wrapper,
                "non_null_expression": self._lower_type_wrapper,
                "satisfies_expression": self._lower_type_wrapper,
                "type_assertion": self._lower_type_assertion,
            }
        )
        # Type-only declarations carry no runtime behaviour
        self._STMT_DISPATCH.update(
            {
                "interface_declaration": lambda _: EMPTY_NODE,
                "type_alias_declaration": lambda _: EMPTY_NODE,
                "ambient_declaration": lambda _: EMPTY_NODE,
            }
        )

    def _lower_type_wrapper(self, node) -> Node:
        """`expr as T`, `expr!`, `expr satisfies T` evaluate to `expr`."""
        return self._lower_expr(self._named(node)[0])

    def _lower_type_assertion(self, node) -> Node:
        """`<T>expr` evaluates to `expr`."""
        return self._lower_expr(self._named(node)[-1])

    # ── TS: skip type annotations in params ──────────────────────

    def _lower_param(self, child) -> Node:
        if child.type not in ("required_parameter", "optional_parameter"):
            return super()._lower_param(child)
        pname_node = child.child_by_field_name("pattern")
        if pname_node is None:
            pname_node = next((c for c in child.children if c.type == "identifier"), None)
        if pname_node is None or pname_node.type != "identifier":
            self._unsupported(child, "destructuring parameter")
        default = child.child_by_field_name("value")
        return self._make(
            NodeKind.PARAM,
            value=self._node_text(pname_node),
            children=[self._lower_expr(default)] if default else [],
            node=child,
        )
