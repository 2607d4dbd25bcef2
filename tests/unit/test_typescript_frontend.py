"""Tests for TypeScriptFrontend — type syntax is dropped, runtime shape kept."""

from __future__ import annotations

from tree_sitter_language_pack import get_parser

from deferscope.frontends.typescript import TypeScriptFrontend
from deferscope.ir import Node, NodeKind


def _parse_ts(source: str) -> Node:
    parser = get_parser("typescript")
    tree = parser.parse(source.encode("utf-8"))
    frontend = TypeScriptFrontend()
    return frontend.lower(tree, source.encode("utf-8"))


def _find_all(program: Node, kind: NodeKind) -> list[Node]:
    return [node for node in program.walk() if node.kind == kind]


class TestTypeScriptParameters:
    def test_typed_parameters(self):
        func = _parse_ts("function add(a: number, b: number = 1): number { return a + b; }").children[0]
        assert func.kind == NodeKind.FUNCTION
        assert [p.value for p in func.params] == ["a", "b"]
        assert func.params[0].children == []
        assert func.params[1].children[0].value == 1

    def test_optional_parameter(self):
        func = _parse_ts("function f(x?: string) {}").children[0]
        assert [p.value for p in func.params] == ["x"]

    def test_typed_arrow_function(self):
        decl = _parse_ts("const f = async (x: number): Promise<void> => { await g(x); };").children[0]
        expr = decl.children[0].children[0]
        assert expr.kind == NodeKind.FUNCTION_EXPR
        assert expr.is_async
        assert [p.value for p in expr.params] == ["x"]


class TestTypeScriptTypeSyntax:
    def test_type_only_declarations_vanish(self):
        program = _parse_ts(
            """
            interface Closeable { close(): void; }
            type Handler = () => void;
            log('kept');
            """
        )
        assert [node.kind for node in program.children] == [
            NodeKind.EXPRESSION_STATEMENT
        ]

    def test_as_and_non_null_expressions_unwrap(self):
        program = _parse_ts("const a = x as number; const b = y!;")
        inits = [decl.children[0].children[0] for decl in program.children]
        assert [(n.kind, n.value) for n in inits] == [
            (NodeKind.IDENTIFIER, "x"),
            (NodeKind.IDENTIFIER, "y"),
        ]

    def test_annotated_declaration(self):
        decl = _parse_ts("let count: number = 0;").children[0]
        assert decl.kind == NodeKind.DECLARATION
        assert decl.children[0].value == "count"
        assert decl.children[0].children[0].value == 0


class TestTypeScriptDefer:
    def test_defer_in_typed_function(self):
        program = _parse_ts(
            """
            async function main(path: string): Promise<void> {
              const handle = open(path);
              deferAwait: await handle.close();
              defer: log('sync');
            }
            """
        )
        defers = _find_all(program, NodeKind.DEFER)
        assert [d.is_async for d in defers] == [True, False]
