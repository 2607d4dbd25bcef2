"""Tests for JavaScriptFrontend — tree-sitter JavaScript AST to IR lowering."""

from __future__ import annotations

import pytest
from tree_sitter_language_pack import get_parser

from deferscope.errors import FrontendError
from deferscope.frontends.javascript import JavaScriptFrontend, decode_escape, parse_number
from deferscope.ir import Node, NodeKind


def _parse_js(source: str) -> Node:
    parser = get_parser("javascript")
    tree = parser.parse(source.encode("utf-8"))
    frontend = JavaScriptFrontend()
    return frontend.lower(tree, source.encode("utf-8"))


def _first(source: str) -> Node:
    return _parse_js(source).children[0]


def _find_all(program: Node, kind: NodeKind) -> list[Node]:
    return [node for node in program.walk() if node.kind == kind]


class TestJavaScriptSmoke:
    def test_empty_program(self):
        program = _parse_js("")
        assert program.kind == NodeKind.PROGRAM
        assert program.children == []

    def test_comments_are_dropped(self):
        program = _parse_js("// hello\n/* block */\nlog(1);")
        assert [node.kind for node in program.children] == [
            NodeKind.EXPRESSION_STATEMENT
        ]

    def test_source_locations_are_one_based_lines(self):
        stmt = _parse_js("\n\nlog(1);").children[0]
        assert stmt.source_location.start_line == 3


class TestDeferLowering:
    def test_defer_statement(self):
        node = _first("defer: log('x');")
        assert node.kind == NodeKind.DEFER
        assert not node.is_async
        assert node.children[0].kind == NodeKind.EXPRESSION_STATEMENT

    def test_defer_block(self):
        node = _first("defer: { log('1'); log('2'); }")
        assert node.kind == NodeKind.DEFER
        body = node.children[0]
        assert body.kind == NodeKind.BLOCK
        assert len(body.children) == 2

    def test_defer_await(self):
        func = _first("async function f() { deferAwait: await close(); }")
        assert func.kind == NodeKind.FUNCTION
        assert func.is_async
        defer = func.children[0].children[0]
        assert defer.kind == NodeKind.DEFER
        assert defer.is_async
        assert _find_all(defer, NodeKind.AWAIT)

    def test_other_labels_stay_labeled(self):
        node = _first("outer: for (;;) { break outer; }")
        assert node.kind == NodeKind.LABELED
        assert node.label == "outer"
        loop = node.children[0]
        assert loop.kind == NodeKind.FOR
        init, cond, update, _ = loop.children
        assert (init.kind, cond.kind, update.kind) == (
            NodeKind.EMPTY,
            NodeKind.EMPTY,
            NodeKind.EMPTY,
        )
        breaks = _find_all(loop, NodeKind.BREAK)
        assert breaks[0].label == "outer"


class TestJavaScriptStatements:
    def test_declarations_keep_their_kind(self):
        program = _parse_js("let a = 1; const b = 2, c = 3; var d;")
        decls = _find_all(program, NodeKind.DECLARATION)
        assert [d.value for d in decls] == ["let", "const", "var"]
        assert [d.value for d in decls[1].children] == ["b", "c"]
        assert decls[2].children[0].children == []

    def test_c_style_for(self):
        loop = _first("for (let i = 0; i < 3; i++) { log(i); }")
        init, cond, update, body = loop.children
        assert init.kind == NodeKind.DECLARATION
        assert cond.kind == NodeKind.BINARY
        assert cond.value == "<"
        assert update.kind == NodeKind.UPDATE
        assert body.kind == NodeKind.BLOCK

    def test_for_of(self):
        loop = _first("for (const v of items) log(v);")
        assert loop.kind == NodeKind.FOR_OF
        assert loop.value == "v"
        assert loop.children[0].value == "items"

    def test_for_in_is_unsupported(self):
        with pytest.raises(FrontendError, match="for...in"):
            _parse_js("for (const k in obj) {}")

    def test_switch_clauses(self):
        node = _first(
            """
            switch (x) {
              case 1: log('one');
              default: log('default');
              case 2: log('two'); break;
            }
            """
        )
        assert node.kind == NodeKind.SWITCH
        kinds = [clause.kind for clause in node.children[1:]]
        assert kinds == [NodeKind.CASE, NodeKind.DEFAULT, NodeKind.CASE]
        last = node.children[3]
        assert last.children[0].value == 2
        assert last.children[-1].kind == NodeKind.BREAK

    def test_try_catch_finally(self):
        node = _first("try { a(); } catch (e) { b(); } finally { c(); }")
        block, handler, finalizer = node.children
        assert block.kind == NodeKind.BLOCK
        assert handler.kind == NodeKind.CATCH
        assert handler.value == "e"
        assert finalizer.kind == NodeKind.BLOCK

    def test_try_without_catch(self):
        node = _first("try { a(); } finally { c(); }")
        assert node.children[1].kind == NodeKind.EMPTY

    def test_generator_declaration(self):
        func = _first("function* gen(a, b = 2) { yield a; }")
        assert func.kind == NodeKind.FUNCTION
        assert func.is_generator
        assert [p.value for p in func.params] == ["a", "b"]
        assert func.params[1].children[0].value == 2

    def test_do_while(self):
        node = _first("do { x++; } while (x < 3);")
        body, cond = node.children
        assert node.kind == NodeKind.DO_WHILE
        assert body.kind == NodeKind.BLOCK
        assert cond.kind == NodeKind.BINARY

    def test_class_is_unsupported(self):
        with pytest.raises(FrontendError, match="class_declaration"):
            _parse_js("class A {}")


class TestJavaScriptExpressions:
    def test_template_string(self):
        expr = _first("`a${x}b`;").children[0]
        assert expr.kind == NodeKind.TEMPLATE
        assert [(c.kind, c.value) for c in expr.children] == [
            (NodeKind.LITERAL, "a"),
            (NodeKind.IDENTIFIER, "x"),
            (NodeKind.LITERAL, "b"),
        ]

    def test_string_escapes(self):
        expr = _first("'a\\nb';").children[0]
        assert expr.value == "a\nb"

    def test_logical_operators(self):
        expr = _first("a ?? b;").children[0]
        assert expr.kind == NodeKind.LOGICAL
        assert expr.value == "??"

    def test_compound_assignment(self):
        expr = _first("x += 2;").children[0]
        assert expr.kind == NodeKind.ASSIGN
        assert expr.value == "+="

    def test_arrow_with_expression_body(self):
        expr = _first("const f = async x => x + 1;").children[0].children[0]
        assert expr.kind == NodeKind.FUNCTION_EXPR
        assert expr.is_async
        assert [p.value for p in expr.params] == ["x"]
        assert expr.children[0].kind == NodeKind.BINARY

    def test_object_literal(self):
        expr = _first("const o = { a: 1, b, 'c': 3 };").children[0].children[0]
        assert expr.kind == NodeKind.OBJECT
        assert [p.value for p in expr.children] == ["a", "b", "c"]

    def test_new_expression(self):
        expr = _first("new Error('boom');").children[0]
        assert expr.kind == NodeKind.NEW
        assert expr.children[0].value == "Error"
        assert expr.children[1].value == "boom"

    def test_update_prefix_flag(self):
        assert _first("++x;").children[0].prefix
        assert not _first("x++;").children[0].prefix

    def test_keyword_literals(self):
        values = [_first(src).children[0].value for src in ("true;", "false;", "null;")]
        assert values == [True, False, None]


class TestLiteralHelpers:
    @pytest.mark.parametrize(
        "text, expected",
        [("42", 42), ("1.5", 1.5), ("0x1f", 31), ("1_000", 1000), ("2e3", 2000)],
    )
    def test_parse_number(self, text, expected):
        assert parse_number(text) == expected

    @pytest.mark.parametrize(
        "text, expected",
        [("\\n", "\n"), ("\\t", "\t"), ("\\u0041", "A"), ("\\x41", "A"), ("\\'", "'")],
    )
    def test_decode_escape(self, text, expected):
        assert decode_escape(text) == expected
