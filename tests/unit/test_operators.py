"""Tests for script value conversions and operator evaluation."""

from __future__ import annotations

import math

import pytest

from deferscope.operators import Operators, loose_equals, to_number, to_string, truthy, typeof
from deferscope.vm_types import UNDEFINED, JSObject, JSRuntimeError


class TestConversions:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (UNDEFINED, "undefined"),
            (None, "null"),
            (True, "true"),
            (3, "3"),
            (2.5, "2.5"),
            (6.0, "6"),
            (math.nan, "NaN"),
            ([1, None, "a"], "1,,a"),
            (JSObject(), "[object Object]"),
        ],
    )
    def test_to_string(self, value, expected):
        assert to_string(value) == expected

    def test_error_objects_print_name_and_message(self):
        error = JSObject(properties={"name": "TypeError", "message": "bad"}, class_name="TypeError")
        assert to_string(error) == "TypeError: bad"

    def test_to_number(self):
        assert to_number(" 12 ") == 12
        assert to_number("") == 0
        assert math.isnan(to_number("abc"))
        assert to_number(True) == 1

    def test_truthiness(self):
        assert not truthy(0)
        assert not truthy("")
        assert not truthy(UNDEFINED)
        assert truthy([])
        assert truthy(JSObject())

    def test_typeof(self):
        assert typeof(None) == "object"
        assert typeof(UNDEFINED) == "undefined"
        assert typeof("s") == "string"


class TestOperators:
    def test_addition_concatenates_strings(self):
        assert Operators.eval_binop("+", "a", 1) == "a1"
        assert Operators.eval_binop("+", 1, 2) == 3

    def test_division_results(self):
        assert Operators.eval_binop("/", 6, 2) == 3
        assert Operators.eval_binop("/", 1, 0) == math.inf
        assert math.isnan(Operators.eval_binop("/", 0, 0))

    def test_strict_and_loose_equality(self):
        assert not Operators.eval_binop("===", 1, "1")
        assert Operators.eval_binop("==", 1, "1")
        assert loose_equals(None, UNDEFINED)
        assert not loose_equals(0, None)

    def test_bitwise(self):
        assert Operators.eval_binop("|", 5, 2) == 7
        assert Operators.eval_binop(">>>", -1, 28) == 15

    def test_unknown_operator(self):
        with pytest.raises(JSRuntimeError, match="Unsupported operator"):
            Operators.eval_binop("<=>", 1, 2)

    def test_unary(self):
        assert Operators.eval_unop("!", 0) is True
        assert Operators.eval_unop("-", 3) == -3
        assert Operators.eval_unop("typeof", 1) == "number"
