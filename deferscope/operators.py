"""Script value conversions and operator evaluation."""

from __future__ import annotations

import asyncio
import math
from typing import Any

from . import constants
from .vm_types import (
    UNDEFINED,
    JSFunction,
    JSObject,
    JSRuntimeError,
    NativeFunction,
)

ERROR_CLASS_SUFFIX = "Error"


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_error_object(value: Any) -> bool:
    return isinstance(value, JSObject) and value.class_name.endswith(ERROR_CLASS_SUFFIX)


def normalize(value: float | int) -> float | int:
    """Collapse integral floats to ints so ``6 / 2`` prints as ``3``."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_number(value: int | float) -> str:
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, list):
        return ",".join(
            "" if item is None or item is UNDEFINED else to_string(item) for item in value
        )
    if is_error_object(value):
        name = to_string(value.properties.get("name", value.class_name))
        message = to_string(value.properties.get("message", ""))
        return f"{name}: {message}" if message else name
    if isinstance(value, JSObject):
        return "[object Object]"
    if isinstance(value, (JSFunction, NativeFunction)):
        return f"function {value.name}() {{ [code] }}"
    if isinstance(value, asyncio.Future):
        return "[object Promise]"
    tag = getattr(value, "js_tag", None)
    if tag:
        return f"[object {tag}]"
    return str(value)


def to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        return value
    if value is None:
        return 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text, 0) if text[:2].lower() in ("0x", "0o", "0b") else normalize(float(text))
        except ValueError:
            return math.nan
    if isinstance(value, list) and not value:
        return 0
    return math.nan


def truthy(value: Any) -> bool:
    if value is UNDEFINED or value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return len(value) > 0
    return True


def typeof(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (JSFunction, NativeFunction)):
        return "function"
    return "object"


def to_int32(value: Any) -> int:
    number = to_number(value)
    if math.isnan(number) or math.isinf(number):
        return 0
    result = int(number) & 0xFFFFFFFF
    return result - 0x100000000 if result >= 0x80000000 else result


def to_uint32(value: Any) -> int:
    return to_int32(value) & 0xFFFFFFFF


def strict_equals(a: Any, b: Any) -> bool:
    if is_number(a) and is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    if isinstance(a, (str, bool)):
        return a == b
    return a is b


def loose_equals(a: Any, b: Any) -> bool:
    nullish = (None, UNDEFINED)
    if a in nullish or b in nullish:
        return a in nullish and b in nullish
    if isinstance(a, bool) or isinstance(b, bool):
        return loose_equals(to_number(a), to_number(b))
    if is_number(a) and isinstance(b, str) or isinstance(a, str) and is_number(b):
        return to_number(a) == to_number(b)
    return strict_equals(a, b)


def _is_stringy(value: Any) -> bool:
    return isinstance(value, (str, list, JSObject))


def _add(a: Any, b: Any) -> Any:
    if _is_stringy(a) or _is_stringy(b):
        return to_string(a) + to_string(b)
    return normalize(to_number(a) + to_number(b))


def _divide(a: Any, b: Any) -> Any:
    x, y = to_number(a), to_number(b)
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1, y)
    return normalize(x / y)


def _modulo(a: Any, b: Any) -> Any:
    x, y = to_number(a), to_number(b)
    if y == 0 or math.isinf(x) or math.isnan(x) or math.isnan(y):
        return math.nan
    return normalize(math.fmod(x, y))


def _power(a: Any, b: Any) -> Any:
    try:
        result = to_number(a) ** to_number(b)
    except OverflowError:
        return math.inf
    except ZeroDivisionError:
        return math.inf
    if isinstance(result, complex):
        return math.nan
    return normalize(result)


def _compare(op):
    def compare(a: Any, b: Any) -> bool:
        if isinstance(a, str) and isinstance(b, str):
            return op(a, b)
        x, y = to_number(a), to_number(b)
        if math.isnan(x) or math.isnan(y):
            return False
        return op(x, y)

    return compare


def _has_property(key: Any, container: Any) -> bool:
    if isinstance(container, JSObject):
        return to_string(key) in container.properties
    if isinstance(container, list):
        index = to_number(key)
        return key == "length" or (isinstance(index, int) and 0 <= index < len(container))
    raise JSRuntimeError(
        constants.TYPE_ERROR_NAME,
        f"Cannot use 'in' operator to search for '{to_string(key)}' in {to_string(container)}",
    )


def _instance_of(value: Any, ctor: Any) -> bool:
    if not isinstance(ctor, (JSFunction, NativeFunction)):
        raise JSRuntimeError(
            constants.TYPE_ERROR_NAME, "Right-hand side of 'instanceof' is not callable"
        )
    if not isinstance(value, JSObject):
        return False
    if ctor.name == constants.ERROR_NAME:
        return is_error_object(value)
    return value.class_name == ctor.name


class Operators:
    """Binary and unary operator evaluation with script semantics."""

    BINOP_TABLE: dict[str, Any] = {
        "+": _add,
        "-": lambda a, b: normalize(to_number(a) - to_number(b)),
        "*": lambda a, b: normalize(to_number(a) * to_number(b)),
        "/": _divide,
        "%": _modulo,
        "**": _power,
        "==": loose_equals,
        "!=": lambda a, b: not loose_equals(a, b),
        "===": strict_equals,
        "!==": lambda a, b: not strict_equals(a, b),
        "<": _compare(lambda x, y: x < y),
        ">": _compare(lambda x, y: x > y),
        "<=": _compare(lambda x, y: x <= y),
        ">=": _compare(lambda x, y: x >= y),
        "&": lambda a, b: to_int32(to_int32(a) & to_int32(b)),
        "|": lambda a, b: to_int32(to_int32(a) | to_int32(b)),
        "^": lambda a, b: to_int32(to_int32(a) ^ to_int32(b)),
        "<<": lambda a, b: to_int32(to_int32(a) << (to_uint32(b) & 31)),
        ">>": lambda a, b: to_int32(a) >> (to_uint32(b) & 31),
        ">>>": lambda a, b: to_uint32(a) >> (to_uint32(b) & 31),
        "in": _has_property,
        "instanceof": _instance_of,
    }

    UNOP_TABLE: dict[str, Any] = {
        "!": lambda v: not truthy(v),
        "-": lambda v: normalize(-to_number(v)),
        "+": to_number,
        "~": lambda v: ~to_int32(v),
        "typeof": typeof,
        "void": lambda v: UNDEFINED,
    }

    @classmethod
    def eval_binop(cls, op: str, lhs: Any, rhs: Any) -> Any:
        fn = cls.BINOP_TABLE.get(op)
        if fn is None:
            raise JSRuntimeError(constants.TYPE_ERROR_NAME, f"Unsupported operator {op}")
        return fn(lhs, rhs)

    @classmethod
    def eval_unop(cls, op: str, operand: Any) -> Any:
        fn = cls.UNOP_TABLE.get(op)
        if fn is None:
            raise JSRuntimeError(constants.TYPE_ERROR_NAME, f"Unsupported operator {op}")
        return fn(operand)
