"""Built-in function implementations for the evaluator."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from . import constants
from .failures import SuppressedError
from .operators import to_number, to_string
from .vm_types import (
    UNDEFINED,
    JSObject,
    JSRuntimeError,
    JSThrow,
    NativeFunction,
)

logger = logging.getLogger(__name__)


def make_error(name: str, message: str) -> JSObject:
    return JSObject(
        properties={"name": name, "message": message},
        class_name=name,
    )


def make_suppressed_error(error: Any, suppressed: Any, message: str) -> JSObject:
    return JSObject(
        properties={
            "name": constants.SUPPRESSED_ERROR_NAME,
            "message": message,
            "error": error,
            "suppressed": suppressed,
        },
        class_name=constants.SUPPRESSED_ERROR_NAME,
    )


def is_script_error(exc: BaseException) -> bool:
    """True for failures a script ``catch`` clause may observe."""
    return isinstance(exc, (JSThrow, JSRuntimeError, SuppressedError))


def error_to_value(exc: BaseException) -> Any:
    """The script value a ``catch`` clause binds for *exc*."""
    if isinstance(exc, JSThrow):
        return exc.value
    if isinstance(exc, SuppressedError):
        return make_suppressed_error(
            error_to_value(exc.error), error_to_value(exc.suppressed), exc.message
        )
    if isinstance(exc, JSRuntimeError):
        return make_error(exc.name, exc.message)
    return make_error(constants.ERROR_NAME, str(exc))


def _arg(args: list[Any], index: int) -> Any:
    return args[index] if index < len(args) else UNDEFINED


def _builtin_log(args: list[Any], interp) -> Any:
    line = " ".join(to_string(a) for a in args)
    interp.output.append(line)
    logger.debug("log: %s", line)
    return UNDEFINED


def _error_constructor(name: str):
    def construct(args: list[Any], interp) -> Any:
        message = _arg(args, 0)
        return make_error(name, "" if message is UNDEFINED else to_string(message))

    return construct


def _builtin_suppressed_error(args: list[Any], interp) -> Any:
    message = _arg(args, 2)
    return make_suppressed_error(
        _arg(args, 0),
        _arg(args, 1),
        "" if message is UNDEFINED else to_string(message),
    )


def _builtin_tick(args: list[Any], interp) -> Any:
    return interp.spawn(asyncio.sleep(0))


def _builtin_sleep(args: list[Any], interp) -> Any:
    ms = to_number(_arg(args, 0)) if args else 0
    return interp.spawn(asyncio.sleep(max(ms, 0) / 1000))


def _builtin_string(args: list[Any], interp) -> Any:
    return to_string(args[0]) if args else ""


# ── methods on built-in values ───────────────────────────────────


def _array_push(array: list) -> NativeFunction:
    def push(args: list[Any], interp) -> Any:
        array.extend(args)
        return len(array)

    return NativeFunction("push", push)


def _array_join(array: list) -> NativeFunction:
    def join(args: list[Any], interp) -> Any:
        sep = _arg(args, 0)
        sep = "," if sep is UNDEFINED else to_string(sep)
        return sep.join(
            "" if item is None or item is UNDEFINED else to_string(item) for item in array
        )

    return NativeFunction("join", join)


_ARRAY_METHODS = {
    "push": _array_push,
    "join": _array_join,
}


def array_member(array: list, name: str) -> Any:
    if name == "length":
        return len(array)
    factory = _ARRAY_METHODS.get(name)
    if factory is None:
        return UNDEFINED
    return factory(array)


def string_member(text: str, name: str) -> Any:
    if name == "length":
        return len(text)
    return UNDEFINED


class Builtins:
    """Table of built-in global function implementations."""

    TABLE: dict[str, Any] = {
        "log": _builtin_log,
        "tick": _builtin_tick,
        "sleep": _builtin_sleep,
        "String": _builtin_string,
    }

    CONSTRUCTORS: dict[str, Any] = {
        constants.ERROR_NAME: _error_constructor(constants.ERROR_NAME),
        constants.TYPE_ERROR_NAME: _error_constructor(constants.TYPE_ERROR_NAME),
        constants.RANGE_ERROR_NAME: _error_constructor(constants.RANGE_ERROR_NAME),
        constants.REFERENCE_ERROR_NAME: _error_constructor(constants.REFERENCE_ERROR_NAME),
        constants.SUPPRESSED_ERROR_NAME: _builtin_suppressed_error,
    }

    @classmethod
    def global_bindings(cls) -> dict[str, Any]:
        bindings: dict[str, Any] = {
            name: NativeFunction(name, impl) for name, impl in cls.TABLE.items()
        }
        bindings.update(
            {
                name: NativeFunction(name, impl, is_constructor=True)
                for name, impl in cls.CONSTRUCTORS.items()
            }
        )
        bindings["console"] = JSObject(
            properties={"log": bindings["log"]}, class_name="Console"
        )
        bindings["undefined"] = UNDEFINED
        bindings["NaN"] = float("nan")
        bindings["Infinity"] = float("inf")
        return bindings
