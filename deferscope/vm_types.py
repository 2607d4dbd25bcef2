"""Evaluator — data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from .ir import Node

# ── Data types ───────────────────────────────────────────────────


class _Undefined:
    """The script-visible ``undefined`` value."""

    _instance: _Undefined | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


@dataclass(eq=False)
class JSObject:
    properties: dict[str, Any] = field(default_factory=dict)
    class_name: str = "Object"


@dataclass(eq=False)
class JSFunction:
    name: str
    params: list[Node]
    body: Node
    env: Environment
    is_async: bool = False
    is_generator: bool = False

    def __repr__(self) -> str:
        return f"<function {self.name}>"


@dataclass(eq=False)
class NativeFunction:
    name: str
    impl: Callable[..., Any]
    is_constructor: bool = False

    def __repr__(self) -> str:
        return f"<native {self.name}>"


@dataclass(eq=False)
class Environment:
    """Lexical environment; closures capture it by reference."""

    parent: Environment | None = None
    activation: Any = None
    bindings: dict[str, Any] = field(default_factory=dict)
    constants: set[str] = field(default_factory=set)
    is_function_scope: bool = False

    def __post_init__(self):
        if self.activation is None and self.parent is not None:
            self.activation = self.parent.activation

    def child(self) -> Environment:
        return Environment(parent=self)

    def resolve(self, name: str) -> Environment | None:
        env: Environment | None = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env.parent
        return None

    def function_scope(self) -> Environment:
        env = self
        while not env.is_function_scope and env.parent is not None:
            env = env.parent
        return env


@dataclass
class Activation:
    """One running function body (or the module) and its frame registry."""

    name: str
    registry: Any
    dispatcher: Any
    is_async_context: bool = False
    is_generator: bool = False
    depth: int = 0


# ── Suspension requests yielded to the driver ────────────────────


@dataclass(frozen=True)
class AwaitRequest:
    value: Any


@dataclass(frozen=True)
class YieldRequest:
    value: Any


# ── Script-level failures ────────────────────────────────────────


def describe_value(value: Any) -> str:
    if isinstance(value, JSObject) and "message" in value.properties:
        name = value.properties.get("name", value.class_name)
        return f"{name}: {value.properties['message']}"
    if isinstance(value, str):
        return value
    return repr(value)


class JSThrow(Exception):
    """A script value raised by ``throw``."""

    def __init__(self, value: Any):
        super().__init__(describe_value(value))
        self.value = value


class JSRuntimeError(Exception):
    """TypeError / ReferenceError / RangeError raised by the evaluator itself."""

    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message


class ForcedReturn(BaseException):
    """Thrown into a suspended generator by ``generator.return(value)``."""

    def __init__(self, value: Any):
        super().__init__(value)
        self.value = value
