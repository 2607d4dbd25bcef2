"""Frontend / AST-to-IR Lowering."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .ir import Node


class Frontend(ABC):
    @abstractmethod
    def lower(self, tree, source: bytes) -> Node: ...


def get_frontend(language: str) -> Frontend:
    """Factory: return the deterministic tree-sitter frontend for *language*."""
    from .frontends import get_deterministic_frontend

    return get_deterministic_frontend(language)
