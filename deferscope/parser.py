"""Tree-Sitter Parsing Layer."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .errors import FrontendError
from .ir import SourceLocation

logger = logging.getLogger(__name__)


class ParserFactory(ABC):
    """Abstract factory for obtaining a language parser."""

    @abstractmethod
    def get_parser(self, language: str): ...


class TreeSitterParserFactory(ParserFactory):
    """Concrete factory that delegates to tree-sitter-language-pack."""

    def get_parser(self, language: str):
        import tree_sitter_language_pack as tslp

        return tslp.get_parser(language)


class Parser:
    """Thin wrapper around a parser factory that rejects malformed source."""

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str, language: str):
        parser = self._factory.get_parser(language)
        tree = parser.parse(source.encode("utf-8"))
        if tree.root_node.has_error:
            bad = _first_error_node(tree.root_node)
            location = _location_of(bad) if bad is not None else None
            logger.info("Syntax error in %s source at %s", language, location)
            if location is None:
                raise FrontendError(f"Syntax error in {language} source")
            raise FrontendError(f"Syntax error in {language} source", location)
        return tree


def _first_error_node(node):
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error_node(child)
            if found is not None:
                return found
    return None


def _location_of(node) -> SourceLocation:
    s, e = node.start_point, node.end_point
    return SourceLocation(start_line=s[0] + 1, start_col=s[1], end_line=e[0] + 1, end_col=e[1])
