"""Composable API functions for the deferscope pipelines.

Each function corresponds to a CLI workflow (--ir-only, --check-only) but
is callable programmatically without argparse.
"""

from __future__ import annotations

import logging

from .ir import Node
from .run import lower
from .validation import validate_program
from . import constants

logger = logging.getLogger(__name__)


def lower_source(source: str, language: str = constants.DEFAULT_LANGUAGE) -> Node:
    """Parse and lower source code to the IR tree, without validation.

    Args:
        source: The source code text.
        language: Source language name ("javascript" or "typescript").

    Returns:
        The PROGRAM node.
    """
    logger.info("Lowering source (%s)", language)
    return lower(source, language)


def dump_ir(source: str, language: str = constants.DEFAULT_LANGUAGE) -> str:
    """Lower *source* and return the indented IR listing; does not validate."""
    return lower_source(source, language).dump()


def validate_source(
    source: str,
    language: str = constants.DEFAULT_LANGUAGE,
    allow_top_level_await: bool = True,
) -> list[Node]:
    """Lower *source* and run static validation.

    Returns the DEFER nodes found; raises ``StaticSemanticsError`` on the
    first ill-formed deferred action.
    """
    return validate_program(lower_source(source, language), allow_top_level_await)
