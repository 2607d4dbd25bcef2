"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

# Statement labels that spell the deferred-action construct in source.
DEFER_LABEL = "defer"
DEFER_AWAIT_LABEL = "deferAwait"

MAIN_FRAME_NAME = "<main>"
ANONYMOUS_FUNCTION_NAME = "<anonymous>"

DEFAULT_LANGUAGE = "javascript"

SUPPORTED_DETERMINISTIC_LANGUAGES: tuple[str, ...] = (
    "javascript",
    "typescript",
)

DEFAULT_MAX_CALL_DEPTH = 200

# Python frames a single script call may occupy on the evaluator's stack.
PYTHON_FRAMES_PER_CALL = 40
# Ceiling for sys.setrecursionlimit while a program runs.
MAX_RECURSION_LIMIT = 10_000

SUPPRESSED_ERROR_MESSAGE = (
    "A deferred action failed while another failure was pending"
)

# Script-visible error constructor names.
ERROR_NAME = "Error"
TYPE_ERROR_NAME = "TypeError"
RANGE_ERROR_NAME = "RangeError"
REFERENCE_ERROR_NAME = "ReferenceError"
SUPPRESSED_ERROR_NAME = "SuppressedError"
