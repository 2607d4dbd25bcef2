"""deferscope — scope-exit deferred actions for a JavaScript/TypeScript subset."""

from .run import run, run_async, RunResult  # noqa: F401
from .api import lower_source, dump_ir, validate_source  # noqa: F401
from .scope import DeferScope, deferrable  # noqa: F401
from .failures import SuppressedError  # noqa: F401
from .errors import (  # noqa: F401
    DeferscopeError,
    EngineError,
    EvaluatorError,
    FrontendError,
    StaticSemanticsError,
)
from .run_types import RunConfig  # noqa: F401
