"""Exception taxonomy shared by the engine, the frontends and the evaluator."""

from __future__ import annotations

from .ir import NO_SOURCE_LOCATION, SourceLocation


class DeferscopeError(Exception):
    """Base class for every error this package raises on its own behalf."""


class StaticSemanticsError(DeferscopeError):
    """A deferred action is ill-formed; reported before any code runs."""

    def __init__(
        self, message: str, source_location: SourceLocation = NO_SOURCE_LOCATION
    ):
        self.message = message
        self.source_location = source_location
        if source_location.is_unknown():
            super().__init__(message)
        else:
            super().__init__(f"{message} (at {source_location})")


class EngineError(DeferscopeError):
    """The frame/drain contract was violated by the caller."""


class FrontendError(DeferscopeError):
    """Source could not be parsed or contains unsupported syntax."""

    def __init__(
        self, message: str, source_location: SourceLocation = NO_SOURCE_LOCATION
    ):
        self.source_location = source_location
        if source_location.is_unknown():
            super().__init__(message)
        else:
            super().__init__(f"{message} (at {source_location})")


class EvaluatorError(DeferscopeError):
    """The evaluator reached a state the validator should have ruled out."""
