"""Orchestrator — run() entry point."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from .builtins import error_to_value, is_script_error
from .frontend import get_frontend
from .ir import Node
from .parser import Parser, TreeSitterParserFactory
from .run_types import PipelineStats, RunConfig
from .trace_types import ExecutionTrace
from .validation import validate_program
from .vm import Interpreter, recursion_headroom

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Everything observable about one program run."""

    output: list[str] = field(default_factory=list)
    bindings: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None
    unhandled_rejections: list[BaseException] = field(default_factory=list)
    trace: ExecutionTrace = field(default_factory=ExecutionTrace)
    stats: PipelineStats = field(default_factory=PipelineStats)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_value(self) -> Any:
        """The uncaught failure as the script would have seen it, or None."""
        if self.error is None:
            return None
        return error_to_value(self.error)


def lower(source: str, language: str, stats: PipelineStats | None = None) -> Node:
    """Parse → lower; raises FrontendError, or ValueError for an unknown language."""
    stats = stats or PipelineStats()
    frontend = get_frontend(language)
    t0 = time.perf_counter()
    tree = Parser(TreeSitterParserFactory()).parse(source, language)
    t1 = time.perf_counter()
    stats.parse_time = t1 - t0

    program = frontend.lower(tree, source.encode("utf-8"))
    stats.lower_time = time.perf_counter() - t1
    stats.node_count = sum(1 for _ in program.walk())
    logger.info(
        "Frontend produced %d IR nodes in %.1fms",
        stats.node_count,
        (stats.parse_time + stats.lower_time) * 1000,
    )
    return program


def lower_and_validate(
    source: str, config: RunConfig, stats: PipelineStats | None = None
) -> Node:
    """Parse → lower → validate; raises FrontendError / StaticSemanticsError."""
    stats = stats or PipelineStats()
    program = lower(source, config.language, stats)

    t0 = time.perf_counter()
    defers = validate_program(program, config.allow_top_level_await)
    stats.validate_time = time.perf_counter() - t0
    stats.defer_count = len(defers)
    return program


async def run_async(source: str, config: RunConfig = RunConfig()) -> RunResult:
    """End-to-end inside a running event loop: parse → lower → validate → execute."""
    pipeline_start = time.perf_counter()
    stats = PipelineStats(
        source_bytes=len(source.encode("utf-8")),
        source_lines=source.count("\n")
        + (1 if source and not source.endswith("\n") else 0),
        language=config.language,
    )
    program = lower_and_validate(source, config, stats)

    if config.verbose:
        print("═══ IR ═══")
        print(program.dump())
        print()

    interpreter = Interpreter(config)
    exec_start = time.perf_counter()
    error: BaseException | None = None
    with recursion_headroom(config.max_call_depth):
        try:
            await interpreter.execute(program)
        except Exception as exc:
            if not is_script_error(exc):
                raise
            error = exc
            logger.info("Program ended with uncaught %s", exc)

        if config.settle_background_tasks:
            await interpreter.settle_background()
    rejections = interpreter.unhandled_rejections()
    stats.execution_time = time.perf_counter() - exec_start

    exec_stats = interpreter.stats
    stats.statements = exec_stats.statements
    stats.drains = exec_stats.drains
    stats.actions_executed = exec_stats.actions_executed
    stats.action_failures = exec_stats.action_failures
    stats.total_time = time.perf_counter() - pipeline_start
    logger.info(
        "Executed %d statements, %d drains (%d actions, %d failed) in %.1fms",
        stats.statements,
        stats.drains,
        stats.actions_executed,
        stats.action_failures,
        stats.execution_time * 1000,
    )

    if config.verbose:
        print()
        print(stats.report())

    module_env = interpreter.module_env
    return RunResult(
        output=interpreter.output,
        bindings=dict(module_env.bindings) if module_env is not None else {},
        error=error,
        unhandled_rejections=rejections,
        trace=ExecutionTrace(drains=interpreter.drains, stats=exec_stats),
        stats=stats,
    )


def run(source: str, config: RunConfig = RunConfig()) -> RunResult:
    """End-to-end: parse → lower → validate → execute in a fresh event loop."""
    return asyncio.run(run_async(source, config))
