"""Run pipeline data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from . import constants


@dataclass(frozen=True)
class RunConfig:
    """Groups evaluator configuration."""

    language: str = constants.DEFAULT_LANGUAGE
    allow_top_level_await: bool = True
    settle_background_tasks: bool = True
    max_call_depth: int = constants.DEFAULT_MAX_CALL_DEPTH
    record_trace: bool = True
    verbose: bool = False


@dataclass
class ExecutionStats:
    """Returned execution metrics from the evaluator."""

    statements: int = 0
    activations: int = 0
    frames_entered: int = 0
    drains: int = 0
    actions_executed: int = 0
    action_failures: int = 0
    unhandled_rejections: int = 0


@dataclass
class PipelineStats:
    """Timing and size statistics for each pipeline stage."""

    source_bytes: int = 0
    source_lines: int = 0
    language: str = ""

    # Stage timings (seconds)
    parse_time: float = 0.0
    lower_time: float = 0.0
    validate_time: float = 0.0
    execution_time: float = 0.0
    total_time: float = 0.0

    # Output sizes
    node_count: int = 0
    defer_count: int = 0

    # Execution stats
    statements: int = 0
    drains: int = 0
    actions_executed: int = 0
    action_failures: int = 0

    def report(self) -> str:
        lines = [
            "═══ Pipeline Statistics ═══",
            f"  Source: {self.source_lines} lines, {self.source_bytes} bytes ({self.language})",
            "",
            f"  {'Stage':<20} {'Time':>10}  {'Output':>30}",
            f"  {'─' * 20} {'─' * 10}  {'─' * 30}",
        ]

        stages = [
            ("Parse", self.parse_time, ""),
            (
                "Lower (frontend)",
                self.lower_time,
                f"{self.node_count} IR nodes, {self.defer_count} defers",
            ),
            ("Validate", self.validate_time, ""),
            (
                "Execute",
                self.execution_time,
                f"{self.statements} statements, {self.drains} drains",
            ),
        ]
        for name, t, output in stages:
            time_str = f"{t * 1000:>8.1f}ms"
            lines.append(f"  {name:<20} {time_str:>10}  {output:>30}")

        lines.append(f"  {'─' * 20} {'─' * 10}  {'─' * 30}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        lines.append("")
        lines.append(
            f"  Deferred actions: {self.actions_executed} executed,"
            f" {self.action_failures} failed"
        )
        return "\n".join(lines)
