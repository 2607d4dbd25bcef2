"""Tests for switch statements and their single SwitchBody frame."""

from __future__ import annotations

from deferscope.engine_types import FrameKind
from deferscope.exit_reasons import ExitKind
from deferscope.run import RunResult, run


def _run_program(source: str) -> RunResult:
    return run(source)


def _output(source: str) -> list[str]:
    result = _run_program(source)
    assert result.ok, result.error
    return result.output


class TestSwitchFallthrough:
    def test_defer_order_with_fallthrough_and_break(self):
        source = """\
function f(x) {
  switch (x) {
    case 1:
      defer: log('three');
      {
        defer: log('one');
      }
    default:
      log('default');
    case 2:
      defer: log('two');
      break;
    case 3:
      defer: log('last');
  }
}
f(1);
"""
        assert _output(source) == ["one", "default", "two", "three"]

    def test_switch_body_drains_before_following_statement(self):
        source = """\
switch ('b') {
  case 'a':
    log('a');
  case 'b':
    defer: log('cleanup b');
    log('b');
}
log('after switch');
"""
        assert _output(source) == ["b", "cleanup b", "after switch"]

    def test_no_match_without_default_registers_nothing(self):
        result = _run_program(
            """\
switch (5) {
  case 1:
    defer: log('never');
}
log('done');
"""
        )
        assert result.output == ["done"]
        assert result.trace.for_kind(FrameKind.SWITCH_BODY) == []

    def test_default_in_the_middle(self):
        source = """\
function pick(x) {
  switch (x) {
    case 1: log('one'); break;
    default: log('default');
    case 2: log('two'); break;
  }
}
pick(7);
pick(2);
"""
        assert _output(source) == ["default", "two", "two"]

    def test_strict_matching(self):
        source = """\
switch ('1') {
  case 1: log('number'); break;
  case '1': log('string'); break;
}
"""
        assert _output(source) == ["string"]


class TestSwitchExits:
    def test_break_drains_with_break_reason(self):
        result = _run_program(
            """\
switch (1) {
  case 1:
    defer: log('cleanup');
    break;
}
"""
        )
        records = result.trace.for_kind(FrameKind.SWITCH_BODY)
        assert len(records) == 1
        assert records[0].pending == ExitKind.BREAK

    def test_return_from_switch_drains_switch_then_function(self):
        source = """\
function f() {
  defer: log('function cleanup');
  switch (1) {
    case 1:
      defer: log('switch cleanup');
      return 'value';
  }
}
log(f());
"""
        assert _output(source) == ["switch cleanup", "function cleanup", "value"]

    def test_continue_passes_through_switch(self):
        source = """\
for (let i = 0; i < 2; i++) {
  switch (i) {
    case 0:
      defer: log('switch ' + i);
      continue;
  }
  log('after switch ' + i);
}
"""
        assert _output(source) == ["switch 0", "after switch 1"]

    def test_labeled_break_out_of_switch(self):
        source = """\
outer: for (let i = 0; i < 3; i++) {
  defer: log('iteration ' + i);
  switch (i) {
    case 1:
      defer: log('switch cleanup');
      break outer;
  }
}
log('done');
"""
        assert _output(source) == [
            "iteration 0",
            "switch cleanup",
            "iteration 1",
            "done",
        ]
