"""Tests for closures and deferred actions that capture enclosing scope."""

from __future__ import annotations

import sys

from deferscope import constants
from deferscope.run import run
from deferscope.run_types import RunConfig


def _output(source: str, config: RunConfig = RunConfig()) -> list[str]:
    result = run(source, config)
    assert result.ok, result.error
    return result.output


class TestClosures:
    def test_make_adder(self):
        source = """\
function makeAdder(x) {
  return (y) => x + y;
}
const add5 = makeAdder(5);
log(add5(3));
"""
        assert _output(source) == ["8"]

    def test_let_loop_captures_per_iteration(self):
        source = """\
const fns = [];
for (let i = 0; i < 3; i++) {
  fns.push(() => i);
}
log(fns[0](), fns[1](), fns[2]());
"""
        assert _output(source) == ["0 1 2"]

    def test_closure_with_its_own_defer(self):
        source = """\
function make() {
  let n = 0;
  return () => {
    defer: log('after ' + n);
    n++;
    return n;
  };
}
const inc = make();
log(inc());
log(inc());
"""
        assert _output(source) == ["after 1", "1", "after 2", "2"]

    def test_default_parameters(self):
        source = """\
function greet(name, greeting = 'hello') {
  return `${greeting}, ${name}`;
}
log(greet('a'));
log(greet('b', 'hi'));
"""
        assert _output(source) == ["hello, a", "hi, b"]

    def test_hoisted_function_declaration(self):
        source = """\
log(double(4));
function double(x) { return x * 2; }
"""
        assert _output(source) == ["8"]

    def test_object_methods(self):
        source = """\
const counter = {
  count: 0,
  bump() { return 1; },
};
counter.count = counter.count + counter.bump();
log(counter.count);
"""
        assert _output(source) == ["1"]


class TestCallDepth:
    def test_runaway_recursion_is_a_range_error(self):
        source = """\
function r(n) { return r(n + 1); }
try { r(0); } catch (e) { log(e.name); }
"""
        assert _output(source) == ["RangeError"]

    def test_depth_limit_is_configurable(self):
        source = """\
function depth(n) { return n === 0 ? 'ok' : depth(n - 1); }
try { log(depth(5)); } catch (e) { log(e.name); }
"""
        assert _output(source, RunConfig(max_call_depth=3)) == ["RangeError"]
        assert _output(source, RunConfig(max_call_depth=10)) == ["ok"]

    def test_drains_run_while_unwinding_from_range_error(self):
        source = """\
let drained = 0;
function r(n) {
  defer: drained++;
  return r(n + 1);
}
try { r(0); } catch (e) { log(e.name); }
log(drained);
"""
        assert _output(source, RunConfig(max_call_depth=5)) == ["RangeError", "5"]

    def test_recursion_in_the_hundreds_fits_the_default_limit(self):
        source = """\
function sum(n) {
  if (n <= 0) { return 0; }
  return n + sum(n - 1);
}
log(sum(150));
"""
        assert _output(source) == ["11325"]

    def test_host_stack_exhaustion_is_a_range_error(self, monkeypatch):
        monkeypatch.setattr(
            constants, "MAX_RECURSION_LIMIT", sys.getrecursionlimit() + 600
        )
        source = """\
function r(n) { return r(n + 1); }
try { r(0); } catch (e) { log(e.name); }
log('after');
"""
        config = RunConfig(max_call_depth=100_000)
        assert _output(source, config) == ["RangeError", "after"]

    def test_recursion_limit_is_restored_after_run(self):
        before = sys.getrecursionlimit()
        _output("function f(n) { return n; }\nlog(f(1));\n")
        assert sys.getrecursionlimit() == before
