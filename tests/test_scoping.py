from __future__ import annotations

from textwrap import dedent

import pytest

from tests.support.harness import (
    EvaluationError,
    PhpFatalError,
    execute,
    parse_source,
    plain,
    run_runtime_case,
)
from phpwalk.environment import GLOBAL_SCOPE, Environment
from phpwalk.types import Location, PhpNull, PhpNumber, PhpString

SCENARIOS = [
    pytest.param(
        "$a = 1; $b = &$a; $b = 2; $a;",
        ("int", 2),
        None,
        id="reference-write-through-alias",
    ),
    pytest.param(
        "$b = &$fresh; $b = 'v'; $fresh;",
        ("string", "v"),
        None,
        id="reference-creates-target",
    ),
    pytest.param(
        "$a = 1; $b = &$a; unset($a); $b;",
        ("int", 1),
        None,
        id="unset-keeps-aliased-cell",
    ),
    pytest.param(
        "$a = 1; unset($a); $a ?? 'gone';",
        ("string", "gone"),
        None,
        id="unset-removes-name",
    ),
    pytest.param(
        "$a = [1]; $b = &$a[0];",
        None,
        PhpFatalError,
        id="reference-to-array-element",
    ),
    pytest.param(
        '$s = "abc"; $r = &$s[0];',
        None,
        PhpFatalError,
        id="reference-to-string-offset",
    ),
    pytest.param(
        "$a = [&$x];",
        None,
        PhpFatalError,
        id="reference-inside-array-literal",
    ),
    pytest.param(
        dedent(
            """\
            $a = [1, 2];
            $b = &$a;
            $b[] = 3;
            $a;
            """
        ),
        ("array", {0: 1, 1: 2, 2: 3}),
        None,
        id="reference-shares-array",
    ),
    pytest.param(
        "global $g; $g = 3; $g;",
        ("int", 3),
        None,
        id="global-in-global-scope",
    ),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_scoping(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_bare_variable_statement_declares_null(evaluator) -> None:
    result = execute("$a;", evaluator)

    assert isinstance(result.value, PhpNull)
    assert result.diagnostics == []
    assert "a" in evaluator.env.variables()


def test_undefined_variable_notice() -> None:
    result = execute("$x = $missing;")

    assert isinstance(result.value, PhpNull)
    assert result.diagnostics == ["Notice: Undefined variable: missing"]


def test_global_aliases_function_name(evaluator) -> None:
    execute("$g = 1;", evaluator)

    with evaluator.env.scope("f", "function"):
        execute("global $g; $g = 2; $local = 5;", evaluator)
        assert evaluator.env.lookup("g") == evaluator.env.lookup("g", GLOBAL_SCOPE)

    assert execute("$g;", evaluator).value == PhpNumber(2)
    assert evaluator.env.lookup("local") is None
    assert list(evaluator.env.scopes) == [GLOBAL_SCOPE]


def test_global_creates_missing_name(evaluator) -> None:
    with evaluator.env.scope("f", "function"):
        execute("global $made; $made = 'here';", evaluator)

    assert evaluator.env.variables()["made"] == PhpString("here")


def test_function_scope_names_are_separate(evaluator) -> None:
    execute("$v = 'outer';", evaluator)

    with evaluator.env.scope("f", "function"):
        inner = execute("$v ?? 'unset';", evaluator)

    assert inner.value == PhpString("unset")
    assert execute("$v;", evaluator).value == PhpString("outer")


def test_release_keeps_cells_referenced_elsewhere() -> None:
    env = Environment()
    index = env.create("f", "function")
    env.enter(index)
    location = env.declare("x")
    env.store(location, PhpNumber(7))
    env.leave()

    env.bind("kept", location, GLOBAL_SCOPE)
    env.release(index)

    assert index in env.scopes
    assert env.scopes[index].released
    assert env.load(env.lookup("kept")) == PhpNumber(7)

    env.unset("kept")
    assert index not in env.scopes
    assert env.global_scope.enclosed["function"] == []


def test_release_drops_unreferenced_scope() -> None:
    env = Environment()
    index = env.create("f", "function")
    env.enter(index)
    env.store(env.declare("tmp"), PhpNumber(1))
    env.leave()

    env.release(index)

    assert index not in env.scopes


def test_create_registers_enclosed_scope() -> None:
    env = Environment()
    fn = env.create("f", "function")
    cls = env.create("C", "class")

    assert env.global_scope.enclosed["function"] == [fn]
    assert env.global_scope.enclosed["class"] == [cls]
    assert env.get(cls).statics is not None
    assert env.get(fn).statics is None
    assert env.get(fn).outer == GLOBAL_SCOPE


@pytest.mark.parametrize(
    "action",
    [
        pytest.param(lambda env: env.release(GLOBAL_SCOPE), id="release-global"),
        pytest.param(lambda env: env.leave(), id="leave-global"),
        pytest.param(lambda env: env.create("g", "global"), id="create-second-global"),
        pytest.param(lambda env: env.create("x", "module"), id="create-unknown-kind"),
        pytest.param(lambda env: env.get(99), id="unknown-index"),
    ],
)
def test_environment_misuse(action) -> None:
    with pytest.raises(EvaluationError):
        action(Environment())


def test_release_active_scope_is_rejected() -> None:
    env = Environment()
    index = env.create("f", "function")
    env.enter(index)

    with pytest.raises(EvaluationError):
        env.release(index)


def test_slots_come_from_one_arena() -> None:
    env = Environment()
    first = env.declare("a")
    index = env.create("f", "function")
    second = env.declare("a", index)

    assert first.slot != second.slot
    assert env.slot_owner(first.slot) == GLOBAL_SCOPE
    assert env.slot_owner(second.slot) == index


def test_bind_rejects_element_locations() -> None:
    env = Environment()
    location = env.declare("a")

    with pytest.raises(EvaluationError):
        env.bind("b", location.child(0))


def test_store_rejects_character_locations() -> None:
    env = Environment()
    location = env.declare("s")

    with pytest.raises(EvaluationError):
        env.store(location.at_char(0), PhpString("x"))


def test_load_of_dropped_slot_is_undefined() -> None:
    env = Environment()
    location = env.declare("a")
    env.unset("a")

    assert not env.load(location)
    assert env.load(Location(GLOBAL_SCOPE, 12345)) is env.load(location)


def test_repeated_runs_share_environment(evaluator, out) -> None:
    evaluator.run(parse_source("$count = 1;"))
    evaluator.run(parse_source("$count += 1;"))
    evaluator.run(parse_source("echo $count;"))

    assert out.getvalue() == "2"
    assert plain(evaluator.env.variables()["count"]) == 2
