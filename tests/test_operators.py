from __future__ import annotations

import pytest

from tests.support.harness import (
    PhpTypeError,
    execute,
    run_runtime_case,
)
from phpwalk.eval.coerce import loose_compare, loose_equals, strict_equals
from phpwalk.types import PhpArray, PhpBool, PhpNull, PhpNumber, PhpString

SCENARIOS = [
    pytest.param("1 == 1.0;", ("bool", True), None, id="int-float-equal"),
    pytest.param("1 === 1.0;", ("bool", False), None, id="int-float-not-identical"),
    pytest.param('"abc" == 0;', ("bool", False), None, id="php8-string-number"),
    pytest.param('"1e3" == "1000";', ("bool", True), None, id="numeric-strings-compare-as-numbers"),
    pytest.param('"10" < "9";', ("bool", False), None, id="numeric-string-ordering"),
    pytest.param('"10" < "9a";', ("bool", True), None, id="lexical-string-ordering"),
    pytest.param("null == false;", ("bool", True), None, id="null-equals-false"),
    pytest.param("[] == false;", ("bool", True), None, id="empty-array-equals-false"),
    pytest.param('null == "";', ("bool", True), None, id="null-equals-empty-string"),
    pytest.param("[1, 2] == [1, 2];", ("bool", True), None, id="array-equal"),
    pytest.param("[1, 2] === [1 => 2, 0 => 1];", ("bool", False), None, id="array-identity-needs-order"),
    pytest.param("[1, 2] == [1 => 2, 0 => 1];", ("bool", True), None, id="array-equality-ignores-order"),
    pytest.param("1 <=> 2;", ("int", -1), None, id="spaceship-less"),
    pytest.param('"b" <=> "a";', ("int", 1), None, id="spaceship-greater"),
    pytest.param("2 != 3;", ("bool", True), None, id="not-equal"),
    pytest.param("2 <> 2;", ("bool", False), None, id="not-equal-angle"),
    pytest.param('5 !== "5";', ("bool", True), None, id="not-identical"),
    pytest.param("3 >= 3;", ("bool", True), None, id="greater-equal"),
    pytest.param("true && 'x';", ("bool", True), None, id="and-yields-bool"),
    pytest.param("0 || '';", ("bool", False), None, id="or-yields-bool"),
    pytest.param("$r = (true xor true); $r;", ("bool", False), None, id="xor"),
    pytest.param("$r = true and false; $r;", ("bool", True), None, id="and-binds-looser-than-assign"),
    pytest.param("$r = false or true; $r;", ("bool", False), None, id="or-binds-looser-than-assign"),
    pytest.param("!0;", ("bool", True), None, id="not"),
    pytest.param('-"3";', ("int", -3), None, id="unary-minus-string"),
    pytest.param("+true;", ("int", 1), None, id="unary-plus"),
    pytest.param("null ?? false ?? 3;", ("bool", False), None, id="coalesce-right-assoc"),
    pytest.param("'a' . 1 . 2.5;", ("string", "a12.5"), None, id="concat"),
    pytest.param("'x' . true . null;", ("string", "x1"), None, id="concat-scalars"),
    pytest.param(
        "[1, 2] + [5, 6, 7];",
        ("array", {0: 1, 1: 2, 2: 7}),
        None,
        id="array-union",
    ),
    pytest.param("[] + 1;", None, PhpTypeError, id="array-plus-scalar"),
    pytest.param("[1] * [1];", None, PhpTypeError, id="array-times-array"),
    pytest.param("-[];", None, PhpTypeError, id="negate-array"),
]


@pytest.mark.parametrize("source, expectation, expected_exc", SCENARIOS)
def test_operators(source: str, expectation, expected_exc) -> None:
    run_runtime_case(source, expectation, expected_exc)


def test_and_short_circuits() -> None:
    result = execute("$a = 0; false && ($a = 1); true || ($a = 2); $a;")

    assert result.value == PhpNumber(0)


def test_coalesce_skips_right_side() -> None:
    result = execute("$a = 0; $b = 'set'; $b ?? ($a = 1); $a;")

    assert result.value == PhpNumber(0)


def test_array_to_string_notice() -> None:
    result = execute("'abc' . [1];")

    assert result.value == PhpString("abcArray")
    assert result.diagnostics == ["Notice: Array to string conversion"]


def test_comparison_helpers() -> None:
    assert loose_compare(PhpNumber(float("nan")), PhpNumber(1)) == 1
    assert not loose_equals(PhpNumber(float("nan")), PhpNumber(float("nan")))
    assert loose_equals(PhpString("abc"), PhpString("abc"))
    assert loose_compare(PhpArray(), PhpNumber(5)) == 1
    assert strict_equals(PhpNull(), PhpNull())
    assert not strict_equals(PhpBool(True), PhpNumber(1))
