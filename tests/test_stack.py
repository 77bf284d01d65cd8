from __future__ import annotations

import pytest

from tests.support.harness import EvaluationError, PhpFatalError, parse_source
from phpwalk.stack import ExecStack, Intent, StackItem
from phpwalk.tree import Node
from phpwalk.types import UNDEF, Location, PhpNull, PhpNumber, PhpString


def _number(raw: str) -> Node:
    return Node('number', {'value': raw})


def _bin(op: str, left: Node, right: Node) -> Node:
    return Node('bin', {'type': op, 'left': left, 'right': right})


def test_pop_empty_stack_raises() -> None:
    with pytest.raises(EvaluationError, match="underflow"):
        ExecStack().pop()


def test_top_of_empty_stack_raises() -> None:
    with pytest.raises(EvaluationError):
        ExecStack().top


def test_stack_is_lifo() -> None:
    stk = ExecStack()
    stk.push(StackItem.of_value(PhpNumber(1)))
    stk.push(StackItem.of_value(PhpNumber(2)))

    assert len(stk) == 2
    assert stk.top.value == PhpNumber(2)
    assert stk.pop().value == PhpNumber(2)
    assert stk.pop().value == PhpNumber(1)
    assert not stk


def test_item_constructors() -> None:
    node = _number("1")
    pending = StackItem.pending(node, Intent.WRITE)
    value = StackItem.of_value(UNDEF)
    nowhere = StackItem.of_location(None)
    somewhere = StackItem.of_location(Location(0, 1))

    assert pending.is_pending and pending.node is node and pending.intent is Intent.WRITE
    assert value.is_value and value.value is UNDEF
    assert nowhere.is_location and nowhere.location is None
    assert somewhere.is_location and somewhere.location == Location(0, 1)


def test_evaluate_resolved_item_is_pushed_back(evaluator) -> None:
    evaluator.push_value(PhpString("x"))
    evaluator.evaluate()

    assert len(evaluator.stk) == 1
    assert evaluator.pop_value() == PhpString("x")


def test_evaluate_leaves_exactly_one_result(evaluator) -> None:
    evaluator.push_pending(_bin("+", _number("1"), _bin("*", _number("2"), _number("3"))), Intent.READ)
    evaluator.evaluate()

    assert len(evaluator.stk) == 1
    assert evaluator.pop_value() == PhpNumber(7)


def test_variable_write_yields_location(evaluator) -> None:
    evaluator.push_pending(Node('variable', {'name': 'v'}), Intent.WRITE)
    evaluator.evaluate()

    location = evaluator.pop_location()
    assert location == evaluator.env.lookup("v")
    assert isinstance(evaluator.env.load(location), PhpNull)


def test_unknown_node_kind(evaluator) -> None:
    evaluator.push_pending(Node('yield', {}), Intent.READ)

    with pytest.raises(EvaluationError, match="Unknown expression type: yield"):
        evaluator.evaluate()


def test_sub_evaluator_rejects_foreign_node(evaluator) -> None:
    evaluator.push_pending(Node('variable', {'name': 'a'}), Intent.READ)

    with pytest.raises(EvaluationError, match="Evaluate wrong AST node: variable, should be assign"):
        evaluator.evaluate_assign()


def test_literal_in_write_context(evaluator) -> None:
    evaluator.push_pending(_number("1"), Intent.WRITE)

    with pytest.raises(PhpFatalError, match="temporary expression"):
        evaluator.evaluate()


def test_pop_value_rejects_location(evaluator) -> None:
    evaluator.push_location(None)

    with pytest.raises(EvaluationError):
        evaluator.pop_value()


def test_run_without_program(evaluator) -> None:
    with pytest.raises(EvaluationError):
        evaluator.run()


def test_run_uses_constructor_ast(out) -> None:
    from phpwalk.evaluator import Evaluator

    evaluator = Evaluator(parse_source("$a = 20; $a + 22;"), out=out)

    assert evaluator.run() == PhpNumber(42)
    assert len(evaluator.stk) == 0


def test_failed_statement_clears_stack(evaluator) -> None:
    with pytest.raises(PhpFatalError):
        evaluator.run(parse_source("$a = [1, 2 + 3, 1 / 0];"))

    assert len(evaluator.stk) == 0


def test_error_position_is_attached_once(evaluator) -> None:
    with pytest.raises(PhpFatalError) as exc_info:
        evaluator.run(parse_source("$a = 1;\n$b = [1,\n  2 % 0];"))

    err = exc_info.value
    assert err.line == 3
    assert err.column == 3
    assert str(err) == "Modulo by zero (line 3, col 3)"


def test_inert_literal_statements(evaluator) -> None:
    assert isinstance(evaluator.run(parse_source("[1, 2]; 'text'; 4.5; true;")), PhpNull)
    assert evaluator.diagnostics.records == []


def test_missing_expression_is_contract_violation(evaluator) -> None:
    program = Node('program', {'children': [Node('expressionstatement', {})]})

    with pytest.raises(EvaluationError):
        evaluator.run(program)
