from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional

from ..diagnostics import Diagnostics
from ..stack import Intent
from ..tree import Node
from ..types import (
    EvaluationError,
    PhpArray,
    PhpBool,
    PhpFatalError,
    PhpNull,
    PhpNumber,
    PhpObject,
    PhpString,
    PhpTypeError,
    PhpValue,
    ReadResult,
    Undefined,
    copy_value,
    defined,
    type_name,
)
from .coerce import (
    Number,
    loose_compare,
    loose_equals,
    number_value,
    strict_equals,
    to_bool,
    to_number,
    to_string,
    truncate_key,
)

if TYPE_CHECKING:
    from ..evaluator import Evaluator

ARITHMETIC_OPS = {"+", "-", "*", "/", "%", "**"}
SHORT_CIRCUIT_OPS = {"&&", "and", "||", "or", "??"}

def evaluate_binary(ev: Evaluator) -> None:
    item = ev.pop_own('bin')
    node = item.node
    op = node.type

    # `??` tests its left side without undefined-name/offset notices
    ev.push_pending(node.right, Intent.READ)
    ev.push_pending(node.left, Intent.ISSET if op == "??" else Intent.READ)
    ev.evaluate()
    lhs = ev.pop_value()

    if op in SHORT_CIRCUIT_OPS:
        decided = _short_circuit(op, lhs)
        if decided is not None:
            ev.stk.pop()
            ev.push_value(decided)
            return

    ev.evaluate()
    ev.push_value(apply_binary(op, lhs, ev.pop_value(), ev.diagnostics, node))

def _short_circuit(op: str, lhs: ReadResult) -> Optional[PhpValue]:
    match op:
        case "&&" | "and":
            return None if to_bool(lhs) else PhpBool(False)
        case "||" | "or":
            return PhpBool(True) if to_bool(lhs) else None
        case "??":
            return None if isinstance(lhs, (PhpNull, Undefined)) else lhs
    return None

def apply_binary(op: str, lhs: ReadResult, rhs: ReadResult, diagnostics: Optional[Diagnostics] = None, node: Optional[Node] = None) -> PhpValue:
    a, b = defined(lhs), defined(rhs)

    if op in ARITHMETIC_OPS:
        return _arithmetic(op, a, b, diagnostics, node)

    match op:
        case ".":
            return PhpString(to_string(a, diagnostics, node) + to_string(b, diagnostics, node))
        case "==":
            return PhpBool(loose_equals(a, b))
        case "!=" | "<>":
            return PhpBool(not loose_equals(a, b))
        case "===":
            return PhpBool(strict_equals(a, b))
        case "!==":
            return PhpBool(not strict_equals(a, b))
        case "<":
            return PhpBool(loose_compare(a, b) < 0)
        case "<=":
            return PhpBool(loose_compare(a, b) <= 0)
        case ">":
            return PhpBool(loose_compare(b, a) < 0)
        case ">=":
            return PhpBool(loose_compare(b, a) <= 0)
        case "<=>":
            return PhpNumber(loose_compare(a, b))
        case "&&" | "and":
            return PhpBool(to_bool(a) and to_bool(b))
        case "||" | "or":
            return PhpBool(to_bool(a) or to_bool(b))
        case "xor":
            return PhpBool(to_bool(a) != to_bool(b))
        case "??":
            return b if isinstance(a, PhpNull) else a

    raise EvaluationError(f"Unknown binary operator {op}")

def _arithmetic(op: str, a: PhpValue, b: PhpValue, diagnostics: Optional[Diagnostics], node: Optional[Node]) -> PhpValue:
    if isinstance(a, (PhpArray, PhpObject)) or isinstance(b, (PhpArray, PhpObject)):
        if op == "+" and isinstance(a, PhpArray) and isinstance(b, PhpArray):
            return array_union(a, b)
        raise PhpTypeError(f"Unsupported operand types: {type_name(a)} {op} {type_name(b)}")

    x = to_number(a, diagnostics, node)
    y = to_number(b, diagnostics, node)

    match op:
        case "+":
            return number_value(x + y)
        case "-":
            return number_value(x - y)
        case "*":
            return number_value(x * y)
        case "/":
            return _divide(x, y)
        case "%":
            return _modulo(x, y)
        case "**":
            return _power(x, y)

    raise EvaluationError(f"Unknown arithmetic operator {op}")

def array_union(a: PhpArray, b: PhpArray) -> PhpArray:
    """`$a + $b`: keys of `a` win, missing keys come from `b`."""
    result = a.copy()

    for key, value in b.items():
        if key not in result:
            result.set(key, copy_value(value))

    return result

def _divide(x: Number, y: Number) -> PhpNumber:
    if y == 0:
        raise PhpFatalError("Division by zero")

    if isinstance(x, int) and isinstance(y, int) and x % y == 0:
        return number_value(x // y)

    return PhpNumber(x / y)

def _modulo(x: Number, y: Number) -> PhpNumber:
    left, right = truncate_key(x), truncate_key(y)

    if right == 0:
        raise PhpFatalError("Modulo by zero")

    # the result takes the sign of the dividend
    rem = abs(left) % abs(right)
    return PhpNumber(-rem if left < 0 else rem)

def _power(x: Number, y: Number) -> PhpNumber:
    if isinstance(x, int) and isinstance(y, int) and y >= 0:
        return number_value(x ** y)

    if x == 0 and y < 0:
        return PhpNumber(math.inf)

    try:
        return PhpNumber(math.pow(x, y))
    except OverflowError:
        return PhpNumber(math.inf)
    except ValueError:
        # negative base with a fractional exponent
        return PhpNumber(math.nan)

# ---------------- unary ----------------

def evaluate_unary(ev: Evaluator) -> None:
    item = ev.pop_own('unary')
    node = item.node

    ev.push_pending(node.what, Intent.READ)
    ev.evaluate()
    ev.push_value(apply_unary(node.type, ev.pop_value(), ev.diagnostics, node))

def apply_unary(op: str, operand: ReadResult, diagnostics: Optional[Diagnostics] = None, node: Optional[Node] = None) -> PhpValue:
    value = defined(operand)

    match op:
        case "!":
            return PhpBool(not to_bool(value))
        case "-" | "+":
            if isinstance(value, (PhpArray, PhpObject)):
                raise PhpTypeError(f"Unsupported operand types: {type_name(value)} * int")
            num = to_number(value, diagnostics, node)
            return number_value(-num if op == "-" else num)

    raise EvaluationError(f"Unknown unary operator {op}")
