from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from ..stack import Intent
from ..tree import Node, node_kind
from ..types import (
    EvaluationError,
    Location,
    PhpFatalError,
    PhpNull,
    PhpString,
    PhpValue,
    ReadResult,
    Undefined,
    copy_value,
)
from .binary import apply_binary
from .coerce import to_string
from .offset import peek_target, prepare_target, resolve_target
from .variable import variable_name

if TYPE_CHECKING:
    from ..evaluator import Evaluator

COMPOUND_OPERATORS = {
    "+=": "+",
    "-=": "-",
    "*=": "*",
    "/=": "/",
    ".=": ".",
    "%=": "%",
    "**=": "**",
    "??=": "??",
}

def evaluate_assign(ev: Evaluator) -> None:
    item = ev.pop_own('assign')
    node = item.node
    operator = node.operator or "="

    if operator == "=":
        if node.right is not None and node.right.byref:
            _assign_reference(ev, node)
            return

        ev.push_pending(node.left, Intent.WRITE)
        ev.push_pending(node.right, Intent.READ)
        ev.evaluate()
        # detach before the left side can create elements in the same array
        value = copy_value(ev.pop_value())
        ev.evaluate()
        location = ev.pop_location()
        ev.push_value(write_location(ev, location, value, node))
        return

    binop = COMPOUND_OPERATORS.get(operator)
    if binop is None:
        raise EvaluationError(f"Unknown assignment operator {operator}")

    # keys of the target, then the right side, then the target is resolved
    target = prepare_target(ev, node.left)

    if binop == "??":
        current = peek_target(ev, target)
        if not isinstance(current, (PhpNull, Undefined)):
            # right-hand side stays unevaluated
            ev.push_value(current)
            return

    ev.push_pending(node.right, Intent.READ)
    ev.evaluate()
    rhs = ev.pop_value()

    location = resolve_target(ev, target)
    current = ev.env.load(location) if location is not None else PhpNull()
    value = copy_value(apply_binary(binop, current, rhs, ev.diagnostics, node))
    ev.push_value(write_location(ev, location, value, node))

def write_location(ev: Evaluator, location: Optional[Location], value: PhpValue, node: Node) -> PhpValue:
    """Store an already detached `value` at `location`; returns the assignment result."""
    if location is None:
        return PhpNull()

    if location.char_offset is not None:
        return _write_char(ev, location, value, node)

    ev.env.store(location, value)
    return value

def _write_char(ev: Evaluator, location: Location, value: ReadResult, node: Node) -> PhpValue:
    offset = location.char_offset
    assert offset is not None

    # negative offsets past the start were reported when the location was built
    if offset < 0:
        return PhpNull()

    base = replace(location, char_offset=None)
    current = ev.env.load(base)
    if not isinstance(current, PhpString):
        raise EvaluationError("Character location does not hold a string")

    char = to_string(value, ev.diagnostics, node)
    if char == "":
        raise PhpFatalError("Cannot assign an empty string to a string offset")

    if len(char) > 1:
        ev.diagnostics.warning("Only the first byte will be assigned to the string offset", node)

    text = current.value
    ev.env.store(base, PhpString(text[:offset].ljust(offset) + char[0] + text[offset + 1:]))
    return PhpString(char[0])

def _assign_reference(ev: Evaluator, node: Node) -> None:
    """`$a = &$b`: bind the left name to the right-hand slot."""
    left, right = node.left, node.right

    if node_kind(left) != 'variable':
        raise PhpFatalError("Cannot create references to array elements")

    if node_kind(right) not in ('variable', 'offsetlookup'):
        raise PhpFatalError("Cannot assign by reference to a temporary expression")

    ev.push_pending(right, Intent.WRITE)
    ev.evaluate()
    location = ev.pop_location()

    if location is not None and location.char_offset is not None:
        raise PhpFatalError("Cannot create references to/from string offsets")

    if location is None or location.path:
        raise PhpFatalError("Cannot create references to array elements")

    ev.env.bind(variable_name(left), location)
    ev.push_value(ev.env.load(location))
