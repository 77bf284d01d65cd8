from __future__ import annotations

from typing import TYPE_CHECKING

from ..stack import Intent
from ..tree import node_kind
from ..types import PhpFatalError, PhpNull
from .coerce import to_string
from .variable import variable_name

if TYPE_CHECKING:
    from ..evaluator import Evaluator

def evaluate_echo(ev: Evaluator) -> None:
    item = ev.pop_own('echo')
    node = item.node
    expressions = node.expressions if node.expressions is not None else node.arguments

    # each operand is printed before the next one is evaluated
    for expr in expressions or ():
        ev.push_pending(expr, Intent.READ)
        ev.evaluate()
        ev.out.write(to_string(ev.pop_value(), ev.diagnostics, expr))

    ev.push_value(PhpNull())

def evaluate_unset(ev: Evaluator) -> None:
    item = ev.pop_own('unset')

    for target in item.node.variables or ():
        if node_kind(target) != 'variable':
            raise PhpFatalError("unset() only supports plain variables")
        ev.env.unset(variable_name(target))

    ev.push_value(PhpNull())
