from __future__ import annotations

from typing import TYPE_CHECKING

from ..tree import node_kind
from ..types import PhpFatalError, PhpNull
from .variable import variable_name

if TYPE_CHECKING:
    from ..evaluator import Evaluator

def evaluate_global(ev: Evaluator) -> None:
    """`global $a, $b;` aliases each name to the global scope's slot."""
    item = ev.pop_own('global')

    for target in item.node.items or ():
        if node_kind(target) != 'variable':
            raise PhpFatalError("global expects plain variable names")
        ev.env.bind_global(variable_name(target))

    ev.push_value(PhpNull())
