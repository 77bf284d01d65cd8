from __future__ import annotations

from typing import TYPE_CHECKING

from ..stack import Intent
from ..tree import node_kind
from ..types import PhpArray, PhpFatalError, copy_value
from .coerce import normalize_offset

if TYPE_CHECKING:
    from ..evaluator import Evaluator

def evaluate_array(ev: Evaluator) -> None:
    """Build an array literal; keyed and positional items may be mixed."""
    item = ev.pop_own('array')
    result = PhpArray()

    for entry in item.node.items or ():
        if entry is None:
            continue

        if node_kind(entry) == 'entry':
            key_node, value_node, byref = entry.key, entry.value, entry.byref
        else:
            key_node, value_node, byref = None, entry, entry.byref

        if byref:
            raise PhpFatalError("References inside array literals are not supported")

        # key first, then value
        ev.push_pending(value_node, Intent.READ)
        if key_node is not None:
            ev.push_pending(key_node, Intent.READ)
            ev.evaluate()
            key = normalize_offset(ev.pop_value(), ev.diagnostics, entry)
            ev.evaluate()
            result.set(key, copy_value(ev.pop_value()))
            continue

        ev.evaluate()
        result.append(copy_value(ev.pop_value()))

    ev.push_value(result)
