from __future__ import annotations

from typing import TYPE_CHECKING

from ..stack import Intent
from ..tree import Node, is_node
from ..types import UNDEF, EvaluationError, PhpFatalError

if TYPE_CHECKING:
    from ..evaluator import Evaluator

def variable_name(node: Node) -> str:
    name = node.name

    if is_node(name):
        raise PhpFatalError("Variable variables are not supported")

    if not isinstance(name, str) or name in ("", "$"):
        raise EvaluationError("Variable node without a name")

    return name[1:] if name.startswith("$") else name

def evaluate_variable(ev: Evaluator) -> None:
    item = ev.pop_own('variable')
    node = item.node
    name = variable_name(node)

    match item.intent:
        case Intent.WRITE:
            ev.push_location(ev.env.declare(name))
        case Intent.READ | Intent.ISSET:
            location = ev.env.lookup(name)

            if location is None:
                if item.intent is Intent.READ:
                    ev.diagnostics.notice(f"Undefined variable: {name}", node)
                ev.push_value(UNDEF)
                return

            ev.push_value(ev.env.load(location))
        case None:
            # a bare `$a;` statement brings the name into scope
            ev.push_value(ev.env.load(ev.env.declare(name)))
        case _:
            raise EvaluationError(f"{item.intent} instruction in variable node")
