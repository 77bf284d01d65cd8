from __future__ import annotations

import sys
from typing import Callable, Dict, List, Optional, TextIO

from .diagnostics import Diagnostics
from .environment import Environment
from .stack import ExecStack, Intent, StackItem
from .tree import Node, node_kind
from .types import (
    EvaluationError,
    Location,
    PhpFatalError,
    PhpNull,
    PhpRuntimeError,
    PhpValue,
    ReadResult,
    defined,
)

from .eval.array import evaluate_array
from .eval.assign import evaluate_assign
from .eval.binary import evaluate_binary, evaluate_unary
from .eval.global_decl import evaluate_global
from .eval.literals import LITERAL_KINDS, eval_literal
from .eval.offset import evaluate_offset
from .eval.statements import evaluate_echo, evaluate_unset
from .eval.variable import evaluate_variable

SubEvaluator = Callable[['Evaluator'], None]

# kinds that may stand on the left of `=`
_LVALUE_KINDS = frozenset({'variable', 'offsetlookup'})

# bare literal statements have no effect
_INERT_STATEMENT_KINDS = frozenset({'array', 'number', 'string', 'boolean'})


class Evaluator:
    """Drives evaluation of one program through an explicit stack.

    Every call to `evaluate` consumes the top stack item and leaves exactly
    one item in its place: a value, or for WRITE intent a location.
    """

    def __init__(self, ast: Optional[Node] = None, *, out: Optional[TextIO] = None,
                 diagnostics: Optional[Diagnostics] = None) -> None:
        self.ast = ast
        self.env = Environment()
        self.stk = ExecStack()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.out: TextIO = out if out is not None else sys.stdout

    # ---------------- public API ----------------

    def run(self, program: Optional[Node] = None) -> PhpValue:
        program = program if program is not None else self.ast

        if program is None:
            raise EvaluationError("No program to run")

        statements: List[Node] = list(program.children or ()) if program.kind == 'program' else [program]
        result: PhpValue = PhpNull()

        for statement in statements:
            self.push_pending(statement)

            try:
                self.evaluate()
                result = defined(self.pop_value())
            except PhpRuntimeError:
                # a failed statement leaves partial work behind
                self.stk.clear()
                raise

            if self.stk:
                leaked = len(self.stk)
                self.stk.clear()
                raise EvaluationError(f"Execution stack leaked {leaked} item(s) after a statement")

        return result

    def evaluate(self) -> None:
        item = self.stk.pop()

        if not item.is_pending:
            self.stk.push(item)
            return

        node = item.node
        try:
            self._evaluate_node(node, item.intent)
        except PhpRuntimeError as e:
            e.attach_position(node.line, node.column)
            raise

    # ---------------- stack helpers ----------------

    def push_pending(self, node: Optional[Node], intent: Optional[Intent] = None) -> None:
        if node is None:
            raise EvaluationError("Missing operand node")
        self.stk.push(StackItem.pending(node, intent))

    def push_value(self, value: ReadResult) -> None:
        self.stk.push(StackItem.of_value(value))

    def push_location(self, location: Optional[Location]) -> None:
        self.stk.push(StackItem.of_location(location))

    def pop_value(self) -> ReadResult:
        item = self.stk.pop()
        if not item.is_value:
            raise EvaluationError(f"Expected a value on the stack, found {item!r}")
        return item.value

    def pop_location(self) -> Optional[Location]:
        item = self.stk.pop()
        if not item.is_location:
            raise EvaluationError(f"Expected a location on the stack, found {item!r}")
        return item.location

    def pop_own(self, kind: str) -> StackItem:
        """Pop the pending item a sub-evaluator was dispatched for."""
        item = self.stk.pop()

        if not item.is_pending or item.node.kind != kind:
            found = item.node.kind if item.is_pending else item.tag
            raise EvaluationError(f"Evaluate wrong AST node: {found}, should be {kind}")

        return item

    # ---------------- dispatch ----------------

    def _evaluate_node(self, node: Node, intent: Optional[Intent]) -> None:
        kind = node.kind

        if kind == 'expressionstatement':
            self._evaluate_statement(node)
            return

        if intent is Intent.WRITE and kind not in _LVALUE_KINDS:
            raise PhpFatalError("Cannot use temporary expression in write context")

        if kind in LITERAL_KINDS:
            self.push_value(eval_literal(node))
            return

        handler = _NODE_DISPATCH.get(kind)
        if handler is None:
            raise EvaluationError(f"Unknown expression type: {kind}")

        self.stk.push(StackItem.pending(node, intent))
        handler(self)

    def _evaluate_statement(self, node: Node) -> None:
        expr = node.expression

        match node_kind(expr):
            case None:
                raise EvaluationError("Expression statement without an expression")
            case kind if kind in _INERT_STATEMENT_KINDS:
                self.push_value(PhpNull())
            case 'assign':
                self.push_pending(expr)
                self.evaluate_assign()
            case 'variable':
                self.push_pending(expr)
                self.evaluate_variable()
            case _:
                self.push_pending(expr, Intent.READ)
                self.evaluate()

    # ---------------- sub-evaluators ----------------

    def evaluate_assign(self) -> None:
        evaluate_assign(self)

    def evaluate_array(self) -> None:
        evaluate_array(self)

    def evaluate_global(self) -> None:
        evaluate_global(self)

    def evaluate_offset(self) -> None:
        evaluate_offset(self)

    def evaluate_variable(self) -> None:
        evaluate_variable(self)

    def evaluate_binary(self) -> None:
        evaluate_binary(self)

    def evaluate_unary(self) -> None:
        evaluate_unary(self)

    def evaluate_echo(self) -> None:
        evaluate_echo(self)

    def evaluate_unset(self) -> None:
        evaluate_unset(self)


_NODE_DISPATCH: Dict[str, SubEvaluator] = {
    'assign': Evaluator.evaluate_assign,
    'array': Evaluator.evaluate_array,
    'global': Evaluator.evaluate_global,
    'offsetlookup': Evaluator.evaluate_offset,
    'variable': Evaluator.evaluate_variable,
    'bin': Evaluator.evaluate_binary,
    'unary': Evaluator.evaluate_unary,
    'echo': Evaluator.evaluate_echo,
    'unset': Evaluator.evaluate_unset,
}
