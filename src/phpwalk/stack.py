"""Explicit evaluation stack.

Each pending unit of work is a single-use ``StackItem``: a node waiting to be
evaluated (with the intent its consumer needs), a resolved value, or a
resolved location. Evaluation depth lives here instead of on the Python stack.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .tree import Node
from .types import EvaluationError, Location, ReadResult


class Intent(Enum):
    READ = "READ"
    WRITE = "WRITE"
    ISSET = "ISSET"   # read without undefined-name/offset notices


@dataclass(frozen=True)
class StackItem:
    tag: str
    node: Optional[Node] = None
    intent: Optional[Intent] = None
    value: Optional[ReadResult] = None
    location: Optional[Location] = None

    @classmethod
    def pending(cls, node: Node, intent: Optional[Intent] = None) -> StackItem:
        return cls("node", node=node, intent=intent)

    @classmethod
    def of_value(cls, value: ReadResult) -> StackItem:
        return cls("value", value=value)

    @classmethod
    def of_location(cls, location: Optional[Location]) -> StackItem:
        # None is a legal payload: a subscript write that found no usable target
        return cls("location", location=location)

    @property
    def is_pending(self) -> bool:
        return self.tag == "node"

    @property
    def is_value(self) -> bool:
        return self.tag == "value"

    @property
    def is_location(self) -> bool:
        return self.tag == "location"

    def __repr__(self) -> str:
        if self.is_pending:
            kind = self.node.kind if self.node is not None else None
            intent = self.intent.value if self.intent is not None else "-"
            return f"<pending {kind} {intent}>"
        if self.is_value:
            return f"<value {self.value!r}>"
        return f"<location {self.location!r}>"


class ExecStack:
    def __init__(self) -> None:
        self._items: List[StackItem] = []

    def push(self, item: StackItem) -> None:
        self._items.append(item)

    def pop(self) -> StackItem:
        if not self._items:
            raise EvaluationError("Execution stack underflow")

        return self._items.pop()

    @property
    def top(self) -> StackItem:
        if not self._items:
            raise EvaluationError("Execution stack is empty")

        return self._items[-1]

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"ExecStack({self._items!r})"
