"""Scope table and slot storage.

A name never holds a value directly: ``vslot`` maps it to a slot id and the
owning scope's ``vstore`` maps that id to the value. Two names bound to one
slot id (``$b = &$a``, ``global $a``) therefore observe every write made
through either of them.
"""
from __future__ import annotations

import itertools
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .tree import Node
from .types import (
    UNDEF,
    EvaluationError,
    Location,
    PhpArray,
    PhpNull,
    PhpObject,
    PhpString,
    PhpValue,
    ReadResult,
    Undefined,
)

GLOBAL_SCOPE = 0
SCOPE_KINDS = ("global", "function", "closure", "class", "namespace")
_NESTED_KINDS = SCOPE_KINDS[1:]


@dataclass
class Bindings:
    vslot: Dict[str, int] = field(default_factory=dict)
    vstore: Dict[int, PhpValue] = field(default_factory=dict)
    hstore: Dict[int, Dict[str, PhpValue]] = field(default_factory=dict)


@dataclass
class StaticMembers:
    properties: Bindings = field(default_factory=Bindings)
    methods: Dict[str, Node] = field(default_factory=dict)


@dataclass
class Scope:
    name: str
    kind: str
    outer: Optional[int]
    bindings: Bindings = field(default_factory=Bindings)
    enclosed: Dict[str, List[int]] = field(default_factory=lambda: {k: [] for k in _NESTED_KINDS})
    statics: Optional[StaticMembers] = None
    released: bool = False


class Environment:
    def __init__(self) -> None:
        self.scopes: Dict[int, Scope] = {GLOBAL_SCOPE: Scope("global", "global", None)}
        self.current = GLOBAL_SCOPE
        self._entered: List[int] = []
        self._slot_ids = itertools.count(1)
        self._scope_ids = itertools.count(1)
        self._handles = itertools.count(1)
        self._slot_owner: Dict[int, int] = {}

    # ---------------- scopes ----------------

    def get(self, index: int) -> Scope:
        try:
            return self.scopes[index]
        except KeyError:
            raise EvaluationError(f"Unknown environment index {index}") from None

    @property
    def global_scope(self) -> Scope:
        return self.scopes[GLOBAL_SCOPE]

    @property
    def current_scope(self) -> Scope:
        return self.get(self.current)

    def create(self, name: str, kind: str, outer: Optional[int] = None) -> int:
        if kind not in _NESTED_KINDS:
            raise EvaluationError(f"Cannot create an environment of kind '{kind}'")

        parent = self.current if outer is None else outer
        parent_scope = self.get(parent)
        index = next(self._scope_ids)

        scope = Scope(name, kind, parent)
        if kind == "class":
            scope.statics = StaticMembers()

        self.scopes[index] = scope
        parent_scope.enclosed[kind].append(index)
        return index

    def enter(self, index: int) -> None:
        self.get(index)
        self._entered.append(self.current)
        self.current = index

    def leave(self) -> int:
        if not self._entered:
            raise EvaluationError("Cannot leave the global environment")

        left = self.current
        self.current = self._entered.pop()
        return left

    @contextmanager
    def scope(self, name: str, kind: str) -> Iterator[int]:
        """Run a block inside a fresh nested scope, released on exit."""
        index = self.create(name, kind)
        self.enter(index)

        try:
            yield index
        finally:
            self.leave()
            self.release(index)

    def release(self, index: int) -> None:
        """End a scope's lifetime; cells still aliased elsewhere survive."""
        if index == GLOBAL_SCOPE:
            raise EvaluationError("The global environment cannot be released")

        if index == self.current or index in self._entered:
            raise EvaluationError(f"Environment {index} is still active")

        scope = self.get(index)
        scope.bindings.vslot.clear()
        scope.released = True
        self._sweep()

    def _sweep(self) -> None:
        for index in [i for i, s in self.scopes.items() if s.released]:
            scope = self.scopes[index]

            for slot in list(scope.bindings.vstore):
                if not self._is_referenced(slot):
                    self._drop_cell(scope, slot)

            if scope.bindings.vstore:
                continue

            del self.scopes[index]
            outer = self.scopes.get(scope.outer) if scope.outer is not None else None

            if outer is not None and index in outer.enclosed[scope.kind]:
                outer.enclosed[scope.kind].remove(index)

    # ---------------- slots ----------------

    def _allocate(self, scope_index: int, value: PhpValue) -> int:
        slot = next(self._slot_ids)
        self.get(scope_index).bindings.vstore[slot] = value
        self._slot_owner[slot] = scope_index
        return slot

    def _drop_cell(self, scope: Scope, slot: int) -> None:
        scope.bindings.vstore.pop(slot, None)
        self._slot_owner.pop(slot, None)

    def _is_referenced(self, slot: int) -> bool:
        return any(slot in s.bindings.vslot.values() for s in self.scopes.values())

    def slot_owner(self, slot: int) -> int:
        try:
            return self._slot_owner[slot]
        except KeyError:
            raise EvaluationError(f"Slot {slot} has no owner") from None

    def lookup(self, name: str, scope_index: Optional[int] = None) -> Optional[Location]:
        scope = self.get(self.current if scope_index is None else scope_index)
        slot = scope.bindings.vslot.get(name)

        if slot is None:
            return None

        return Location(self.slot_owner(slot), slot)

    def declare(self, name: str, scope_index: Optional[int] = None) -> Location:
        """Location of `name`, allocating a null slot in the scope when unbound."""
        index = self.current if scope_index is None else scope_index
        existing = self.lookup(name, index)

        if existing is not None:
            return existing

        slot = self._allocate(index, PhpNull())
        self.get(index).bindings.vslot[name] = slot
        return Location(index, slot)

    def bind(self, name: str, location: Location, scope_index: Optional[int] = None) -> None:
        """Make `name` another alias of the slot behind `location`."""
        if location.path or location.char_offset is not None:
            raise EvaluationError("Only whole variable slots can be aliased")

        index = self.current if scope_index is None else scope_index
        if self.get(index).bindings.vslot.get(name) == location.slot:
            return

        self.unset(name, index)
        self.get(index).bindings.vslot[name] = location.slot

    def bind_global(self, name: str) -> Location:
        location = self.declare(name, GLOBAL_SCOPE)

        if self.current != GLOBAL_SCOPE:
            self.bind(name, location)

        return location

    def unset(self, name: str, scope_index: Optional[int] = None) -> None:
        scope = self.get(self.current if scope_index is None else scope_index)
        slot = scope.bindings.vslot.pop(name, None)

        if slot is None or self._is_referenced(slot):
            return

        owner = self.scopes.get(self._slot_owner.get(slot, -1))
        if owner is not None:
            self._drop_cell(owner, slot)

        self._sweep()

    # ---------------- values ----------------

    def load(self, location: Location) -> ReadResult:
        owner = self.scopes.get(location.env)
        if owner is None or location.slot not in owner.bindings.vstore:
            return UNDEF

        value: ReadResult = owner.bindings.vstore[location.slot]

        for key in location.path:
            if not isinstance(value, PhpArray) or key not in value:
                return UNDEF
            value = value.entries[key]

        if location.char_offset is None:
            return value

        offset = location.char_offset
        if isinstance(value, PhpString) and 0 <= offset < len(value.value):
            return PhpString(value.value[offset])

        return UNDEF

    def store(self, location: Location, value: PhpValue) -> None:
        if location.char_offset is not None:
            raise EvaluationError("Character locations are written by the assignment evaluator")

        bindings = self.get(location.env).bindings

        if location.slot not in bindings.vstore:
            raise EvaluationError(f"Slot {location.slot} is not stored in environment {location.env}")

        if not location.path:
            bindings.vstore[location.slot] = value
            return

        container = bindings.vstore[location.slot]

        for key in location.path[:-1]:
            if not isinstance(container, PhpArray) or key not in container:
                raise EvaluationError("Array path does not resolve to a container")
            container = container.entries[key]

        if not isinstance(container, PhpArray):
            raise EvaluationError("Array path does not resolve to a container")

        container.set(location.path[-1], value)

    def new_object(self, class_name: str = "stdClass", scope_index: Optional[int] = None) -> PhpObject:
        index = self.current if scope_index is None else scope_index
        handle = next(self._handles)
        self.get(index).bindings.hstore[handle] = {}
        return PhpObject(handle, class_name)

    def variables(self, scope_index: Optional[int] = None) -> Dict[str, PhpValue]:
        """Snapshot of name -> value for one scope (aliases resolved)."""
        scope = self.get(self.current if scope_index is None else scope_index)
        snapshot: Dict[str, PhpValue] = {}

        for name, slot in scope.bindings.vslot.items():
            value = self.load(Location(self.slot_owner(slot), slot))
            if not isinstance(value, Undefined):
                snapshot[name] = value

        return snapshot
