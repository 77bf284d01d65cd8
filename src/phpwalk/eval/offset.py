"""Subscript evaluation: `$a[k]` read, write and quiet-read forms.

Reads resolve to values; writes resolve to locations, creating intermediate
arrays and missing elements on the way down so the caller can store
straight into them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from ..diagnostics import Diagnostics
from ..stack import Intent
from ..tree import Node, node_kind
from ..types import (
    APPEND,
    UNDEF,
    AppendKey,
    ArrayKey,
    EvaluationError,
    Location,
    PhpArray,
    PhpBool,
    PhpFatalError,
    PhpNull,
    PhpNumber,
    PhpObject,
    PhpRuntimeError,
    PhpString,
    ReadResult,
    Undefined,
)
from .coerce import normalize_offset
from .variable import variable_name

if TYPE_CHECKING:
    from ..evaluator import Evaluator

def is_byref(node: Node) -> bool:
    what = node.what
    return bool(node.byref) or bool(what is not None and what.byref)

def missing_key_message(key: ArrayKey) -> str:
    if isinstance(key, int):
        return f"Undefined offset: {key}"
    return f"Undefined index: {key}"

def evaluate_offset(ev: Evaluator) -> None:
    item = ev.pop_own('offsetlookup')
    node = item.node

    match item.intent:
        case Intent.READ | Intent.ISSET:
            if node.offset is None:
                raise PhpFatalError("Cannot use [] for reading")
            _read_offset(ev, node, quiet=item.intent is Intent.ISSET)
        case Intent.WRITE:
            _write_offset(ev, node)
        case _:
            raise EvaluationError(f"{item.intent} instruction in offset node")

# ---------------- reads ----------------

def _read_offset(ev: Evaluator, node: Node, quiet: bool) -> None:
    diagnostics = None if quiet else ev.diagnostics
    intent = Intent.ISSET if quiet else Intent.READ

    # base before key: the key is pushed first so the base pops first;
    # only the base is read quietly
    ev.push_pending(node.offset, Intent.READ)
    ev.push_pending(node.what, intent)
    ev.evaluate()
    base = ev.pop_value()
    ev.evaluate()
    key = normalize_offset(ev.pop_value(), diagnostics, node)

    match base:
        case Undefined() | PhpNull() | PhpBool() | PhpNumber():
            # an undefined base has already produced its notice
            ev.push_value(PhpNull())
        case PhpString(value=text):
            if is_byref(node):
                raise PhpFatalError("Cannot create references to/from string offsets")
            ev.push_value(read_char(text, key, diagnostics, node))
        case PhpArray():
            if key in base:
                ev.push_value(base.entries[key])
                return

            if diagnostics is not None:
                diagnostics.notice(missing_key_message(key), node)
            ev.push_value(PhpNull())
        case PhpObject(class_name=name):
            raise PhpFatalError(f"Cannot use object of type {name} as array")
        case _:
            raise EvaluationError(f"Cannot subscript {base!r}")

def read_char(text: str, key: ArrayKey, diagnostics: Optional[Diagnostics], node: Optional[Node] = None) -> ReadResult:
    """One character of `text`; negative keys count from the end."""
    if isinstance(key, str):
        if diagnostics is not None:
            diagnostics.warning(f"Illegal string offset '{key}'", node)
        key = 0

    position = key + len(text) if key < 0 else key
    if 0 <= position < len(text):
        return PhpString(text[position])

    if diagnostics is not None:
        diagnostics.notice(f"Uninitialized string offset: {key}", node)

    return UNDEF

# ---------------- writes ----------------

@dataclass(frozen=True)
class WriteTarget:
    """A subscript chain whose keys are already evaluated.

    ``levels`` runs from the subscript nearest the root outwards; no user
    code runs between resolving these levels and storing through them.
    """
    root: Node
    levels: List[Tuple[Node, Union[ArrayKey, AppendKey]]] = field(default_factory=list)

def prepare_target(ev: Evaluator, node: Node) -> WriteTarget:
    """Evaluate every key of `$x[k1][k2]...`, left to right, before any base is touched."""
    chain: List[Node] = []
    root = node

    while node_kind(root) == 'offsetlookup':
        chain.append(root)
        root = root.what

    levels: List[Tuple[Node, Union[ArrayKey, AppendKey]]] = []

    for level in reversed(chain):
        if level.offset is None:
            levels.append((level, APPEND))
            continue

        ev.push_pending(level.offset, Intent.READ)
        ev.evaluate()
        levels.append((level, normalize_offset(ev.pop_value(), ev.diagnostics, level)))

    return WriteTarget(root, levels)

def resolve_target(ev: Evaluator, target: WriteTarget) -> Optional[Location]:
    """Location behind a prepared target, creating containers and elements on the way."""
    ev.push_pending(target.root, Intent.WRITE)
    ev.evaluate()
    location = ev.pop_location()

    for level, key in target.levels:
        try:
            location = _element_of(ev, level, location, key)
        except PhpRuntimeError as e:
            e.attach_position(level.line, level.column)
            raise

    return location

def peek_target(ev: Evaluator, target: WriteTarget) -> ReadResult:
    """Current value behind a prepared target without creating anything or reporting."""
    if node_kind(target.root) != 'variable':
        raise PhpFatalError("Cannot use temporary expression in write context")

    location = ev.env.lookup(variable_name(target.root))
    value = UNDEF if location is None else ev.env.load(location)

    for level, key in target.levels:
        if isinstance(key, AppendKey):
            raise PhpFatalError("Cannot use [] for reading")

        match value:
            case PhpArray():
                found = value.get(key)
                value = UNDEF if found is None else found
            case PhpString(value=text):
                value = read_char(text, key, None, level)
            case PhpObject(class_name=name):
                raise PhpFatalError(f"Cannot use object of type {name} as array")
            case _:
                value = UNDEF

    return value

def _write_offset(ev: Evaluator, node: Node) -> None:
    ev.push_location(resolve_target(ev, prepare_target(ev, node)))

def _element_of(ev: Evaluator, node: Node, location: Optional[Location],
                key: Union[ArrayKey, AppendKey]) -> Optional[Location]:
    # an enclosing subscript already failed and warned
    if location is None:
        return None

    if location.char_offset is not None:
        raise PhpFatalError("Cannot use string offset as an array")

    current = ev.env.load(location)

    match current:
        case Undefined() | PhpNull():
            container = PhpArray()
            ev.env.store(location, container)
            return element_location(container, location, key)
        case PhpArray():
            return element_location(current, location, key)
        case PhpBool() | PhpNumber():
            ev.diagnostics.warning("Cannot use a scalar value as an array", node)
            return None
        case PhpString(value=text):
            return _char_location(ev, node, location, text, key)
        case PhpObject(class_name=name):
            raise PhpFatalError(f"Cannot use object of type {name} as array")

    raise EvaluationError(f"Cannot subscript {current!r}")

def element_location(array: PhpArray, location: Location, key: Union[ArrayKey, AppendKey]) -> Location:
    """Location of `array[key]`, creating a null element when absent."""
    if isinstance(key, AppendKey):
        key = array.append(PhpNull())
    elif key not in array:
        array.set(key, PhpNull())

    return location.child(key)

def _char_location(ev: Evaluator, node: Node, location: Location, text: str, key: Union[ArrayKey, AppendKey]) -> Location:
    if is_byref(node):
        raise PhpFatalError("Cannot create references to/from string offsets")

    if isinstance(key, AppendKey):
        raise PhpFatalError("[] operator not supported for strings")

    if isinstance(key, str):
        ev.diagnostics.warning(f"Illegal string offset '{key}'", node)
        key = 0

    position = key
    if position < 0:
        position += len(text)
        if position < 0:
            ev.diagnostics.warning(f"Illegal string offset:  {key}", node)

    return location.at_char(position)
