"""Immutable kind-tagged AST nodes consumed by the evaluator.

Nodes mirror the php-parser AST shape: every node has a ``kind`` plus
kind-specific fields (``what``, ``offset``, ``left``, ``right``, ``items``...).
Missing fields read as ``None`` so evaluation code can check optional parts
(``node.offset``) the way the parser's JSON output is read.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set
from typing_extensions import TypeGuard

# php-parser emits a few camelCase spellings; the evaluator reads one name.
_FIELD_ALIASES = {
    "byRef": "byref",
}

# position bookkeeping that never becomes a field
_SKIP_FIELDS = {"kind", "loc", "leadingComments", "trailingComments", "attrGroups"}

# php-parser writes `false` for an absent optional child (`$a[]` has offset false)
_OPTIONAL_CHILDREN = {"offset", "key"}


class Node:
    """Read-only AST node compatible with php-parser's JSON tree."""
    __slots__ = ('kind', '_fields', 'line', 'column')

    def __init__(self, kind: str, fields: Optional[Mapping[str, Any]] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        object.__setattr__(self, 'kind', kind)
        object.__setattr__(self, '_fields', dict(fields or {}))
        object.__setattr__(self, 'line', line)
        object.__setattr__(self, 'column', column)

    def __getattr__(self, name: str) -> Any:
        if name.startswith('__') or name in Node.__slots__:
            raise AttributeError(name)

        return self._fields.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"AST node '{self.kind}' is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"AST node '{self.kind}' is immutable")

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._fields.items())
        return f'Node({self.kind!r}, {inner})' if inner else f'Node({self.kind!r})'

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return False
        return self.kind == other.kind and self._fields == other._fields

    def __hash__(self) -> int:
        return hash((self.kind, tuple(sorted(self._fields))))

    @property
    def fields(self) -> Dict[str, Any]:
        return dict(self._fields)

    def replace(self, **changes: Any) -> Node:
        """Return a copy of this node with some fields swapped."""
        merged = dict(self._fields)
        merged.update(changes)
        return Node(self.kind, merged, self.line, self.column)

    def pretty(self, indent: str = '  ') -> str:
        """Return pretty-printed tree representation."""
        def _pretty(value: Any, label: str, level: int) -> str:
            pad = indent * level
            if isinstance(value, Node):
                lines = [f'{pad}{label}{value.kind}\n']
                for key, child in value._fields.items():
                    lines.append(_pretty(child, f'{key}: ', level + 1))
                return ''.join(lines)
            if isinstance(value, list):
                lines = [f'{pad}{label}[\n']
                for child in value:
                    lines.append(_pretty(child, '', level + 1))
                lines.append(f'{pad}]\n')
                return ''.join(lines)
            return f'{pad}{label}{value!r}\n'
        return _pretty(self, '', 0)


def is_node(value: Any) -> TypeGuard[Node]:
    return isinstance(value, Node)

def node_kind(value: Any) -> Optional[str]:
    return value.kind if is_node(value) else None

def child_nodes(node: Node) -> List[Node]:
    """Direct Node children, flattening list-valued fields in field order."""
    found: List[Node] = []

    for value in node._fields.values():
        if is_node(value):
            found.append(value)
        elif isinstance(value, list):
            found.extend(v for v in value if is_node(v))

    return found

def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal."""
    pending = [node]

    while pending:
        current = pending.pop()
        yield current
        pending.extend(reversed(child_nodes(current)))

def find_node_by_kind(node: Node, kinds: Iterable[str]) -> Optional[Node]:
    lookup: Set[str] = set(kinds)

    for current in walk(node):
        if current.kind in lookup:
            return current

    return None

# ---------------- php-parser interchange ----------------

def node_from_dict(data: Any) -> Any:
    """Convert php-parser style JSON (dicts tagged by ``kind``) into Nodes.

    Non-node values (strings, numbers, lists of either) pass through, lists are
    converted element-wise.
    """
    if isinstance(data, list):
        return [node_from_dict(item) for item in data]

    if not isinstance(data, dict) or 'kind' not in data:
        return data

    fields: Dict[str, Any] = {}

    for key, value in data.items():
        if key in _SKIP_FIELDS:
            continue
        if key in _OPTIONAL_CHILDREN and value is False:
            value = None
        fields[_FIELD_ALIASES.get(key, key)] = node_from_dict(value)

    line, column = _dict_position(data.get('loc'))

    return Node(str(data['kind']), fields, line, column)

def load_json_ast(text: str) -> Node:
    root = node_from_dict(json.loads(text))

    if not is_node(root):
        raise ValueError("JSON AST root must be an object with a 'kind' field")

    return root

def _dict_position(loc: Any) -> tuple[Optional[int], Optional[int]]:
    if not isinstance(loc, dict):
        return None, None

    start = loc.get('start')
    if not isinstance(start, dict):
        return None, None

    column = start.get('column')
    # php-parser columns are 0-based
    return start.get('line'), column + 1 if isinstance(column, int) else None
