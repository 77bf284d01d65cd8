from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, Optional, Tuple, Union
from typing_extensions import TypeAlias

# ---------- Value Model ----------

@dataclass
class PhpNull:
    def __repr__(self) -> str:
        return "NULL"

@dataclass
class PhpBool:
    value: bool
    def __repr__(self) -> str:
        return "true" if self.value else "false"

@dataclass
class PhpNumber:
    value: Union[int, float]

    @property
    def is_int(self) -> bool:
        return isinstance(self.value, int)

    def __repr__(self) -> str:
        v = self.value
        if isinstance(v, float) and v.is_integer():
            return f"{v:.1f}"
        return str(v)

@dataclass
class PhpString:
    value: str
    def __repr__(self) -> str:
        return "'" + self.value.replace("\\", "\\\\").replace("'", "\\'") + "'"

ArrayKey: TypeAlias = Union[int, str]

@dataclass
class PhpArray:
    """Ordered key -> value map with PHP's "next free integer key" counter."""
    entries: Dict[ArrayKey, 'PhpValue'] = field(default_factory=dict)
    next_index: int = 0

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: ArrayKey) -> bool:
        return key in self.entries

    def __iter__(self) -> Iterator[ArrayKey]:
        return iter(self.entries)

    def get(self, key: ArrayKey) -> Optional['PhpValue']:
        return self.entries.get(key)

    def set(self, key: ArrayKey, value: 'PhpValue') -> None:
        self.entries[key] = value
        # only non-negative integer keys move the append cursor
        if isinstance(key, int) and key >= self.next_index:
            self.next_index = key + 1

    def append(self, value: 'PhpValue') -> int:
        key = self.next_index
        self.set(key, value)
        return key

    def items(self):
        return self.entries.items()

    def copy(self) -> 'PhpArray':
        """Value copy: nested arrays are copied too, objects stay shared handles."""
        cloned = PhpArray(next_index=self.next_index)

        for key, value in self.entries.items():
            cloned.entries[key] = value.copy() if isinstance(value, PhpArray) else value

        return cloned

    def __repr__(self) -> str:
        pairs = []

        for k, v in self.entries.items():
            key = str(k) if isinstance(k, int) else repr(PhpString(k))
            pairs.append(f"{key} => {v!r}")

        return "[" + ", ".join(pairs) + "]"

@dataclass(eq=False)
class PhpObject:
    """Object handle; payload lives in the owning scope's heap store."""
    handle: int
    class_name: str = "stdClass"

    def __repr__(self) -> str:
        return f"object({self.class_name})#{self.handle}"

PhpValue: TypeAlias = (
    PhpNull
    | PhpBool
    | PhpNumber
    | PhpString
    | PhpArray
    | PhpObject
)

class Undefined:
    """Result of reading an unbound name or a missing string offset."""
    _instance: Optional['Undefined'] = None

    def __new__(cls) -> 'Undefined':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False

UNDEF = Undefined()

class AppendKey:
    """Key placeholder for an empty subscript (`$a[] = ...`)."""
    _instance: Optional['AppendKey'] = None

    def __new__(cls) -> 'AppendKey':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "[]"

APPEND = AppendKey()

ReadResult: TypeAlias = Union[PhpValue, Undefined]

def defined(value: ReadResult) -> PhpValue:
    """Collapse UNDEF to null; the form in which reads are stored or combined."""
    if isinstance(value, Undefined):
        return PhpNull()
    return value

def copy_value(value: ReadResult) -> PhpValue:
    """The value a slot receives on assignment: arrays are copied, UNDEF is null."""
    if isinstance(value, PhpArray):
        return value.copy()
    return defined(value)

def type_name(value: ReadResult) -> str:
    match value:
        case PhpNull() | Undefined():
            return "null"
        case PhpBool():
            return "bool"
        case PhpNumber(value=int()):
            return "int"
        case PhpNumber():
            return "float"
        case PhpString():
            return "string"
        case PhpArray():
            return "array"
        case PhpObject(class_name=name):
            return name
    return type(value).__name__

@dataclass(frozen=True)
class Location:
    """Where a value lives: owning scope, slot id, array key path, char offset."""
    env: int
    slot: int
    path: Tuple[ArrayKey, ...] = ()
    char_offset: Optional[int] = None

    def child(self, key: ArrayKey) -> 'Location':
        return replace(self, path=self.path + (key,))

    def at_char(self, offset: int) -> 'Location':
        return replace(self, char_offset=offset)

# ---------- Exceptions ----------

class PhpRuntimeError(Exception):
    line: Optional[int]
    column: Optional[int]

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.line = None
        self.column = None
        self._augmented = False

    def attach_position(self, line: Optional[int], column: Optional[int]) -> None:
        if self._augmented or line is None:
            return
        self.line = line
        self.column = column
        self._augmented = True

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        msg = self.message

        if self.line is None:
            return msg

        if self.column is None:
            return f"{msg} (line {self.line})"

        return f"{msg} (line {self.line}, col {self.column})"

class PhpFatalError(PhpRuntimeError):
    """Language-level fatal error; aborts the run."""

class PhpTypeError(PhpFatalError):
    pass

class EvaluationError(PhpRuntimeError):
    """Evaluator contract violation (unknown node kind, stack misuse)."""
