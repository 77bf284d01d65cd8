"""Type juggling: offset keys, scalar conversions and loose comparison."""
from __future__ import annotations

import math
import re
from typing import Any, Optional, Union

from ..diagnostics import Diagnostics
from ..tree import Node
from ..types import (
    ArrayKey,
    PhpArray,
    PhpBool,
    PhpFatalError,
    PhpNull,
    PhpNumber,
    PhpObject,
    PhpString,
    ReadResult,
    Undefined,
    type_name,
)
from .literals import INT_MAX, INT_MIN

Number = Union[int, float]

# "0", "-0", or a decimal integer without a leading zero; "08" and "1.0" stay strings.
# "" is not matched: it stays a string key instead of folding into 0
_CANONICAL_INT = re.compile(r"^(-?0|-?[1-9][0-9]*)$")
_WS = " \t\n\r\v\f"
_NUMERIC_PREFIX = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")

# ---------------- offset keys ----------------

def normalize_offset(value: Any, diagnostics: Optional[Diagnostics] = None, node: Optional[Node] = None) -> ArrayKey:
    """Map a subscript value to the key it is stored under.

    Already-normalized keys (plain ``int``/``str``) map to themselves.
    """
    match value:
        case Undefined():
            # the undefined-variable notice has already been raised by the read
            return ""
        case bool():
            return int(value)
        case int():
            return value
        case str():
            return _string_key(value)
        case PhpBool(value=b):
            return int(b)
        case PhpNumber(value=n):
            return truncate_key(n)
        case PhpString(value=s):
            return _string_key(s)

    if diagnostics is not None:
        diagnostics.warning(f"Illegal offset type {type_name(value)}", node)

    return ""

def _string_key(text: str) -> ArrayKey:
    if _CANONICAL_INT.match(text):
        num = int(text)
        if INT_MIN <= num <= INT_MAX:
            return num
    return text

def truncate_key(num: Number) -> int:
    if isinstance(num, int):
        return num

    if not math.isfinite(num):
        return 0

    # int() truncates toward zero and folds -0.0 into 0
    return int(num)

# ---------------- numeric strings ----------------

def _number_from_text(text: str) -> Number:
    if any(c in text for c in ".eE"):
        return float(text)

    num = int(text)
    if not INT_MIN <= num <= INT_MAX:
        return float(num)
    return num

def parse_numeric_string(text: str) -> tuple[Optional[Number], bool]:
    """Return (value, whole) for a string's numeric prefix; value None when absent."""
    stripped = text.lstrip(_WS)
    match = _NUMERIC_PREFIX.match(stripped)

    if match is None:
        return None, False

    rest = stripped[match.end():]
    return _number_from_text(match.group(0)), rest.strip(_WS) == ""

def is_numeric_string(text: str) -> bool:
    value, whole = parse_numeric_string(text)
    return value is not None and whole

# ---------------- conversions ----------------

def to_bool(value: ReadResult) -> bool:
    match value:
        case PhpNull() | Undefined():
            return False
        case PhpBool(value=b):
            return b
        case PhpNumber(value=n):
            return n != 0
        case PhpString(value=s):
            return s not in ("", "0")
        case PhpArray():
            return len(value) > 0
        case PhpObject():
            return True
    return bool(value)

def to_number(value: ReadResult, diagnostics: Optional[Diagnostics] = None, node: Optional[Node] = None) -> Number:
    match value:
        case PhpNull() | Undefined():
            return 0
        case PhpBool(value=b):
            return int(b)
        case PhpNumber(value=n):
            return n
        case PhpString(value=s):
            num, whole = parse_numeric_string(s)

            if num is None:
                if diagnostics is not None:
                    diagnostics.warning("A non-numeric value encountered", node)
                return 0

            if not whole and diagnostics is not None:
                diagnostics.notice("A non well formed numeric value encountered", node)

            return num
        case PhpArray():
            return 1 if len(value) else 0
        case PhpObject():
            return 1
    raise PhpFatalError(f"Cannot convert {type(value).__name__} to a number")

def format_float(num: float) -> str:
    if math.isnan(num):
        return "NAN"

    if math.isinf(num):
        return "INF" if num > 0 else "-INF"

    if num == 0:
        return "-0" if math.copysign(1.0, num) < 0 else "0"

    text = f"{num:.14G}"
    if "E" not in text:
        return text

    mantissa, exp = text.split("E")
    if "." not in mantissa:
        mantissa += ".0"

    return f"{mantissa}E{exp[0]}{exp[1:].lstrip('0') or '0'}"

def to_string(value: ReadResult, diagnostics: Optional[Diagnostics] = None, node: Optional[Node] = None) -> str:
    match value:
        case PhpNull() | Undefined():
            return ""
        case PhpBool(value=b):
            return "1" if b else ""
        case PhpNumber(value=int() as n):
            return str(n)
        case PhpNumber(value=n):
            return format_float(n)
        case PhpString(value=s):
            return s
        case PhpArray():
            if diagnostics is not None:
                diagnostics.notice("Array to string conversion", node)
            return "Array"
        case PhpObject(class_name=name):
            raise PhpFatalError(f"Object of class {name} could not be converted to string")
    raise PhpFatalError(f"Cannot convert {type(value).__name__} to a string")

def number_value(num: Number) -> PhpNumber:
    if isinstance(num, int) and not INT_MIN <= num <= INT_MAX:
        try:
            return PhpNumber(float(num))
        except OverflowError:
            return PhpNumber(math.inf if num > 0 else -math.inf)
    return PhpNumber(num)

# ---------------- comparison ----------------

def _sign(diff: Number) -> int:
    if diff < 0:
        return -1
    if diff > 0:
        return 1
    return 0

def _compare_numbers(a: Number, b: Number) -> int:
    # NaN is unordered and never equal
    if a != a or b != b:
        return 1
    return (a > b) - (a < b)

def _compare_strings(a: str, b: str) -> int:
    if is_numeric_string(a) and is_numeric_string(b):
        return _compare_numbers(parse_numeric_string(a)[0], parse_numeric_string(b)[0])
    return (a > b) - (a < b)

def loose_compare(lhs: ReadResult, rhs: ReadResult) -> int:
    """Three-way comparison with PHP 8 loose-typing rules."""
    a = PhpNull() if isinstance(lhs, Undefined) else lhs
    b = PhpNull() if isinstance(rhs, Undefined) else rhs

    match (a, b):
        case (PhpNull(), PhpString(value=s)):
            return _compare_strings("", s)
        case (PhpString(value=s), PhpNull()):
            return _compare_strings(s, "")
        case (PhpNull() | PhpBool(), _) | (_, PhpNull() | PhpBool()):
            return _sign(int(to_bool(a)) - int(to_bool(b)))
        case (PhpNumber(value=x), PhpNumber(value=y)):
            return _compare_numbers(x, y)
        case (PhpString(value=x), PhpString(value=y)):
            return _compare_strings(x, y)
        case (PhpNumber(value=x), PhpString(value=s)):
            if is_numeric_string(s):
                return _compare_numbers(x, parse_numeric_string(s)[0])
            return _compare_strings(to_string(a), s)
        case (PhpString(value=s), PhpNumber(value=y)):
            if is_numeric_string(s):
                return _compare_numbers(parse_numeric_string(s)[0], y)
            return _compare_strings(s, to_string(b))
        case (PhpArray(), PhpArray()):
            return _compare_arrays(a, b)
        case (PhpArray(), _):
            return 1
        case (_, PhpArray()):
            return -1
        case (PhpObject(), PhpObject()):
            return 0 if a.handle == b.handle else 1
        case (PhpObject(), _):
            return 1
        case (_, PhpObject()):
            return -1
    raise PhpFatalError(f"Cannot compare {type_name(a)} with {type_name(b)}")

def _compare_arrays(a: PhpArray, b: PhpArray) -> int:
    if len(a) != len(b):
        return _sign(len(a) - len(b))

    for key, value in a.items():
        if key not in b:
            return 1
        result = loose_compare(value, b.entries[key])
        if result:
            return result

    return 0

def loose_equals(lhs: ReadResult, rhs: ReadResult) -> bool:
    return loose_compare(lhs, rhs) == 0

def strict_equals(lhs: ReadResult, rhs: ReadResult) -> bool:
    a = PhpNull() if isinstance(lhs, Undefined) else lhs
    b = PhpNull() if isinstance(rhs, Undefined) else rhs

    if type_name(a) != type_name(b):
        return False

    match (a, b):
        case (PhpArray(), PhpArray()):
            if list(a.entries) != list(b.entries):
                return False
            return all(strict_equals(a.entries[k], b.entries[k]) for k in a.entries)
        case (PhpObject(), PhpObject()):
            return a.handle == b.handle
        case (PhpNull(), PhpNull()):
            return True

    return a.value == b.value
