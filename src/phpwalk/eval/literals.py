from __future__ import annotations

from typing import Any, Union

from ..tree import Node
from ..types import PhpBool, PhpFatalError, PhpNull, PhpNumber, PhpString, PhpValue

INT_MAX = 2**63 - 1
INT_MIN = -INT_MAX - 1

def parse_number(raw: Any) -> Union[int, float]:
    """Decode a numeric literal: 0x539 == 02471 == 0b10100111001 == 1337e0."""
    if isinstance(raw, bool):
        raise PhpFatalError(f"Invalid numeric literal {raw!r}")

    if isinstance(raw, (int, float)):
        return raw

    text = str(raw).strip().replace("_", "")
    negative = text.startswith("-")
    if text[:1] in "+-":
        text = text[1:]
    lower = text.lower()

    try:
        if lower.startswith("0x"):
            num: Union[int, float] = int(lower[2:], 16)
        elif lower.startswith("0b"):
            num = int(lower[2:], 2)
        elif lower.startswith("0o"):
            num = int(lower[2:], 8)
        elif "." in lower or "e" in lower:
            num = float(lower)
        elif len(lower) > 1 and lower.startswith("0"):
            num = int(lower, 8)
        else:
            num = int(lower, 10)
    except ValueError:
        raise PhpFatalError(f"Invalid numeric literal '{raw}'") from None

    if negative:
        num = -num

    # integers past the 64-bit range degrade to doubles
    if isinstance(num, int) and not INT_MIN <= num <= INT_MAX:
        return float(num)

    return num

def eval_number(node: Node) -> PhpNumber:
    return PhpNumber(parse_number(node.value))

def eval_string(node: Node) -> PhpString:
    return PhpString("" if node.value is None else str(node.value))

def eval_boolean(node: Node) -> PhpBool:
    value = node.value
    if isinstance(value, str):
        return PhpBool(value.lower() == "true")
    return PhpBool(bool(value))

def eval_null(_node: Node) -> PhpNull:
    return PhpNull()

LITERAL_KINDS = {
    'number': eval_number,
    'string': eval_string,
    'boolean': eval_boolean,
    'nullkeyword': eval_null,
}

def eval_literal(node: Node) -> PhpValue:
    return LITERAL_KINDS[node.kind](node)
