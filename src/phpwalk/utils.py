from __future__ import annotations

import logging
import os as _os

from .eval.coerce import format_float
from .types import (
    PhpArray,
    PhpBool,
    PhpNull,
    PhpNumber,
    PhpObject,
    PhpString,
    ReadResult,
    Undefined,
)

DEBUG_PY_TRACE_VAR = "PHPWALK_DEBUG_PY_TRACE"
LOG_LEVEL_VAR = "PHPWALK_LOG_LEVEL"

_TRUTHY = ("1", "true", "yes", "on")


def debug_py_trace_enabled() -> bool:
    """Whether runtime errors should also print the Python traceback."""
    return _os.environ.get(DEBUG_PY_TRACE_VAR, "").strip().lower() in _TRUTHY


def log_level() -> int:
    """Level for the diagnostics channel; unknown names fall back to INFO."""
    name = _os.environ.get(LOG_LEVEL_VAR, "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def render_value(value: ReadResult, indent: int = 0) -> str:
    """var_export-style rendering used by the REPL and CLI."""
    match value:
        case PhpNull() | Undefined():
            return "NULL"
        case PhpBool(value=b):
            return "true" if b else "false"
        case PhpNumber(value=int() as n):
            return str(n)
        case PhpNumber(value=n):
            text = format_float(n)
            # var_export always shows a fractional part for finite doubles
            if text.lstrip("-").isdigit():
                text += ".0"
            return text
        case PhpString():
            return repr(value)
        case PhpArray():
            pad = " " * indent
            lines = ["array ("]

            for key, item in value.items():
                shown = str(key) if isinstance(key, int) else repr(PhpString(key))
                lines.append(f"{pad}  {shown} => {render_value(item, indent + 2)},")

            lines.append(f"{pad})")
            return "\n".join(lines)
        case PhpObject():
            return repr(value)

    return repr(value)
