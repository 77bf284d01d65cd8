from __future__ import annotations

import logging
import sys
import traceback
from pathlib import Path
from typing import List, Optional, TextIO

from .diagnostics import Diagnostics
from .evaluator import Evaluator
from .frontend import ParseError, parse_source
from .tree import Node, load_json_ast
from .types import PhpRuntimeError, PhpValue
from .utils import debug_py_trace_enabled, log_level

FATAL_EXIT_CODE = 255

USAGE = "usage: phpwalk [--ast] [--tree] [FILE|-|SOURCE]"

def run(src: str, *, out: Optional[TextIO] = None, diagnostics: Optional[Diagnostics] = None,
        evaluator: Optional[Evaluator] = None) -> PhpValue:
    """Parse and evaluate `src`; returns the value of the last statement."""
    ast = parse_source(src)
    return run_ast(ast, out=out, diagnostics=diagnostics, evaluator=evaluator)

def run_ast(ast: Node, *, out: Optional[TextIO] = None, diagnostics: Optional[Diagnostics] = None,
            evaluator: Optional[Evaluator] = None) -> PhpValue:
    if evaluator is None:
        evaluator = Evaluator(out=out, diagnostics=diagnostics)
    return evaluator.run(ast)

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg

def configure_logging() -> None:
    logging.basicConfig(level=log_level(), format="PHP %(message)s", stream=sys.stderr)

def _report(kind: str, exc: BaseException) -> None:
    print(f"PHP {kind}:  {exc}", file=sys.stderr)

    if debug_py_trace_enabled():
        print("\nPython traceback:", file=sys.stderr)
        traceback.print_exception(type(exc), exc, exc.__traceback__, file=sys.stderr)

def main(argv: Optional[List[str]] = None) -> None:
    as_ast = False
    show_tree = False
    arg = None

    for token in sys.argv[1:] if argv is None else argv:
        if token == "--ast":
            as_ast = True
            continue

        if token == "--tree":
            show_tree = True
            continue

        if token in ("-h", "--help"):
            print(USAGE)
            return

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    configure_logging()
    source = _load_source(arg or "-")

    ast: Optional[Node] = None
    if as_ast:
        try:
            ast = load_json_ast(source)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError too
            raise SystemExit(f"Invalid JSON AST: {exc}") from None

    try:
        if show_tree:
            # print the tree instead of running it
            tree = ast if ast is not None else parse_source(source)
            print(tree.pretty(), end="")
        elif ast is not None:
            run_ast(ast)
        else:
            run(source)
    except ParseError as exc:
        _report("Parse error", exc)
        raise SystemExit(FATAL_EXIT_CODE) from None
    except PhpRuntimeError as exc:
        _report("Fatal error", exc)
        raise SystemExit(FATAL_EXIT_CODE) from None
    finally:
        sys.stdout.flush()

if __name__ == "__main__":
    main()
