"""Interactive REPL for phpwalk, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
import traceback
from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .evaluator import Evaluator
from .frontend import ParseError, parse_source
from .runner import configure_logging
from .tree import Node, node_kind
from .types import PhpRuntimeError
from .utils import DEBUG_PY_TRACE_VAR, debug_py_trace_enabled, render_value

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
    "/vars": ("Show variables of the current scope", ""),
}


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def _handle_slash(line: str, box: list[Evaluator]) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1] if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ[DEBUG_PY_TRACE_VAR] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop(DEBUG_PY_TRACE_VAR, None)
        elif arg == "":
            if debug_py_trace_enabled():
                os.environ.pop(DEBUG_PY_TRACE_VAR, None)
            else:
                os.environ[DEBUG_PY_TRACE_VAR] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state}")
        return True

    if cmd == "/reset":
        box[0] = Evaluator()
        print("Environment reset.")
        return True

    if cmd == "/vars":
        variables = box[0].env.variables()
        if not variables:
            print("(no variables)")
        for name, value in variables.items():
            print(f"${name} = {render_value(value)}")
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _is_complete(text: str) -> bool:
    """A chunk is submitted once it ends a statement or is a slash command."""
    stripped = text.strip()
    return not stripped or stripped.startswith("/") or stripped.endswith((";", "?>"))


def _shows_result(program: Node) -> bool:
    """Bare expressions echo their value, assignments and statements do not."""
    statements = program.children or []
    if not statements:
        return False

    last = statements[-1]
    return node_kind(last) == 'expressionstatement' and node_kind(last.expression) != 'assign'


def evaluate_chunk(text: str, evaluator: Evaluator) -> None:
    program = parse_source(text)
    # diagnostics already logged by earlier chunks
    evaluator.diagnostics.clear()
    result = evaluator.run(program)
    sys.stdout.flush()

    if _shows_result(program):
        print(render_value(result))


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    configure_logging()
    # Use a mutable box so /reset can swap the evaluator.
    box: list[Evaluator] = [Evaluator()]

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer
        text = buf.text

        # an empty continuation line also submits, so the parser can report
        if _is_complete(text) or text.split("\n")[-1].strip() == "":
            buf.validate_and_handle()
            return

        buf.insert_text("\n")

    session: PromptSession[str] = PromptSession(
        history=InMemoryHistory(),
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("phpwalk repl: Ctrl-D to exit, / for commands")

    while True:
        try:
            text = session.prompt("php> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if _handle_slash(text, box):
            continue

        try:
            evaluate_chunk(text, box[0])
        except (ParseError, PhpRuntimeError) as exc:
            kind = "Parse error" if isinstance(exc, ParseError) else "Fatal error"
            print(f"PHP {kind}:  {exc}", file=sys.stderr)
            if debug_py_trace_enabled():
                print("\nPython traceback:", file=sys.stderr)
                print("".join(traceback.format_tb(exc.__traceback__)), file=sys.stderr, end="")


def main() -> None:
    repl()


if __name__ == "__main__":
    main()
