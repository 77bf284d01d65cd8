"""Source front-end: lark grammar plus a transformer that builds `Node` trees.

The trees use the same kinds and fields as php-parser's JSON output, so the
evaluator cannot tell whether a program came from here or from `--ast` input.
"""
from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, List, Optional

from lark import Lark, Token, Transformer, UnexpectedCharacters, UnexpectedInput, UnexpectedToken
from lark.exceptions import VisitError
from lark.visitors import v_args

from .tree import Node

_SQ_ESCAPE = re.compile(r"\\([\\'])")
_DQ_ESCAPE = re.compile(r'\\(?:([ntrvef\\$"])|([0-7]{1,3})|x([0-9A-Fa-f]{1,2})|u\{([0-9A-Fa-f]+)\})')
# a `$name` or `${` not preceded by an odd number of backslashes
_INTERPOLATION = re.compile(r'(?:^|[^\\])(?:\\\\)*\$[A-Za-z_\x7f-\uffff{]')

_SIMPLE_ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    'v': '\v',
    'e': '\x1b',
    'f': '\f',
    '\\': '\\',
    '$': '$',
    '"': '"',
}


class ParseError(Exception):
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} on line {self.line}"


def _position(meta: Any) -> tuple[Optional[int], Optional[int]]:
    if getattr(meta, 'empty', True):
        return None, None
    return meta.line, meta.column

def _node(kind: str, meta: Any, **fields: Any) -> Node:
    line, column = _position(meta)
    return Node(kind, fields, line, column)

def _variable(token: Token) -> Node:
    return Node('variable', {'name': token.value[1:], 'byref': False}, token.line, token.column)

def decode_single_quoted(raw: str) -> str:
    return _SQ_ESCAPE.sub(lambda m: m.group(1), raw[1:-1])

def decode_double_quoted(raw: str, line: Optional[int] = None, column: Optional[int] = None) -> str:
    body = raw[1:-1]

    if _INTERPOLATION.search(body):
        raise ParseError("String interpolation is not supported", line, column)

    def _unescape(m: re.Match[str]) -> str:
        simple, octal, hexa, codepoint = m.groups()
        if simple is not None:
            return _SIMPLE_ESCAPES[simple]
        if octal is not None:
            return chr(int(octal, 8) & 0xFF)
        if hexa is not None:
            return chr(int(hexa, 16))
        return chr(int(codepoint, 16))

    return _DQ_ESCAPE.sub(_unescape, body)


@v_args(meta=True)
class ToNodes(Transformer):
    """Lark parse tree -> php-parser shaped `Node` tree."""

    # ---- statements ----
    def start(self, meta, c):
        statements = [s for s in c if isinstance(s, Node)]
        return _node('program', meta, children=statements, errors=[])

    def expression_stmt(self, meta, c):
        return _node('expressionstatement', meta, expression=c[0])

    def global_stmt(self, meta, c):
        return _node('global', meta, items=[_variable(t) for t in c])

    def echo_stmt(self, meta, c):
        return _node('echo', meta, expressions=list(c), shortForm=False)

    def unset_stmt(self, meta, c):
        return _node('unset', meta, variables=[_variable(t) for t in c])

    def empty_stmt(self, meta, c):
        return None

    # ---- expressions ----
    def assign(self, meta, c):
        left, right = c
        return _node('assign', meta, left=left, right=right, operator='=')

    def assign_ref(self, meta, c):
        left, right = c
        return _node('assign', meta, left=left, right=right.replace(byref=True), operator='=')

    def assign_op(self, meta, c):
        left, op, right = c
        return _node('assign', meta, left=left, right=right, operator=op.value)

    def binop(self, meta, c):
        left, op, right = c
        return _node('bin', meta, type=op.value.lower(), left=left, right=right)

    def unary(self, meta, c):
        op, what = c
        return _node('unary', meta, type=op.value, what=what)

    def offset(self, meta, c):
        what, offset = c
        return _node('offsetlookup', meta, what=what, offset=offset, byref=False)

    # ---- primaries ----
    def variable(self, meta, c):
        return _node('variable', meta, name=c[0].value[1:], byref=False)

    def number(self, meta, c):
        return _node('number', meta, value=c[0].value)

    def sq_string(self, meta, c):
        return _node('string', meta, value=decode_single_quoted(c[0].value), isDoubleQuote=False, raw=c[0].value)

    def dq_string(self, meta, c):
        token = c[0]
        value = decode_double_quoted(token.value, token.line, token.column)
        return _node('string', meta, value=value, isDoubleQuote=True, raw=token.value)

    def true(self, meta, c):
        return _node('boolean', meta, value=True, raw='true')

    def false(self, meta, c):
        return _node('boolean', meta, value=False, raw='false')

    def null(self, meta, c):
        return _node('nullkeyword', meta, raw='null')

    def short_array(self, meta, c):
        return _node('array', meta, items=c[0] or [], shortForm=True)

    def long_array(self, meta, c):
        return _node('array', meta, items=c[0] or [], shortForm=False)

    def array_items(self, meta, c) -> List[Node]:
        return list(c)

    def item(self, meta, c):
        return _node('entry', meta, key=None, value=c[0], byref=False)

    def keyed_item(self, meta, c):
        return _node('entry', meta, key=c[0], value=c[1], byref=False)

    def ref_item(self, meta, c):
        return _node('entry', meta, key=None, value=c[0], byref=True)

    def keyed_ref_item(self, meta, c):
        return _node('entry', meta, key=c[0], value=c[1], byref=True)


@lru_cache(maxsize=None)
def build_parser() -> Lark:
    return Lark.open(
        "grammar.lark",
        rel_to=__file__,
        parser="lalr",
        lexer="contextual",
        start="start",
        maybe_placeholders=True,
        propagate_positions=True,
    )

def _syntax_error(exc: UnexpectedInput) -> ParseError:
    match exc:
        case UnexpectedToken(token=token) if token.type == '$END':
            message = "syntax error, unexpected end of file"
        case UnexpectedToken(token=token):
            message = f"syntax error, unexpected '{token}'"
        case UnexpectedCharacters(char=char):
            message = f"syntax error, unexpected '{char}'"
        case _:
            message = "syntax error, unexpected end of file"

    line = getattr(exc, 'line', None)
    column = getattr(exc, 'column', None)
    if not isinstance(line, int) or line < 1:
        line, column = None, None

    return ParseError(message, line, column)

def parse_source(src: str) -> Node:
    """Parse PHP source text into a `program` node."""
    try:
        tree = build_parser().parse(src)
    except UnexpectedInput as exc:
        raise _syntax_error(exc) from None

    try:
        return ToNodes().transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, ParseError):
            raise exc.orig_exc from None
        raise
