# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Tokenize and parse the marker expression language.

A marker body is one expression::

    expr := IDENT [ "(" [ expr { "," expr } [ "," ] ] ")" ]
          | STRING | RAW | INT | "re" (STRING | RAW)

``STRING`` is double quoted with backslash escapes, ``RAW`` is backtick
quoted with no escapes and ``INT`` is a decimal integer. An ``re`` prefix
directly in front of a string marks it as a regular expression.
"""

import logging
import re
from dataclasses import dataclass
from typing import Literal as LiteralType
from typing import Union

from srcmark.errors import MarkerSyntaxError

logger = logging.getLogger(__name__)

LiteralKind = LiteralType["string", "raw", "regex", "int"]

_TOKEN_RE = re.compile(
    r"""
    (?P<STRING>"(?:[^"\\\n]|\\.)*")
    |(?P<RAW>`[^`]*`)
    |(?P<INT>[0-9]+)
    |(?P<IDENT>[^\W\d]\w*)
    |(?P<LPAREN>\()
    |(?P<RPAREN>\))
    |(?P<COMMA>,)
    |(?P<WS>\s+)
    |(?P<MISMATCH>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPE_RE = re.compile(
    r"\\(x[0-9A-Fa-f]{2}|u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|[0-7]{3}|.)", re.DOTALL
)

_SIMPLE_ESCAPES: dict[str, str] = {
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}

_REGEX_PREFIX = "re"


@dataclass(frozen=True)
class Ident:
    """Represent a bare identifier."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Literal:
    """Represent a string, raw string, regular expression or integer literal.

    Attributes:
        kind: Literal category.
        value: Decoded literal value (quotes and escapes removed).
        text: Literal exactly as written in the marker.
    """

    kind: LiteralKind
    value: str
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Call:
    """Represent a call expression ``func(args...)``."""

    func: str
    args: tuple["Expr", ...]

    def __str__(self) -> str:
        return f"{self.func}({', '.join(str(arg) for arg in self.args)})"


Expr = Union[Ident, Literal, Call]


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    start: int


def format_args(args: tuple[Expr, ...] | list[Expr]) -> str:
    """Render argument expressions for error messages."""
    return "[" + ", ".join(str(arg) for arg in args) + "]"


def quote(value: str) -> str:
    """Render a value as a double quoted string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def parse_expr(source: str) -> Expr:
    """Parse one marker expression.

    Args:
        source: Marker body text, surrounding whitespace allowed.

    Returns:
        Parsed expression tree.

    Raises:
        MarkerSyntaxError: If the text is not exactly one valid expression.
    """
    parser = _Parser(_tokenize(source), source)
    expr = parser.parse_expr()
    parser.expect_end()
    return expr


def _tokenize(source: str) -> list[_Token]:
    tokens: list[_Token] = []
    for match in _TOKEN_RE.finditer(source):
        kind = match.lastgroup or "MISMATCH"
        if kind == "WS":
            continue
        if kind == "MISMATCH":
            raise MarkerSyntaxError(
                f"unexpected character {match.group()!r} at {match.start() + 1} in {source!r}"
            )
        tokens.append(_Token(kind=kind, text=match.group(), start=match.start()))
    return tokens


def _unquote(text: str) -> str:
    """Decode a double quoted or backtick quoted literal.

    ``\\xhh`` and ``\\ooo`` escapes are single bytes and ``\\u``/``\\U``
    escapes are code points, so ``"\\xce\\xb1"`` and ``"\\u03b1"`` both decode
    to the same UTF-8 text. Bytes that do not form valid UTF-8 are kept as
    surrogate escapes and match the raw file bytes again.
    """
    if text.startswith("`"):
        return text[1:-1]

    body = text[1:-1]
    decoded = bytearray()
    position = 0
    try:
        for match in _ESCAPE_RE.finditer(body):
            decoded += body[position : match.start()].encode("utf-8", "surrogateescape")
            decoded += _decode_escape(match.group(1), text)
            position = match.end()
        decoded += body[position:].encode("utf-8", "surrogateescape")
    except UnicodeEncodeError as exc:
        raise MarkerSyntaxError(f"invalid character in {text}: {exc}") from exc
    return decoded.decode("utf-8", "surrogateescape")


def _decode_escape(escape: str, text: str) -> bytes:
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape].encode("utf-8")
    if escape[0] == "x" and len(escape) > 1:
        return bytes([int(escape[1:], 16)])
    if escape[0] in "uU" and len(escape) > 1:
        code = int(escape[1:], 16)
        if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            raise MarkerSyntaxError(f"invalid escape \\{escape} in {text}")
        return chr(code).encode("utf-8")
    if len(escape) == 3:
        code = int(escape, 8)
        if code > 0xFF:
            raise MarkerSyntaxError(f"octal escape value \\{escape} > 255 in {text}")
        return bytes([code])
    raise MarkerSyntaxError(f"invalid escape \\{escape} in {text}")


class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, tokens: list[_Token], source: str) -> None:
        self._tokens = tokens
        self._source = source
        self._index = 0

    def parse_expr(self) -> Expr:
        token = self._next("expression")
        if token.kind in ("STRING", "RAW"):
            kind: LiteralKind = "string" if token.kind == "STRING" else "raw"
            return Literal(kind=kind, value=_unquote(token.text), text=token.text)
        if token.kind == "INT":
            return Literal(kind="int", value=token.text, text=token.text)
        if token.kind != "IDENT":
            raise self._error(f"unexpected {token.text!r}", token)

        following = self._peek()
        if (
            token.text == _REGEX_PREFIX
            and following is not None
            and following.kind in ("STRING", "RAW")
            and following.start == token.start + len(token.text)
        ):
            self._index += 1
            return Literal(
                kind="regex",
                value=_unquote(following.text),
                text=token.text + following.text,
            )
        if following is None or following.kind != "LPAREN":
            return Ident(name=token.text)

        self._index += 1
        args: list[Expr] = []
        while True:
            following = self._peek()
            if following is not None and following.kind == "RPAREN":
                self._index += 1
                break
            args.append(self.parse_expr())
            separator = self._next("',' or ')'")
            if separator.kind == "RPAREN":
                break
            if separator.kind != "COMMA":
                raise self._error(f"expected ',' or ')', got {separator.text!r}", separator)
        return Call(func=token.text, args=tuple(args))

    def expect_end(self) -> None:
        token = self._peek()
        if token is not None:
            raise self._error(f"unexpected {token.text!r} after expression", token)

    def _peek(self) -> _Token | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _next(self, expected: str) -> _Token:
        token = self._peek()
        if token is None:
            raise MarkerSyntaxError(
                f"expected {expected}, got end of input in {self._source!r}"
            )
        self._index += 1
        return token

    def _error(self, message: str, token: _Token) -> MarkerSyntaxError:
        return MarkerSyntaxError(f"{message} at {token.start + 1} in {self._source!r}")
