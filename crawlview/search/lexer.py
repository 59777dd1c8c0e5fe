"""Tokenize s-expression search queries.

Terminals come from the package's Lark grammar; the token stream is then
consumed by the recursive-descent parser in :mod:`crawlview.search.parser`.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from importlib import resources

from lark import Lark, UnexpectedCharacters

from crawlview.exceptions import UnexpectedEndError, UnexpectedTokenError


class TokenKind(enum.Enum):
    OPEN_PAREN = "open_paren"
    CLOSE_PAREN = "close_paren"
    STRING = "string"


@dataclass(frozen=True)
class Token:
    """One lexical token: a parenthesis or a string atom."""

    kind: TokenKind
    value: str = ""

    def __str__(self) -> str:
        if self.kind is TokenKind.OPEN_PAREN:
            return "("
        if self.kind is TokenKind.CLOSE_PAREN:
            return ")"
        escaped = self.value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'


OPEN_PAREN = Token(TokenKind.OPEN_PAREN)
CLOSE_PAREN = Token(TokenKind.CLOSE_PAREN)

_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


def _load_grammar() -> str:
    """Load the Lark grammar from the package resources."""
    return resources.files("crawlview.search").joinpath("grammar.lark").read_text()


_GRAMMAR_TEXT = _load_grammar()

_lark = Lark(_GRAMMAR_TEXT, parser="lalr", lexer="basic")


def _unquote(raw: str) -> str:
    return _ESCAPE.sub(r"\1", raw[1:-1])


def tokenize(query: str) -> list[Token]:
    """Split a query into parenthesis and string tokens.

    Quoted strings may contain any character; a backslash makes the next
    character literal, so ``"say \\"hi\\""`` is the atom ``say "hi"``.

    Raises:
        UnexpectedEndError: If the query ends inside a quoted string.
    """
    try:
        raw_tokens = list(_lark.lex(query))
    except UnexpectedCharacters as e:
        # Bare words accept everything else, so only an unclosed quote gets here.
        if query[e.pos_in_stream] == '"':
            raise UnexpectedEndError() from e
        raise UnexpectedTokenError(f"{e.char!r} at column {e.column}") from e

    tokens: list[Token] = []
    for raw in raw_tokens:
        if raw.type == "LPAR":
            tokens.append(OPEN_PAREN)
        elif raw.type == "RPAR":
            tokens.append(CLOSE_PAREN)
        elif raw.type == "STRING":
            tokens.append(Token(TokenKind.STRING, _unquote(str(raw))))
        else:
            tokens.append(Token(TokenKind.STRING, str(raw)))
    return tokens
