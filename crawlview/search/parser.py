"""Parse s-expression search queries into an AST.

Grammar::

    expr    := '(' fn-name arg* ')'
    arg     := expr | string
    string  := '"' chars '"' | bare-word

Function names are case-insensitive. ``and``/``or`` take one or more
expressions, ``not`` exactly one, and every other function exactly one
string. Arguments are checked while parsing, so a returned expression can
always be evaluated.
"""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo

from crawlview import timestring
from crawlview.exceptions import (
    InvalidArgumentError,
    InvalidFunctionError,
    InvalidTimestampError,
    TimeStringError,
    UnexpectedEndError,
    UnexpectedTokenError,
)
from crawlview.models import FileKind
from crawlview.search.ast_nodes import (
    After,
    And,
    Before,
    Desc,
    During,
    Fulltext,
    Meta,
    Not,
    Or,
    SearchExpr,
    Site,
    Tag,
    Title,
    Type,
    Url,
)
from crawlview.search.lexer import Token, TokenKind, tokenize

logger = logging.getLogger(__name__)

# Functions taking a single free-form string.
_STRING_FUNCTIONS: dict[str, type] = {
    "tag": Tag,
    "site": Site,
    "fulltext": Fulltext,
    "title": Title,
    "meta": Meta,
    "desc": Desc,
    "url": Url,
}

_TIME_FUNCTIONS: dict[str, type] = {
    "after": After,
    "before": Before,
    "during": During,
}

LEAF_FUNCTIONS: frozenset[str] = frozenset({"type", *_STRING_FUNCTIONS, *_TIME_FUNCTIONS})

KNOWN_FUNCTIONS: frozenset[str] = frozenset({"and", "or", "not", *LEAF_FUNCTIONS})


def parse_search_expr(
    query: str,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> SearchExpr:
    """Parse a search query string into a SearchExpr.

    Args:
        query: The query, e.g. ``(and (tag "cute") (type "image"))``.
        now: Reference time for validating time strings (default: current time).
        tz: Timezone for interpreting time strings (default: America/New_York).

    Returns:
        The parsed expression.

    Raises:
        SearchParseError: One of its subclasses, describing why the query
            was rejected.
    """
    tz = tz or timestring.DEFAULT_TIMEZONE
    now = now or datetime.now(tz)

    tokens = tokenize(query)
    expr, pos = parse_expr(tokens, 0, now=now, tz=tz)
    if pos < len(tokens):
        rest = " ".join(str(token) for token in tokens[pos:])
        raise UnexpectedTokenError(f"Unexpected tokens after expression: {rest}")

    logger.debug("Parsed search query %r: %s", query, expr)
    return expr


def parse_expr(
    tokens: list[Token],
    pos: int,
    *,
    now: datetime,
    tz: tzinfo,
) -> tuple[SearchExpr, int]:
    """Parse one form starting at ``tokens[pos]``.

    Returns:
        The expression and the position just past its closing parenthesis.
    """
    if pos >= len(tokens):
        raise UnexpectedEndError()

    token = tokens[pos]
    if token.kind is TokenKind.STRING:
        raise UnexpectedTokenError(f"Unexpected string token at top level: {token.value}")
    if token.kind is TokenKind.CLOSE_PAREN:
        raise UnexpectedTokenError("Unexpected ')'")

    pos += 1
    if pos >= len(tokens):
        raise UnexpectedEndError()
    name_token = tokens[pos]
    if name_token.kind is not TokenKind.STRING:
        raise UnexpectedTokenError(str(name_token))
    pos += 1

    name = name_token.value
    lowered = name.lower()

    if lowered in ("and", "or"):
        return _parse_variadic(lowered, tokens, pos, now=now, tz=tz)
    if lowered == "not":
        return _parse_not(tokens, pos, now=now, tz=tz)
    if lowered in LEAF_FUNCTIONS:
        return _parse_leaf(name, tokens, pos, now=now, tz=tz)
    raise InvalidFunctionError(name)


def _parse_variadic(
    name: str,
    tokens: list[Token],
    pos: int,
    *,
    now: datetime,
    tz: tzinfo,
) -> tuple[SearchExpr, int]:
    children: list[SearchExpr] = []
    while True:
        if pos >= len(tokens):
            raise UnexpectedEndError()
        if tokens[pos].kind is TokenKind.CLOSE_PAREN:
            pos += 1
            break
        child, pos = parse_expr(tokens, pos, now=now, tz=tz)
        children.append(child)

    if not children:
        raise InvalidArgumentError(f"{name} requires at least one argument")
    node = And if name == "and" else Or
    return node(tuple(children)), pos


def _parse_not(
    tokens: list[Token],
    pos: int,
    *,
    now: datetime,
    tz: tzinfo,
) -> tuple[SearchExpr, int]:
    child, pos = parse_expr(tokens, pos, now=now, tz=tz)
    if pos >= len(tokens) or tokens[pos].kind is not TokenKind.CLOSE_PAREN:
        raise InvalidArgumentError("not requires exactly one argument")
    return Not(child), pos + 1


def _parse_leaf(
    name: str,
    tokens: list[Token],
    pos: int,
    *,
    now: datetime,
    tz: tzinfo,
) -> tuple[SearchExpr, int]:
    if pos >= len(tokens):
        raise UnexpectedEndError()

    token = tokens[pos]
    if token.kind is TokenKind.OPEN_PAREN:
        raise InvalidArgumentError(f"{name} requires a string argument")
    if token.kind is TokenKind.CLOSE_PAREN:
        raise InvalidArgumentError(f"{name} requires an argument")
    pos += 1

    if pos >= len(tokens) or tokens[pos].kind is not TokenKind.CLOSE_PAREN:
        raise InvalidArgumentError(f"{name} requires exactly one argument")
    pos += 1

    return _build_leaf(name, token.value, now=now, tz=tz), pos


def _build_leaf(name: str, arg: str, *, now: datetime, tz: tzinfo) -> SearchExpr:
    lowered = name.lower()

    if lowered == "type":
        try:
            return Type(FileKind(arg.lower()))
        except ValueError:
            raise InvalidArgumentError(
                f"type must be 'image', 'video', or 'text', got: {arg}"
            ) from None

    if lowered in _STRING_FUNCTIONS:
        return _STRING_FUNCTIONS[lowered](arg)

    try:
        spec = timestring.parse(arg, now, tz)
    except TimeStringError as e:
        raise InvalidTimestampError(arg) from e

    if lowered == "during" and not spec.is_range():
        raise InvalidArgumentError(
            f"during requires a time range, not a specific moment: {arg}"
        )
    return _TIME_FUNCTIONS[lowered](arg)
