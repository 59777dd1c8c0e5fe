"""AST data classes for parsed search expressions.

Nodes are immutable and only ever built by the parser, which validates
arity, enumerated values and time strings, so every node can be evaluated
without further checks.
"""

from __future__ import annotations

from dataclasses import dataclass

from crawlview.models import FileKind


@dataclass(frozen=True)
class And:
    """True when every child matches."""

    children: tuple[SearchExpr, ...]


@dataclass(frozen=True)
class Or:
    """True when any child matches."""

    children: tuple[SearchExpr, ...]


@dataclass(frozen=True)
class Not:
    child: SearchExpr


@dataclass(frozen=True)
class Tag:
    """Case-insensitive exact match on a tag's display value."""

    value: str


@dataclass(frozen=True)
class Type:
    """At least one flattened file has the given media kind."""

    kind: FileKind


@dataclass(frozen=True)
class Site:
    """Case-sensitive match on the item's site slug."""

    value: str


@dataclass(frozen=True)
class Fulltext:
    """Substring of title, url, description, metadata or inline text files."""

    value: str


@dataclass(frozen=True)
class Title:
    value: str


@dataclass(frozen=True)
class Meta:
    value: str


@dataclass(frozen=True)
class Desc:
    value: str


@dataclass(frozen=True)
class Url:
    value: str


@dataclass(frozen=True)
class After:
    """Published at or after the time string.

    The raw string is kept and resolved again on each evaluation, so
    relative expressions like ``today`` stay current.
    """

    raw: str


@dataclass(frozen=True)
class Before:
    """Published at or before the time string."""

    raw: str


@dataclass(frozen=True)
class During:
    """Published within the time range named by the string."""

    raw: str


SearchExpr = (
    And | Or | Not | Tag | Type | Site | Fulltext | Title | Meta | Desc | Url
    | After | Before | During
)
