"""Evaluate SearchExpr trees against crawled items."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, tzinfo

from crawlview import timestring
from crawlview.exceptions import TimeStringError
from crawlview.models import CrawlItem, InlineTextFile, meta_contains
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

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 15


@dataclass
class Page:
    """One page of search results."""

    items: list[CrawlItem] = field(default_factory=list)
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE
    total: int = 0

    @property
    def page_count(self) -> int:
        return math.ceil(self.total / self.per_page)


def evaluate(
    expr: SearchExpr,
    item: CrawlItem,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> bool:
    """Return whether ``item`` matches ``expr``.

    Time predicates are resolved against ``now`` (default: the current
    time), not against the time the query was parsed.
    """
    tz = tz or timestring.DEFAULT_TIMEZONE
    now = now or datetime.now(tz)
    return _evaluate(expr, item, now, tz)


def _evaluate(expr: SearchExpr, item: CrawlItem, now: datetime, tz: tzinfo) -> bool:
    if isinstance(expr, And):
        return all(_evaluate(child, item, now, tz) for child in expr.children)
    if isinstance(expr, Or):
        return any(_evaluate(child, item, now, tz) for child in expr.children)
    if isinstance(expr, Not):
        return not _evaluate(expr.child, item, now, tz)

    if isinstance(expr, Tag):
        wanted = expr.value.lower()
        return any(str(tag).lower() == wanted for tag in item.tags)
    if isinstance(expr, Type):
        return any(f.kind is expr.kind for f in item.flat_files().values())
    if isinstance(expr, Site):
        return item.site_slug == expr.value
    if isinstance(expr, Fulltext):
        return _fulltext_matches(item, expr.value)
    if isinstance(expr, Title):
        return expr.value.lower() in item.title.lower()
    if isinstance(expr, Meta):
        return meta_contains(item.meta, expr.value)
    if isinstance(expr, Desc):
        return expr.value.lower() in item.description_text().lower()
    if isinstance(expr, Url):
        return expr.value.lower() in item.url.lower()

    if isinstance(expr, After):
        return item.source_published >= _resolve(expr.raw, now, tz).for_after()
    if isinstance(expr, Before):
        return item.source_published <= _resolve(expr.raw, now, tz).for_before()
    if isinstance(expr, During):
        return _resolve(expr.raw, now, tz).contains(item.source_published)

    raise TypeError(f"Unknown search expression: {expr!r}")


def _fulltext_matches(item: CrawlItem, text: str) -> bool:
    needle = text.lower()
    if needle in item.title.lower():
        return True
    if needle in item.url.lower():
        return True
    if needle in item.description_text().lower():
        return True
    if meta_contains(item.meta, text):
        return True
    return any(
        isinstance(f, InlineTextFile) and needle in f.content.lower()
        for f in item.flat_files().values()
    )


def _resolve(raw: str, now: datetime, tz: tzinfo) -> timestring.TimeSpec:
    try:
        return timestring.parse(raw, now, tz)
    except TimeStringError as e:
        # The parser only builds time predicates it could resolve.
        raise AssertionError(
            f"Time string should have been validated while parsing: {raw!r}"
        ) from e


def filter_items(
    items: Iterable[CrawlItem],
    expr: SearchExpr,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> list[CrawlItem]:
    """Return the items matching ``expr``, in their original order.

    All items are compared against the same ``now``.
    """
    tz = tz or timestring.DEFAULT_TIMEZONE
    now = now or datetime.now(tz)
    return [item for item in items if _evaluate(expr, item, now, tz)]


def paginate(items: list[CrawlItem], page: int, per_page: int = DEFAULT_PER_PAGE) -> Page:
    """Slice one 1-based page out of ``items``.

    Pages past the end are empty.

    Raises:
        ValueError: If ``page`` or ``per_page`` is less than 1.
    """
    if page < 1:
        raise ValueError(f"page must be at least 1, got {page}")
    if per_page < 1:
        raise ValueError(f"per_page must be at least 1, got {per_page}")
    start = (page - 1) * per_page
    return Page(
        items=items[start : start + per_page],
        page=page,
        per_page=per_page,
        total=len(items),
    )


def execute_search(
    items: Iterable[CrawlItem],
    expr: SearchExpr,
    *,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> Page:
    """Filter ``items`` by ``expr``, newest first, and return one page.

    Args:
        items: The collection to scan.
        expr: Parsed search expression.
        page: 1-based page number.
        per_page: Page size.
        now: Reference time for time predicates (default: current time).
        tz: Timezone for time predicates (default: America/New_York).

    Returns:
        The requested page; ``total`` counts all matches.
    """
    matches = filter_items(items, expr, now=now, tz=tz)
    matches.sort(key=lambda item: item.source_published, reverse=True)
    logger.debug("Search matched %d items", len(matches))
    return paginate(matches, page, per_page)
