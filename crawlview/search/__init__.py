"""S-expression search queries over crawled items."""

from crawlview.exceptions import (
    InvalidArgumentError,
    InvalidFunctionError,
    InvalidTimestampError,
    SearchParseError,
    UnexpectedEndError,
    UnexpectedTokenError,
)
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
from crawlview.search.parser import parse_search_expr
from crawlview.search.query import Page, evaluate, execute_search, filter_items, paginate

__all__ = [
    "After",
    "And",
    "Before",
    "Desc",
    "During",
    "Fulltext",
    "InvalidArgumentError",
    "InvalidFunctionError",
    "InvalidTimestampError",
    "Meta",
    "Not",
    "Or",
    "Page",
    "SearchExpr",
    "SearchParseError",
    "Site",
    "Tag",
    "Title",
    "Type",
    "UnexpectedEndError",
    "UnexpectedTokenError",
    "Url",
    "evaluate",
    "execute_search",
    "filter_items",
    "paginate",
    "parse_search_expr",
]
