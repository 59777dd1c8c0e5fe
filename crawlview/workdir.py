"""Loading crawl work directories.

A work directory is what the crawler leaves behind for one site::

    <workdir>/
        config.json     {"site": "...", "slug": "..."}
        crawled.json    [ {item}, {item}, ... ]     (optional)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from crawlview.exceptions import ItemFormatError, WorkDirError
from crawlview.models import CrawlItem, item_from_json

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
CRAWLED_FILENAME = "crawled.json"


@dataclass
class WorkDir:
    """A loaded work directory.

    Attributes:
        path: Directory the data was read from.
        site: Site identifier from ``config.json``.
        slug: Short name used by the ``site`` search predicate.
        items: Items in crawl order, one per key.
    """

    path: Path
    site: str
    slug: str
    items: list[CrawlItem] = field(default_factory=list)


def _read_json(path: Path, work_dir: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise WorkDirError(work_dir, f"unable to open {path.name}: {e.strerror or e}") from e
    except ValueError as e:
        # Covers both invalid JSON and invalid UTF-8.
        raise WorkDirError(work_dir, f"{path.name} was not well-formatted: {e}") from e


def _load_items(data: Any, slug: str, work_dir: Path) -> list[CrawlItem]:
    if not isinstance(data, list):
        raise WorkDirError(work_dir, f"{CRAWLED_FILENAME} must contain a JSON array")

    # A later entry with the same key replaces the earlier one in place.
    by_key: dict[str, CrawlItem] = {}
    for index, entry in enumerate(data):
        try:
            item = item_from_json(entry, site_slug=slug)
        except ItemFormatError as e:
            logger.warning("Skipping item %d in %s: %s", index, work_dir, e)
            continue
        by_key[item.key] = item
    return list(by_key.values())


def load_work_dir(path: Path) -> WorkDir:
    """Load one work directory.

    Items that do not match the crawler's item format are skipped with a
    warning; a missing ``crawled.json`` means the site has no items yet.

    Raises:
        WorkDirError: If ``config.json`` is missing or malformed, or
            ``crawled.json`` exists but cannot be read as an array.
    """
    path = Path(path).expanduser()
    if not path.is_dir():
        raise WorkDirError(path, "not a directory")

    config = _read_json(path / CONFIG_FILENAME, path)
    if not isinstance(config, dict) or not isinstance(config.get("site"), str):
        raise WorkDirError(path, f"{CONFIG_FILENAME} must be an object with a 'site' string")
    site = config["site"]
    slug = config.get("slug")
    if slug is None:
        slug = site
    elif not isinstance(slug, str):
        raise WorkDirError(path, f"'slug' in {CONFIG_FILENAME} must be a string")

    crawled_path = path / CRAWLED_FILENAME
    items: list[CrawlItem] = []
    if crawled_path.exists():
        items = _load_items(_read_json(crawled_path, path), slug, path)

    logger.debug("Loaded %d items for site %s from %s", len(items), slug, path)
    return WorkDir(path=path, site=site, slug=slug, items=items)


def load_work_dirs(paths: Iterable[Path]) -> list[WorkDir]:
    """Load several work directories, failing on the first bad one."""
    return [load_work_dir(p) for p in paths]
