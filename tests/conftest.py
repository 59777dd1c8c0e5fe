"""Shared pytest fixtures."""

from __future__ import annotations

import json
import shutil
import tempfile
from datetime import datetime, tzinfo
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest
from dateutil import tz as dateutil_tz

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from crawlview.models import CrawlItem

# Wed Jan 15 2025 12:00:00 EST (17:00:00 UTC)
NOW_MS = 1736960400000


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    path = Path(tempfile.mkdtemp())
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def new_york() -> tzinfo:
    return dateutil_tz.gettz("America/New_York")


@pytest.fixture
def fixed_now(new_york: tzinfo) -> datetime:
    """Wednesday, January 15 2025, noon in New York."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=new_york)


def item_json(key: str, **overrides: Any) -> dict[str, Any]:
    """Build one crawled.json entry with sensible defaults."""
    data: dict[str, Any] = {
        "title": f"Post {key}",
        "key": key,
        "url": f"https://example.com/posts/{key}",
        "description": {"format": "plaintext", "value": ""},
        "meta": None,
        "sourcePublished": NOW_MS,
        "firstSeen": NOW_MS,
        "lastSeen": NOW_MS,
        "seenInLastRefresh": True,
        "tags": [],
        "files": [],
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_item() -> Callable[..., CrawlItem]:
    """Factory for CrawlItems built through the JSON loader."""
    from crawlview.models import item_from_json

    def _make(key: str = "1", site_slug: str = "gallery", **overrides: Any) -> CrawlItem:
        return item_from_json(item_json(key, **overrides), site_slug=site_slug)

    return _make


def write_work_dir(
    path: Path,
    site: str,
    items: list[dict[str, Any]] | None,
    slug: str | None = None,
) -> Path:
    """Write config.json (and crawled.json when items is not None) into path."""
    path.mkdir(parents=True, exist_ok=True)
    config: dict[str, Any] = {"site": site}
    if slug is not None:
        config["slug"] = slug
    (path / "config.json").write_text(json.dumps(config))
    if items is not None:
        (path / "crawled.json").write_text(json.dumps(items))
    return path


@pytest.fixture
def sample_work_dir(temp_dir: Path) -> Path:
    """A work directory with a small mixed collection."""
    day = 24 * 60 * 60 * 1000
    items = [
        item_json(
            "sunset",
            title="Sunset over the bay",
            sourcePublished=NOW_MS - 2 * day,
            tags=["landscape", {"value": "Alice", "group": "artist"}],
            files=[
                {
                    "type": "ImageFile",
                    "key": "sunset.jpg",
                    "filename": "sunset.jpg",
                    "downloaded": True,
                    "url": "https://example.com/sunset.jpg",
                }
            ],
        ),
        item_json(
            "clip",
            title="Harbour timelapse",
            sourcePublished=NOW_MS - 40 * day,
            tags=["timelapse"],
            files=[
                {
                    "type": "VideoFile",
                    "key": "clip.mp4",
                    "filename": "clip.mp4",
                    "downloaded": False,
                    "url": "https://example.com/clip.mp4",
                }
            ],
        ),
        item_json(
            "notes",
            title="Field notes",
            sourcePublished=NOW_MS - 400 * day,
            description={"format": "html", "value": "<p>Shot on <b>film</b></p>"},
            meta={"camera": "Leica M6", "iso": 400},
            files=[{"type": "InlineTextFile", "key": "notes.txt", "content": "Tripod needed"}],
        ),
    ]
    return write_work_dir(temp_dir / "gallery", "photo-gallery", items, slug="gallery")


@pytest.fixture
def sample_config(temp_dir: Path, sample_work_dir: Path) -> Path:
    """Create a sample config file pointing at the sample work dir."""
    config_path = temp_dir / "config.toml"
    config_path.write_text(f"""[search]
timezone = "America/New_York"
per_page = 2

[paths]
work_dirs = ["{sample_work_dir}"]

[display]
colored_output = false
""")
    return config_path


@pytest.fixture
def build_item_json() -> Callable[..., dict[str, Any]]:
    return item_json


@pytest.fixture
def build_work_dir() -> Callable[..., Path]:
    return write_work_dir
