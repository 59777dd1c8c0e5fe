"""Data classes for crawled items and their read-only accessors.

Items are loaded from the crawler's camelCase JSON. The search evaluator
only reads from them, so a loaded collection can be shared freely.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar

from bs4 import BeautifulSoup

from crawlview.exceptions import ItemFormatError


class FileKind(enum.Enum):
    """Media kinds a search can filter on."""

    IMAGE = "image"
    VIDEO = "video"
    TEXT = "text"


class TextFormat(enum.Enum):
    """Markup of an item description."""

    MARKDOWN = "markdown"
    PLAINTEXT = "plaintext"
    HTML = "html"


@dataclass
class FormattedText:
    """An item description together with its markup format."""

    format: TextFormat
    value: str

    def text(self) -> str:
        """Return the searchable text of the description.

        Markdown and plain text are searched as written; HTML is reduced
        to its text content.
        """
        if self.format is TextFormat.HTML:
            return BeautifulSoup(self.value, "html.parser").get_text()
        return self.value


@dataclass
class CrawlTag:
    """A tag on an item.

    Simple tags have no group. Detailed tags carry a group such as
    ``artist`` or ``character``; searches compare only the value.
    """

    value: str
    group: str | None = None

    def __str__(self) -> str:
        return self.value


@dataclass
class ImageFile:
    kind: ClassVar[FileKind | None] = FileKind.IMAGE
    type_name: ClassVar[str] = "ImageFile"

    key: str
    filename: str
    url: str
    downloaded: bool = False


@dataclass
class VideoFile:
    kind: ClassVar[FileKind | None] = FileKind.VIDEO
    type_name: ClassVar[str] = "VideoFile"

    key: str
    filename: str
    url: str
    downloaded: bool = False


@dataclass
class IntermediateFile:
    """A container file (archive, gallery page) that may expand to nested files."""

    kind: ClassVar[FileKind | None] = None
    type_name: ClassVar[str] = "IntermediateFile"

    key: str
    filename: str
    url: str
    downloaded: bool = False
    postprocessing_errors: bool = False
    nested: list[CrawlFile] = field(default_factory=list)


@dataclass
class InlineTextFile:
    kind: ClassVar[FileKind | None] = FileKind.TEXT
    type_name: ClassVar[str] = "InlineTextFile"

    key: str
    content: str


CrawlFile = ImageFile | VideoFile | IntermediateFile | InlineTextFile


@dataclass
class CrawlItem:
    """A single crawled post with its files, tags and metadata.

    Attributes:
        title: Display title.
        key: Identifier, unique within a site.
        url: Source URL.
        description: Description with its markup format.
        meta: Arbitrary JSON-like metadata from the crawler.
        source_published: Publish time in milliseconds since the epoch.
        tags: Simple or grouped tags.
        files: Attached files in crawl order.
        site_slug: Slug of the site (work directory) the item came from.
    """

    title: str
    key: str
    url: str
    description: FormattedText = field(
        default_factory=lambda: FormattedText(TextFormat.PLAINTEXT, "")
    )
    meta: Any = None
    source_published: int = 0
    first_seen: int = 0
    last_seen: int = 0
    seen_in_last_refresh: bool = False
    tags: list[CrawlTag] = field(default_factory=list)
    files: list[CrawlFile] = field(default_factory=list)
    site_slug: str = ""

    def description_text(self) -> str:
        return self.description.text()

    def flat_files(self) -> dict[str, CrawlFile]:
        """Return the item's files with containers expanded, keyed by file key.

        An intermediate file is replaced by its nested files when it has
        any; otherwise the container itself is kept.
        """
        flat: dict[str, CrawlFile] = {}
        _flatten_into(self.files, flat)
        return flat

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the crawler's JSON shape."""
        return {
            "title": self.title,
            "key": self.key,
            "url": self.url,
            "description": {
                "format": self.description.format.value,
                "value": self.description.value,
            },
            "meta": self.meta,
            "sourcePublished": self.source_published,
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "seenInLastRefresh": self.seen_in_last_refresh,
            "tags": [_tag_to_json(t) for t in self.tags],
            "files": [_file_to_json(f) for f in self.files],
        }


def _flatten_into(files: list[CrawlFile], flat: dict[str, CrawlFile]) -> None:
    for crawl_file in files:
        if isinstance(crawl_file, IntermediateFile) and crawl_file.nested:
            _flatten_into(crawl_file.nested, flat)
        else:
            flat[crawl_file.key] = crawl_file


def meta_contains(value: Any, needle: str) -> bool:
    """Case-insensitive substring search through a JSON-like value.

    Strings, object keys and the decimal form of numbers are matched;
    booleans and nulls never match.
    """
    return _meta_contains(value, needle.lower())


def _meta_contains(value: Any, needle: str) -> bool:
    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, dict):
        for key, child in value.items():
            if needle in str(key).lower():
                return True
            if _meta_contains(child, needle):
                return True
        return False
    if isinstance(value, (list, tuple)):
        return any(_meta_contains(child, needle) for child in value)
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return needle in str(value).lower()
    return False


# ---------------------------------------------------------------------------
# JSON loading
# ---------------------------------------------------------------------------

_FILE_TYPES = {
    cls.type_name: cls for cls in (ImageFile, VideoFile, IntermediateFile, InlineTextFile)
}


def _require(
    data: dict[str, Any], name: str, kind: type | tuple[type, ...], key: str | None
) -> Any:
    if name not in data:
        raise ItemFormatError(key, f"missing field '{name}'")
    value = data[name]
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ItemFormatError(key, f"field '{name}' has unexpected type {type(value).__name__}")
    return value


def _optional(
    data: dict[str, Any], name: str, kind: type, key: str | None, default: Any
) -> Any:
    if name not in data:
        return default
    return _require(data, name, kind, key)


def tag_from_json(data: Any, item_key: str | None = None) -> CrawlTag:
    if isinstance(data, str):
        return CrawlTag(value=data)
    if isinstance(data, dict):
        value = _require(data, "value", str, item_key)
        group = _require(data, "group", str, item_key)
        return CrawlTag(value=value, group=group)
    raise ItemFormatError(item_key, f"tag must be a string or object, got {type(data).__name__}")


def _tag_to_json(tag: CrawlTag) -> Any:
    if tag.group is None:
        return tag.value
    return {"value": tag.value, "group": tag.group}


def file_from_json(data: Any, item_key: str | None = None) -> CrawlFile:
    if not isinstance(data, dict):
        raise ItemFormatError(item_key, "file entries must be objects")
    type_name = data.get("type")
    cls = _FILE_TYPES.get(type_name) if isinstance(type_name, str) else None
    if cls is None:
        raise ItemFormatError(item_key, f"unknown file type {type_name!r}")

    key = _require(data, "key", str, item_key)
    if cls is InlineTextFile:
        return InlineTextFile(key=key, content=_require(data, "content", str, item_key))

    filename = _require(data, "filename", str, item_key)
    url = _require(data, "url", str, item_key)
    downloaded = bool(data.get("downloaded", False))
    if cls is IntermediateFile:
        nested = data.get("nested", [])
        if not isinstance(nested, list):
            raise ItemFormatError(item_key, "field 'nested' must be a list")
        return IntermediateFile(
            key=key,
            filename=filename,
            url=url,
            downloaded=downloaded,
            postprocessing_errors=bool(data.get("postprocessingErrors", False)),
            nested=[file_from_json(child, item_key) for child in nested],
        )
    return cls(key=key, filename=filename, url=url, downloaded=downloaded)


def _file_to_json(crawl_file: CrawlFile) -> dict[str, Any]:
    if isinstance(crawl_file, InlineTextFile):
        return {"type": crawl_file.type_name, "key": crawl_file.key, "content": crawl_file.content}
    data: dict[str, Any] = {
        "type": crawl_file.type_name,
        "key": crawl_file.key,
        "filename": crawl_file.filename,
        "downloaded": crawl_file.downloaded,
        "url": crawl_file.url,
    }
    if isinstance(crawl_file, IntermediateFile):
        data["postprocessingErrors"] = crawl_file.postprocessing_errors
        data["nested"] = [_file_to_json(child) for child in crawl_file.nested]
    return data


def _description_from_json(data: Any, item_key: str | None) -> FormattedText:
    if not isinstance(data, dict):
        raise ItemFormatError(item_key, "description must be an object")
    try:
        text_format = TextFormat(data.get("format"))
    except ValueError as e:
        raise ItemFormatError(item_key, f"unknown description format {data.get('format')!r}") from e
    return FormattedText(format=text_format, value=_require(data, "value", str, item_key))


def item_from_json(data: Any, site_slug: str = "") -> CrawlItem:
    """Build a CrawlItem from one entry of ``crawled.json``.

    Raises:
        ItemFormatError: If required fields are missing or mistyped.
    """
    if not isinstance(data, dict):
        raise ItemFormatError(None, "items must be objects")
    key = data.get("key") if isinstance(data.get("key"), str) else None
    key = _require(data, "key", str, key)

    return CrawlItem(
        title=_require(data, "title", str, key),
        key=key,
        url=_require(data, "url", str, key),
        description=_description_from_json(data.get("description"), key),
        meta=data.get("meta"),
        source_published=_require(data, "sourcePublished", int, key),
        first_seen=_optional(data, "firstSeen", int, key, 0),
        last_seen=_optional(data, "lastSeen", int, key, 0),
        seen_in_last_refresh=bool(data.get("seenInLastRefresh", False)),
        tags=[tag_from_json(t, key) for t in _optional(data, "tags", list, key, [])],
        files=[file_from_json(f, key) for f in _optional(data, "files", list, key, [])],
        site_slug=site_slug,
    )
