from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import cast

from bs4 import BeautifulSoup, Tag

from tmarks.services.import_export.normalize import normalize_tags, normalize_timestamp
from tmarks.services.import_export.types import (
    ImportData,
    ParsedBookmark,
    ValidationIssue,
    ValidationResult,
    WalkResult,
    build_import_data,
)
from tmarks.services.import_export.validation import validate_import_data
from tmarks.services.import_export.walkers import (
    DEFAULT_MAX_DEPTH,
    FOLDER_SEPARATOR,
    UNTITLED,
    TagCollector,
    depth_warning,
)

log = logging.getLogger(__name__)


@dataclass
class _Entry:
    dt: Tag
    folder_path: tuple[str, ...]
    depth: int


def _iter_dt_entries(dl: Tag) -> list[Tag]:
    entries: list[Tag] = []
    for dt in dl.find_all("dt"):
        if not isinstance(dt, Tag):
            continue
        parent_dl = dt.find_parent("dl")
        if parent_dl is dl:
            entries.append(cast(Tag, dt))
    return entries


def _find_nested_dl(dt: Tag) -> Tag | None:
    nested = dt.find("dl")
    if isinstance(nested, Tag):
        return nested

    sibling = dt.next_sibling
    while sibling is not None:
        if isinstance(sibling, Tag):
            name = (sibling.name or "").lower()
            if name == "dl":
                return sibling
            if name == "dt":
                return None
        sibling = sibling.next_sibling
    return None


def _find_in_dt(dt: Tag, names) -> Tag | None:
    for found in dt.find_all(names):
        if isinstance(found, Tag) and found.find_parent("dt") is dt:
            return found
    return None


def _find_description(dt: Tag) -> str | None:
    dd = _find_in_dt(dt, "dd")
    if dd is None:
        sibling = dt.next_sibling
        while sibling is not None:
            if isinstance(sibling, Tag):
                name = (sibling.name or "").lower()
                if name == "dd":
                    dd = sibling
                break
            sibling = sibling.next_sibling
    if dd is None:
        return None
    text = dd.get_text(" ", strip=True)
    return text or None


def _add_date(anchor: Tag) -> str | None:
    raw = anchor.get("add_date")
    if not isinstance(raw, str) or not raw.strip().isdigit():
        return None
    # Netscape files count seconds since the Unix epoch.
    return normalize_timestamp(int(raw.strip()) * 1000)


def _push_entries(stack: list[_Entry], dl: Tag, path: tuple[str, ...], depth: int):
    for dt in reversed(_iter_dt_entries(dl)):
        stack.append(_Entry(dt, path, depth))


def walk_bookmark_html(html: str, max_depth: int = DEFAULT_MAX_DEPTH) -> WalkResult:
    soup = BeautifulSoup(html, "lxml")
    root = soup.find("dl")
    if not isinstance(root, Tag):
        return WalkResult([], [])

    bookmarks: list[ParsedBookmark] = []
    collector = TagCollector()
    warnings: list[ValidationIssue] = []

    stack: list[_Entry] = []
    _push_entries(stack, root, (), 1)

    while stack:
        entry = stack.pop()
        dt = entry.dt
        anchor = _find_in_dt(dt, "a")
        href = ""
        if anchor is not None:
            href_value = anchor.get("href")
            href = href_value.strip() if isinstance(href_value, str) else ""

        if anchor is not None and href:
            folder = FOLDER_SEPARATOR.join(entry.folder_path) or None
            tags = normalize_tags(anchor.get("tags"))
            if folder:
                tags.append(folder)
            collector.add_all(tags)
            bookmarks.append(
                ParsedBookmark(
                    title=anchor.get_text(strip=True) or UNTITLED,
                    url=href,
                    description=_find_description(dt),
                    tags=tags,
                    created_at=_add_date(anchor),
                    folder=folder,
                )
            )

        nested_dl = _find_nested_dl(dt)
        folder_heading = _find_in_dt(dt, ["h3", "h2", "h1"])
        if folder_heading is None and nested_dl is not None:
            for heading in dt.find_all(["h3", "h2", "h1"]):
                if isinstance(heading, Tag):
                    folder_heading = heading
                    break

        if folder_heading is not None and nested_dl is not None:
            name = folder_heading.get_text(strip=True)
            path = entry.folder_path + (name,) if name else entry.folder_path
            if entry.depth >= max_depth:
                warnings.append(depth_warning(FOLDER_SEPARATOR.join(path), max_depth))
                continue
            _push_entries(stack, nested_dl, path, entry.depth + 1)

    return WalkResult(bookmarks, collector.to_tags(), warnings)


class HtmlParser:
    """Parser for the Netscape bookmark HTML that every browser can export."""

    format = "html"

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def parse(self, content: str | bytes) -> ImportData:
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="ignore")
        result = walk_bookmark_html(content, max_depth=self.max_depth)
        log.info(
            "Parsed bookmark HTML: %d bookmarks, %d tags",
            len(result.bookmarks),
            len(result.tags),
        )
        return build_import_data(result, source=self.format)

    def validate(self, data: ImportData) -> ValidationResult:
        return validate_import_data(data)
