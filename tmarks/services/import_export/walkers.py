from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from tmarks.services.import_export.colors import generate_tag_color
from tmarks.services.import_export.detect import (
    FORMAT_CHROME,
    FORMAT_FIREFOX,
    FORMAT_GENERIC,
    FORMAT_TMARKS,
)
from tmarks.services.import_export.errors import StructureError
from tmarks.services.import_export.normalize import (
    WEBKIT_EPOCH,
    coerce_text,
    first_value,
    js_truthy,
    normalize_tags,
    normalize_timestamp,
)
from tmarks.services.import_export.types import (
    ParsedBookmark,
    ParsedTag,
    ValidationIssue,
    WalkResult,
)

log = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64
FOLDER_SEPARATOR = "/"
UNTITLED = "Untitled"

CHROME_ROOTS = (
    ("bookmark_bar", "Bookmarks Bar"),
    ("other", "Other Bookmarks"),
    ("synced", "Mobile Bookmarks"),
)
FIREFOX_PLACE_TYPE = "text/x-moz-place"


class TagCollector:
    """Ordered set of tag names; colors are filled in when the run ends."""

    def __init__(self) -> None:
        self._colors: dict[str, Any] = {}

    def add(self, name: str, color: Any = None) -> None:
        if name not in self._colors:
            self._colors[name] = color

    def add_all(self, names: list[str]) -> None:
        for name in names:
            self.add(name)

    def to_tags(self) -> list[ParsedTag]:
        return [
            ParsedTag(name=name, color=color if color else generate_tag_color(name))
            for name, color in self._colors.items()
        ]


@dataclass
class _Frame:
    node: Any
    path: tuple[str, ...]
    depth: int
    locator: str


def _push_children(
    stack: list[_Frame],
    children: list,
    path: tuple[str, ...],
    depth: int,
    locator: str,
) -> None:
    # Reversed so the stack pops children in document order.
    for index in range(len(children) - 1, -1, -1):
        stack.append(
            _Frame(children[index], path, depth, f"{locator}.children[{index}]")
        )


def depth_warning(locator: str, max_depth: int) -> ValidationIssue:
    log.warning("Skipping %s: nesting deeper than %d levels", locator, max_depth)
    return ValidationIssue(
        field=locator,
        message=f"Folder nesting exceeds {max_depth} levels, subtree skipped",
        value=max_depth,
    )


def _join_path(path: tuple[str, ...]) -> str | None:
    return FOLDER_SEPARATOR.join(path) or None


def walk_tmarks(document: dict, max_depth: int = DEFAULT_MAX_DEPTH) -> WalkResult:
    entries = document.get("bookmarks")
    declared_tags = document.get("tags")
    if not isinstance(entries, list):
        raise StructureError("TMarks export bookmarks must be an array")
    if not isinstance(declared_tags, list):
        raise StructureError("TMarks export tags must be an array")

    collector = TagCollector()
    warnings: list[ValidationIssue] = []

    for index, tag in enumerate(declared_tags):
        if not isinstance(tag, dict):
            warnings.append(
                ValidationIssue(f"tags[{index}]", "Skipping malformed tag entry", tag)
            )
            continue
        collector.add(coerce_text(tag.get("name")) or "", tag.get("color"))

    bookmarks: list[ParsedBookmark] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            warnings.append(
                ValidationIssue(
                    f"bookmarks[{index}]", "Skipping malformed bookmark entry", entry
                )
            )
            continue
        tags = entry.get("tags") if js_truthy(entry.get("tags")) else []
        names = normalize_tags(tags)
        collector.add_all(names)
        if isinstance(tags, list):
            tags = names
        bookmarks.append(
            ParsedBookmark(
                title=entry.get("title"),
                url=entry.get("url"),
                description=entry.get("description"),
                cover_image=entry.get("cover_image"),
                tags=tags,
                created_at=entry.get("created_at"),
            )
        )

    return WalkResult(bookmarks, collector.to_tags(), warnings)


def walk_chrome(document: dict, max_depth: int = DEFAULT_MAX_DEPTH) -> WalkResult:
    roots = document.get("roots")
    if not isinstance(roots, dict):
        raise StructureError("Chrome bookmarks file has no roots object")

    stack: list[_Frame] = []
    for key, label in reversed(CHROME_ROOTS):
        root = roots.get(key)
        if isinstance(root, dict) and isinstance(root.get("children"), list):
            _push_children(stack, root["children"], (label,), 1, f"roots.{key}")

    bookmarks: list[ParsedBookmark] = []
    collector = TagCollector()
    warnings: list[ValidationIssue] = []

    while stack:
        frame = stack.pop()
        node = frame.node
        if not isinstance(node, dict):
            log.debug("Skipping non-object node at %s", frame.locator)
            continue

        node_type = node.get("type")
        if node_type == "url":
            folder = _join_path(frame.path)
            if folder:
                collector.add(folder)
            bookmarks.append(
                ParsedBookmark(
                    title=coerce_text(node.get("name")) or UNTITLED,
                    url=coerce_text(node.get("url")),
                    tags=[folder] if folder else [],
                    created_at=normalize_timestamp(
                        node.get("date_added"),
                        epoch=WEBKIT_EPOCH,
                        numeric_strings=True,
                    ),
                    folder=folder,
                )
            )
        elif node_type == "folder" and isinstance(node.get("children"), list):
            if frame.depth >= max_depth:
                warnings.append(depth_warning(frame.locator, max_depth))
                continue
            name = coerce_text(node.get("name"))
            path = frame.path + (name,) if name else frame.path
            _push_children(
                stack, node["children"], path, frame.depth + 1, frame.locator
            )

    return WalkResult(bookmarks, collector.to_tags(), warnings)


def walk_firefox(document: dict, max_depth: int = DEFAULT_MAX_DEPTH) -> WalkResult:
    children = document.get("children")
    if not isinstance(children, list):
        raise StructureError("Firefox bookmarks backup has no children array")

    stack: list[_Frame] = []
    _push_children(stack, children, (), 1, "root")

    bookmarks: list[ParsedBookmark] = []
    collector = TagCollector()
    warnings: list[ValidationIssue] = []

    while stack:
        frame = stack.pop()
        node = frame.node
        if not isinstance(node, dict):
            log.debug("Skipping non-object node at %s", frame.locator)
            continue

        uri = coerce_text(node.get("uri"))
        if node.get("type") == FIREFOX_PLACE_TYPE and uri:
            folder = _join_path(frame.path)
            tags = normalize_tags(node.get("tags"))
            if folder:
                tags.append(folder)
            collector.add_all(tags)
            bookmarks.append(
                ParsedBookmark(
                    title=coerce_text(node.get("title")) or UNTITLED,
                    url=uri,
                    description=coerce_text(node.get("description")),
                    tags=tags,
                    created_at=normalize_timestamp(node.get("dateAdded")),
                    folder=folder,
                )
            )
        elif isinstance(node.get("children"), list):
            if frame.depth >= max_depth:
                warnings.append(depth_warning(frame.locator, max_depth))
                continue
            title = coerce_text(node.get("title"))
            path = frame.path + (title,) if title else frame.path
            _push_children(
                stack, node["children"], path, frame.depth + 1, frame.locator
            )

    return WalkResult(bookmarks, collector.to_tags(), warnings)


def walk_generic(document: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> WalkResult:
    if isinstance(document, list):
        records = document
    elif isinstance(document, dict) and isinstance(document.get("bookmarks"), list):
        records = document["bookmarks"]
    else:
        raise StructureError("Cannot find bookmark array in JSON")

    bookmarks: list[ParsedBookmark] = []
    collector = TagCollector()
    warnings: list[ValidationIssue] = []

    for index, record in enumerate(records):
        if not isinstance(record, dict):
            warnings.append(
                ValidationIssue(
                    f"bookmarks[{index}]", "Skipping malformed bookmark entry", record
                )
            )
            continue

        raw_tags = first_value(record, "tags", "categories")
        present = [record[key] for key in ("tags", "categories") if key in record]
        unsupported = [
            value
            for value in present
            if value is not None and not isinstance(value, (str, list))
        ]
        if unsupported and not isinstance(raw_tags, (str, list)):
            warnings.append(
                ValidationIssue(
                    f"bookmarks[{index}].tags",
                    "Unsupported tags value, ignoring",
                    unsupported[0],
                )
            )
        tags = normalize_tags(raw_tags)
        collector.add_all(tags)

        bookmarks.append(
            ParsedBookmark(
                title=coerce_text(first_value(record, "title", "name")) or UNTITLED,
                url=coerce_text(first_value(record, "url", "href", "link")),
                description=coerce_text(
                    first_value(record, "description", "desc", "note")
                ),
                tags=tags,
                created_at=normalize_timestamp(
                    first_value(record, "created_at", "date", "timestamp")
                ),
                folder=coerce_text(first_value(record, "folder", "category")),
            )
        )

    return WalkResult(bookmarks, collector.to_tags(), warnings)


WALKERS: dict[str, Callable[..., WalkResult]] = {
    FORMAT_TMARKS: walk_tmarks,
    FORMAT_CHROME: walk_chrome,
    FORMAT_FIREFOX: walk_firefox,
    FORMAT_GENERIC: walk_generic,
}
