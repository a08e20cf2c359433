from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from dateutil import parser as dt_parser

from tmarks.extensions import db
from tmarks.models import Bookmark, Tag
from tmarks.services.common import normalize_url
from tmarks.services.import_export.colors import generate_tag_color, is_valid_color
from tmarks.services.import_export.normalize import normalize_tags
from tmarks.services.import_export.types import ImportData, ParsedBookmark

log = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    created: int = 0
    restored: int = 0
    skipped: int = 0
    tags_created: int = 0

    def as_dict(self) -> dict:
        return {
            "created": self.created,
            "restored": self.restored,
            "skipped": self.skipped,
            "tags_created": self.tags_created,
        }


class _TagResolver:
    def __init__(self, user_id: int, declared_colors: dict[str, str | None]):
        self.user_id = user_id
        self.declared_colors = declared_colors
        self.created = 0
        self._cache = {
            tag.name: tag for tag in Tag.query.filter_by(user_id=user_id).all()
        }

    def get(self, name: str) -> Tag:
        tag = self._cache.get(name)
        if tag is not None:
            return tag
        color = self.declared_colors.get(name)
        if not is_valid_color(color):
            color = generate_tag_color(name)
        tag = Tag(user_id=self.user_id, name=name, color=color)
        db.session.add(tag)
        self._cache[name] = tag
        self.created += 1
        return tag


def _parse_created_at(value) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return dt_parser.isoparse(value.strip())
    except (ValueError, OverflowError):
        return None


def _text_or_none(value) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _existing_bookmarks(
    user_id: int, normalized_urls: list[str]
) -> dict[str, Bookmark]:
    unique_urls = [url for url in dict.fromkeys(normalized_urls) if url]
    if not unique_urls:
        return {}

    rows: list[Bookmark] = []
    chunk_size = 400
    for i in range(0, len(unique_urls), chunk_size):
        chunk = unique_urls[i : i + chunk_size]
        rows.extend(
            Bookmark.query.filter_by(user_id=user_id)
            .filter(Bookmark.normalized_url.in_(chunk))
            .all()
        )

    return {row.normalized_url: row for row in rows}


def _apply_tags(bookmark: Bookmark, entry: ParsedBookmark, tags: _TagResolver) -> None:
    existing = {tag.name for tag in bookmark.tags}
    for name in normalize_tags(entry.tags):
        if name in existing:
            continue
        bookmark.tags.append(tags.get(name))
        existing.add(name)


def _create_bookmark(
    user_id: int, entry: ParsedBookmark, url: str, normalized_url: str
) -> Bookmark:
    bookmark = Bookmark(
        user_id=user_id,
        url=url,
        normalized_url=normalized_url,
        title=_text_or_none(entry.title),
        description=_text_or_none(entry.description),
        cover_image=_text_or_none(entry.cover_image),
    )
    created_at = _parse_created_at(entry.created_at)
    if created_at is not None:
        bookmark.created_at = created_at
    db.session.add(bookmark)
    return bookmark


def _restore_bookmark(bookmark: Bookmark, entry: ParsedBookmark) -> None:
    bookmark.deleted_at = None
    bookmark.title = bookmark.title or _text_or_none(entry.title)
    bookmark.description = bookmark.description or _text_or_none(entry.description)
    bookmark.cover_image = bookmark.cover_image or _text_or_none(entry.cover_image)


def persist_import(user_id: int, data: ImportData) -> ImportSummary:
    """Store validated import data for ``user_id`` in a single transaction.

    Bookmarks already present (by normalized URL) are skipped, soft-deleted
    ones are restored, and duplicates inside the upload are counted once.
    """
    declared_colors = {
        tag.name.strip(): tag.color
        for tag in data.tags
        if isinstance(tag.name, str) and tag.name.strip()
    }
    summary = ImportSummary()

    try:
        tags = _TagResolver(user_id, declared_colors)
        for name in declared_colors:
            tags.get(name)

        urls = [_text_or_none(entry.url) or "" for entry in data.bookmarks]
        normalized_values = [normalize_url(url) for url in urls]
        existing_map = _existing_bookmarks(user_id, normalized_values)
        seen: set[str] = set()

        for entry, url, normalized in zip(
            data.bookmarks, urls, normalized_values, strict=False
        ):
            if not normalized or normalized in seen:
                summary.skipped += 1
                continue
            seen.add(normalized)

            existing = existing_map.get(normalized)
            if existing and existing.deleted_at is None:
                summary.skipped += 1
                continue

            if existing:
                _restore_bookmark(existing, entry)
                bookmark = existing
                summary.restored += 1
            else:
                bookmark = _create_bookmark(user_id, entry, url, normalized)
                summary.created += 1
            _apply_tags(bookmark, entry, tags)

        summary.tags_created = tags.created
        db.session.commit()
    except Exception:
        db.session.rollback()
        log.exception("Import for user %s failed, rolled back", user_id)
        raise

    log.info(
        "Imported %d bookmarks for user %s (%d restored, %d skipped, %d new tags)",
        summary.created,
        user_id,
        summary.restored,
        summary.skipped,
        summary.tags_created,
    )
    return summary
