from __future__ import annotations

from tmarks.models import Bookmark, Tag
from tmarks.services.import_export.colors import generate_tag_color
from tmarks.services.import_export.normalize import format_timestamp
from tmarks.services.import_export.types import iso_now

EXPORT_VERSION = 1


def serialize_bookmark_for_export(bookmark: Bookmark) -> dict:
    return {
        "title": bookmark.title or bookmark.url,
        "url": bookmark.url,
        "description": bookmark.description,
        "cover_image": bookmark.cover_image,
        "tags": [tag.name for tag in bookmark.tags],
        "created_at": format_timestamp(bookmark.created_at)
        if bookmark.created_at
        else None,
    }


def build_export(user_id: int) -> dict:
    """Build the TMarks export document, which the JSON importer reads back."""
    bookmarks = (
        Bookmark.query.filter_by(user_id=user_id)
        .filter(Bookmark.deleted_at.is_(None))
        .order_by(Bookmark.created_at.asc(), Bookmark.id.asc())
        .all()
    )
    tags = Tag.query.filter_by(user_id=user_id).order_by(Tag.name.asc()).all()

    return {
        "version": EXPORT_VERSION,
        "exported_at": iso_now(),
        "bookmarks": [serialize_bookmark_for_export(row) for row in bookmarks],
        "tags": [
            {"name": tag.name, "color": tag.color or generate_tag_color(tag.name)}
            for tag in tags
        ],
    }
