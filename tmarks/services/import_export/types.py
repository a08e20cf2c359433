from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class ParsedBookmark:
    title: str | None
    url: str | None
    description: str | None = None
    cover_image: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: str | None = None
    folder: str | None = None

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "cover_image": self.cover_image,
            "tags": self.tags,
            "created_at": self.created_at,
            "folder": self.folder,
        }


@dataclass
class ParsedTag:
    name: str
    color: str | None = None

    def as_dict(self) -> dict:
        return {"name": self.name, "color": self.color}


@dataclass
class ValidationIssue:
    field: str
    message: str
    value: Any = None

    def as_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "value": self.value}


@dataclass
class ImportMetadata:
    source: str
    total_items: int
    parsed_at: str

    def as_dict(self) -> dict:
        return {
            "source": self.source,
            "total_items": self.total_items,
            "parsed_at": self.parsed_at,
        }


@dataclass
class ImportData:
    bookmarks: list[ParsedBookmark]
    tags: list[ParsedTag]
    metadata: ImportMetadata
    warnings: list[ValidationIssue] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "bookmarks": [bookmark.as_dict() for bookmark in self.bookmarks],
            "tags": [tag.as_dict() for tag in self.tags],
            "metadata": self.metadata.as_dict(),
        }


@dataclass
class ValidationResult:
    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [issue.as_dict() for issue in self.errors],
            "warnings": [issue.as_dict() for issue in self.warnings],
        }


@dataclass
class WalkResult:
    """Output of a single format walker, before it is wrapped as ImportData."""

    bookmarks: list[ParsedBookmark]
    tags: list[ParsedTag]
    warnings: list[ValidationIssue] = field(default_factory=list)


def iso_now() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_import_data(result: WalkResult, source: str) -> ImportData:
    return ImportData(
        bookmarks=result.bookmarks,
        tags=result.tags,
        metadata=ImportMetadata(
            source=source,
            total_items=len(result.bookmarks),
            parsed_at=iso_now(),
        ),
        warnings=result.warnings,
    )
