from __future__ import annotations

from typing import Any

from tmarks.services.common import is_absolute_url
from tmarks.services.import_export.colors import is_valid_color
from tmarks.services.import_export.types import (
    ImportData,
    ValidationIssue,
    ValidationResult,
)


def describe_shape(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _check_bookmark(index: int, bookmark, errors: list, warnings: list) -> None:
    title = getattr(bookmark, "title", None)
    url = getattr(bookmark, "url", None)
    tags = getattr(bookmark, "tags", None)

    if _is_blank(title):
        errors.append(
            ValidationIssue(f"bookmarks[{index}].title", "Title is required", title)
        )

    if _is_blank(url):
        errors.append(
            ValidationIssue(f"bookmarks[{index}].url", "URL is required", url)
        )
    elif not is_absolute_url(url):
        errors.append(
            ValidationIssue(f"bookmarks[{index}].url", "Invalid URL format", url)
        )

    if not isinstance(tags, list):
        warnings.append(
            ValidationIssue(
                f"bookmarks[{index}].tags",
                "Tags should be an array, converting from string",
                describe_shape(tags),
            )
        )


def _check_tag(index: int, tag, errors: list, warnings: list) -> None:
    name = getattr(tag, "name", None)
    color = getattr(tag, "color", None)

    if _is_blank(name):
        errors.append(
            ValidationIssue(f"tags[{index}].name", "Tag name is required", name)
        )

    if color and not is_valid_color(color):
        warnings.append(
            ValidationIssue(
                f"tags[{index}].color", "Invalid color format, using default", color
            )
        )


def validate_import_data(data: ImportData) -> ValidationResult:
    """Collect blocking errors and advisory warnings for ``data``.

    Only structural shape and per-record content are checked; nothing here
    raises, so callers always get a complete report.
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    bookmarks = getattr(data, "bookmarks", None)
    tags = getattr(data, "tags", None)

    if isinstance(bookmarks, list):
        for index, bookmark in enumerate(bookmarks):
            _check_bookmark(index, bookmark, errors, warnings)
    else:
        errors.append(
            ValidationIssue(
                "bookmarks", "Bookmarks must be an array", describe_shape(bookmarks)
            )
        )

    if isinstance(tags, list):
        for index, tag in enumerate(tags):
            _check_tag(index, tag, errors, warnings)
    else:
        errors.append(
            ValidationIssue("tags", "Tags must be an array", describe_shape(tags))
        )

    warnings.extend(getattr(data, "warnings", None) or [])
    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)
