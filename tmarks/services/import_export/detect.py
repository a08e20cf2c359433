from __future__ import annotations

from typing import Any

from tmarks.services.import_export.normalize import js_truthy

FORMAT_TMARKS = "tmarks"
FORMAT_CHROME = "chrome"
FORMAT_FIREFOX = "firefox"
FORMAT_GENERIC = "generic"
FORMAT_UNKNOWN = "unknown"

TMARKS_KEYS = ("version", "exported_at", "bookmarks", "tags")
CHROME_ROOT_KEYS = ("bookmark_bar", "other")


def detect_json_format(document: Any) -> str:
    """Classify a decoded JSON document by shape. First match wins."""
    if isinstance(document, list):
        return FORMAT_GENERIC
    if not isinstance(document, dict):
        return FORMAT_UNKNOWN

    if all(js_truthy(document.get(key)) for key in TMARKS_KEYS):
        return FORMAT_TMARKS

    roots = document.get("roots")
    if isinstance(roots, dict) and any(
        js_truthy(roots.get(key)) for key in CHROME_ROOT_KEYS
    ):
        return FORMAT_CHROME

    if isinstance(document.get("children"), list):
        return FORMAT_FIREFOX

    if isinstance(document.get("bookmarks"), list):
        return FORMAT_GENERIC

    return FORMAT_UNKNOWN
