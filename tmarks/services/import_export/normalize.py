from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from dateutil import parser as dt_parser

log = logging.getLogger(__name__)

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# Chromium stores bookmark dates as microseconds since 1601-01-01.
WEBKIT_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)

MICROSECOND_THRESHOLD = 10**15

_PARSE_DEFAULT = datetime(1970, 1, 1)


def js_truthy(value: Any) -> bool:
    """Truthiness as browser exports mean it: empty containers still count."""
    if isinstance(value, (list, dict)):
        return True
    if isinstance(value, float) and value != value:
        return False
    return bool(value)


def coerce_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    return None


def first_value(record: dict, *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if js_truthy(value):
            return value
    return None


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _from_number(value: int | float, epoch: datetime) -> str:
    if value > MICROSECOND_THRESHOLD:
        delta = timedelta(microseconds=value)
    else:
        delta = timedelta(milliseconds=value)
    return format_timestamp(epoch + delta)


def normalize_timestamp(
    value: Any, epoch: datetime = UNIX_EPOCH, numeric_strings: bool = False
) -> str | None:
    """Return an ISO-8601 UTC string for ``value`` or None.

    Numbers above 10**15 are read as microseconds, anything else numeric as
    milliseconds, both counted from ``epoch``. Strings go through dateutil,
    so "2024" is a year; with ``numeric_strings`` a string made only of
    digits is read as a number instead. Unparseable input yields None,
    never an exception.
    """
    if not js_truthy(value) or isinstance(value, (bool, list, dict)):
        return None

    try:
        if isinstance(value, str):
            text = value.strip()
            if numeric_strings and text.lstrip("-").isdigit():
                return _from_number(int(text), epoch)
            return format_timestamp(dt_parser.parse(text, default=_PARSE_DEFAULT))
        if isinstance(value, (int, float)):
            return _from_number(value, epoch)
    except (ValueError, OverflowError, TypeError, OSError) as exc:
        log.debug("Discarding unparseable timestamp %r: %s", value, exc)
    return None


def normalize_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        parts = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = [coerce_text(item) or "" for item in value]
    else:
        return []
    return [part.strip() for part in parts if part.strip()]
