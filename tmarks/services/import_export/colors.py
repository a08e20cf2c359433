from __future__ import annotations

import re

TAG_COLORS = (
    "#3b82f6",
    "#ef4444",
    "#10b981",
    "#f59e0b",
    "#8b5cf6",
    "#06b6d4",
    "#84cc16",
    "#f97316",
    "#ec4899",
    "#6366f1",
    "#14b8a6",
    "#eab308",
)

_HEX_COLOR_RE = re.compile(r"#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})")


def _utf16_units(value: str):
    raw = value.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(raw), 2):
        yield raw[i] | (raw[i + 1] << 8)


def generate_tag_color(name: str) -> str:
    """Pick a palette color for ``name``.

    The hash runs over UTF-16 code units and wraps to a signed 32-bit
    integer, the same way JavaScript's ``charCodeAt`` and ``& 0xffffffff``
    arithmetic does.
    """
    value = 0
    for unit in _utf16_units(name):
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return TAG_COLORS[abs(value) % len(TAG_COLORS)]


def is_valid_color(color) -> bool:
    return isinstance(color, str) and _HEX_COLOR_RE.fullmatch(color) is not None
