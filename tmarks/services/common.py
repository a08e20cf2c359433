import re
from urllib.parse import parse_qsl, urlencode, urlparse, urlsplit, urlunparse

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")
_HIERARCHICAL_SCHEMES = {"http", "https", "ftp", "ws", "wss"}


def normalize_url(url: str) -> str:
    if not url:
        return ""
    parsed = urlparse(url.strip())
    scheme = (parsed.scheme or "https").lower()
    netloc = parsed.netloc.lower()
    path = parsed.path or "/"
    query_items = sorted(parse_qsl(parsed.query, keep_blank_values=True))
    normalized_query = urlencode(query_items)
    return urlunparse((scheme, netloc, path, "", normalized_query, ""))


def is_absolute_url(url: str) -> bool:
    try:
        parsed = urlsplit(url.strip())
    except ValueError:
        return False
    if not parsed.scheme or not _SCHEME_RE.fullmatch(parsed.scheme):
        return False
    if parsed.scheme.lower() in _HIERARCHICAL_SCHEMES:
        return bool(parsed.netloc)
    return bool(parsed.netloc or parsed.path)


def to_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}
