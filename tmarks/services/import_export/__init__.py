from tmarks.services.import_export.errors import (
    BookmarkImportError,
    DecodeError,
    FormatError,
    StructureError,
)
from tmarks.services.import_export.html_parser import HtmlParser
from tmarks.services.import_export.json_parser import (
    JsonParser,
    create_json_parser,
    parse_json_bookmarks,
)
from tmarks.services.import_export.types import (
    ImportData,
    ImportMetadata,
    ParsedBookmark,
    ParsedTag,
    ValidationIssue,
    ValidationResult,
)
from tmarks.services.import_export.walkers import DEFAULT_MAX_DEPTH

PARSERS = {
    JsonParser.format: JsonParser,
    HtmlParser.format: HtmlParser,
}


def get_parser(source_format: str, max_depth: int = DEFAULT_MAX_DEPTH):
    parser_cls = PARSERS.get((source_format or "").strip().lower())
    if parser_cls is None:
        raise FormatError(f"Unsupported import format: {source_format}")
    return parser_cls(max_depth=max_depth)


__all__ = [
    "BookmarkImportError",
    "DecodeError",
    "FormatError",
    "HtmlParser",
    "ImportData",
    "ImportMetadata",
    "JsonParser",
    "ParsedBookmark",
    "ParsedTag",
    "StructureError",
    "ValidationIssue",
    "ValidationResult",
    "create_json_parser",
    "get_parser",
    "parse_json_bookmarks",
]
