"""JSON bookmark parser.

Accepts TMarks exports as well as Chrome, Firefox and loosely structured
third-party JSON bookmark files, and turns any of them into ImportData.
"""

from __future__ import annotations

import json
import logging

from tmarks.services.import_export.detect import FORMAT_UNKNOWN, detect_json_format
from tmarks.services.import_export.errors import DecodeError, FormatError
from tmarks.services.import_export.types import (
    ImportData,
    ValidationResult,
    build_import_data,
)
from tmarks.services.import_export.validation import validate_import_data
from tmarks.services.import_export.walkers import DEFAULT_MAX_DEPTH, WALKERS

log = logging.getLogger(__name__)


class JsonParser:
    format = "json"

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        self.max_depth = max_depth

    def decode(self, content: str | bytes):
        try:
            return json.loads(content)
        except RecursionError as exc:
            raise DecodeError("JSON document is nested too deeply") from exc
        except ValueError as exc:
            raise DecodeError("Invalid JSON format") from exc

    def parse(self, content: str | bytes) -> ImportData:
        document = self.decode(content)
        source_format = detect_json_format(document)
        walker = WALKERS.get(source_format)
        if walker is None:
            raise FormatError(f"Unsupported JSON format ({FORMAT_UNKNOWN})")

        result = walker(document, max_depth=self.max_depth)
        log.info(
            "Parsed %s JSON: %d bookmarks, %d tags, %d warnings",
            source_format,
            len(result.bookmarks),
            len(result.tags),
            len(result.warnings),
        )
        return build_import_data(result, source=self.format)

    def validate(self, data: ImportData) -> ValidationResult:
        return validate_import_data(data)


def create_json_parser(max_depth: int = DEFAULT_MAX_DEPTH) -> JsonParser:
    return JsonParser(max_depth=max_depth)


def parse_json_bookmarks(content: str | bytes) -> ImportData:
    return create_json_parser().parse(content)
