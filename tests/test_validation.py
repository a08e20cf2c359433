from types import SimpleNamespace

from tmarks.services.import_export.types import (
    ImportData,
    ImportMetadata,
    ParsedBookmark,
    ParsedTag,
    ValidationIssue,
)
from tmarks.services.import_export.validation import validate_import_data


def _data(bookmarks, tags, warnings=None):
    return ImportData(
        bookmarks=bookmarks,
        tags=tags,
        metadata=ImportMetadata(source="json", total_items=0, parsed_at="now"),
        warnings=warnings or [],
    )


def _fields(issues):
    return [issue.field for issue in issues]


def test_valid_data_has_no_errors():
    result = validate_import_data(
        _data(
            [ParsedBookmark(title="Docs", url="https://docs.example", tags=["a"])],
            [ParsedTag(name="a", color="#abc")],
        )
    )
    assert result.valid is True
    assert result.errors == []
    assert result.warnings == []


def test_missing_title_and_url_are_errors():
    result = validate_import_data(
        _data(
            [
                ParsedBookmark(title="  ", url="https://ok.example"),
                ParsedBookmark(title="No URL", url=None),
                ParsedBookmark(title="Bad", url="example dot com"),
            ],
            [],
        )
    )
    assert result.valid is False
    assert _fields(result.errors) == [
        "bookmarks[0].title",
        "bookmarks[1].url",
        "bookmarks[2].url",
    ]
    assert result.errors[1].message == "URL is required"
    assert result.errors[2].message == "Invalid URL format"
    assert result.errors[2].value == "example dot com"


def test_non_list_tags_and_bad_colors_are_warnings_only():
    result = validate_import_data(
        _data(
            [ParsedBookmark(title="T", url="mailto:someone@example.com", tags="a,b")],
            [ParsedTag(name="a", color="blue"), ParsedTag(name="b", color="#00ff00")],
        )
    )
    assert result.valid is True
    assert _fields(result.warnings) == ["bookmarks[0].tags", "tags[0].color"]
    assert result.warnings[0].value == "string"


def test_blank_tag_name_is_an_error():
    result = validate_import_data(_data([], [ParsedTag(name="", color=None)]))
    assert result.valid is False
    assert _fields(result.errors) == ["tags[0].name"]


def test_wrong_collection_shapes_are_reported_without_raising():
    result = validate_import_data(SimpleNamespace(bookmarks="oops", tags=None))
    assert result.valid is False
    assert [(e.field, e.value) for e in result.errors] == [
        ("bookmarks", "string"),
        ("tags", "null"),
    ]


def test_parse_warnings_are_carried_into_the_result():
    parse_warning = ValidationIssue("bookmarks[4]", "Skipping malformed bookmark entry", 4)
    result = validate_import_data(_data([], [], warnings=[parse_warning]))
    assert result.valid is True
    assert result.warnings == [parse_warning]
