import copy
import json

import pytest

from tmarks.services.import_export import (
    DecodeError,
    FormatError,
    JsonParser,
    StructureError,
    parse_json_bookmarks,
)
from tmarks.services.import_export.detect import detect_json_format
from tmarks.services.import_export.walkers import (
    walk_chrome,
    walk_firefox,
    walk_generic,
    walk_tmarks,
)


def _chrome_document(children, other=None):
    return {
        "roots": {
            "bookmark_bar": {"type": "folder", "name": "Bookmarks bar", "children": children},
            "other": {"type": "folder", "name": "Other", "children": other or []},
        }
    }


def _nested_chrome_folders(depth: int, leaf_url: str) -> dict:
    node = {"type": "url", "name": "deep", "url": leaf_url}
    for level in range(depth, 0, -1):
        node = {"type": "folder", "name": f"F{level}", "children": [node]}
    return node


def test_detects_each_supported_shape():
    assert detect_json_format({"version": 1, "exported_at": "x", "bookmarks": [], "tags": []}) == "tmarks"
    assert detect_json_format({"roots": {"other": {"children": []}}}) == "chrome"
    assert detect_json_format({"children": []}) == "firefox"
    assert detect_json_format([]) == "generic"
    assert detect_json_format({"bookmarks": []}) == "generic"
    assert detect_json_format({"foo": "bar"}) == "unknown"
    assert detect_json_format("just a string") == "unknown"


def test_tmarks_shape_wins_over_generic_shape():
    document = {
        "version": 1,
        "exported_at": "2024-01-01T00:00:00Z",
        "bookmarks": [{"title": "A", "url": "https://a.example"}],
        "tags": [],
    }
    assert detect_json_format(document) == "tmarks"


def test_tmarks_export_round_trips_tags_and_colors():
    content = (
        '{"version":1,"exported_at":"2024-01-01T00:00:00Z",'
        '"bookmarks":[{"title":"Example","url":"https://example.com","tags":["a"]}],'
        '"tags":[{"name":"a","color":"#ffffff"}]}'
    )
    parser = JsonParser()
    data = parser.parse(content)

    assert len(data.bookmarks) == 1
    assert data.bookmarks[0].title == "Example"
    assert data.bookmarks[0].folder is None
    assert [(tag.name, tag.color) for tag in data.tags] == [("a", "#ffffff")]
    assert data.metadata.source == "json"
    assert data.metadata.total_items == 1
    assert parser.validate(data).valid is True


def test_tmarks_bookmark_tags_missing_from_tag_list_get_generated_colors():
    data = parse_json_bookmarks(
        json.dumps(
            {
                "version": 1,
                "exported_at": "2024-01-01T00:00:00Z",
                "bookmarks": [{"title": "A", "url": "https://a.example", "tags": ["ab"]}],
                "tags": [],
            }
        )
    )
    assert [(tag.name, tag.color) for tag in data.tags] == [("ab", "#6366f1")]


def test_tmarks_bookmark_tags_are_normalized_copies():
    document = {
        "version": 1,
        "exported_at": "2024-01-01T00:00:00Z",
        "bookmarks": [
            {"title": "A", "url": "https://a.example", "tags": [" a ", 5]},
            {"title": "B", "url": "https://b.example", "tags": "x, y"},
        ],
        "tags": [],
    }
    result = walk_tmarks(document)

    first, second = result.bookmarks
    assert first.tags is not document["bookmarks"][0]["tags"]
    assert first.tags == ["a", "5"]
    assert set(first.tags) <= {tag.name for tag in result.tags}
    first.tags.append("changed")
    assert document["bookmarks"][0]["tags"] == [" a ", 5]

    # Non-list values stay as given so validation can flag them.
    assert second.tags == "x, y"
    assert [tag.name for tag in result.tags] == ["a", "5", "x", "y"]

    validation = JsonParser().validate(parse_json_bookmarks(json.dumps(document)))
    assert [w.field for w in validation.warnings] == ["bookmarks[1].tags"]


def test_chrome_leaf_gets_root_folder_as_tag():
    document = _chrome_document(
        [
            {
                "type": "url",
                "name": "Site",
                "url": "https://site.com",
                "date_added": 13303632000000000,
            }
        ]
    )
    data = JsonParser().parse(json.dumps(document))

    assert len(data.bookmarks) == 1
    bookmark = data.bookmarks[0]
    assert bookmark.folder == "Bookmarks Bar"
    assert bookmark.tags == ["Bookmarks Bar"]
    assert [tag.name for tag in data.tags] == ["Bookmarks Bar"]
    assert bookmark.created_at == "2022-07-30T05:20:00.000Z"


def test_chrome_synced_root_is_imported_as_mobile_bookmarks():
    document = _chrome_document([])
    document["roots"]["synced"] = {
        "type": "folder",
        "children": [{"type": "url", "name": "Phone", "url": "https://phone.example"}],
    }
    result = walk_chrome(document)

    assert [b.folder for b in result.bookmarks] == ["Mobile Bookmarks"]
    assert [tag.name for tag in result.tags] == ["Mobile Bookmarks"]


def test_chrome_nested_folders_keep_discovery_order_and_tag_consistency():
    document = _chrome_document(
        [
            {"type": "url", "name": "First", "url": "https://first.example"},
            {
                "type": "folder",
                "name": "Dev",
                "children": [
                    {"type": "url", "url": "https://dev.example"},
                    "not a node",
                    {"type": "folder", "name": "Py", "children": [
                        {"type": "url", "name": "Py", "url": "https://py.example"}
                    ]},
                ],
            },
            {"type": "url", "name": "Last", "url": "https://last.example"},
        ],
        other=[{"type": "url", "name": "Other", "url": "https://other.example", "date_added": "13303632000000000"}],
    )
    data = JsonParser().parse(json.dumps(document))

    assert [b.url for b in data.bookmarks] == [
        "https://first.example",
        "https://dev.example",
        "https://py.example",
        "https://last.example",
        "https://other.example",
    ]
    assert data.bookmarks[1].title == "Untitled"
    assert data.bookmarks[2].folder == "Bookmarks Bar/Dev/Py"
    assert data.bookmarks[4].created_at == "2022-07-30T05:20:00.000Z"

    tag_names = {tag.name for tag in data.tags}
    for bookmark in data.bookmarks:
        for tag in bookmark.tags:
            assert tag in tag_names
    assert data.metadata.total_items == len(data.bookmarks)


def test_chrome_depth_limit_skips_only_the_deep_subtree():
    document = _chrome_document(
        [
            _nested_chrome_folders(5, "https://deep.example"),
            {"type": "url", "name": "Shallow", "url": "https://shallow.example"},
        ]
    )
    data = JsonParser(max_depth=3).parse(json.dumps(document))

    assert [b.url for b in data.bookmarks] == ["https://shallow.example"]
    assert len(data.warnings) == 1
    assert data.warnings[0].field.startswith("roots.bookmark_bar.children[0]")

    result = JsonParser().validate(data)
    assert result.valid is True
    assert result.warnings == data.warnings


def test_walkers_handle_nesting_beyond_recursion_limit():
    document = _chrome_document([_nested_chrome_folders(3000, "https://deep.example")])
    result = walk_chrome(document, max_depth=5000)
    assert [b.url for b in result.bookmarks] == ["https://deep.example"]


def test_firefox_leaf_merges_own_tags_with_folder_path():
    document = {
        "title": "",
        "children": [
            {
                "title": "Projects",
                "children": [
                    {
                        "type": "text/x-moz-place",
                        "title": "Tracker",
                        "uri": "https://tracker.example",
                        "tags": "work, urgent",
                        "dateAdded": 1700000000000000,
                    }
                ],
            }
        ],
    }
    data = JsonParser().parse(json.dumps(document))

    bookmark = data.bookmarks[0]
    assert bookmark.tags == ["work", "urgent", "Projects"]
    assert bookmark.folder == "Projects"
    assert bookmark.created_at == "2023-11-14T22:13:20.000Z"
    assert [tag.name for tag in data.tags] == ["work", "urgent", "Projects"]


def test_firefox_untitled_containers_do_not_extend_path():
    document = {
        "children": [
            {
                "children": [
                    {"type": "text/x-moz-place", "uri": "https://a.example"},
                    {"type": "text/x-moz-place", "title": "no uri"},
                    {"type": "text/x-moz-separator"},
                ]
            }
        ]
    }
    data = JsonParser().parse(json.dumps(document))

    assert len(data.bookmarks) == 1
    assert data.bookmarks[0].folder is None
    assert data.bookmarks[0].tags == []
    assert data.bookmarks[0].title == "Untitled"


def test_firefox_depth_limit_skips_only_the_deep_subtree():
    deep = {"type": "text/x-moz-place", "title": "Deep", "uri": "https://deep.example"}
    for level in range(4, 0, -1):
        deep = {"title": f"L{level}", "children": [deep]}
    document = {
        "children": [
            deep,
            {"type": "text/x-moz-place", "title": "Top", "uri": "https://top.example"},
        ]
    }
    result = walk_firefox(document, max_depth=2)

    assert [b.url for b in result.bookmarks] == ["https://top.example"]
    assert [w.field for w in result.warnings] == [
        "root.children[0].children[0]"
    ]
    assert result.warnings[0].value == 2


def test_generic_records_resolve_field_aliases():
    document = {
        "bookmarks": [
            {
                "name": "Alias",
                "href": "",
                "link": "https://alias.example",
                "note": "remember",
                "categories": "x, y,,",
                "date": "2024-03-05T10:00:00+02:00",
                "category": "Reading",
            },
            42,
        ]
    }
    data = JsonParser().parse(json.dumps(document))

    assert len(data.bookmarks) == 1
    bookmark = data.bookmarks[0]
    assert bookmark.title == "Alias"
    assert bookmark.url == "https://alias.example"
    assert bookmark.description == "remember"
    assert bookmark.tags == ["x", "y"]
    assert bookmark.created_at == "2024-03-05T08:00:00.000Z"
    assert bookmark.folder == "Reading"
    assert [w.field for w in data.warnings] == ["bookmarks[1]"]


def test_generic_digit_only_date_is_a_calendar_date():
    data = JsonParser().parse(
        '[{"title":"T","url":"https://t.example","date":"20240115"}]'
    )
    assert data.bookmarks[0].created_at == "2024-01-15T00:00:00.000Z"


def test_generic_invalid_url_is_reported_by_validation():
    parser = JsonParser()
    data = parser.parse('[{"name":"X","href":"not-a-url"}]')

    assert data.bookmarks[0].title == "X"
    result = parser.validate(data)
    assert result.valid is False
    assert [(e.field, e.message) for e in result.errors] == [
        ("bookmarks[0].url", "Invalid URL format")
    ]


def test_generic_unsupported_tags_value_is_a_warning():
    data = JsonParser().parse('[{"title":"T","url":"https://t.example","tags":7}]')
    assert data.bookmarks[0].tags == []
    assert [w.field for w in data.warnings] == ["bookmarks[0].tags"]


@pytest.mark.parametrize("key, value", [("tags", 0), ("tags", False), ("categories", {})])
def test_generic_falsy_unsupported_tags_value_is_a_warning(key, value):
    result = walk_generic([{"title": "T", "url": "https://t.example", key: value}])
    assert result.bookmarks[0].tags == []
    assert [(w.field, w.value) for w in result.warnings] == [("bookmarks[0].tags", value)]


def test_generic_usable_alias_suppresses_tags_warning():
    result = walk_generic(
        [{"title": "T", "url": "https://t.example", "tags": 0, "categories": "x"}]
    )
    assert result.bookmarks[0].tags == ["x"]
    assert result.warnings == []


def test_generic_walker_requires_an_array():
    with pytest.raises(StructureError):
        walk_generic({"bookmarks": "nope"})


def test_unknown_shape_is_a_format_error():
    with pytest.raises(FormatError):
        JsonParser().parse('{"foo":"bar"}')


def test_malformed_json_is_a_decode_error():
    with pytest.raises(DecodeError):
        JsonParser().parse("{not json")
    with pytest.raises(DecodeError):
        JsonParser().parse("[" * 200000 + "]" * 200000)


def test_parse_does_not_mutate_the_decoded_document():
    document = _chrome_document(
        [{"type": "folder", "name": "A", "children": [{"type": "url", "url": "https://a.example"}]}]
    )
    snapshot = copy.deepcopy(document)
    result = walk_chrome(document)
    assert [b.folder for b in result.bookmarks] == ["Bookmarks Bar/A"]
    assert document == snapshot
