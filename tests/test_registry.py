import hashlib

import pytest

from webembed.registry import (
    assign_identifiers,
    build_registry,
    content_type_for_path,
    extension_key,
    group_extensions,
    sanitize_identifier,
)

LARGE_CSS = b"body { margin: 0; padding: 0; color: #333; }\n" * 100


def test_sanitize_identifier():
    assert sanitize_identifier("index.html") == "index_html"
    assert sanitize_identifier("assets/app-1.2.js") == "assets_app_1_2_js"


def test_content_types():
    assert content_type_for_path("index.html") == "text/html"
    assert content_type_for_path("js/APP.JS") == "application/javascript"
    assert content_type_for_path("favicon.ico") == "image/x-icon"
    assert content_type_for_path("LICENSE") == "text/plain"
    assert content_type_for_path("data.unknownext") == "text/plain"


@pytest.mark.parametrize(
    "path, expected",
    [
        ("page.xhtml", "application/xhtml+xml"),
        ("scan.tif", "image/tiff"),
        ("bundle.tar", "application/x-tar"),
        ("bundle.tar.gz", "application/gzip"),
        ("app.js.map", "application/json"),
    ],
)
def test_content_types_from_mimetypes_database(path, expected):
    assert content_type_for_path(path) == expected


def test_extension_groups_are_sorted_and_counted():
    groups = group_extensions(["index.html", "b.js", "a.js", "style.css", "LICENSE"])
    assert [(group.extension, group.count) for group in groups] == [
        ("CSS", 1),
        ("HTML", 1),
        ("JS", 2),
        ("NOEXT", 1),
    ]
    assert extension_key("x.tar.gz") == "GZ"


def test_asset_fields():
    registry = build_registry({"index.html": b"<html></html>", "style.css": LARGE_CSS})
    index, style = registry.assets

    assert index.relative_path == "index.html"
    assert index.identifier == "index_html"
    assert index.identifier_upper == "INDEX_HTML"
    assert index.mime_type == "text/html"
    assert index.content_hash == hashlib.sha256(b"<html></html>").hexdigest()
    assert index.is_default_document
    assert not index.uses_compression
    assert index.stored_bytes == b"<html></html>"
    assert index.gzip_size == 0

    assert style.uses_compression
    assert style.stored_bytes == style.compressed_bytes
    assert style.gzip_size == len(style.compressed_bytes) < len(LARGE_CSS)
    assert not style.is_default_document


def test_aggregates():
    registry = build_registry({"index.html": b"<html></html>", "style.css": LARGE_CSS})
    assert registry.file_count == 2
    assert registry.total_size == 13 + len(LARGE_CSS)
    assert registry.total_stored_size == 13 + len(registry.assets[1].compressed_bytes)


def test_identical_content_shares_hash_not_identifier():
    registry = build_registry({"a.txt": b"same", "b.txt": b"same", "index.html": b"<p>"})
    a, b, _ = registry.assets
    assert a.content_hash == b.content_hash
    assert a.identifier != b.identifier


def test_assets_are_sorted_by_path():
    registry = build_registry({"z.js": b"1", "index.html": b"2", "a/b.css": b"3"})
    assert [asset.relative_path for asset in registry.assets] == ["a/b.css", "index.html", "z.js"]


def test_identifier_collisions_are_disambiguated(caplog):
    identifiers = assign_identifiers(["a.b", "a_b", "A-b"])
    assert identifiers["a.b"] == "a_b"
    digest = hashlib.sha256(b"a_b").hexdigest()[:8]
    assert identifiers["a_b"] == f"a_b_{digest}"
    assert identifiers["A-b"].startswith("A_b_")
    assert len({value.upper() for value in identifiers.values()}) == 3
    assert "clashes" in caplog.text
