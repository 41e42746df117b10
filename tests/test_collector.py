import logging

import pytest

from conftest import write_tree
from webembed.collector import (
    apply_exclusions,
    collect,
    drop_precompressed,
    find_duplicates,
    has_default_document,
    is_default_document,
    list_files,
)
from webembed.config import DEFAULT_EXCLUDE_PATTERNS
from webembed.errors import ExitCode, MissingIndexError, NoFilesError, SourcePathError


def test_exclusion_removes_matching_paths():
    assert apply_exclusions(["a.js", "a.js.map"], ["*.map"]) == ["a.js"]


def test_exclusion_summary_is_logged(caplog):
    paths = [f"f{index:02d}.map" for index in range(12)] + ["index.html"]
    with caplog.at_level(logging.INFO):
        assert apply_exclusions(paths, ["*.map"]) == ["index.html"]
    assert "Excluded 12 file(s)" in caplog.text
    assert "f09.map" in caplog.text
    assert "f10.map" not in caplog.text
    assert "...and 2 more" in caplog.text


def test_precompressed_sibling_is_dropped():
    assert drop_precompressed(["x.html", "x.html.gz"]) == ["x.html"]
    assert drop_precompressed(["y.tar.gz"]) == ["y.tar.gz"]
    assert drop_precompressed(
        ["file.txt", "file.txt.br", "file.txt.brottli", "file.txt.gz", "other.js"]
    ) == ["file.txt", "other.js"]
    assert drop_precompressed(["archive.tar.gz", "compressed.brottli"]) == ["archive.tar.gz", "compressed.brottli"]


def test_default_document_detection():
    assert is_default_document("index.html")
    assert is_default_document("index.htm")
    assert not is_default_document("sub/index.html")
    assert not is_default_document("Index.html")
    assert has_default_document(["sub/index.html"])
    assert not has_default_document(["main.html"])


def test_find_duplicates():
    files = {"a.txt": b"same", "b.txt": b"same", "c.txt": b"other"}
    assert find_duplicates(files) == [["a.txt", "b.txt"]]


def test_list_files_skips_hidden(tmp_path):
    write_tree(tmp_path, {"index.html": b"x", ".env": b"x", ".git/config": b"x", "js/app.js": b"x"})
    assert list_files(tmp_path) == ["index.html", "js/app.js"]


def test_collect_reads_all_files(tmp_path):
    source = tmp_path / "dist"
    write_tree(source, {"index.html": b"<html></html>", "style.css": b"body{}", "style.css.gz": b"zz"})
    files = collect(str(source))
    assert list(files) == ["index.html", "style.css"]
    assert files["index.html"] == b"<html></html>"


def test_collect_reports_duplicates_but_keeps_them(tmp_path, caplog):
    source = tmp_path / "dist"
    write_tree(source, {"index.html": b"<p>", "file1.txt": b"identical", "file2.txt": b"identical"})
    with caplog.at_level(logging.INFO):
        files = collect(str(source))
    assert set(files) == {"index.html", "file1.txt", "file2.txt"}
    assert "file1.txt, file2.txt" in caplog.text
    assert "identical content" in caplog.text


def test_collect_missing_directory(tmp_path):
    with pytest.raises(SourcePathError) as excinfo:
        collect(str(tmp_path / "missing"))
    assert excinfo.value.reason == "not_found"


def test_collect_source_is_a_file(tmp_path):
    (tmp_path / "file.txt").write_text("x")
    with pytest.raises(SourcePathError) as excinfo:
        collect(str(tmp_path / "file.txt"))
    assert excinfo.value.reason == "not_directory"


def test_collect_empty_after_exclusion(tmp_path):
    source = tmp_path / "dist"
    write_tree(source, {"a.js.map": b"{}"})
    with pytest.raises(NoFilesError) as excinfo:
        collect(str(source), ["*.map"])
    assert excinfo.value.exit_code == ExitCode.NO_FILES


def test_collect_requires_index(tmp_path):
    source = tmp_path / "dist"
    write_tree(source, {"main.html": b"<p>"})
    with pytest.raises(MissingIndexError) as excinfo:
        collect(str(source))
    assert excinfo.value.exit_code == ExitCode.MISSING_INDEX
    assert collect(str(source), require_index=False) == {"main.html": b"<p>"}


def test_nested_index_satisfies_check(tmp_path):
    source = tmp_path / "dist"
    write_tree(source, {"app/index.htm": b"<p>"})
    assert list(collect(str(source))) == ["app/index.htm"]


def test_default_patterns_and_hidden_files(tmp_path):
    source = tmp_path / "dist"
    write_tree(
        source,
        {
            "index.html": b"<p>",
            ".DS_Store": b"x",
            ".gitignore": b"x",
            "img/Thumbs.db": b"x",
            "img/logo.svg~": b"x",
            "img/logo.svg": b"<svg/>",
        },
    )
    assert list(collect(str(source), DEFAULT_EXCLUDE_PATTERNS)) == ["img/logo.svg", "index.html"]
