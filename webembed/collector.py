"""Collect the files to embed from the source directory."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path, PurePosixPath

from webembed.errors import MissingIndexError, NoFilesError, SourcePathError
from webembed.patterns import ExcludeMatcher

log = logging.getLogger(__name__)

PRECOMPRESSED_SUFFIXES = (".gz", ".br", ".brottli")
DEFAULT_DOCUMENT_PREFIX = "index.htm"
EXCLUDED_EXAMPLES = 10


def list_files(source_dir: Path) -> list[str]:
    """Relative POSIX paths of all regular, non-hidden files below source_dir."""
    files: list[str] = []
    for path in source_dir.rglob("*"):
        relative = path.relative_to(source_dir)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if path.is_file():
            files.append(relative.as_posix())
    return sorted(files)


def apply_exclusions(paths: list[str], patterns: list[str] | tuple[str, ...]) -> list[str]:
    matcher = ExcludeMatcher(patterns)
    if not matcher:
        return list(paths)

    kept: list[str] = []
    excluded: list[str] = []
    for path in paths:
        (excluded if matcher.matches(path) else kept).append(path)

    if excluded:
        shown = ", ".join(excluded[:EXCLUDED_EXAMPLES])
        more = len(excluded) - EXCLUDED_EXAMPLES
        suffix = f" ...and {more} more" if more > 0 else ""
        log.info("Excluded %d file(s): %s%s", len(excluded), shown, suffix)
    return kept


def drop_precompressed(paths: list[str]) -> list[str]:
    """Drop ``x.gz``/``x.br``/``x.brottli`` when ``x`` itself is present."""
    present = set(paths)
    kept: list[str] = []
    for path in paths:
        suffix = PurePosixPath(path).suffix
        if suffix in PRECOMPRESSED_SUFFIXES and path[: -len(suffix)] in present:
            log.debug("Skipping pre-compressed %s", path)
            continue
        kept.append(path)
    return kept


def is_default_document(path: str) -> bool:
    return path.startswith(DEFAULT_DOCUMENT_PREFIX)


def has_default_document(paths: list[str]) -> bool:
    return any(PurePosixPath(path).name.startswith(DEFAULT_DOCUMENT_PREFIX) for path in paths)


def find_duplicates(files: dict[str, bytes]) -> list[list[str]]:
    """Groups of two or more paths whose content is byte-identical."""
    by_digest: dict[str, list[str]] = {}
    for path, content in files.items():
        by_digest.setdefault(hashlib.sha256(content).hexdigest(), []).append(path)
    return [sorted(group) for group in by_digest.values() if len(group) > 1]


def collect(
    source_path: str,
    exclude: list[str] | tuple[str, ...] = (),
    require_index: bool = True,
    engine: str = "psychic",
) -> dict[str, bytes]:
    """Read every file to embed, keyed by relative path in sorted order."""
    source_dir = Path(source_path)
    if not source_dir.exists():
        raise SourcePathError(source_path, "not_found")
    if not source_dir.is_dir():
        raise SourcePathError(source_path, "not_directory")

    log.info("Collecting source files")
    paths = drop_precompressed(apply_exclusions(list_files(source_dir), exclude))
    if not paths:
        raise NoFilesError(source_path)
    if require_index and not has_default_document(paths):
        raise MissingIndexError(engine)

    files = {path: (source_dir / path).read_bytes() for path in paths}
    for group in find_duplicates(files):
        log.warning("%d files have identical content: %s", len(group), ", ".join(group))
    return files
