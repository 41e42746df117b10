"""Assets with their derived metadata, plus build-wide aggregates."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import logging
import mimetypes
from pathlib import PurePosixPath
import re

from webembed.collector import is_default_document
from webembed.compression import compress, describe_decision, should_use_gzip

log = logging.getLogger(__name__)

# entries missing from, or named differently in, the mimetypes database
CONTENT_TYPE_OVERRIDES = {
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".map": "application/json",
    ".webmanifest": "application/manifest+json",
    ".ico": "image/x-icon",
    ".md": "text/markdown",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".wasm": "application/wasm",
    ".gz": "application/gzip",
    ".br": "application/octet-stream",
}
DEFAULT_CONTENT_TYPE = "text/plain"
NO_EXTENSION = "NOEXT"


def sanitize_identifier(value: str) -> str:
    return re.sub(r"[^0-9a-zA-Z]", "_", value)


def content_type_for_path(path: str) -> str:
    override = CONTENT_TYPE_OVERRIDES.get(PurePosixPath(path).suffix.lower())
    if override:
        return override
    return mimetypes.guess_type(path, strict=False)[0] or DEFAULT_CONTENT_TYPE


def extension_key(path: str) -> str:
    suffix = PurePosixPath(path).suffix
    if not suffix:
        return NO_EXTENSION
    return sanitize_identifier(suffix[1:].upper())


@dataclass(frozen=True)
class Asset:
    relative_path: str
    identifier: str
    mime_type: str
    raw_bytes: bytes
    compressed_bytes: bytes
    uses_compression: bool
    content_hash: str

    @property
    def identifier_upper(self) -> str:
        return self.identifier.upper()

    @property
    def is_default_document(self) -> bool:
        return is_default_document(self.relative_path)

    @property
    def stored_bytes(self) -> bytes:
        """Payload of the gzip array: compressed when it pays off, raw otherwise."""
        return self.compressed_bytes if self.uses_compression else self.raw_bytes

    @property
    def gzip_size(self) -> int:
        return len(self.compressed_bytes) if self.uses_compression else 0


@dataclass(frozen=True)
class ExtensionGroup:
    extension: str
    count: int


@dataclass(frozen=True)
class Registry:
    assets: tuple[Asset, ...]
    extension_groups: tuple[ExtensionGroup, ...]

    @property
    def file_count(self) -> int:
        return len(self.assets)

    @property
    def total_size(self) -> int:
        return sum(len(asset.raw_bytes) for asset in self.assets)

    @property
    def total_stored_size(self) -> int:
        return sum(len(asset.stored_bytes) for asset in self.assets)


def assign_identifiers(paths: list[str]) -> dict[str, str]:
    """Map each path to a C identifier, keeping identifiers unique.

    The first path (in the given order) keeps the plain sanitized name; later
    paths that sanitize to the same name get a short hash of the path appended.
    """
    identifiers: dict[str, str] = {}
    taken: set[str] = set()
    for path in paths:
        identifier = sanitize_identifier(path)
        if identifier.upper() in taken:
            digest = hashlib.sha256(path.encode("utf-8")).hexdigest()[:8]
            unique = f"{identifier}_{digest}"
            log.warning("%s clashes with another file as '%s', using '%s'", path, identifier, unique)
            identifier = unique
        taken.add(identifier.upper())
        identifiers[path] = identifier
    return identifiers


def build_asset(path: str, identifier: str, content: bytes) -> Asset:
    compressed = compress(content)
    used = should_use_gzip(len(content), len(compressed))
    log.info(describe_decision(path, len(content), len(compressed), used))
    return Asset(
        relative_path=path,
        identifier=identifier,
        mime_type=content_type_for_path(path),
        raw_bytes=content,
        compressed_bytes=compressed,
        uses_compression=used,
        content_hash=hashlib.sha256(content).hexdigest(),
    )


def group_extensions(paths: list[str]) -> tuple[ExtensionGroup, ...]:
    counts: dict[str, int] = {}
    for path in paths:
        key = extension_key(path)
        counts[key] = counts.get(key, 0) + 1
    return tuple(ExtensionGroup(extension, counts[extension]) for extension in sorted(counts))


def build_registry(files: dict[str, bytes]) -> Registry:
    paths = sorted(files)
    identifiers = assign_identifiers(paths)
    assets = tuple(build_asset(path, identifiers[path], files[path]) for path in paths)
    return Registry(assets=assets, extension_groups=group_extensions(paths))
