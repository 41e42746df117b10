"""Fatal conditions raised by the pipeline and the exit codes they map to."""

from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    OK = 0
    ERROR = 1
    INVALID_CONFIG = 2
    NO_FILES = 3
    MISSING_INDEX = 4
    SIZE_BUDGET = 5


class WebEmbedError(Exception):
    exit_code = ExitCode.ERROR


class ConfigError(WebEmbedError):
    exit_code = ExitCode.INVALID_CONFIG


class SourcePathError(WebEmbedError):
    def __init__(self, source_path: str, reason: str) -> None:
        if reason == "not_directory":
            message = (
                f"Source path is not a directory: '{source_path}'\n"
                "  --sourcepath must point to the directory holding the built web files."
            )
        else:
            message = (
                f"Source directory not found: '{source_path}'\n"
                "  Build the frontend first (e.g. npm run build) and point --sourcepath\n"
                "  at the build output directory."
            )
        super().__init__(message)
        self.source_path = source_path
        self.reason = reason


class NoFilesError(WebEmbedError):
    exit_code = ExitCode.NO_FILES

    def __init__(self, source_path: str) -> None:
        super().__init__(f"Directory {source_path} is empty (no files left after exclusion)")


class MissingIndexError(WebEmbedError):
    exit_code = ExitCode.MISSING_INDEX

    def __init__(self, engine: str) -> None:
        super().__init__(
            "No index.html or index.htm found in source files\n"
            f"  Add an index.html to the source directory; the {engine} engine serves it\n"
            "  as the default route. Pass --noindexcheck if another entry point is used."
        )
        self.engine = engine


class SizeBudgetError(WebEmbedError):
    exit_code = ExitCode.SIZE_BUDGET

    def __init__(self, kind: str, limit: int, actual: int) -> None:
        label = "Uncompressed" if kind == "size" else "Gzip"
        flag = "--maxsize" if kind == "size" else "--maxgzipsize"
        overage = actual - limit
        percent = round(overage * 100 / limit)
        super().__init__(
            f"{label} size budget exceeded\n"
            f"  Budget:  {limit:,} bytes\n"
            f"  Actual:  {actual:,} bytes\n"
            f"  Overage: {overage:,} bytes (+{percent}%)\n"
            f"  Reduce the bundle, add --exclude patterns or raise {flag}={actual}"
        )
        self.kind = kind
        self.limit = limit
        self.actual = actual
