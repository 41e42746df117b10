"""Configuration: defaults, RC file and command line merged into one Config."""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
import json
import logging
from pathlib import Path
import re
from typing import Any

from webembed.errors import ConfigError

log = logging.getLogger(__name__)

RC_FILENAMES = (".webembedrc.json", ".webembedrc")

# dot files never reach the exclusion step; collector.list_files skips them
DEFAULT_EXCLUDE_PATTERNS = (
    "Thumbs.db",
    "*.swp",
    "*~",
)

RC_KEYS = {
    "engine",
    "sourcepath",
    "outputfile",
    "espmethod",
    "define",
    "gzip",
    "etag",
    "cachetime",
    "created",
    "version",
    "exclude",
    "basepath",
    "maxsize",
    "maxgzipsize",
    "noindexcheck",
    "dryrun",
}

STRING_RC_KEYS = ("engine", "sourcepath", "outputfile", "espmethod", "define", "gzip", "etag", "version", "basepath")

NPM_VARIABLE_RE = re.compile(r"\$npm_package_[0-9A-Za-z]+(?:_[a-z][0-9A-Za-z]*)*")
NPM_PREFIX = "$npm_package_"
IDENTIFIER_RE = re.compile(r"^[A-Za-z_]\w*$", re.ASCII)
SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMkm])?$")


class Engine(enum.Enum):
    PSYCHIC = "psychic"
    PSYCHIC2 = "psychic2"
    ASYNC = "async"
    ESPIDF = "espidf"


class TriState(enum.Enum):
    """A feature switch that is on, off, or left to the target compiler."""

    ON = "true"
    OFF = "false"
    COMPILER = "compiler"


def parse_engine(value: str) -> Engine:
    try:
        return Engine(value)
    except ValueError:
        valid = ", ".join(engine.value for engine in Engine)
        raise ConfigError(f"Invalid engine: '{value}' (valid engines: {valid})") from None


def parse_tri_state(value: str, name: str) -> TriState:
    try:
        return TriState(value)
    except ValueError:
        valid = ", ".join(state.value for state in TriState)
        raise ConfigError(f"Invalid {name}: '{value}' (expected one of {valid})") from None


def validate_identifier(value: str, name: str) -> str:
    if not IDENTIFIER_RE.match(value):
        raise ConfigError(
            f"{name} must be a valid C++ identifier "
            f"(letters, digits, underscores, not starting with a digit): {value}"
        )
    return value


def validate_base_path(value: str) -> str:
    if value == "":
        return value
    if not value.startswith("/"):
        raise ConfigError(f"basepath must start with /: {value}")
    if value.endswith("/"):
        raise ConfigError(f"basepath must not end with /: {value}")
    if "//" in value:
        raise ConfigError(f"basepath must not contain //: {value}")
    return value


def parse_cache_time(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid cachetime: {value}")
    if isinstance(value, int):
        seconds = value
    else:
        try:
            seconds = int(str(value).strip(), 10)
        except ValueError:
            raise ConfigError(f"Invalid cachetime: {value}") from None
    if seconds < 0:
        raise ConfigError(f"Invalid cachetime: {value} (must be non-negative)")
    return seconds


def parse_size(value: Any, name: str) -> int:
    """Parse a byte budget such as ``409600``, ``400k`` or ``1.5m``."""
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a positive number: {value}")
    if isinstance(value, (int, float)):
        size = round(value)
    else:
        match = SIZE_RE.match(str(value).strip())
        if not match:
            raise ConfigError(
                f"{name} must be a positive number with optional k/K (x1024) "
                f"or m/M (x1024^2) suffix: {value}"
            )
        number = float(match.group(1))
        suffix = (match.group(2) or "").lower()
        if suffix == "k":
            number *= 1024
        elif suffix == "m":
            number *= 1024 * 1024
        size = round(number)
    if size <= 0:
        raise ConfigError(f"{name} must be a positive integer: {value}")
    return size


def split_patterns(values: list[str]) -> list[str]:
    patterns: list[str] = []
    for value in values:
        patterns.extend(part.strip() for part in value.split(",") if part.strip())
    return patterns


@dataclass(frozen=True)
class Config:
    source_path: str
    engine: Engine = Engine.PSYCHIC
    output_file: str = "webembed.h"
    etag: TriState = TriState.OFF
    gzip: TriState = TriState.ON
    cache_time: int = 0
    created: bool = False
    version: str = ""
    method_name: str = "initWebStaticFiles"
    define_prefix: str = "WEBEMBED"
    base_path: str = ""
    exclude: tuple[str, ...] = field(default=DEFAULT_EXCLUDE_PATTERNS)
    max_size: int | None = None
    max_gzip_size: int | None = None
    no_index_check: bool = False
    dry_run: bool = False

    def describe(self) -> str:
        """One-line summary of the effective settings for the output header."""
        parts = [
            f"engine={self.engine.value}",
            f"sourcepath={self.source_path}",
            f"outputfile={self.output_file}",
            f"etag={self.etag.value}",
            f"gzip={self.gzip.value}",
            f"cachetime={self.cache_time}",
        ]
        if self.created:
            parts.append("created=true")
        if self.version:
            parts.append(f"version={self.version}")
        parts.append(f"espmethod={self.method_name}")
        parts.append(f"define={self.define_prefix}")
        if self.base_path:
            parts.append(f"basepath={self.base_path}")
        if self.max_size is not None:
            parts.append(f"maxsize={self.max_size}")
        if self.max_gzip_size is not None:
            parts.append(f"maxgzipsize={self.max_gzip_size}")
        if self.exclude:
            parts.append(f"exclude=[{', '.join(self.exclude)}]")
        return " ".join(parts)


def find_rc_file(custom_path: str | None = None, cwd: Path | None = None, home: Path | None = None) -> Path | None:
    if custom_path:
        path = Path(custom_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {custom_path}")
        return path

    for directory in (cwd or Path.cwd(), home or Path.home()):
        for filename in RC_FILENAMES:
            candidate = directory / filename
            if candidate.is_file():
                return candidate
    return None


def npm_package_variable(package: dict[str, Any], variable: str) -> str | None:
    if not variable.startswith(NPM_PREFIX):
        return None
    current: Any = package
    for segment in variable[len(NPM_PREFIX):].split("_"):
        if not isinstance(current, dict):
            return None
        current = current.get(segment)
        if current is None:
            return None
    if isinstance(current, (dict, list)):
        return None
    return str(current)


def _string_fields(config: dict[str, Any]) -> list[str]:
    names = [
        key
        for key in ("sourcepath", "outputfile", "espmethod", "define", "version", "basepath")
        if isinstance(config.get(key), str) and NPM_PREFIX in config[key]
    ]
    for index, pattern in enumerate(config.get("exclude") or []):
        if isinstance(pattern, str) and NPM_PREFIX in pattern:
            names.append(f"exclude[{index}]")
    return names


def interpolate_npm_variables(config: dict[str, Any], rc_path: Path) -> dict[str, Any]:
    """Replace ``$npm_package_*`` tokens with values from the sibling package.json."""
    affected = _string_fields(config)
    if not affected:
        return config

    package_json = rc_path.parent / "package.json"
    if not package_json.is_file():
        raise ConfigError(
            f"RC file uses npm package variables but package.json not found in {rc_path.parent}\n"
            f"  Variables found in fields: {', '.join(affected)}"
        )
    try:
        package = json.loads(package_json.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse package.json at {package_json}: {exc}") from exc

    def substitute(value: str) -> str:
        return NPM_VARIABLE_RE.sub(
            lambda match: npm_package_variable(package, match.group(0)) or match.group(0),
            value,
        )

    result = dict(config)
    for key in ("sourcepath", "outputfile", "espmethod", "define", "version", "basepath"):
        if isinstance(result.get(key), str):
            result[key] = substitute(result[key])
    if isinstance(result.get("exclude"), list):
        result["exclude"] = [
            substitute(pattern) if isinstance(pattern, str) else pattern
            for pattern in result["exclude"]
        ]
    return result


def _expect_bool(config: dict[str, Any], key: str, rc_path: Path) -> None:
    if key in config and not isinstance(config[key], bool):
        raise ConfigError(f"Invalid {key} in RC file {rc_path}: {config[key]} (must be boolean)")


def _expect_str(config: dict[str, Any], key: str, rc_path: Path) -> None:
    if config.get(key) is not None and not isinstance(config[key], str):
        raise ConfigError(f"Invalid {key} in RC file {rc_path}: {config[key]!r} (must be a string)")


def load_rc_file(rc_path: Path) -> dict[str, Any]:
    try:
        config = json.loads(rc_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in RC file {rc_path}: {exc}") from exc
    if not isinstance(config, dict):
        raise ConfigError(f"RC file {rc_path} must contain a JSON object")

    for key in config:
        if key not in RC_KEYS:
            log.warning("Unknown property '%s' in RC file %s", key, rc_path)

    config = interpolate_npm_variables(config, rc_path)

    if "exclude" in config:
        if not isinstance(config["exclude"], list):
            raise ConfigError(f"'exclude' in RC file {rc_path} must be an array")
        if not all(isinstance(pattern, str) for pattern in config["exclude"]):
            raise ConfigError("All exclude patterns must be strings")
    if "cachetime" in config and not isinstance(config["cachetime"], int):
        raise ConfigError(f"Invalid cachetime in RC file {rc_path}: {config['cachetime']}")
    for key in ("created", "noindexcheck", "dryrun"):
        _expect_bool(config, key, rc_path)
    for key in STRING_RC_KEYS:
        _expect_str(config, key, rc_path)
    return config


def resolve_config(cli: dict[str, Any], rc: dict[str, Any] | None = None) -> Config:
    """Merge RC file values and command-line values over the defaults.

    ``cli`` holds only the options actually given on the command line
    (missing or ``None`` means not given); RC keys use the RC file names.
    """
    rc = rc or {}
    merged: dict[str, Any] = {}
    for rc_key, name in (
        ("engine", "engine"),
        ("sourcepath", "source_path"),
        ("outputfile", "output_file"),
        ("etag", "etag"),
        ("gzip", "gzip"),
        ("cachetime", "cache_time"),
        ("created", "created"),
        ("version", "version"),
        ("espmethod", "method_name"),
        ("define", "define_prefix"),
        ("basepath", "base_path"),
        ("maxsize", "max_size"),
        ("maxgzipsize", "max_gzip_size"),
        ("noindexcheck", "no_index_check"),
        ("dryrun", "dry_run"),
    ):
        if rc.get(rc_key) is not None:
            merged[name] = rc[rc_key]
        if cli.get(name) is not None:
            merged[name] = cli[name]

    exclude: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    if rc.get("exclude"):
        exclude = tuple(rc["exclude"])
    cli_exclude = split_patterns(cli.get("exclude") or [])
    if cli_exclude:
        exclude = tuple(cli_exclude)

    if not merged.get("source_path"):
        raise ConfigError("--sourcepath is required (can be specified in RC file or CLI)")

    values: dict[str, Any] = {"source_path": str(merged["source_path"]), "exclude": exclude}
    if "engine" in merged:
        values["engine"] = parse_engine(merged["engine"])
    if "etag" in merged:
        values["etag"] = parse_tri_state(merged["etag"], "etag")
    if "gzip" in merged:
        values["gzip"] = parse_tri_state(merged["gzip"], "gzip")
    if "cache_time" in merged:
        values["cache_time"] = parse_cache_time(merged["cache_time"])
    if "method_name" in merged:
        values["method_name"] = validate_identifier(merged["method_name"], "espmethod")
    if "define_prefix" in merged:
        values["define_prefix"] = validate_identifier(merged["define_prefix"], "define")
    if "base_path" in merged:
        values["base_path"] = validate_base_path(merged["base_path"])
    if "max_size" in merged:
        values["max_size"] = parse_size(merged["max_size"], "maxsize")
    if "max_gzip_size" in merged:
        values["max_gzip_size"] = parse_size(merged["max_gzip_size"], "maxgzipsize")
    for name in ("output_file", "version"):
        if name in merged:
            values[name] = str(merged[name])
    for name in ("created", "no_index_check", "dry_run"):
        if name in merged:
            values[name] = bool(merged[name])
    return Config(**values)
