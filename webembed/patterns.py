"""Glob matching for exclusion patterns.

Supports ``*``, ``?``, ``[...]`` classes, ``**`` across directories and
``{a,b}`` alternatives. A pattern without a ``/`` is tested against every
path component (``*.map`` excludes ``js/app.js.map``, ``.git`` excludes the
whole directory); a pattern with a ``/`` is anchored at the source root and
also excludes everything below a matching directory.
"""

from __future__ import annotations

from pathlib import PurePosixPath
import re

BRACE_RE = re.compile(r"\{([^{}]*,[^{}]*)\}")


def expand_braces(pattern: str) -> list[str]:
    match = BRACE_RE.search(pattern)
    if not match:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end():]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(expand_braces(head + option + tail))
    return expanded


def _translate_segment(segment: str) -> str:
    out: list[str] = []
    index = 0
    while index < len(segment):
        char = segment[index]
        index += 1
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[":
            end = segment.find("]", index + 1)
            if end == -1:
                out.append(re.escape(char))
                continue
            body = segment[index:end]
            index = end + 1
            if body[:1] in ("!", "^"):
                body = "^" + body[1:]
            out.append(f"[{body.replace(chr(92), chr(92) * 2)}]")
        else:
            out.append(re.escape(char))
    return "".join(out)


def translate(pattern: str) -> re.Pattern[str]:
    """Compile one brace-free glob into a regex matched against a whole path."""
    segments = pattern.strip("/").split("/")
    regex = ""
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            regex += ".*" if last else "(?:.*/)?"
        else:
            regex += _translate_segment(segment) + ("" if last else "/")
    return re.compile(regex)


class ExcludeMatcher:
    def __init__(self, patterns: list[str] | tuple[str, ...]) -> None:
        self.patterns = tuple(patterns)
        self._component: list[re.Pattern[str]] = []
        self._anchored: list[re.Pattern[str]] = []
        for pattern in self.patterns:
            for expanded in expand_braces(pattern.strip()):
                if not expanded:
                    continue
                if "/" in expanded.strip("/"):
                    self._anchored.append(translate(expanded))
                else:
                    self._component.append(translate(expanded))

    def matches(self, relative_path: str) -> bool:
        parts = PurePosixPath(relative_path).parts
        if any(regex.fullmatch(part) for regex in self._component for part in parts):
            return True
        prefixes = ["/".join(parts[: end]) for end in range(len(parts), 0, -1)]
        return any(regex.fullmatch(prefix) for regex in self._anchored for prefix in prefixes)

    def __bool__(self) -> bool:
        return bool(self._component or self._anchored)
