"""Whitespace clean-up of rendered source text."""

from __future__ import annotations

SEPARATOR_MARKER = "//"


def clean(text: str) -> str:
    """Strip trailing whitespace, turn bare ``//`` markers into blank lines and
    collapse runs of blank lines. Running it again changes nothing.

    A run of blank lines left by empty switch branches shrinks to a single
    blank separator; leading and trailing blank lines are dropped.
    """
    lines: list[str] = []
    for line in text.splitlines():
        line = line.rstrip()
        if line == SEPARATOR_MARKER:
            line = ""
        if not line and (not lines or not lines[-1]):
            continue
        lines.append(line)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines) + "\n"
