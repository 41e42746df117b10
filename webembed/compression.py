"""Gzip payloads and the rule deciding whether an asset ships compressed."""

from __future__ import annotations

import gzip

GZIP_MIN_SIZE = 1024
# compressed must stay below 85/100 of the raw size
GZIP_MAX_RATIO = (85, 100)


def compress(data: bytes) -> bytes:
    # mtime=0 keeps the gzip header, and so the generated source, stable between runs
    return gzip.compress(data, compresslevel=9, mtime=0)


def should_use_gzip(raw_size: int, compressed_size: int) -> bool:
    """Compress only files above 1 KiB that shrink by more than 15%."""
    numerator, denominator = GZIP_MAX_RATIO
    return raw_size > GZIP_MIN_SIZE and compressed_size * denominator < raw_size * numerator


def compression_ratio(raw_size: int, compressed_size: int) -> int:
    if raw_size == 0:
        return 100
    return round(compressed_size * 100 / raw_size)


def describe_decision(name: str, raw_size: int, compressed_size: int, used: bool) -> str:
    ratio = compression_ratio(raw_size, compressed_size)
    sizes = f"({raw_size} -> {compressed_size} = {ratio}%)"
    if used:
        return f"[{name}] gzip used {sizes}"
    if raw_size <= GZIP_MIN_SIZE:
        return f"[{name}] gzip unused (too small) {sizes}"
    return f"[{name}] gzip unused {sizes}"
