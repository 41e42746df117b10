import gzip

import pytest

from webembed.compression import compress, compression_ratio, describe_decision, should_use_gzip


@pytest.mark.parametrize(
    "raw, compressed, expected",
    [
        (2048, 1024, True),
        (1025, 871, True),
        (2048, 1740, True),
        (2048, 1741, False),
        (1024, 0, False),
        (1024, 800, False),
        (0, 0, False),
        (2000, 1700, False),
        (2000, 1699, True),
    ],
)
def test_should_use_gzip(raw, compressed, expected):
    assert should_use_gzip(raw, compressed) is expected


def test_never_below_size_floor():
    assert not any(should_use_gzip(1024, compressed) for compressed in range(0, 2048))


def test_monotonic_in_compressed_size():
    for raw in (1025, 1500, 2048, 4096, 10_000):
        results = [should_use_gzip(raw, compressed) for compressed in range(0, raw + 10)]
        first_false = results.index(False)
        assert not any(results[first_false:])


def test_compress_is_deterministic_and_roundtrips():
    data = b"body { color: red; }\n" * 200
    assert compress(data) == compress(data)
    assert gzip.decompress(compress(data)) == data


def test_compression_ratio():
    assert compression_ratio(2048, 1024) == 50
    assert compression_ratio(1024, 1024) == 100
    assert compression_ratio(10_000, 100) == 1
    assert compression_ratio(1024, 683) == 67
    assert compression_ratio(0, 20) == 100


def test_describe_decision():
    assert describe_decision("app.js", 2048, 1024, True) == "[app.js] gzip used (2048 -> 1024 = 50%)"
    assert describe_decision("a.css", 512, 400, False) == "[a.css] gzip unused (too small) (512 -> 400 = 78%)"
    message = describe_decision("b.png", 2048, 1900, False)
    assert "too small" not in message
    assert message.endswith("(2048 -> 1900 = 93%)")
