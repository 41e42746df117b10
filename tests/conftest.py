from __future__ import annotations

import pytest

from webembed.codegen import render
from webembed.config import Config, Engine, TriState
from webembed.postprocess import clean
from webembed.registry import build_registry

INDEX_HTML = b"<html></html>"


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep RC files in the real cwd or home directory out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


def make_config(**overrides) -> Config:
    values = {"source_path": "dist", "engine": Engine.PSYCHIC, "etag": TriState.ON, "gzip": TriState.ON}
    values.update(overrides)
    return Config(**values)


def generate(files: dict[str, bytes], **overrides) -> str:
    registry = build_registry(files)
    return clean(render(registry.assets, registry.extension_groups, make_config(**overrides)))


def write_tree(root, files: dict[str, bytes]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
