from pathlib import Path

import pytest
import yaml

from sitepipe.config import load_config
from sitepipe.core import files


@pytest.fixture
def make_config(tmp_path):
    """Write ``sitepipe.yml`` into tmp_path and load it."""

    def _make(**options):
        config_file = tmp_path / "sitepipe.yml"
        config_file.write_text(yaml.safe_dump(options), encoding="utf8")
        return load_config(str(config_file))

    return _make


@pytest.fixture
def config(make_config):
    return make_config()


@pytest.fixture
def write(tmp_path):
    """Create a text file relative to tmp_path."""

    def _write(rel: str, text: str) -> Path:
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf8")
        return path

    return _write


@pytest.fixture
def read_calls(monkeypatch):
    """Record every path passed to ``files.read_text``."""
    calls = []
    original = files.read_text

    async def counting_read_text(path):
        calls.append(Path(path))
        return await original(path)

    monkeypatch.setattr(files, "read_text", counting_read_text)
    return calls
