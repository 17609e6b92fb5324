from __future__ import annotations

from pathlib import Path

import pytest

from dotlink.shell import ShellEvaluator


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.delenv("DOTLINK_TRACKFILE", raising=False)
    monkeypatch.delenv("DOTLINK_DEBUG", raising=False)
    return home


@pytest.fixture
def shell() -> ShellEvaluator:
    return ShellEvaluator()


@pytest.fixture
def trackfile_path(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "dotlink" / "trackfile.toml"
