from __future__ import annotations

import tomllib
from pathlib import Path

import pytest

from dotlink.errors import TrackfileError
from dotlink.trackfile import Trackfile


def test_missing_trackfile_loads_empty(tmp_path: Path) -> None:
    trackfile = Trackfile.load(tmp_path / "missing.toml")
    assert len(trackfile) == 0
    assert trackfile.dirty is False


def test_empty_trackfile_loads_empty(tmp_path: Path) -> None:
    path = tmp_path / "trackfile.toml"
    path.write_text("\n")
    assert len(Trackfile.load(path)) == 0


def test_save_only_when_dirty(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "trackfile.toml"
    trackfile = Trackfile.load(path)

    assert trackfile.save() is False
    assert not path.exists()

    trackfile.insert(Path("/home/u/.vimrc"), Path("/dots/vim/vimrc"))
    assert trackfile.dirty is True
    assert trackfile.save() is True
    assert trackfile.dirty is False

    data = tomllib.loads(path.read_text())
    assert data == {"/home/u/.vimrc": "/dots/vim/vimrc"}


def test_entries_survive_reload(tmp_path: Path) -> None:
    path = tmp_path / "trackfile.toml"
    trackfile = Trackfile.load(path)
    trackfile.insert(Path("/b"), Path("/src/b"))
    trackfile.insert(Path("/a"), Path("/src/a"))
    trackfile.save()

    reloaded = Trackfile.load(path)
    assert reloaded.get_source(Path("/a")) == Path("/src/a")
    assert reloaded.contains(Path("/b"))
    assert Path("/c") not in reloaded
    assert [destination for destination, _ in reloaded.items()] == [Path("/a"), Path("/b")]


def test_remove_marks_dirty_only_for_known_entries(tmp_path: Path) -> None:
    trackfile = Trackfile(tmp_path / "t.toml", {Path("/a"): Path("/src/a")})

    assert trackfile.remove(Path("/missing")) is None
    assert trackfile.dirty is False

    assert trackfile.remove(Path("/a")) == Path("/src/a")
    assert trackfile.dirty is True
    assert len(trackfile) == 0


def test_items_can_be_mutated_during_iteration(tmp_path: Path) -> None:
    trackfile = Trackfile(tmp_path / "t.toml", {Path("/a"): Path("/1"), Path("/b"): Path("/2")})
    for destination, _ in trackfile.items():
        trackfile.remove(destination)
    assert len(trackfile) == 0


def test_entries_are_copied_from_caller(tmp_path: Path) -> None:
    entries = {Path("/home/u/.vimrc"): Path("/dots/vimrc")}
    trackfile = Trackfile(tmp_path / "trackfile.toml", entries)

    trackfile.insert(Path("/home/u/.zshrc"), Path("/dots/zshrc"))
    trackfile.remove(Path("/home/u/.vimrc"))

    assert entries == {Path("/home/u/.vimrc"): Path("/dots/vimrc")}
    assert len(trackfile) == 1


def test_corrupt_trackfile_raises(tmp_path: Path) -> None:
    path = tmp_path / "trackfile.toml"
    path.write_text("this is = = not toml")
    with pytest.raises(TrackfileError):
        Trackfile.load(path)


def test_non_string_value_raises(tmp_path: Path) -> None:
    path = tmp_path / "trackfile.toml"
    path.write_text('"/a" = 3\n')
    with pytest.raises(TrackfileError):
        Trackfile.load(path)
