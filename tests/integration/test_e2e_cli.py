from __future__ import annotations

import tomllib
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from dotlink import cli
from dotlink.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "console", Console(width=200))


def _write_dotfiles(root: Path) -> Path:
    for app_name in ("nvim", "kitty", "private"):
        (root / "config" / app_name).mkdir(parents=True)
        (root / "config" / app_name / "init").write_text(f"{app_name}\n")
    (root / "hosts" / "linux").mkdir(parents=True)
    (root / "hosts" / "linux" / "profile").write_text("export PATH\n")
    (root / "hosts" / "plan9").mkdir(parents=True)
    (root / "hosts" / "plan9" / "profile").write_text("bind\n")

    config_path = root / "dots.toml"
    config_path.write_text(
        """
[dots]
exclude = ["config/private"]

[dots.use."config/<app>"]
app = "*"
target = "~/.config/<app>"

[[dots.use."hosts/<os>"]]
os = "linux"
when = { if = "\\"$os\\" = linux" }
target = { "profile" = "~/.profile" }

[[dots.use."hosts/<os>"]]
os = "plan9"
when = { shell = "echo false" }
target = { "profile" = "~/.profile" }
"""
    )
    return config_path


def test_cli_full_cycle(tmp_path: Path, fake_home: Path, trackfile_path: Path) -> None:
    dots = tmp_path / "dots"
    _write_dotfiles(dots)

    link_result = runner.invoke(app, ["link", str(dots)])
    assert link_result.exit_code == 0, link_result.stdout
    assert "Successfully linked 3/3 potential entries." in link_result.stdout

    assert (fake_home / ".config" / "nvim").resolve() == (dots / "config" / "nvim").resolve()
    assert (fake_home / ".profile").resolve() == (dots / "hosts" / "linux" / "profile").resolve()
    assert not (fake_home / ".config" / "private").exists()

    tracked = tomllib.loads(trackfile_path.read_text())
    assert set(tracked) == {
        str(fake_home / ".config" / "nvim"),
        str(fake_home / ".config" / "kitty"),
        str(fake_home / ".profile"),
    }

    status_result = runner.invoke(app, ["status", str(dots)])
    assert status_result.exit_code == 0
    assert status_result.stdout.count("intended_symlink") == 3

    unlink_result = runner.invoke(app, ["unlink", str(dots)])
    assert unlink_result.exit_code == 0
    assert "Successfully unlinked 3/3 potential entries." in unlink_result.stdout
    assert not (fake_home / ".profile").exists()
    assert tomllib.loads(trackfile_path.read_text()) == {}


def test_cli_user_config_inheritance(tmp_path: Path, fake_home: Path) -> None:
    user_config = fake_home / ".config" / "dotlink" / "config.toml"
    user_config.parent.mkdir(parents=True)
    user_config.write_text(
        f"""
[settings]
trackfile = "{tmp_path / "state" / "links.toml"}"

[dots]
inherits = ["target"]
target = "~/.local/share/<name>"
"""
    )
    dots = tmp_path / "dots"
    (dots / "fonts").mkdir(parents=True)
    (dots / "dots.toml").write_text('[dots.use.fonts]\nname = "fonts"\n')

    result = runner.invoke(app, ["link", str(dots)])

    assert result.exit_code == 0, result.stdout
    assert (fake_home / ".local" / "share" / "fonts").is_symlink()
    assert (tmp_path / "state" / "links.toml").exists()


def test_cli_tracked_symlink_moved_by_hand(tmp_path: Path, fake_home: Path) -> None:
    dots = tmp_path / "dots"
    (dots / "git").mkdir(parents=True)
    (dots / "git" / "gitconfig").write_text("[user]\n")
    (dots / "git" / "gitconfig.work").write_text("[user]\nname = work\n")
    (dots / "dots.toml").write_text('[dots.use]\n"git/gitconfig" = "~/.gitconfig"\n')

    assert runner.invoke(app, ["link", str(dots)]).exit_code == 0

    gitconfig = fake_home / ".gitconfig"
    gitconfig.unlink()
    gitconfig.symlink_to(dots / "git" / "gitconfig.work")

    kept = runner.invoke(app, ["link", str(dots), "-fc"])
    assert kept.exit_code == 0
    assert gitconfig.resolve() == (dots / "git" / "gitconfig.work").resolve()

    replaced = runner.invoke(app, ["link", str(dots), "-fs"])
    assert replaced.exit_code == 0
    assert gitconfig.resolve() == (dots / "git" / "gitconfig").resolve()
