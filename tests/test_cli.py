from __future__ import annotations

import tomllib
from pathlib import Path
from textwrap import dedent

import pytest
from rich.console import Console
from typer.testing import CliRunner

from dotlink import cli
from dotlink.cli import app

runner = CliRunner()

CONFIG = """
[dots.use]
"shell/zshrc" = "~/.zshrc"
"config/<app>" = { app = "*", target = "~/.config/<app>" }
"""


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "console", Console(width=200))


@pytest.fixture
def dots(tmp_path: Path, fake_home: Path) -> Path:
    root = tmp_path / "dots"
    (root / "shell").mkdir(parents=True)
    (root / "shell" / "zshrc").write_text("export EDITOR=nvim\n")
    for app_name in ("kitty", "nvim"):
        (root / "config" / app_name).mkdir(parents=True)
    (root / "dots.toml").write_text(dedent(CONFIG))
    return root


def test_cli_link_and_status_flow(dots: Path, fake_home: Path) -> None:
    link_result = runner.invoke(app, ["link", str(dots)])
    assert link_result.exit_code == 0, link_result.stdout
    assert "Preparing to link 3 dotfiles..." in link_result.stdout
    assert "Successfully linked 3/3 potential entries." in link_result.stdout
    assert "Trackfile saved to" in link_result.stdout
    assert (fake_home / ".zshrc").is_symlink()

    status_result = runner.invoke(app, ["status", str(dots)])
    assert status_result.exit_code == 0
    assert status_result.stdout.count("intended_symlink") == 3
    assert "Some entries are not linked" not in status_result.stdout

    again = runner.invoke(app, ["link", str(dots)])
    assert again.exit_code == 0
    assert "No entries were linked (skipped 3)." in again.stdout


def test_cli_dry_run_changes_nothing(dots: Path, fake_home: Path, trackfile_path: Path) -> None:
    result = runner.invoke(app, ["link", str(dots), "--dry-run"])

    assert result.exit_code == 0
    assert "[ DRY RUN --- Link ]" in result.stdout
    assert "Would have successfully linked 3/3 potential entries." in result.stdout
    assert "DRY RUN: Trackfile would have been saved." in result.stdout
    assert not (fake_home / ".zshrc").exists()
    assert not trackfile_path.exists()


def test_cli_unlink_and_trackfile(dots: Path, fake_home: Path, trackfile_path: Path) -> None:
    assert runner.invoke(app, ["link", str(dots)]).exit_code == 0
    assert len(tomllib.loads(trackfile_path.read_text())) == 3

    result = runner.invoke(app, ["unlink", str(dots), "--include", "*/.zshrc"])

    assert result.exit_code == 0
    assert "Successfully unlinked 1/1 potential entries." in result.stdout
    assert not (fake_home / ".zshrc").exists()
    assert (fake_home / ".config" / "nvim").is_symlink()
    assert len(tomllib.loads(trackfile_path.read_text())) == 2


def test_cli_relink(dots: Path, fake_home: Path) -> None:
    assert runner.invoke(app, ["link", str(dots)]).exit_code == 0

    result = runner.invoke(app, ["relink", str(dots)])

    assert result.exit_code == 0
    assert "Successfully relinked 3/3 potential entries." in result.stdout
    assert (fake_home / ".config" / "kitty").is_symlink()


def test_cli_force_flags(dots: Path, fake_home: Path) -> None:
    (fake_home / ".zshrc").write_text("local\n")

    skipped = runner.invoke(app, ["link", str(dots)])
    assert skipped.exit_code == 0
    assert "Successfully linked 2/3 potential entries." in skipped.stdout
    assert (fake_home / ".zshrc").read_text() == "local\n"

    status_result = runner.invoke(app, ["status", str(dots)])
    assert "force_dangerously" in status_result.stdout
    assert "Some entries are not linked" in status_result.stdout

    forced = runner.invoke(app, ["link", str(dots), "--force-dangerously"])
    assert forced.exit_code == 0
    assert "Successfully linked 1/3 potential entries." in forced.stdout
    assert (fake_home / ".zshrc").is_symlink()


def test_cli_interactive_prompt(dots: Path, fake_home: Path) -> None:
    (fake_home / ".zshrc").write_text("local\n")

    result = runner.invoke(app, ["link", str(dots), "--interactive"], input="i\ny\n")

    assert result.exit_code == 0
    assert "Remove file (not a symlink!)" in result.stdout
    assert "destination is not tracked" in result.stdout
    assert (fake_home / ".zshrc").is_symlink()


def test_cli_clean(dots: Path, fake_home: Path) -> None:
    assert runner.invoke(app, ["link", str(dots)]).exit_code == 0
    (dots / "dots.toml").write_text('[dots.use]\n"shell/zshrc" = "~/.zshrc"\n')

    result = runner.invoke(app, ["clean", str(dots)])

    assert result.exit_code == 0
    assert "Successfully cleaned 2/2 potential entries." in result.stdout
    assert not (fake_home / ".config" / "kitty").exists()
    assert (fake_home / ".zshrc").is_symlink()

    nothing = runner.invoke(app, ["clean", str(dots)])
    assert "No dotfiles found to clean" in nothing.stdout


def test_cli_target_errors_exit_non_zero(dots: Path, fake_home: Path) -> None:
    (fake_home / ".config").write_text("not a directory\n")

    result = runner.invoke(app, ["link", str(dots)])

    assert result.exit_code == 1
    assert (fake_home / ".zshrc").is_symlink()


def test_cli_bail(dots: Path, fake_home: Path, trackfile_path: Path) -> None:
    (fake_home / ".config").write_text("not a directory\n")

    result = runner.invoke(app, ["link", str(dots), "--bail"])

    assert result.exit_code == 1
    assert "[ BAIL ]" in result.stdout
    assert "User bailed link operation" in result.stdout
    assert str(fake_home / ".zshrc") in tomllib.loads(trackfile_path.read_text())


def test_cli_missing_config(tmp_path: Path, fake_home: Path) -> None:
    result = runner.invoke(app, ["link", str(tmp_path)])

    assert result.exit_code == 1
    assert "Expected to find one of" in result.stdout


def test_cli_no_targets(tmp_path: Path, fake_home: Path) -> None:
    (tmp_path / "dots.toml").write_text("[dots]\n")

    result = runner.invoke(app, ["link", str(tmp_path)])

    assert result.exit_code == 0
    assert "No dotfiles found to link" in result.stdout


def test_cli_handles_permission_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class DummyManager:
        def resolve_targets(self, *_args, **_kwargs):  # noqa: ANN001
            raise PermissionError("mocked")

    monkeypatch.setattr("dotlink.cli._load_manager", lambda _target: DummyManager())

    result = runner.invoke(app, ["link"])
    assert result.exit_code == 1
    assert "Permission denied" in result.stdout
