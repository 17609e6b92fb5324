"""Command-line interface for dotlink."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_config
from .errors import ConfigError, DotlinkError
from .logs import setup_logging
from .manager import DotsManager, Targets
from .models import LinkFlags, Reason, RunStats, StatusReport

app = typer.Typer(help="Symlink dotfiles into place and keep track of what was linked")
console = Console()

TARGET = typer.Argument(Path("."), help="Dotfiles directory (or its config file)")
INCLUDE = typer.Option(None, "--include", "-i", help="Include only targets matching these glob patterns")
EXCLUDE = typer.Option(None, "--exclude", "-e", help="Exclude targets matching these glob patterns")
FORCE_CORRECT_SYMLINK = typer.Option(
    False,
    "--force-correct-symlink",
    "-fc",
    help="Replace tracked symlinks that still point to their recorded source",
)
FORCE_SYMLINK = typer.Option(False, "--force-symlink", "-fs", help="Replace existing tracked symlinks only")
FORCE_FILE = typer.Option(
    False,
    "--force-file",
    "-ff",
    help="Force overwrite/removal of tracked files and links",
)
FORCE_DANGEROUSLY = typer.Option(
    False,
    "--force-dangerously",
    help="Force overwrite/removal of *any* destination path, tracked or not (USE WITH CAUTION)",
)
DRY_RUN = typer.Option(
    False,
    "--dry-run",
    help="Show actions without modifying the filesystem or the trackfile",
)
INTERACTIVE = typer.Option(
    False,
    "--interactive",
    help="Prompt for confirmation before potentially destructive actions",
)
BAIL = typer.Option(False, "--bail", help="Stop (or ask whether to continue) after the first failed target")
VERBOSE = typer.Option(False, "--verbose", "-v", help="Report every link and removal")

_STATE_STYLES = {
    Reason.INTENDED_SYMLINK: "green",
    Reason.NOT_FOUND: "yellow",
    Reason.DANGLING_SYMLINK: "yellow",
    Reason.STATUS_ERROR: "red",
}

_PAST_TENSE = {"link": "linked", "unlink": "unlinked", "relink": "relinked", "clean": "cleaned"}


def _load_manager(target: Path) -> DotsManager:
    return DotsManager(load_config(target), console=console)


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Re-run the command with elevated privileges (e.g. `sudo`).")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(message, markup=False, style="red")
        if "Expected to find" in message:
            console.print("[yellow]Add a dots.toml to the dotfiles directory, or point to the config file itself.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, DotlinkError):
        console.print(str(exc), markup=False, style="red")
        if exc.__cause__ is not None:
            console.print(f"Caused by: {exc.__cause__}", markup=False, style="red")
        raise typer.Exit(code=1)
    raise exc


def _format_stats(action: str, stats: RunStats, dry_run: bool) -> None:
    done = stats.symlinks_added if action in ("link", "relink") else stats.removed
    verb = _PAST_TENSE[action]
    if done > 0:
        prefix = f"Would have successfully {verb}" if dry_run else f"Successfully {verb}"
        console.print(f"{prefix} {done}/{stats.targets} potential entries.")
    else:
        message = f"No entries would have been {verb}" if dry_run else f"No entries were {verb}"
        console.print(f"{message} (skipped {stats.targets_skipped}).")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Counter")
    table.add_column("Value", justify="right")
    table.add_row("Targets", str(stats.targets))
    table.add_row("Symlinks added", str(stats.symlinks_added))
    table.add_row("Symlinks removed", str(stats.symlinks_removed))
    table.add_row("Files removed", str(stats.files_removed))
    table.add_row("Skipped", str(stats.targets_skipped))
    table.add_row("Errors", str(stats.errors))
    console.print(table)


def _format_status(report: StatusReport) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Destination", overflow="fold")
    table.add_column("Source", overflow="fold")
    table.add_column("State")
    table.add_column("Tracked")

    for entry in report.entries:
        style = _STATE_STYLES.get(entry.reason, "red" if entry.reason.forceable else "white")
        table.add_row(
            str(entry.destination),
            str(entry.source),
            f"[{style}]{entry.reason.value}[/{style}]",
            "yes" if entry.tracked else "no",
        )

    console.print(table)


def _run_batch(action: str, target: Path, flags: LinkFlags) -> None:
    setup_logging(flags.verbose)
    try:
        manager = _load_manager(target)
        targets: Targets = manager.stale_targets(flags) if action == "clean" else manager.resolve_targets(flags)
        if not targets:
            console.print(f"[yellow]No dotfiles found to {action} based on the provided target and filters.[/yellow]")
            return

        console.print(f"Preparing to {action} {len(targets)} dotfiles...")
        try:
            if action == "clean":
                stats = manager.unlink(flags, targets)
            else:
                stats = getattr(manager, action)(flags, targets)
        finally:
            if manager.save(dry_run=flags.dry_run):
                console.print(f"Trackfile saved to {manager.trackfile.path}")

        _format_stats(action, stats, flags.dry_run)
        if flags.dry_run and stats.trackfile_updates:
            console.print("DRY RUN: Trackfile would have been saved.")
        if stats.errors:
            raise typer.Exit(code=1)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


def _link_flags(
    include: list[str] | None,
    exclude: list[str] | None,
    force_correct_symlink: bool,
    force_symlink: bool,
    force_file: bool,
    force_dangerously: bool,
    dry_run: bool,
    interactive: bool,
    bail: bool,
    verbose: bool,
) -> LinkFlags:
    return LinkFlags(
        force_correct_symlink=force_correct_symlink,
        force_symlink=force_symlink,
        force_file=force_file,
        force_dangerously=force_dangerously,
        dry_run=dry_run,
        interactive=interactive,
        verbose=verbose,
        bail=bail,
        include=tuple(include or ()),
        exclude=tuple(exclude or ()),
    )


@app.command()
def link(
    target: Path = TARGET,
    include: list[str] = INCLUDE,
    exclude: list[str] = EXCLUDE,
    force_correct_symlink: bool = FORCE_CORRECT_SYMLINK,
    force_symlink: bool = FORCE_SYMLINK,
    force_file: bool = FORCE_FILE,
    force_dangerously: bool = FORCE_DANGEROUSLY,
    dry_run: bool = DRY_RUN,
    interactive: bool = INTERACTIVE,
    bail: bool = BAIL,
    verbose: bool = VERBOSE,
) -> None:
    """Symlink every resolved target into place."""

    flags = _link_flags(
        include, exclude, force_correct_symlink, force_symlink, force_file, force_dangerously,
        dry_run, interactive, bail, verbose,
    )  # fmt: skip
    _run_batch("link", target, flags)


@app.command()
def unlink(
    target: Path = TARGET,
    include: list[str] = INCLUDE,
    exclude: list[str] = EXCLUDE,
    force_correct_symlink: bool = FORCE_CORRECT_SYMLINK,
    force_symlink: bool = FORCE_SYMLINK,
    force_file: bool = FORCE_FILE,
    force_dangerously: bool = FORCE_DANGEROUSLY,
    dry_run: bool = DRY_RUN,
    interactive: bool = INTERACTIVE,
    bail: bool = BAIL,
    verbose: bool = VERBOSE,
) -> None:
    """Remove the symlinks of every resolved target."""

    flags = _link_flags(
        include, exclude, force_correct_symlink, force_symlink, force_file, force_dangerously,
        dry_run, interactive, bail, verbose,
    )  # fmt: skip
    _run_batch("unlink", target, flags)


@app.command()
def relink(
    target: Path = TARGET,
    include: list[str] = INCLUDE,
    exclude: list[str] = EXCLUDE,
    force_correct_symlink: bool = FORCE_CORRECT_SYMLINK,
    force_symlink: bool = FORCE_SYMLINK,
    force_file: bool = FORCE_FILE,
    force_dangerously: bool = FORCE_DANGEROUSLY,
    dry_run: bool = DRY_RUN,
    interactive: bool = INTERACTIVE,
    bail: bool = BAIL,
    verbose: bool = VERBOSE,
) -> None:
    """Unlink, then link again, every resolved target."""

    flags = _link_flags(
        include, exclude, force_correct_symlink, force_symlink, force_file, force_dangerously,
        dry_run, interactive, bail, verbose,
    )  # fmt: skip
    _run_batch("relink", target, flags)


@app.command()
def status(
    target: Path = TARGET,
    include: list[str] = INCLUDE,
    exclude: list[str] = EXCLUDE,
    verbose: bool = VERBOSE,
) -> None:
    """Show every resolved target and the state of its destination."""

    setup_logging(verbose)
    try:
        manager = _load_manager(target)
        report = manager.status(LinkFlags(include=tuple(include or ()), exclude=tuple(exclude or ())))
        if not report.entries:
            console.print("[yellow]No dotfiles found based on the provided target and filters.[/yellow]")
            return
        _format_status(report)
        if any(entry.reason is not Reason.INTENDED_SYMLINK for entry in report.entries):
            console.print("[yellow]Some entries are not linked. Run 'dotlink link' to update them.[/yellow]")
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def clean(
    target: Path = TARGET,
    dry_run: bool = DRY_RUN,
    interactive: bool = INTERACTIVE,
    verbose: bool = VERBOSE,
) -> None:
    """Remove tracked links that the configuration no longer produces."""

    flags = LinkFlags(dry_run=dry_run, interactive=interactive, verbose=verbose)
    _run_batch("clean", target, flags)


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
