"""High level orchestration for dotlink batches."""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import Path

from rich.console import Console

from .choices import Choice, ChoiceMemory, Prompter, PromptOptions
from .config import Config
from .engine import Action, Reconciler
from .errors import BailError, TargetError
from .filesystem import get_status
from .models import LinkFlags, RunStats, StatusEntry, StatusReport
from .rules import collect_targets
from .shell import ShellEvaluator
from .trackfile import Trackfile

logger = logging.getLogger(__name__)

Targets = dict[Path, Path]


class DotsManager:
    """Coordinates link, unlink, relink, status and clean using the trackfile."""

    def __init__(
        self,
        config: Config,
        *,
        trackfile: Trackfile | None = None,
        shell: ShellEvaluator | None = None,
        prompter: Prompter | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.trackfile = trackfile if trackfile is not None else Trackfile.load(config.settings.trackfile)
        self.shell = shell or ShellEvaluator(config.settings.shell)
        self.console = console or Console()
        self.prompter = prompter or Prompter(self.console)

    def resolve_targets(self, flags: LinkFlags | None = None) -> Targets:
        """Evaluate the configuration into destination to source targets."""

        flags = flags or LinkFlags()
        targets = collect_targets(self.config.options, self.config.root, shell=self.shell)
        selected = {
            destination: source
            for destination, source in targets.items()
            if self._selected(destination, source, flags)
        }
        logger.debug("Resolved %d targets (%d after filters)", len(targets), len(selected))
        return selected

    def link(self, flags: LinkFlags, targets: Targets | None = None) -> RunStats:
        return self._run(Action.LINK, flags, targets)

    def unlink(self, flags: LinkFlags, targets: Targets | None = None) -> RunStats:
        return self._run(Action.UNLINK, flags, targets)

    def relink(self, flags: LinkFlags, targets: Targets | None = None) -> RunStats:
        if targets is None:
            targets = self.resolve_targets(flags)
        memory = ChoiceMemory()
        unlink_stats = self._run(Action.UNLINK, flags, targets, memory=memory)
        link_stats = self._run(Action.LINK, flags, targets, memory=memory)
        return unlink_stats.merge(link_stats)

    def status(self, flags: LinkFlags | None = None) -> StatusReport:
        """Classify every target without touching the filesystem."""

        reconciler = Reconciler(self.trackfile, LinkFlags(), prompter=self.prompter, console=self.console)
        entries: list[StatusEntry] = []
        for destination, source in self.resolve_targets(flags).items():
            status = get_status(destination)
            entries.append(
                StatusEntry(
                    destination=destination,
                    source=source,
                    status=status,
                    reason=reconciler.classify(destination, source, status),
                    tracked=self.trackfile.contains(destination),
                )
            )
        return StatusReport(entries=tuple(entries))

    def stale_targets(self, flags: LinkFlags | None = None) -> Targets:
        """Tracked links from this dotfiles directory the configuration no longer produces."""

        current = self.resolve_targets(LinkFlags())
        root = self.config.root
        flags = flags or LinkFlags()
        return {
            destination: source
            for destination, source in self.trackfile.items()
            if destination not in current
            and source.is_relative_to(root)
            and self._selected(destination, source, flags)
        }

    def clean(self, flags: LinkFlags) -> RunStats:
        return self._run(Action.UNLINK, flags, self.stale_targets(flags))

    def save(self, *, dry_run: bool = False) -> bool:
        """Persist the trackfile once, unless this is a dry run."""

        if dry_run:
            return False
        return self.trackfile.save()

    # ------------------------------------------------------------------
    # Internal helpers

    def _selected(self, destination: Path, source: Path, flags: LinkFlags) -> bool:
        names = [str(destination), str(source)]
        if source.is_relative_to(self.config.root):
            names.append(source.relative_to(self.config.root).as_posix())

        if flags.include and not any(fnmatch(name, pattern) for pattern in flags.include for name in names):
            return False
        if flags.exclude and any(fnmatch(name, pattern) for pattern in flags.exclude for name in names):
            return False
        return True

    def _run(
        self,
        action: Action,
        flags: LinkFlags,
        targets: Targets | None,
        *,
        memory: ChoiceMemory | None = None,
    ) -> RunStats:
        if targets is None:
            targets = self.resolve_targets(flags)

        memory = memory if memory is not None else ChoiceMemory()
        stats = RunStats(targets=len(targets))
        reconciler = Reconciler(
            self.trackfile,
            flags,
            stats=stats,
            memory=memory,
            prompter=self.prompter,
            console=self.console,
        )
        perform = reconciler.link if action is Action.LINK else reconciler.unlink

        for destination, source in targets.items():
            try:
                perform(destination, source)
            except TargetError as exc:
                stats.errors += 1
                logger.error("%s", exc)
                if flags.bail and not memory.keep_going:
                    memory.keep_going = self._try_bail(
                        flags,
                        exc,
                        f"User bailed {action.value} operation on {destination} (from {source})",
                    )

        return stats

    def _try_bail(self, flags: LinkFlags, error: TargetError, message: str) -> bool:
        """Decide whether to keep going after ``error``.

        Returns ``True`` when the user asked never to be asked again. Raises
        ``BailError`` when the batch should stop.
        """

        self.console.print(f"[ BAIL ] {error}", markup=False, highlight=False)
        if not flags.interactive:
            raise BailError(message) from error

        choice = self.prompter.ask("Continue execution?", PromptOptions.YES_NO_ALL)
        if choice in (Choice.NO, Choice.NO_ALL):
            raise BailError(message) from error
        return choice is Choice.YES_ALL
