"""Classification, gating and execution of link and unlink for one target."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from rich.console import Console

from .choices import Choice, ChoiceMemory, ChoiceState, Prompter, PromptOptions
from .errors import TargetError
from .filesystem import create_symlink, get_status, remove_entry
from .models import EntryKind, FilesystemStatus, LinkFlags, Op, Reason, RunStats
from .trackfile import Trackfile

logger = logging.getLogger(__name__)


class Action(str, Enum):
    LINK = "link"
    UNLINK = "unlink"


# Whether each non-forceable reason proceeds on its own, per action.
_AUTOMATIC: dict[Action, dict[Reason, bool]] = {
    Action.LINK: {
        Reason.NOT_FOUND: True,
        Reason.STATUS_ERROR: False,
        Reason.DANGLING_SYMLINK: True,
        Reason.INTENDED_SYMLINK: False,
        Reason.STATUS_INVALID: True,
    },
    Action.UNLINK: {
        Reason.NOT_FOUND: False,
        Reason.STATUS_ERROR: False,
        Reason.DANGLING_SYMLINK: True,
        Reason.INTENDED_SYMLINK: True,
        Reason.STATUS_INVALID: False,
    },
}

# Reasons whose link step can go ahead without removing anything first.
_NOTHING_TO_REMOVE = (Reason.NOT_FOUND, Reason.STATUS_INVALID)


class Reconciler:
    """Reconciles targets against the filesystem and the trackfile.

    One instance serves one batch: it owns the run statistics and the
    remembered interactive answers for that batch.
    """

    def __init__(
        self,
        trackfile: Trackfile,
        flags: LinkFlags,
        *,
        stats: RunStats | None = None,
        memory: ChoiceMemory | None = None,
        prompter: Prompter | None = None,
        console: Console | None = None,
    ) -> None:
        self.trackfile = trackfile
        self.flags = flags
        self.stats = stats if stats is not None else RunStats()
        self.memory = memory if memory is not None else ChoiceMemory()
        self.console = console or Console()
        self.prompter = prompter or Prompter(self.console)

    # ------------------------------------------------------------------
    # Classification

    def classify(self, destination: Path, source: Path, status: FilesystemStatus) -> Reason:
        """Return the single reason describing ``destination`` for ``source``."""

        if status.kind is EntryKind.NOT_FOUND:
            return Reason.NOT_FOUND
        if status.kind is EntryKind.ERROR:
            return Reason.STATUS_ERROR
        if status.kind is EntryKind.OTHER:
            return Reason.STATUS_INVALID

        tracked_source = self.trackfile.get_source(destination)

        if status.kind is EntryKind.SYMLINK:
            if status.dangling:
                return Reason.DANGLING_SYMLINK
            if status.points_to == source:
                return Reason.INTENDED_SYMLINK
            if tracked_source is None:
                return Reason.FORCE_DANGEROUSLY
            if status.points_to == tracked_source:
                return Reason.FORCE_CORRECT_SYMLINK
            return Reason.FORCE_SYMLINK

        # regular file or directory
        if tracked_source is None:
            return Reason.FORCE_DANGEROUSLY
        return Reason.FORCE_FILE

    def decide(self, action: Action, destination: Path, source: Path, status: FilesystemStatus) -> Op:
        """Classify ``destination`` and gate the result into an ``Op``."""

        reason = self.classify(destination, source, status)
        if reason.forceable:
            return self.gate(reason, destination, status)
        if reason is Reason.STATUS_ERROR:
            return Op.deny(reason, status.error)
        return Op.verify(_AUTOMATIC[action][reason], reason)

    def gate(self, reason: Reason, destination: Path, status: FilesystemStatus) -> Op:
        """Authorize a forceable reason through the user or the force flags.

        In interactive mode the user decides and the force flags are not
        consulted.
        """

        if self.flags.interactive:
            return self._consult_user(reason, destination, status)
        return Op.verify(reason.authorized_by(self.flags), reason)

    def _consult_user(self, reason: Reason, destination: Path, status: FilesystemStatus) -> Op:
        remembered = self.memory.get(reason)
        if remembered is ChoiceState.ALWAYS:
            return Op.confirm(reason)
        if remembered is ChoiceState.NEVER:
            return Op.deny(reason)

        choice = self.prompter.ask(_prompt_message(reason, destination, status), PromptOptions.ALL, info=reason.info)
        if choice is Choice.QUIT:
            return Op.deny(Reason.USER_QUIT)
        if choice is Choice.YES_ALL:
            self.memory.set_always(reason)
        elif choice is Choice.NO_ALL:
            self.memory.set_never(reason)
        return Op.verify(choice in (Choice.YES, Choice.YES_ALL), reason)

    # ------------------------------------------------------------------
    # Execution

    def link(self, destination: Path, source: Path) -> Op:
        """Make ``destination`` a symlink to ``source`` if allowed."""

        status = get_status(destination)
        op = self.decide(Action.LINK, destination, source, status)
        needs_removal = op.reason not in _NOTHING_TO_REMOVE

        if self.flags.dry_run:
            self.console.print(f"{destination} -> {source}", markup=False, highlight=False)
            if op.denied:
                self._skip(op, destination, Action.LINK, dry_run=True)
                return op
            if needs_removal:
                self._count_removal(status)
                self.console.print(f"[ DRY RUN --- Remove+Link ] {op}", markup=False, highlight=False)
            else:
                self.console.print(f"[ DRY RUN --- Link ] {op}", markup=False, highlight=False)
            self.stats.symlinks_added += 1
            self.stats.trackfile_updates += 1
            return op

        if op.denied:
            self._skip(op, destination, Action.LINK)
            return op

        if needs_removal:
            self._remove(destination, status)

        try:
            create_symlink(source, destination)
        except OSError as exc:
            raise TargetError(f"Failed to create symlink {destination} -> {source}: {exc}", destination) from exc
        self.stats.symlinks_added += 1
        logger.info("Linked %s -> %s", destination, source)

        self.trackfile.insert(destination, source)
        self.stats.trackfile_updates += 1
        return op

    def unlink(self, destination: Path, source: Path) -> Op:
        """Remove ``destination`` if allowed, forgetting it in the trackfile."""

        status = get_status(destination)
        op = self.decide(Action.UNLINK, destination, source, status)

        if self.flags.dry_run:
            self.console.print(f"Unlink {destination}", markup=False, highlight=False)
            if op.denied:
                self._skip(op, destination, Action.UNLINK, dry_run=True)
                return op
            self._count_removal(status)
            if self.trackfile.contains(destination):
                self.stats.trackfile_updates += 1
            self.console.print(f"[ DRY RUN --- Remove ] {op}", markup=False, highlight=False)
            return op

        if op.denied:
            self._skip(op, destination, Action.UNLINK)
            return op

        self._remove(destination, status)
        if self.trackfile.remove(destination) is not None:
            self.stats.trackfile_updates += 1
        return op

    # ------------------------------------------------------------------
    # Internal helpers

    def _skip(self, op: Op, destination: Path, action: Action, *, dry_run: bool = False) -> None:
        if op.reason is Reason.STATUS_ERROR:
            raise TargetError(f"Cannot {action.value} {destination}: {op.info}", destination)

        self.stats.targets_skipped += 1
        if dry_run:
            self.console.print(f"[ DRY RUN --- Skip ] {op}", markup=False, highlight=False)
        else:
            logger.info("Skipping %s for %s: %s", action.value, destination, op)

    def _remove(self, destination: Path, status: FilesystemStatus) -> None:
        try:
            remove_entry(destination, status)
        except OSError as exc:
            raise TargetError(f"Failed to remove {status} at {destination}: {exc}", destination) from exc
        self._count_removal(status)
        logger.info("Removed %s at %s", status, destination)

    def _count_removal(self, status: FilesystemStatus) -> None:
        if status.kind is EntryKind.SYMLINK:
            self.stats.symlinks_removed += 1
        else:
            self.stats.files_removed += 1


def _prompt_message(reason: Reason, destination: Path, status: FilesystemStatus) -> str:
    flag = reason.short_flag
    if status.kind is EntryKind.SYMLINK:
        return f"[ {flag} ] Remove symlink at {destination} (points to: {status.points_to})"
    if status.kind is EntryKind.DIRECTORY:
        return f"[ {flag} ] Remove directory (not a symlink!) at {destination}"
    return f"[ {flag} ] Remove file (not a symlink!) at {destination}"
