"""Shared models and enums for dotlink."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable


class EntryKind(str, Enum):
    """Kinds of filesystem entries found at a destination."""

    NOT_FOUND = "not found"
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    OTHER = "other"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class FilesystemStatus:
    """Result of inspecting a path without following a final symlink."""

    kind: EntryKind
    points_to: Path | None = None
    dangling: bool = False
    error: str | None = None

    def __str__(self) -> str:
        return self.kind.value

    @property
    def exists(self) -> bool:
        return self.kind not in (EntryKind.NOT_FOUND, EntryKind.ERROR)


class Reason(str, Enum):
    """Closed set of causes a target may be in."""

    FORCE_DANGEROUSLY = "force_dangerously"
    FORCE_FILE = "force_file"
    FORCE_SYMLINK = "force_symlink"
    FORCE_CORRECT_SYMLINK = "force_correct_symlink"
    DANGLING_SYMLINK = "dangling_symlink"
    CORRECT_SYMLINK = "correct_symlink"
    INTENDED_SYMLINK = "intended_symlink"
    NOT_FOUND = "not_found"
    STATUS_INVALID = "status_invalid"
    STATUS_ERROR = "status_error"
    USER_QUIT = "user_quit"

    @property
    def info(self) -> str:
        return _REASON_INFO[self]

    @property
    def short_flag(self) -> str:
        return _SHORT_FLAGS.get(self, "")

    @property
    def flags(self) -> str:
        return _FLAG_HINTS.get(self, "")

    @property
    def forceable(self) -> bool:
        return self in _SHORT_FLAGS

    def authorized_by(self, flags: "LinkFlags") -> bool:
        """Return ``True`` if ``flags`` allow proceeding for this reason."""

        if self is Reason.FORCE_DANGEROUSLY:
            return flags.force_dangerously
        if self is Reason.FORCE_FILE:
            return flags.force_file or flags.force_dangerously
        if self is Reason.FORCE_SYMLINK:
            return flags.force_symlink or flags.force_file or flags.force_dangerously
        if self is Reason.FORCE_CORRECT_SYMLINK:
            return (
                flags.force_correct_symlink
                or flags.force_symlink
                or flags.force_file
                or flags.force_dangerously
            )
        return True


_REASON_INFO: dict[Reason, str] = {
    Reason.FORCE_DANGEROUSLY: "destination is not tracked",
    Reason.FORCE_FILE: "destination is tracked but is a file",
    Reason.FORCE_SYMLINK: (
        "destination is tracked and is a symlink but points to neither the intended nor the expected source"
    ),
    Reason.FORCE_CORRECT_SYMLINK: "destination is tracked and is a symlink but doesn't point to the expected source",
    Reason.DANGLING_SYMLINK: "destination is a dangling symlink",
    Reason.CORRECT_SYMLINK: "destination is a symlink that points to the expected source",
    Reason.INTENDED_SYMLINK: "destination is a symlink that points to the intended source",
    Reason.NOT_FOUND: "destination not found (nothing to remove)",
    Reason.STATUS_INVALID: "destination is not a symlink or file (nothing to remove)",
    Reason.STATUS_ERROR: "error checking destination type",
    Reason.USER_QUIT: "the user canceled the operation",
}

_SHORT_FLAGS: dict[Reason, str] = {
    Reason.FORCE_DANGEROUSLY: "--force-dangerously",
    Reason.FORCE_FILE: "-ff",
    Reason.FORCE_SYMLINK: "-fs",
    Reason.FORCE_CORRECT_SYMLINK: "-fc",
}

_FLAG_HINTS: dict[Reason, str] = {
    Reason.FORCE_DANGEROUSLY: "--force-dangerously",
    Reason.FORCE_FILE: "-ff or --force-dangerously",
    Reason.FORCE_SYMLINK: "-fs, -ff, or --force-dangerously",
    Reason.FORCE_CORRECT_SYMLINK: "-fc, -fs, -ff, or --force-dangerously",
}


@dataclass(frozen=True, slots=True)
class Op:
    """Gated outcome for one target: confirmed or denied, with its reason."""

    confirmed: bool
    reason: Reason
    detail: str | None = None

    @classmethod
    def confirm(cls, reason: Reason) -> "Op":
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: Reason, detail: str | None = None) -> "Op":
        return cls(False, reason, detail)

    @classmethod
    def verify(cls, condition: bool, reason: Reason) -> "Op":
        return cls(condition, reason)

    @property
    def denied(self) -> bool:
        return not self.confirmed

    def or_(self, other: "Op") -> "Op":
        """Return ``self`` if confirmed, otherwise ``other``."""

        return self if self.confirmed else other

    def or_else(self, fallback: Callable[[Reason], "Op"]) -> "Op":
        """Return ``self`` if confirmed, otherwise the op built from the denial reason."""

        return self if self.confirmed else fallback(self.reason)

    @property
    def info(self) -> str:
        if self.detail:
            return f"{self.reason.info}: {self.detail}"
        return self.reason.info

    def __str__(self) -> str:
        hint = self.reason.flags
        if not hint:
            return self.info
        if self.confirmed:
            return f"{self.info} ({hint} was used)"
        return f"{self.info} (use {hint} to remove)"


@dataclass(frozen=True, slots=True)
class LinkFlags:
    """Options shared by the link family of commands."""

    force_correct_symlink: bool = False
    force_symlink: bool = False
    force_file: bool = False
    force_dangerously: bool = False
    dry_run: bool = False
    interactive: bool = False
    verbose: bool = False
    bail: bool = False
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(slots=True)
class RunStats:
    """Counters accumulated over one batch."""

    targets: int = 0
    symlinks_added: int = 0
    symlinks_removed: int = 0
    files_removed: int = 0
    targets_skipped: int = 0
    errors: int = 0
    trackfile_updates: int = 0

    @property
    def removed(self) -> int:
        return self.symlinks_removed + self.files_removed

    def merge(self, other: "RunStats") -> "RunStats":
        """Combine the counters of two batches run over the same targets."""

        return RunStats(
            targets=max(self.targets, other.targets),
            symlinks_added=self.symlinks_added + other.symlinks_added,
            symlinks_removed=self.symlinks_removed + other.symlinks_removed,
            files_removed=self.files_removed + other.files_removed,
            targets_skipped=self.targets_skipped + other.targets_skipped,
            errors=self.errors + other.errors,
            trackfile_updates=self.trackfile_updates + other.trackfile_updates,
        )


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """Read-only classification of a target reported by ``dotlink status``."""

    destination: Path
    source: Path
    status: FilesystemStatus
    reason: Reason
    tracked: bool


@dataclass(frozen=True, slots=True)
class StatusReport:
    """Collection of status results for a manager run."""

    entries: tuple[StatusEntry, ...] = field(default_factory=tuple)
