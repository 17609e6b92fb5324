"""Exception hierarchy for dotlink."""

from __future__ import annotations

from pathlib import Path


class DotlinkError(RuntimeError):
    """Raised when dotlink encounters an unrecoverable state."""


class ConfigError(DotlinkError):
    """Raised when a configuration file cannot be parsed or validated."""


class ShellError(DotlinkError):
    """Raised when a shell command fails or returns unusable output."""


class ResolveError(DotlinkError):
    """Raised when a path template cannot be expanded."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class TrackfileError(DotlinkError):
    """Raised when the trackfile cannot be read or written."""


class TargetError(DotlinkError):
    """Raised when a single target cannot be reconciled."""

    def __init__(self, message: str, destination: Path) -> None:
        super().__init__(message)
        self.destination = destination


class BailError(DotlinkError):
    """Raised when a batch is aborted after a per-target failure."""
