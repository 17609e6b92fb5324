"""Core package for the dotlink project."""

from .cli import app, run
from .config import Config, DotsOptions, Settings, UseRule, load_config
from .errors import BailError, ConfigError, DotlinkError, ResolveError, ShellError, TargetError, TrackfileError
from .manager import DotsManager
from .models import EntryKind, FilesystemStatus, LinkFlags, Op, Reason, RunStats, StatusEntry, StatusReport
from .trackfile import Trackfile

__all__ = [
    "Config",
    "DotsOptions",
    "Settings",
    "UseRule",
    "load_config",
    "DotsManager",
    "Trackfile",
    "DotlinkError",
    "ConfigError",
    "ResolveError",
    "ShellError",
    "TargetError",
    "TrackfileError",
    "BailError",
    "EntryKind",
    "FilesystemStatus",
    "LinkFlags",
    "Op",
    "Reason",
    "RunStats",
    "StatusEntry",
    "StatusReport",
    "app",
    "run",
]
