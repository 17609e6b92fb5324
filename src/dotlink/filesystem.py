"""Filesystem helpers for dotlink."""

from __future__ import annotations

import errno
import os
import shutil
import stat
from pathlib import Path

from .models import EntryKind, FilesystemStatus


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def get_status(path: Path) -> FilesystemStatus:
    """Inspect ``path`` without following a final symlink.

    Never raises: failures other than a missing entry are reported as
    ``EntryKind.ERROR`` with the error message.
    """

    try:
        stat_result = path.lstat()
    except FileNotFoundError:
        return FilesystemStatus(EntryKind.NOT_FOUND)
    except OSError as exc:
        return FilesystemStatus(EntryKind.ERROR, error=f"Error checking status for {path}: {exc}")

    mode = stat_result.st_mode
    if stat.S_ISLNK(mode):
        try:
            raw_target = Path(os.readlink(path))
        except OSError:
            return FilesystemStatus(EntryKind.SYMLINK, points_to=None, dangling=True)
        points_to = raw_target if raw_target.is_absolute() else Path(os.path.normpath(path.parent / raw_target))
        try:
            os.stat(path)
        except (FileNotFoundError, NotADirectoryError):
            dangling = True
        except OSError as exc:
            if exc.errno != errno.ELOOP:
                return FilesystemStatus(EntryKind.ERROR, error=f"Error checking status for {path}: {exc}")
            dangling = True
        else:
            dangling = False
        return FilesystemStatus(EntryKind.SYMLINK, points_to=points_to, dangling=dangling)
    if stat.S_ISDIR(mode):
        return FilesystemStatus(EntryKind.DIRECTORY)
    if stat.S_ISREG(mode):
        return FilesystemStatus(EntryKind.FILE)
    return FilesystemStatus(EntryKind.OTHER)


def list_directories(path: Path) -> list[str]:
    """Return the names of subdirectories of ``path`` in listing order.

    Symlinks to directories count as directories. A missing ``path`` yields
    an empty list; other ``OSError`` subclasses propagate.
    """

    try:
        entries = list(os.scandir(path))
    except (FileNotFoundError, NotADirectoryError):
        return []

    names: list[str] = []
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=True):
                names.append(entry.name)
        except FileNotFoundError:
            continue
    return names


def remove_entry(path: Path, status: FilesystemStatus) -> None:
    """Delete ``path`` according to the kind recorded in ``status``.

    Directories are removed recursively, everything else (including a
    symlink to a directory) is unlinked.
    """

    if status.kind is EntryKind.DIRECTORY:
        shutil.rmtree(path)
        return
    path.unlink()


def create_symlink(source: Path, destination: Path) -> None:
    """Create ``destination`` as a symlink pointing at ``source``."""

    ensure_parent(destination)
    destination.symlink_to(source)

