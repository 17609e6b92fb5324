"""Persistence of the links dotlink has created."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Iterator

from tomli_w import dump as toml_dump

from .errors import TrackfileError

logger = logging.getLogger(__name__)


class Trackfile:
    """Maps each destination dotlink manages to the source it links to.

    ``dirty`` is set by any mutation and cleared by a successful ``save``.
    """

    def __init__(self, path: Path, entries: dict[Path, Path] | None = None) -> None:
        self.path = path
        self._entries: dict[Path, Path] = dict(entries or {})
        self.dirty = False

    @classmethod
    def load(cls, path: Path) -> "Trackfile":
        if not path.exists():
            return cls(path, {})

        try:
            text = path.read_text()
        except OSError as exc:
            raise TrackfileError(f"Failed to read trackfile '{path}': {exc}") from exc
        if not text.strip():
            return cls(path, {})

        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise TrackfileError(f"Failed to parse trackfile '{path}': {exc}") from exc

        entries: dict[Path, Path] = {}
        for destination, source in data.items():
            if not isinstance(source, str):
                raise TrackfileError(f"Trackfile '{path}' maps '{destination}' to a non-string value")
            entries[Path(destination)] = Path(source)

        logger.debug("Loaded %d tracked links from %s", len(entries), path)
        return cls(path, entries)

    def save(self) -> bool:
        """Write the trackfile if it was modified. Returns ``True`` if written."""

        if not self.dirty:
            return False

        payload = {str(destination): str(source) for destination, source in sorted(self._entries.items())}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("wb") as handle:
                toml_dump(payload, handle)
        except OSError as exc:
            raise TrackfileError(f"Failed to write trackfile '{self.path}': {exc}") from exc

        self.dirty = False
        logger.debug("Saved %d tracked links to %s", len(self._entries), self.path)
        return True

    def insert(self, destination: Path, source: Path) -> None:
        self._entries[destination] = source
        self.dirty = True

    def remove(self, destination: Path) -> Path | None:
        removed = self._entries.pop(destination, None)
        if removed is not None:
            self.dirty = True
        return removed

    def get_source(self, destination: Path) -> Path | None:
        return self._entries.get(destination)

    def contains(self, destination: Path) -> bool:
        return destination in self._entries

    def items(self) -> Iterator[tuple[Path, Path]]:
        return iter(list(self._entries.items()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, destination: object) -> bool:
        return destination in self._entries
