"""Snapshot storage backends for the rate cache.

``MemoryStorage`` serves a single process.  ``JsonFileStorage`` persists
the snapshot on disk so it survives restarts and can be shared with the
fetch script.
"""

import json
import logging
import pathlib
from typing import Optional, Protocol

from forexrisk.rates.models import CachedRateSnapshot

logger = logging.getLogger("forexrisk.rates.storage")


class SnapshotStorage(Protocol):
    """Holds at most one ``CachedRateSnapshot``."""

    def load(self) -> Optional[CachedRateSnapshot]: ...

    def save(self, snapshot: CachedRateSnapshot) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    """In-process single-slot storage."""

    def __init__(self, snapshot: Optional[CachedRateSnapshot] = None) -> None:
        self._snapshot = snapshot

    def load(self) -> Optional[CachedRateSnapshot]:
        return self._snapshot

    def save(self, snapshot: CachedRateSnapshot) -> None:
        self._snapshot = snapshot

    def clear(self) -> None:
        self._snapshot = None


class JsonFileStorage:
    """Single-slot storage backed by a JSON file.

    The last snapshot read or written is kept in memory and reused while
    the file's modification time is unchanged, so a cache hit costs one
    ``stat()`` rather than a read and parse.  Unreadable or corrupt files
    are removed and reported as empty.  Write failures are logged; the
    in-memory result of the calling cache is unaffected.
    """

    def __init__(self, path: str | pathlib.Path) -> None:
        self._path = pathlib.Path(path)
        self._memo: Optional[tuple[int, CachedRateSnapshot]] = None  # (mtime_ns, snapshot)

    @property
    def path(self) -> pathlib.Path:
        return self._path

    def _mtime_ns(self) -> Optional[int]:
        try:
            return self._path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def load(self) -> Optional[CachedRateSnapshot]:
        try:
            mtime = self._mtime_ns()
        except OSError as exc:
            logger.warning("Cannot stat rate cache %s: %s", self._path, exc)
            mtime = None
        if mtime is None:
            self._memo = None
            return None
        if self._memo is not None and self._memo[0] == mtime:
            return self._memo[1]

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            snapshot = CachedRateSnapshot.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable rate cache %s: %s", self._path, exc)
            self.clear()
            return None
        self._memo = (mtime, snapshot)
        return snapshot

    def save(self, snapshot: CachedRateSnapshot) -> None:
        self._memo = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(snapshot.to_dict(), indent=2) + "\n", encoding="utf-8")
            tmp.replace(self._path)
            self._memo = (self._path.stat().st_mtime_ns, snapshot)
        except OSError as exc:
            logger.error("Failed to persist rate cache to %s: %s", self._path, exc)

    def clear(self) -> None:
        self._memo = None
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.error("Failed to remove rate cache %s: %s", self._path, exc)
