"""In-process poster path cache with periodic refresh."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import structlog

from .matching import MatchResult, PosterTitleResolver, default_resolver
from .sources import PosterSource

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PosterSnapshot:
    """One complete listing of poster paths."""
    paths: Tuple[str, ...]
    refreshed_at: float
    version: int


class PosterCache:
    """Holds the current poster snapshot and refreshes it when it goes stale.

    A refresh builds the new listing completely before publishing it with a
    single assignment, so readers see either the old or the new snapshot.
    Only one refresh runs at a time.
    """

    def __init__(self, source: PosterSource,
                 refresh_interval_seconds: float = 1800,
                 resolver: Optional[PosterTitleResolver] = None,
                 clock: Callable[[], float] = time.time):
        self.source = source
        self.refresh_interval_seconds = refresh_interval_seconds
        self.resolver = resolver or default_resolver
        self.clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[PosterSnapshot] = None

    def _is_stale(self, snapshot: Optional[PosterSnapshot]) -> bool:
        if snapshot is None:
            return True
        return self.clock() - snapshot.refreshed_at >= self.refresh_interval_seconds

    def refresh(self, force: bool = False) -> PosterSnapshot:
        """Reload the listing if stale (or always when ``force``)."""
        with self._lock:
            return self._refresh_locked(force)

    def _refresh_locked(self, force: bool) -> PosterSnapshot:
        current = self._snapshot
        if not force and not self._is_stale(current):
            return current

        try:
            paths = tuple(self.source.list_posters())
        except Exception as e:
            if current is None:
                raise
            logger.error("Poster refresh failed, keeping previous snapshot",
                         version=current.version, error=str(e))
            return current

        version = current.version + 1 if current else 1
        snapshot = PosterSnapshot(paths=paths, refreshed_at=self.clock(), version=version)
        self._snapshot = snapshot
        logger.info("Poster snapshot refreshed", count=len(paths), version=version, forced=force)
        return snapshot

    def snapshot(self) -> PosterSnapshot:
        """Current snapshot, refreshed first if it has gone stale.

        Only the first load waits for a listing in progress. Once a snapshot
        exists, a reader that finds another refresh running gets the stale
        snapshot back immediately.
        """
        snapshot = self._snapshot
        if not self._is_stale(snapshot):
            return snapshot
        if snapshot is None:
            return self.refresh()

        if not self._lock.acquire(blocking=False):
            return snapshot
        try:
            return self._refresh_locked(force=False)
        finally:
            self._lock.release()

    def paths(self) -> Tuple[str, ...]:
        return self.snapshot().paths

    def resolve(self, title: Optional[str]) -> MatchResult:
        return self.resolver.resolve(title, self.paths())

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def version(self) -> int:
        """Version of the published snapshot, 0 before the first listing."""
        snapshot = self._snapshot
        return snapshot.version if snapshot else 0
