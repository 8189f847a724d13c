"""Per-user movie lists: favorites and watchlist."""

import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import structlog

from ..service.config import config

logger = structlog.get_logger(__name__)


class UserListStore:
    """Thread-safe set of (user_id, movie_id) entries with sequential ids.

    When ``path`` is given the entries are read from that CSV file by
    ``load`` and written back after every change.
    """

    def __init__(self, id_field: str, path: Optional[str] = None):
        self.id_field = id_field
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._entries: List[Dict[str, Any]] = []
        self._next_id = 1

    @classmethod
    def favorites(cls, data_dir: Optional[str] = None) -> "UserListStore":
        return cls('favorite_id', Path(data_dir or config.DATA_DIR) / config.FAVORITES_FILE)

    @classmethod
    def watchlist(cls, data_dir: Optional[str] = None) -> "UserListStore":
        return cls('watchlist_id', Path(data_dir or config.DATA_DIR) / config.WATCHLIST_FILE)

    def load(self) -> int:
        """Read entries from ``path``, returning how many were loaded."""
        if self.path is None or not self.path.exists():
            logger.info("No saved user list, starting empty", list=self.id_field,
                        path=str(self.path) if self.path else None)
            return 0

        frame = pd.read_csv(self.path, dtype={'movie_id': str})
        missing = {'user_id', 'movie_id'} - set(frame.columns)
        if missing:
            raise ValueError(f"User list {self.path} is missing columns {sorted(missing)}")

        frame = frame.dropna(subset=['user_id', 'movie_id'])
        entries = []
        seen = set()
        next_id = 1
        for row in frame.itertuples(index=False):
            key = (int(row.user_id), str(row.movie_id))
            if key in seen:
                continue
            seen.add(key)
            entry_id = getattr(row, self.id_field, None)
            entry_id = next_id if entry_id is None or pd.isna(entry_id) else int(entry_id)
            entries.append({self.id_field: entry_id, 'user_id': key[0], 'movie_id': key[1]})
            next_id = max(next_id, entry_id + 1)

        with self._lock:
            self._entries = entries
            self._next_id = next_id
        logger.info("User list loaded", list=self.id_field, entries=len(entries))
        return len(entries)

    def _save(self):
        if self.path is None:
            return
        frame = pd.DataFrame(self._entries, columns=[self.id_field, 'user_id', 'movie_id'])
        self.path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_csv(self.path, index=False)

    def _find(self, user_id: int, movie_id: str) -> Optional[Dict[str, Any]]:
        for entry in self._entries:
            if entry['user_id'] == user_id and entry['movie_id'] == movie_id:
                return entry
        return None

    def for_user(self, user_id: int) -> List[Dict[str, Any]]:
        """Entries of one user in the order they were added."""
        with self._lock:
            return [dict(entry) for entry in self._entries if entry['user_id'] == user_id]

    def add(self, user_id: int, movie_id: str) -> Tuple[Dict[str, Any], bool]:
        """Add an entry; returns it and whether it was newly created."""
        with self._lock:
            existing = self._find(user_id, movie_id)
            if existing is not None:
                return dict(existing), False

            entry = {self.id_field: self._next_id, 'user_id': user_id, 'movie_id': movie_id}
            self._entries.append(entry)
            self._next_id += 1
            self._save()

        logger.info("User list entry added", list=self.id_field, user_id=user_id, movie_id=movie_id)
        return dict(entry), True

    def remove(self, user_id: int, movie_id: str) -> bool:
        """Remove an entry; False when it did not exist."""
        with self._lock:
            existing = self._find(user_id, movie_id)
            if existing is None:
                return False
            self._entries.remove(existing)
            self._save()

        logger.info("User list entry removed", list=self.id_field, user_id=user_id, movie_id=movie_id)
        return True

    def __len__(self) -> int:
        return len(self._entries)
