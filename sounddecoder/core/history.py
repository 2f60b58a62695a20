"""
History store for the Sound Decoder application.

Keeps every analysis outcome in insertion order, independent of the
file currently loaded. Optionally persisted as a JSON file.
"""

import json
import logging
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Optional

from sounddecoder.core.models import AnalysisResult, HistoryEntry
from sounddecoder.utils.errors import HistoryStoreError

DEFAULT_RECENT_LIMIT: int = 5
HISTORY_FORMAT_VERSION: int = 1


class HistoryStore:
    """
    Thread-safe, append-only log of past analyses.

    Features:
    - Insertion order defines recency
    - No capacity limit; display truncation belongs to callers of recent()
    - Idempotent remove/clear
    - JSON save/load
    """

    def __init__(self) -> None:
        self._entries: "OrderedDict[str, HistoryEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self.logger = logging.getLogger("history")

    def append(self, file_name: str, result: AnalysisResult) -> HistoryEntry:
        """Record an outcome under a fresh id and the current time."""
        entry = HistoryEntry(file_name=file_name, result=result)
        with self._lock:
            self._entries[entry.entry_id] = entry
            self.logger.info(
                f"Recorded {file_name}: {result.species} "
                f"(history size: {len(self._entries)})"
            )
        return entry

    def remove(self, entry_id: str) -> bool:
        """
        Remove one entry.

        Returns:
            True if the entry existed; removing an unknown id is a no-op
        """
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                return False
            self.logger.info(f"Removed history entry {entry_id[:8]}")
            return True

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        self.logger.info(f"Cleared history ({count} entries removed)")

    def recent(self, n: int = DEFAULT_RECENT_LIMIT) -> List[HistoryEntry]:
        """Newest-first entries, at most n of them."""
        if n <= 0:
            return []
        with self._lock:
            newest_first = reversed(self._entries.values())
            return [entry for _, entry in zip(range(n), newest_first)]

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        with self._lock:
            return self._entries.get(entry_id)

    def entries(self) -> List[HistoryEntry]:
        """All entries, oldest first."""
        with self._lock:
            return list(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, entry_id: object) -> bool:
        with self._lock:
            return entry_id in self._entries

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': HISTORY_FORMAT_VERSION,
            'entries': [entry.to_dict() for entry in self.entries()],
        }

    def save(self, path: Path) -> None:
        """Write the log to a JSON file, oldest entry first."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".tmp")
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise HistoryStoreError(f"Cannot write history: {e}", path=str(path)) from e
        self.logger.debug(f"Saved {len(self)} entries to {path}")

    @classmethod
    def load(cls, path: Path) -> "HistoryStore":
        """
        Read a log written by save(). A missing file gives an empty store.

        Raises:
            HistoryStoreError: The file exists but cannot be parsed
        """
        path = Path(path)
        store = cls()
        if not path.exists():
            return store

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            entries = [HistoryEntry.from_dict(item) for item in data['entries']]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise HistoryStoreError(f"Cannot read history: {e}", path=str(path)) from e

        with store._lock:
            for entry in entries:
                store._entries[entry.entry_id] = entry
        store.logger.debug(f"Loaded {len(entries)} entries from {path}")
        return store


def create_history_store(config: Optional[Dict[str, Any]] = None) -> HistoryStore:
    """
    Factory function to create a HistoryStore from the 'history' section.

    Loads the persisted log when ``file`` is configured.
    """
    if config is None:
        config = {}

    history_file = config.get('file')
    if history_file:
        return HistoryStore.load(Path(history_file))
    return HistoryStore()
