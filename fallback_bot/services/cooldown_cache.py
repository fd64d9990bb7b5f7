"""In-process mirror of the persistent cooldown records.

Entries are hints only: a missing or stale entry sends the controller to the
store, which stays authoritative. Every mutation replaces a whole entry under
a lock, so readers never observe a half-written entry.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class CacheEntry:
    timestamp: int  # last permitted reply, epoch ms
    last_updated: int  # when this entry was written, epoch ms


class CooldownCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, user_id: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(user_id)

    def put(self, user_id: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[user_id] = entry

    def sweep(self, now: int, max_age_ms: int) -> int:
        """Remove entries written more than `max_age_ms` before `now`. Returns the number removed."""
        with self._lock:
            stale = [user_id for user_id, entry in self._entries.items() if now - entry.last_updated > max_age_ms]
            for user_id in stale:
                del self._entries[user_id]
        return len(stale)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None
