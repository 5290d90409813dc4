from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_RESET_WINDOW_MS = 60_000


def _now_millis() -> int:
    return int(time.time() * 1000)


def counter_key(identity_id: Optional[str], requested_by_id: Optional[str], object_id: str) -> str:
    """identity:requester::object, with a blank identity standing in for the requester."""
    if identity_id is None or not identity_id.strip():
        identity_id = requested_by_id
    return f"{identity_id or ''}:{requested_by_id or ''}::{object_id}"


@dataclass
class _Entry:
    count: int = 0
    last_access_ms: Optional[int] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class AccessCounter:
    """
    Per (identity, requester, object) access frequency with a sliding reset window.

    Each key has its own lock, so the elapsed-check / reset-or-increment /
    timestamp update sequence is atomic per key while distinct keys proceed
    independently. The map lock is held only to look up or create entries.
    """

    def __init__(
        self,
        reset_window_ms: int = DEFAULT_RESET_WINDOW_MS,
        *,
        clock: Callable[[], int] = _now_millis,
    ) -> None:
        self.reset_window_ms = int(reset_window_ms)
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._entries_lock = threading.Lock()

    def _entry(self, key: str) -> _Entry:
        with self._entries_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            return entry

    def touch(
        self,
        identity_id: Optional[str],
        requested_by_id: Optional[str],
        object_id: str,
        now_ms: Optional[int] = None,
    ) -> int:
        """Record one access and return the count that applies to it."""
        key = counter_key(identity_id, requested_by_id, object_id)

        while True:
            entry = self._entry(key)
            with entry.lock:
                with self._entries_lock:
                    # evicted between lookup and lock; retry on the fresh entry
                    if self._entries.get(key) is not entry:
                        continue
                # read under the key lock so last_access_ms never moves backwards
                now = self._clock() if now_ms is None else int(now_ms)
                if entry.last_access_ms is not None and now - entry.last_access_ms > self.reset_window_ms:
                    entry.count = 1
                else:
                    entry.count += 1
                entry.last_access_ms = now
                return entry.count

    def evict_stale(self, max_idle_windows: int, now_ms: Optional[int] = None) -> int:
        """Drop entries idle for more than `max_idle_windows` reset windows.

        Eviction is unobservable: an evicted key would have reset to 1 on its
        next touch anyway.
        """
        if max_idle_windows < 1:
            return 0
        now = self._clock() if now_ms is None else int(now_ms)
        horizon = self.reset_window_ms * max_idle_windows
        removed = 0
        with self._entries_lock:
            for key, entry in list(self._entries.items()):
                if not entry.lock.acquire(blocking=False):
                    continue
                try:
                    if entry.last_access_ms is not None and now - entry.last_access_ms > horizon:
                        del self._entries[key]
                        removed += 1
                finally:
                    entry.lock.release()
        if removed:
            logger.debug("Evicted %d idle access-counter entries", removed)
        return removed

    def snapshot(self) -> Dict[str, int]:
        with self._entries_lock:
            return {key: entry.count for key, entry in self._entries.items()}

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)
