# miniapp_guide/index_locks.py

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class IndexLockRegistry:
    """
    Process-local registry of per-app locks.

    - One lock per app id, created on first use and never dropped.
    - Rebuilds of the same app id run one after the other; different app ids
      do not block each other.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def lock_for(self, app_id: str) -> threading.Lock:
        key = str(app_id)
        with self._lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, app_id: str) -> Iterator[None]:
        lock = self.lock_for(app_id)
        with lock:
            yield

    def snapshot(self) -> List[str]:
        """
        Return the app ids that have a lock registered.
        """
        with self._lock:
            return list(self._locks)


# Global, process-local singleton
INDEX_LOCKS = IndexLockRegistry()
