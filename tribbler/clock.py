from __future__ import annotations

import threading
from typing import Optional


class LogicalClock:
    """Process-wide Lamport counter.

    Every write is stamped with a value strictly greater than anything this
    process has stamped or observed, so tribs from unsynchronized backends
    still sort into one total order.
    """

    def __init__(self, start: int = 0) -> None:
        self._lock = threading.Lock()
        self._state = start

    def advance(self, observed: Optional[int] = None) -> int:
        with self._lock:
            if observed is not None and observed > self._state:
                self._state = observed
            self._state += 1
            return self._state

    def witness(self, observed: int) -> int:
        # Merge without ticking; reads call this so later writes sort after them.
        with self._lock:
            if observed > self._state:
                self._state = observed
            return self._state

    def now(self) -> int:
        with self._lock:
            return self._state
