"""
Per-account settlement spacing.

Keeps the time of each account's last admitted settlement in a bounded
cache: entries older than the TTL are dropped, and the least recently
stamped accounts go first when the cache is full.
"""

import threading
import time
from collections import OrderedDict
from typing import Callable

from wagerhub.core.exceptions import TooFrequent


class SettlementThrottle:
    def __init__(
        self,
        min_interval: float = 1.0,
        ttl: float = 300.0,
        capacity: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        # An entry must outlive the interval it enforces
        self.ttl = max(ttl, min_interval)
        self.capacity = capacity
        self._clock = clock
        self._stamps: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.min_interval > 0

    def __len__(self) -> int:
        return len(self._stamps)

    def _evict(self, now: float):
        # Stamps are kept in insertion order, so the oldest is always first
        while self._stamps:
            account_id, stamped = next(iter(self._stamps.items()))
            if now - stamped < self.ttl:
                break
            del self._stamps[account_id]
        while len(self._stamps) > self.capacity:
            self._stamps.popitem(last=False)

    def admit(self, account_id: str):
        """
        Admit a settlement attempt for ``account_id`` and stamp it.

        Raises:
            TooFrequent: the previous admitted attempt was less than min_interval ago
        """
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            self._evict(now)

            last = self._stamps.get(account_id)
            if last is not None and now - last < self.min_interval:
                raise TooFrequent(retry_after=self.min_interval - (now - last))

            self._stamps[account_id] = now
            self._stamps.move_to_end(account_id)
            self._evict(now)
