from __future__ import annotations
import time
from collections import deque
from typing import Callable, Deque, Dict


class RateLimiter:
    """
    Cửa sổ trượt theo key (IP client): tối đa `max_requests` request trong `window_s` giây.
    max_requests <= 0 là tắt giới hạn.
    """

    def __init__(self, max_requests: int, window_s: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_s = window_s
        self.clock = clock
        self._hits: Dict[str, Deque[float]] = {}

    def hit(self, key: str) -> bool:
        """Ghi nhận một request; False nếu key đã dùng hết hạn mức trong cửa sổ."""
        if self.max_requests <= 0:
            return True
        now = self.clock()
        self._evict(now)
        times = self._hits.setdefault(key, deque())
        if len(times) >= self.max_requests:
            return False
        times.append(now)
        return True

    def _evict(self, now: float) -> None:
        window_start = now - self.window_s
        for key in list(self._hits):
            times = self._hits[key]
            while times and times[0] <= window_start:
                times.popleft()
            if not times:
                del self._hits[key]

    def tracked(self) -> int:
        return len(self._hits)
