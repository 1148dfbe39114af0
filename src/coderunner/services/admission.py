from __future__ import annotations
import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, TypeVar

import structlog

from ..core.models import CallerLock

log = structlog.get_logger(__name__)

T = TypeVar("T")


class CallerLockRegistry:
    """
    Mỗi caller tối đa một lần chạy tại một thời điểm; caller khác nhau chạy song song hoàn toàn.

    Lock nằm trong process (không phân tán) và KHÔNG công bằng: không hứa thứ tự giữa
    các request đang chờ cùng một caller, tranh chấp kéo dài có thể làm một request chờ mãi.
    Lock được tạo khi dùng lần đầu và bị xoá khi không còn ai giữ hay chờ.
    Mọi thao tác trên dict chạy trên cùng một event loop nên không cần khoá thêm.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}
        self._held: Dict[str, CallerLock] = {}

    def active(self) -> List[CallerLock]:
        return list(self._held.values())

    def is_held(self, caller_id: str) -> bool:
        return caller_id in self._held

    @asynccontextmanager
    async def hold(self, caller_id: str) -> AsyncIterator[CallerLock]:
        lock = self._locks.get(caller_id)
        if lock is None:
            lock = self._locks[caller_id] = asyncio.Lock()
        self._users[caller_id] = self._users.get(caller_id, 0) + 1
        try:
            if lock.locked():
                log.debug("admission.waiting", caller=caller_id)
            async with lock:
                entry = CallerLock(caller_id=caller_id, held_since=time.monotonic())
                self._held[caller_id] = entry
                try:
                    yield entry
                finally:
                    del self._held[caller_id]
        finally:
            self._users[caller_id] -= 1
            if not self._users[caller_id]:
                del self._users[caller_id]
                del self._locks[caller_id]

    async def run(self, caller_id: str, action: Callable[[], Awaitable[T]]) -> T:
        async with self.hold(caller_id):
            return await action()
