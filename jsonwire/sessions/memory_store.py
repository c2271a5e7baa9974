"""
JSONWire — In-Memory Session Store
====================================

What:  Store keeping sessions in a dict of the current process.
When:  Development, tests and single-process deployments. Sessions vanish
       on restart and are not shared between workers; use SQLStore there.

Garbage collection runs at most once per `gc_interval` seconds, however
often the session manager asks for it.
"""

import secrets
import threading
import time
from typing import Callable, Dict, Mapping, Optional

from jsonwire.config import settings
from jsonwire.exceptions import SessionNotFound
from jsonwire.sessions.base import InternalData, SessionMap, Store


class _Entry:
    __slots__ = ("data", "ttl", "last_used")

    def __init__(self, ttl: float, now: float):
        self.data: SessionMap = {}
        self.ttl = ttl
        self.last_used = now

    def is_valid(self, now: float) -> bool:
        return now <= self.last_used + self.ttl


class MemoryStore(Store):
    def __init__(
        self,
        gc_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._data: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._gc_interval = settings.session_gc_interval if gc_interval is None else gc_interval
        self._last_gc = float("-inf")
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    async def new(self, ttl: float) -> str:
        with self._lock:
            while True:
                sid = secrets.token_urlsafe(24)
                if sid not in self._data:
                    break
            self._data[sid] = _Entry(ttl, self._clock())
        return sid

    def _live_entry(self, sid: str, now: float) -> _Entry:
        entry = self._data.get(sid)
        if entry is None:
            raise SessionNotFound(f"session not exists: {sid}")
        if not entry.is_valid(now):
            raise SessionNotFound(f"session expired: {sid}")
        return entry

    async def get(self, sid: str) -> SessionMap:
        with self._lock:
            now = self._clock()
            entry = self._live_entry(sid, now)
            entry.last_used = now
            return dict(entry.data)

    async def set(self, sid: str, data: Mapping[str, InternalData]) -> None:
        with self._lock:
            now = self._clock()
            entry = self._live_entry(sid, now)
            entry.last_used = now
            entry.data = dict(data)

    async def unset(self, sid: str) -> None:
        with self._lock:
            self._data.pop(sid, None)

    async def gc(self) -> None:
        with self._lock:
            now = self._clock()
            if now < self._last_gc + self._gc_interval:
                return
            self._last_gc = now

            expired = [sid for sid, entry in self._data.items() if not entry.is_valid(now)]
            for sid in expired:
                del self._data[sid]
