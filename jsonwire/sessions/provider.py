"""
JSONWire — Session Manager
============================

What:  The SessionProvider built from an IDHandler and a Store.
How:   For each call:
           1. Read the id sent by the client (IDHandler.get)
           2. Load its contents; an absent, unknown or expired id starts a
              fresh session in the store
           3. Garbage-collect the store, whatever happened above
       `save()` writes the contents back and hands the id to the client;
       ids are only sent to the client on save.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonwire.config import settings
from jsonwire.exceptions import SessionNotFound
from jsonwire.request import Request
from jsonwire.sessions.base import (
    IDHandler,
    InternalData,
    SessionData,
    SessionMap,
    SessionProvider,
    Store,
)

logger = logging.getLogger(__name__)


class _Session(SessionData):
    def __init__(self, manager: "SessionManager", req: Request, sid: str, data: SessionMap):
        self._manager = manager
        self._req = req
        self._id = sid
        self._data: Dict[str, InternalData] = dict(data)

    @property
    def id(self) -> str:
        return self._id

    def unset(self, key: str) -> None:
        self._data.pop(key, None)

    def set(self, key: str, val: Any) -> None:
        self._data[key] = InternalData(val)

    def set_once(self, key: str, val: Any) -> None:
        self._data[key] = InternalData(val, once=True)

    def get(self, key: str) -> Tuple[Any, bool]:
        item = self._data.get(key)
        if item is None:
            return None, False
        if item.once:
            del self._data[key]
        return item.val, True

    async def save(self) -> None:
        await self._manager.store.set(self._id, self._data)
        self._manager.id_handler.set(self._req, self._id)

    async def discard(self) -> None:
        await self._manager.store.unset(self._id)


class SessionManager(SessionProvider):
    """
    Args:
        id_handler: Where the session id travels.
        store:      Where session contents live.
        ttl:        Idle lifetime in seconds, defaults to settings.session_ttl.
    """

    def __init__(self, id_handler: IDHandler, store: Store, ttl: Optional[float] = None):
        self.id_handler = id_handler
        self.store = store
        self.ttl = ttl if ttl is not None else settings.session_ttl

    async def get(self, req: Request) -> SessionData:
        try:
            sid = self.id_handler.get(req)
            data: Optional[SessionMap] = None
            if sid:
                try:
                    data = await self.store.get(sid)
                except SessionNotFound:
                    logger.debug("Session from client is gone, starting a new one")

            if data is None:
                sid = await self.store.new(self.ttl)
                data = await self.store.get(sid)

            return _Session(self, req, sid, data)
        finally:
            await self.gc()

    async def gc(self) -> None:
        await self.store.gc()
