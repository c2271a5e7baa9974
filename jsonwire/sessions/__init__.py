# Sessions package init
"""
JSONWire — Sessions
=====================

What:  Server-side sessions for jsonwire handlers.
How:   The `session` middleware asks a SessionProvider for the session of
       the call and attaches it to the request context; handlers fetch it
       with `get_session`:

           manager = SessionManager(InCookieSimple("sid"), MemoryStore())
           chain = use(session(manager, "sess"))

           async def login(ctx, req):
               sess = get_session(req, "sess")
               sess.set("user", user_id)
               await sess.save()

A provider failure (e.g. the database is down) is logged and the call goes
on without a session, so `get_session` may return None.
"""

import logging
from typing import Any, Optional

from jsonwire.handler import HandlerFunc
from jsonwire.middleware.chain import Middleware
from jsonwire.request import Context, Request
from jsonwire.sessions.base import (
    Encrypter,
    IDHandler,
    InternalData,
    SessionData,
    SessionProvider,
    Store,
)
from jsonwire.sessions.id_handlers import InCookie, InCookieSimple, InHeader
from jsonwire.sessions.memory_store import MemoryStore
from jsonwire.sessions.provider import SessionManager

logger = logging.getLogger(__name__)


def session(p: SessionProvider, key: str) -> Middleware:
    """Load the session of each call and store it under `key`."""

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            try:
                sess = await p.get(req)
            except Exception as e:
                logger.error("Cannot load session for %s: %s", req.http_request.url.path, e, exc_info=True)
            else:
                ctx = ctx.with_value(key, sess)
                req = req.with_value(key, sess)
            return await h(ctx, req)

        return handler

    return middleware


def get_session(req: Request, key: str) -> Optional[SessionData]:
    """The session attached by the `session` middleware, None if absent."""
    val = req.context.value(key)
    if isinstance(val, SessionData):
        return val
    return None


__all__ = [
    "Encrypter",
    "IDHandler",
    "InternalData",
    "SessionData",
    "SessionProvider",
    "Store",
    "InCookie",
    "InCookieSimple",
    "InHeader",
    "MemoryStore",
    "SessionManager",
    "session",
    "get_session",
]
