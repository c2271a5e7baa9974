"""
JSONWire — Session ID Handlers
================================

What:  Ways to carry the session id between client and server.

    InCookieSimple(key)  http-only session cookie
    InHeader(name)       custom request/response header, for non-browser clients
    InCookie(key, ...)   cookie with optional encryption, expiry and refresh
"""

import logging
from typing import Optional

from jsonwire.request import Request
from jsonwire.sessions.base import Encrypter, IDHandler

logger = logging.getLogger(__name__)


class InCookieSimple(IDHandler):
    def __init__(self, key: str):
        self.key = key

    def get(self, req: Request) -> str:
        return req.http_request.cookies.get(self.key, "")

    def set(self, req: Request, sid: str) -> None:
        req.writer.set_cookie(self.key, sid, httponly=True)


class InHeader(IDHandler):
    def __init__(self, name: str):
        self.name = name

    def get(self, req: Request) -> str:
        return req.http_request.headers.get(self.name, "")

    def set(self, req: Request, sid: str) -> None:
        req.writer.headers[self.name] = sid


class InCookie(IDHandler):
    """
    Session cookie with extra hardening options.

    Args:
        key:          Cookie name.
        encrypter:    Encrypts the id before it leaves the server.
        ttl:          Cookie lifetime in seconds. 0 makes an http-only cookie
                      dropped when the browser closes.
        auto_refresh: Re-issue the cookie on every read to slide its expiry.
                      Ignored when ttl is 0.
        secure:       Send the cookie over HTTPS only.
    """

    def __init__(
        self,
        key: str,
        encrypter: Optional[Encrypter] = None,
        ttl: float = 0,
        auto_refresh: bool = False,
        secure: bool = False,
    ):
        self.key = key
        self.encrypter = encrypter
        self.ttl = ttl
        self.auto_refresh = auto_refresh
        self.secure = secure

    def get(self, req: Request) -> str:
        raw = req.http_request.cookies.get(self.key, "")
        if not raw:
            return ""

        sid = raw
        if self.encrypter is not None:
            try:
                sid = self.encrypter.decrypt(raw)
            except ValueError as e:
                logger.debug("Rejected session cookie %s: %s", self.key, e)
                return ""

        if self.ttl > 0 and self.auto_refresh:
            self._write(req, raw)
        return sid

    def set(self, req: Request, sid: str) -> None:
        value = self.encrypter.encrypt(sid) if self.encrypter is not None else sid
        self._write(req, value)

    def _write(self, req: Request, value: str) -> None:
        if self.ttl > 0:
            req.writer.set_cookie(self.key, value, expires=int(self.ttl), secure=self.secure)
        else:
            req.writer.set_cookie(self.key, value, httponly=True, secure=self.secure)
