"""
JSONWire — Session Tests
==========================

What:  Tests for the session middleware, SessionManager and ID handlers.
How:   MemoryStore with a frozen clock stands in for persistence; the stores
       themselves are covered in test_session_stores.py.

What we test:
    ✅ A fresh session is created when the client sends no / a stale id
    ✅ save() persists data and hands the id to the client
    ✅ set_once values are read exactly once
    ✅ discard() removes the session
    ✅ Provider failures are logged and the call proceeds without a session
    ✅ Cookie, header and encrypted-cookie ID handlers
    ✅ Session round trip over HTTP with cookies
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from jsonwire.config import settings
from jsonwire.exceptions import SessionNotFound
from jsonwire.middleware import use
from jsonwire.register import API
from jsonwire.request import ResponseWriter, from_http
from jsonwire.sessions import (
    Encrypter,
    InCookie,
    InCookieSimple,
    InHeader,
    InternalData,
    MemoryStore,
    SessionManager,
    SessionProvider,
    Store,
    get_session,
    session,
)
from jsonwire.testing import HandlerTest, new_request

KEY = "sess"


class PrefixEncrypter(Encrypter):
    """Reversible toy cipher; rejects values it did not produce."""

    def encrypt(self, plain: str) -> str:
        return "enc." + plain[::-1]

    def decrypt(self, cipher: str) -> str:
        if not cipher.startswith("enc."):
            raise ValueError("not encrypted by us")
        return cipher[4:][::-1]


class BrokenProvider(SessionProvider):
    async def get(self, req):
        raise RuntimeError("store is down")

    async def gc(self):
        pass


@pytest.fixture
def store(frozen_clock):
    return MemoryStore(gc_interval=0, clock=frozen_clock)


@pytest.fixture
def manager(store):
    return SessionManager(InHeader("X-Session"), store, ttl=60)


def _req(headers=None, cookies=None):
    headers = dict(headers or {})
    if cookies:
        headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())
    return from_http(ResponseWriter(), new_request("POST", "/", None, headers))


class TestSessionManager:
    @pytest.mark.asyncio
    async def test_new_session_without_id(self, manager, store):
        sess = await manager.get(_req())

        assert sess.id
        assert len(store) == 1
        assert sess.get("anything") == (None, False)

    @pytest.mark.asyncio
    async def test_save_persists_and_sets_id(self, manager, store):
        req = _req()
        sess = await manager.get(req)
        sess.set("user", {"id": 1})
        await sess.save()

        assert req.writer.headers["x-session"] == sess.id
        assert (await store.get(sess.id))["user"] == InternalData({"id": 1})

        again = await manager.get(_req({"X-Session": sess.id}))
        assert again.id == sess.id
        assert again.get("user") == ({"id": 1}, True)

    @pytest.mark.asyncio
    async def test_id_not_sent_before_save(self, manager):
        req = _req()
        await manager.get(req)

        assert "x-session" not in req.writer.headers

    @pytest.mark.asyncio
    async def test_unsaved_changes_are_local(self, manager, store):
        sess = await manager.get(_req())
        sess.set("a", 1)

        assert await store.get(sess.id) == {}

    @pytest.mark.asyncio
    async def test_stale_id_starts_new_session(self, manager, store, frozen_clock):
        sess = await manager.get(_req())
        await sess.save()
        frozen_clock.advance(61)

        fresh = await manager.get(_req({"X-Session": sess.id}))

        assert fresh.id != sess.id
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_unknown_id_starts_new_session(self, manager):
        sess = await manager.get(_req({"X-Session": "forged"}))
        assert sess.id != "forged"

    @pytest.mark.asyncio
    async def test_set_once(self, manager):
        sess = await manager.get(_req())
        sess.set_once("flash", "saved!")
        await sess.save()

        later = await manager.get(_req({"X-Session": sess.id}))
        assert later.get("flash") == ("saved!", True)
        assert later.get("flash") == (None, False)

    @pytest.mark.asyncio
    async def test_unset(self, manager):
        sess = await manager.get(_req())
        sess.set("a", 1)
        sess.unset("a")
        sess.unset("never-set")

        assert sess.get("a") == (None, False)

    @pytest.mark.asyncio
    async def test_discard(self, manager, store):
        sess = await manager.get(_req())
        await sess.discard()

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_gc_runs_even_when_store_fails(self):
        """A broken store still gets its garbage collection call."""
        store = AsyncMock(spec=Store)
        store.new.side_effect = RuntimeError("store is down")
        manager = SessionManager(InHeader("X-Session"), store, ttl=60)

        with pytest.raises(RuntimeError):
            await manager.get(_req())

        store.gc.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_id_reported_by_store(self):
        store = AsyncMock(spec=Store)
        store.get.side_effect = [SessionNotFound("gone"), {}]
        store.new.return_value = "fresh"
        id_handler = MagicMock()
        id_handler.get.return_value = "stale"

        sess = await SessionManager(id_handler, store, ttl=60).get(_req())

        assert sess.id == "fresh"
        store.new.assert_awaited_once_with(60)

    @pytest.mark.asyncio
    async def test_default_ttl_from_settings(self, store):
        assert SessionManager(InHeader("X"), store).ttl == settings.session_ttl


class TestSessionMiddleware:
    @pytest.mark.asyncio
    async def test_attaches_session(self, manager):
        async def h(ctx, req):
            return get_session(req, KEY) is ctx.value(KEY) is not None

        assert await HandlerTest(h).use(session(manager, KEY)).call() is True

    @pytest.mark.asyncio
    async def test_without_middleware(self):
        async def h(ctx, req):
            return get_session(req, KEY)

        assert await HandlerTest(h).call() is None

    @pytest.mark.asyncio
    async def test_provider_failure_is_logged(self, caplog):
        async def h(ctx, req):
            return get_session(req, KEY)

        assert await HandlerTest(h).use(session(BrokenProvider(), KEY)).call() is None
        assert "store is down" in caplog.text

    @pytest.mark.asyncio
    async def test_counter_over_http(self, mux, client, store):
        manager = SessionManager(InCookieSimple("sid"), store, ttl=60)

        async def counter(ctx, req):
            sess = get_session(req, KEY)
            n, _ = sess.get("n")
            sess.set("n", (n or 0) + 1)
            await sess.save()
            return sess.get("n")[0]

        use(session(manager, KEY)).register(mux, [API("/count", counter)])

        first = await client.post("/count")
        second = await client.post("/count")

        assert first.json() == {"data": 1}
        assert second.json() == {"data": 2}
        assert "httponly" in first.headers["set-cookie"].lower()
        assert len(store) == 1


class TestIDHandlers:
    def test_cookie_simple(self):
        h = InCookieSimple("sid")
        req = _req(cookies={"sid": "abc"})

        assert h.get(req) == "abc"
        assert h.get(_req()) == ""

        h.set(req, "xyz")
        cookie = req.writer.headers["set-cookie"]
        assert cookie.startswith("sid=xyz")
        assert "httponly" in cookie.lower()

    def test_header(self):
        h = InHeader("X-Session")
        req = _req({"X-Session": "abc"})

        assert h.get(req) == "abc"
        h.set(req, "def")
        assert req.writer.headers["x-session"] == "def"

    def test_encrypted_cookie(self):
        h = InCookie("sid", encrypter=PrefixEncrypter())
        req = _req()
        h.set(req, "abc")

        cookie = req.writer.headers["set-cookie"]
        assert cookie.startswith("sid=enc.cba")
        assert h.get(_req(cookies={"sid": "enc.cba"})) == "abc"

    def test_rejected_cipher(self):
        h = InCookie("sid", encrypter=PrefixEncrypter())
        assert h.get(_req(cookies={"sid": "plain"})) == ""

    def test_ttl_and_secure(self):
        h = InCookie("sid", ttl=3600, secure=True)
        req = _req()
        h.set(req, "abc")

        cookie = req.writer.headers["set-cookie"].lower()
        assert "expires=" in cookie
        assert "secure" in cookie
        assert "httponly" not in cookie

    def test_auto_refresh(self):
        h = InCookie("sid", ttl=3600, auto_refresh=True)
        req = _req(cookies={"sid": "abc"})

        assert h.get(req) == "abc"
        assert req.writer.headers["set-cookie"].startswith("sid=abc")

    def test_no_refresh_without_ttl(self):
        h = InCookie("sid", auto_refresh=True)
        req = _req(cookies={"sid": "abc"})

        assert h.get(req) == "abc"
        assert "set-cookie" not in req.writer.headers
