"""
JSONWire — Handler Test Helpers
=================================

What:  Utilities to unit-test handler functions and middlewares without a
       server or an HTTP client.
How:   Handlers are called directly with a synthetic Starlette request:

           async def test_get_user():
               with pytest.raises(ApiError) as info:
                   await HandlerTest(get_user).call({"id": -1})
               assert_error(E404, info.value)

           async def test_requires_session():
               t = HandlerTest(get_user).use(session(manager, "sess"))
               assert await t.call({"id": 1}) == {"name": "alice"}

For wire-level tests (status, headers, body) mount the handler with
jsonwire.handler.Handler and use httpx.AsyncClient(transport=ASGITransport(app)).
"""

import json
from typing import Any, Callable, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from starlette.requests import Request as StarletteRequest
from starlette.types import Message

from jsonwire.exceptions import ApiError
from jsonwire.handler import HandlerFunc
from jsonwire.middleware.chain import Middleware
from jsonwire.request import Context, Request, ResponseWriter, from_http


def new_request(
    method: str,
    target: str,
    data: Any = None,
    headers: Optional[Mapping[str, str]] = None,
) -> StarletteRequest:
    """
    Build a Starlette request whose body is `data` encoded as JSON.

    `target` is a path ("/api/x?q=1") or an absolute URL. Content-Type is set
    to application/json unless given in `headers`.
    """
    parts = urlsplit(target)
    body = json.dumps(data).encode("utf-8")

    raw_headers = {"content-type": "application/json"}
    for k, v in (headers or {}).items():
        raw_headers[k.lower()] = v
    raw_headers["content-length"] = str(len(body))
    raw_headers.setdefault("host", parts.netloc or "testserver")

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method.upper(),
        "scheme": parts.scheme or "http",
        "path": parts.path or "/",
        "raw_path": (parts.path or "/").encode("utf-8"),
        "query_string": parts.query.encode("utf-8"),
        "root_path": "",
        "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in raw_headers.items()],
        "client": ("127.0.0.1", 12345),
        "server": ("testserver", 80),
    }

    sent = False

    async def receive() -> Message:
        nonlocal sent
        if sent:
            return {"type": "http.request", "body": b"", "more_body": False}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return StarletteRequest(scope, receive)


def modify(f: Callable[[Request], Request]) -> Middleware:
    """Middleware replacing the request with `f(req)` before the handler runs."""

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            return await h(ctx, f(req))

        return handler

    return middleware


def monitor(f: Callable[[Request, Any, Optional[BaseException]], None]) -> Middleware:
    """Middleware reporting `(req, data, err)` to `f` after the handler ran."""

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            try:
                data = await h(ctx, req)
            except Exception as e:
                f(req, None, e)
                raise
            f(req, data, None)
            return data

        return handler

    return middleware


class HandlerTest:
    """
    Wraps a handler for direct calls.

    `use()` applies middlewares in REVERSE order, like Chain:

        # order: m2 > m1 > h > m1 > m2
        HandlerTest(h).use(m1).use(m2)
    """

    def __init__(self, fn: HandlerFunc):
        self.fn = fn

    def use(self, m: Middleware) -> "HandlerTest":
        return HandlerTest(m(self.fn))

    async def use_request(
        self,
        http_request: StarletteRequest,
        writer: Optional[ResponseWriter] = None,
    ) -> Any:
        """Call the handler with `http_request`; errors are raised as-is."""
        writer = writer if writer is not None else ResponseWriter()
        ctx = Context(http_request)
        return await self.fn(ctx, from_http(writer, http_request, ctx))

    async def call(self, data: Any = None) -> Any:
        """Call the handler with `data` POSTed as JSON to "/"."""
        return await self.use_request(new_request("POST", "/", data))

    async def call_with_writer(self, data: Any = None) -> Tuple[Any, ResponseWriter]:
        """Like `call()`, also returning the writer to inspect headers and cookies."""
        writer = ResponseWriter()
        ret = await self.use_request(new_request("POST", "/", data), writer)
        return ret, writer


def assert_error(expect: ApiError, exc: Optional[BaseException]) -> ApiError:
    """Check that `exc` is an ApiError equal to `expect`, and return it."""
    assert exc is not None, "handler in error state should raise an error"
    assert isinstance(exc, ApiError), f"handler in error state should raise api errors, got {exc!r}"
    assert expect.equal_to(exc), f"error should be {expect}, got {exc}"
    return exc
