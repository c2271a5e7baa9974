"""
JSONWire — Handler / Envelope Protocol
========================================

What:  Turns `async def fn(ctx, req) -> result` into an ASGI application that
       speaks the JSON envelope protocol.
How:   Per call:
           1. Content-Type is preset to application/json (handlers may override)
           2. fn(ctx, req) is awaited; returning means success, raising means failure
           3. The request body is drained on every exit path
           4. If the client disconnected meanwhile, nothing is sent at all
           5. The outcome is serialized:

              success            → 200 {"data": result}
              result not JSON    → 500 {"errors": [{"detail": "Failed to marshal data"}]}
              raise ASIS.set_result(x) → x written verbatim, no envelope
              raise E301~E303    → redirect to the error's location, no body
              raise ApiError     → err.code {"errors": [{"code": ..., "detail": ...}]}
              raise Exception    → 500 {"errors": [{"detail": str(exc)}]}

Who:   Mounted as a Starlette route (see jsonwire.register) or called directly
       as an ASGI app in tests.

Example:
    async def hello(ctx: Context, req: Request):
        try:
            param = await req.decode(HelloArgs)
        except DecodeError as e:
            raise failed(e, E400.set_data("You must send parameters in JSON format."))
        return {"message": f"Hello, {param.name}"}

    app.add_route("/api/hello", Handler(hello))
"""

import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

from starlette.requests import Request as StarletteRequest
from starlette.types import Message, Receive, Scope, Send

from jsonwire.exceptions import ASIS, E500, ApiError
from jsonwire.request import Context, Request, ResponseWriter, from_http
from jsonwire.schemas.envelope import ErrorObject, encode_data, encode_errors

logger = logging.getLogger(__name__)

# Signature of every application function and middleware-wrapped handler
HandlerFunc = Callable[[Context, Request], Awaitable[Any]]

MARSHAL_FAILED = "Failed to marshal data"


class _ScopedBody:
    """
    Tracks the request body stream and drains whatever is left on exit.

    Used as `async with _ScopedBody(receive) as body:`; `body` is the
    receive callable handed to Starlette.
    """

    def __init__(self, receive: Receive):
        self._receive = receive
        self.complete = False
        self.disconnected = False

    async def __call__(self) -> Message:
        message = await self._receive()
        if message["type"] == "http.disconnect":
            self.complete = True
            self.disconnected = True
        elif message["type"] == "http.request" and not message.get("more_body", False):
            self.complete = True
        return message

    async def __aenter__(self) -> "_ScopedBody":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        while not self.complete:
            await self()


class Handler:
    """
    ASGI application wrapping one handler function.

    Attributes:
        fn: The wrapped `async (ctx, req) -> result` function.
    """

    def __init__(self, fn: HandlerFunc):
        self.fn = fn

    def __repr__(self) -> str:
        name = getattr(self.fn, "__qualname__", repr(self.fn))
        return f"Handler({name})"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            raise TypeError(f"jsonwire handlers only serve HTTP, got {scope['type']!r}")

        writer = ResponseWriter()
        writer.headers["content-type"] = "application/json"

        result: Any = None
        error: Optional[Exception] = None
        async with _ScopedBody(receive) as body:
            http_request = StarletteRequest(scope, body)
            ctx = Context(http_request)
            try:
                result = await self.fn(ctx, from_http(writer, http_request, ctx))
            except Exception as exc:
                error = exc

        if body.disconnected or await ctx.is_canceled():
            # connection is closed, do not output anything
            logger.debug("Client disconnected from %s, response suppressed", http_request.url.path)
            return

        render(writer, result, error, http_request)
        await writer.finalize()(scope, receive, send)


def render(
    writer: ResponseWriter,
    result: Any,
    error: Optional[BaseException],
    http_request: Optional[StarletteRequest] = None,
) -> None:
    """
    Serialize one call outcome into `writer`.

    Exposed separately so the protocol can be exercised without a transport.
    """
    if error is None:
        try:
            writer.write(encode_data(result))
            return
        except (TypeError, ValueError) as exc:
            error = E500.set_data(MARSHAL_FAILED).set_origin(exc)
            result = None

    if isinstance(error, ApiError):
        if error.equal_to(ASIS):
            _write_as_is(writer, error.result)
            return

        if error.is_redirect:
            _redirect(writer, error.location, error.code)
            return

        if error.code >= 500:
            logger.error("%s %s", _where(http_request), error.describe())
        writer.write_header(error.code)
        writer.write(encode_errors(ErrorObject.from_api_error(error)))
        return

    logger.error(
        "%s unexpected error: %s",
        _where(http_request),
        error,
        exc_info=(type(error), error, error.__traceback__),
    )
    writer.write_header(500)
    writer.write(encode_errors(ErrorObject.from_exception(error)))


def _write_as_is(writer: ResponseWriter, result: Any) -> None:
    if result is None:
        return
    if isinstance(result, (bytes, bytearray, memoryview)):
        writer.write(bytes(result))
        return
    writer.write(str(result))


def _redirect(writer: ResponseWriter, location: str, code: int) -> None:
    # same quoting as starlette.responses.RedirectResponse
    writer.headers["location"] = quote(location, safe=":/%#?=@[]!$&'()*+,;")
    del writer.headers["content-type"]
    writer.write_header(code)


def _where(http_request: Optional[StarletteRequest]) -> str:
    if http_request is None:
        return "-"
    return f"{http_request.method} {http_request.url.path}"
