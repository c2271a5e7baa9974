"""
JSONWire — Request Capability Bundle
======================================

What:  The per-call objects handed to every handler and middleware:
       `Context` (key-indexed side table + disconnect check),
       `ResponseWriter` (the response under construction) and
       `Request` (decode body, reach the transport request/writer, attach
       context values).
How:   `Request` is an abstract base class with one default implementation,
       `HTTPRequest`, built on top of Starlette. Replacing a single
       capability is done by composition (`wrap_request`, `wrap_response`):
       the wrapper overrides one accessor and delegates everything else.
Who:   Created once per incoming call by jsonwire.handler.Handler.
When:  Lives exactly as long as the call. Never share a Request, its Context
       or its ResponseWriter across concurrent calls.
"""

import json
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from pydantic import TypeAdapter, ValidationError
from starlette.requests import ClientDisconnect
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from jsonwire.exceptions import DecodeError


def _reject_constant(name: str) -> Any:
    # NaN / Infinity are not JSON
    raise ValueError(f"invalid JSON literal: {name}")


# ══════════════════════════════════════════════════════════════════════════
# Context
# ══════════════════════════════════════════════════════════════════════════

class Context:
    """
    Immutable per-call context.

    What:    Values attached by middlewares for downstream consumers, plus
             access to the transport's disconnect signal.
    How:     `with_value` returns a new Context; the original is untouched,
             so a middleware can never leak values into a sibling call.

    Example:
        ctx = ctx.with_value("user", user)
        ...
        user = ctx.value("user")
    """

    __slots__ = ("_values", "_http_request")

    def __init__(
        self,
        http_request: Optional[StarletteRequest] = None,
        values: Optional[Mapping[Any, Any]] = None,
    ):
        self._http_request = http_request
        self._values = MappingProxyType(dict(values or {}))

    @classmethod
    def background(cls) -> "Context":
        """A context without transport; it is never canceled."""
        return cls()

    def value(self, key: Any, default: Any = None) -> Any:
        return self._values.get(key, default)

    def with_value(self, key: Any, val: Any) -> "Context":
        values = dict(self._values)
        values[key] = val
        return Context(self._http_request, values)

    async def is_canceled(self) -> bool:
        """
        True when the client has disconnected.

        Only consults messages already delivered by the server; it never
        blocks waiting for the client.
        """
        if self._http_request is None:
            return False
        return await self._http_request.is_disconnected()


# ══════════════════════════════════════════════════════════════════════════
# Response writer
# ══════════════════════════════════════════════════════════════════════════

class ResponseWriter(Response):
    """
    A Starlette response that is built up incrementally.

    What:    Handlers and middlewares set headers/cookies and optionally a
             status and body; the envelope protocol writes the final body.
    How:     Inherits `headers`, `set_cookie()` and `delete_cookie()` from
             starlette.responses.Response. The status follows "first write
             wins": once `write_header()` (or `write()`) chose a status,
             later calls keep it.
    """

    def __init__(self) -> None:
        super().__init__(content=None, status_code=200)
        self._buffer = bytearray()
        self._status_written = False

    @property
    def written(self) -> bool:
        """Whether a status has been committed."""
        return self._status_written

    def write_header(self, status_code: int) -> None:
        if self._status_written:
            return
        self.status_code = status_code
        self._status_written = True

    def write(self, data: Union[bytes, bytearray, str]) -> int:
        if not self._status_written:
            self.write_header(200)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer.extend(data)
        return len(data)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def finalize(self) -> "ResponseWriter":
        """Freeze the body and fix Content-Length before sending."""
        body = bytes(self._buffer)
        if self.status_code < 200 or self.status_code in (204, 304):
            body = b""
            del self.headers["content-length"]
        else:
            self.headers["content-length"] = str(len(body))
        self.body = body
        return self


# ══════════════════════════════════════════════════════════════════════════
# Request
# ══════════════════════════════════════════════════════════════════════════

class Request(ABC):
    """
    Abstract capability bundle given to handlers.

    Contract:
        - decode() reads the JSON body, optionally validated into a type
        - http_request is the underlying starlette.requests.Request
        - writer is the ResponseWriter of this call
        - context holds the values attached so far
        - with_value() returns a new Request whose context has one more pair
    """

    @abstractmethod
    async def decode(self, model: Any = None) -> Any:
        """
        Decode the request body.

        Args:
            model: Optional target type. Pydantic models, dataclasses and
                   typing constructs (e.g. `list[int]`) are accepted.

        Returns:
            The decoded JSON value, or an instance of `model`.

        Raises:
            DecodeError: Body absent, not JSON, or not valid for `model`.
        """
        ...

    @property
    @abstractmethod
    def http_request(self) -> StarletteRequest:
        ...

    @property
    @abstractmethod
    def writer(self) -> ResponseWriter:
        ...

    @property
    @abstractmethod
    def context(self) -> Context:
        ...

    @abstractmethod
    def with_value(self, key: Any, val: Any) -> "Request":
        ...


class HTTPRequest(Request):
    """Default Request over a Starlette request and a ResponseWriter."""

    def __init__(
        self,
        http_request: StarletteRequest,
        writer: ResponseWriter,
        context: Optional[Context] = None,
    ):
        self._http_request = http_request
        self._writer = writer
        self._context = context if context is not None else Context(http_request)

    async def decode(self, model: Any = None) -> Any:
        try:
            body = await self._http_request.body()
        except ClientDisconnect as e:
            raise DecodeError("cannot read request body", origin=e)

        if not body.strip():
            raise DecodeError("request body is empty")

        if model is not None:
            try:
                return TypeAdapter(model).validate_json(body)
            except ValidationError as e:
                raise DecodeError(origin=e)

        try:
            return json.loads(body, parse_constant=_reject_constant)
        except ValueError as e:
            raise DecodeError(origin=e)

    @property
    def http_request(self) -> StarletteRequest:
        return self._http_request

    @property
    def writer(self) -> ResponseWriter:
        return self._writer

    @property
    def context(self) -> Context:
        return self._context

    def with_value(self, key: Any, val: Any) -> Request:
        return HTTPRequest(
            self._http_request,
            self._writer,
            self._context.with_value(key, val),
        )


def from_http(
    writer: ResponseWriter,
    http_request: StarletteRequest,
    context: Optional[Context] = None,
) -> Request:
    """Create a Request from a transport request and response writer."""
    return HTTPRequest(http_request, writer, context)


# ── Composition wrappers ──────────────────────────────────────────────────

class _Override(Request):
    """Delegates every capability to `inner`; subclasses replace one."""

    def __init__(self, inner: Request):
        self._inner = inner

    async def decode(self, model: Any = None) -> Any:
        return await self._inner.decode(model)

    @property
    def http_request(self) -> StarletteRequest:
        return self._inner.http_request

    @property
    def writer(self) -> ResponseWriter:
        return self._inner.writer

    @property
    def context(self) -> Context:
        return self._inner.context

    def with_value(self, key: Any, val: Any) -> Request:
        return self._rewrap(self._inner.with_value(key, val))

    @abstractmethod
    def _rewrap(self, inner: Request) -> Request:
        ...


class _HTTPRequestOverride(_Override):
    def __init__(self, inner: Request, http_request: StarletteRequest):
        super().__init__(inner)
        self._http_request = http_request

    @property
    def http_request(self) -> StarletteRequest:
        return self._http_request

    def _rewrap(self, inner: Request) -> Request:
        return _HTTPRequestOverride(inner, self._http_request)


class _WriterOverride(_Override):
    def __init__(self, inner: Request, writer: ResponseWriter):
        super().__init__(inner)
        self._writer = writer

    @property
    def writer(self) -> ResponseWriter:
        return self._writer

    def _rewrap(self, inner: Request) -> Request:
        return _WriterOverride(inner, self._writer)


def wrap_request(req: Request, http_request: StarletteRequest) -> Request:
    """
    Return a Request with the transport request replaced.

    Body decoding still reads the original body; the override survives
    later `with_value()` calls.
    """
    return _HTTPRequestOverride(req, http_request)


def wrap_response(req: Request, writer: ResponseWriter) -> Request:
    """Return a Request with the response writer replaced."""
    return _WriterOverride(req, writer)
