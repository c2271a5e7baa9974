"""
JSONWire — Endpoint, Sender and Caller
========================================

What:  The three stages of an outbound API call, each a small callable
       object that builds the next one:

           Endpoint  (param)        → httpx.Request     .with_(), .send_by()
           Sender    (param)        → httpx.Response    .parse_with()
           Caller    (param, into)  → result            .call()

How:   Stages are composed, never mutated:

           caller = (
               new_ep("POST", "https://api.example.com/api/user/get")
               .with_(sign_request)
               .send_by(client)
               .parse_with(default_parser)
           )
           user = await caller.call({"id": 3}, into=User)

Resilience Strategy:
    Transport errors (connection refused, timeouts, ...) can be retried by
    tenacity with exponential backoff and jitter. Settings default to a
    single attempt, so nothing is retried unless asked for.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, Type, TypeVar, Union

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from jsonwire.client.parser import Parser, default_parser
from jsonwire.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

RequestModifier = Callable[[httpx.Request], Union[httpx.Request, Awaitable[httpx.Request]]]


# ── Shared default client ─────────────────────────────────────────────────

_default_client: Optional[httpx.AsyncClient] = None


def default_client() -> httpx.AsyncClient:
    """The process-wide client used when none is given, created on first use."""
    global _default_client
    if _default_client is None or _default_client.is_closed:
        _default_client = httpx.AsyncClient(timeout=settings.client_timeout)
    return _default_client


async def close_default_client() -> None:
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
        _default_client = None


# ══════════════════════════════════════════════════════════════════════════
# Endpoint
# ══════════════════════════════════════════════════════════════════════════


class Endpoint:
    """Builds the request of one API endpoint from a call parameter."""

    def __init__(self, make: Callable[[Any], Awaitable[httpx.Request]]):
        self._make = make

    async def __call__(self, param: Any = None) -> httpx.Request:
        return await self._make(param)

    def with_(self, modifier: RequestModifier) -> "Endpoint":
        """
        Return an Endpoint passing each request through `modifier`, which
        may be a plain or an async function.
        """

        async def make(param: Any) -> httpx.Request:
            ret = modifier(await self._make(param))
            if inspect.isawaitable(ret):
                ret = await ret
            return ret

        return Endpoint(make)

    def send_by(
        self,
        client: Optional[httpx.AsyncClient] = None,
        retry_attempts: Optional[int] = None,
    ) -> "Sender":
        return Sender(self, client, retry_attempts)

    def default_caller(self) -> "Caller":
        """Shortcut of `send_by(None).parse_with(default_parser)`."""
        return self.send_by(None).parse_with(default_parser)


# ══════════════════════════════════════════════════════════════════════════
# Sender
# ══════════════════════════════════════════════════════════════════════════


class Sender:
    """
    Sends the request built by an Endpoint.

    Args:
        endpoint:       Request factory.
        client:         httpx client, defaults to the shared default client.
        retry_attempts: Total attempts on transport errors, defaults to
                        settings.client_retry_attempts.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        client: Optional[httpx.AsyncClient] = None,
        retry_attempts: Optional[int] = None,
    ):
        self.endpoint = endpoint
        self.client = client
        self.retry_attempts = retry_attempts or settings.client_retry_attempts

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.retry_attempts),
            # Why jitter: prevents many callers from retrying in lockstep
            wait=wait_exponential_jitter(
                initial=settings.client_retry_min_wait,
                max=settings.client_retry_max_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def __call__(self, param: Any = None) -> httpx.Response:
        request = await self.endpoint(param)
        client = self.client or default_client()

        resp = None
        async for attempt in self._retrying():
            with attempt:
                resp = await client.send(request, stream=True)
        return resp

    def parse_with(self, parser: Parser) -> "Caller":
        return Caller(self, parser)


# ══════════════════════════════════════════════════════════════════════════
# Caller
# ══════════════════════════════════════════════════════════════════════════


class Caller:
    """Calls one API endpoint: send, then parse."""

    def __init__(self, sender: Callable[[Any], Awaitable[httpx.Response]], parser: Parser):
        self.sender = sender
        self.parser = parser

    async def call(self, param: Any = None, into: Optional[Any] = None) -> Any:
        """
        Call the API.

        Args:
            param: Request parameter, None sends no body.
            into:  Type the returned data is validated into (pydantic model,
                   dataclass, `list[int]`, ...). Raw JSON data when None.

        Raises:
            ApiError:    The server answered with a coded error.
            RemoteError: The server answered with a code-less error.
            FormatError: The response is not a JSON envelope.
            ClientError: Encoding the parameter or validating data failed.
            httpx.TransportError: The server could not be reached.
        """
        resp = await self.sender(param)
        return await self.parser(resp, into)

    async def __call__(self, param: Any = None, into: Optional[Any] = None) -> Any:
        return await self.call(param, into)


class TypedCaller(Generic[T]):
    """A Caller whose result is always validated into `into`."""

    def __init__(self, caller: Caller, into: Type[T]):
        self.caller = caller
        self.into = into

    async def call(self, param: Any = None) -> T:
        return await self.caller.call(param, self.into)


def typed(caller: Caller, into: Type[T]) -> TypedCaller[T]:
    return TypedCaller(caller, into)
