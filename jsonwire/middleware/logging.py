"""
JSONWire — Call Logging Middleware
====================================

What:  Logs the outcome of handler calls through a pluggable LogProvider.
How:   `log_in(p)` reports every call, `log_err_in(p)` failed calls only. A
       provider receives the Starlette request, the returned data and the
       raised exception (exactly one of the last two is meaningful).
Who:   Usually the outermost middleware of a chain, so it sees errors raised
       by every other middleware:

           chain = use(session(manager, "sess")).use(log_err_in(basic_format(logger)))

Providers (all over a standard `logging.Logger`):

    simple_format  "500: test"            error only, wrapped origin preferred
    basic_format   "http://h/api: 500"    url + error
    json_format    {"request_method": ..., "reply_error": ...}

Log levels follow the outcome:
    success, redirect, passthrough → INFO
    client errors (4xx)            → WARNING
    everything else                → ERROR

What we DON'T log: request bodies. `json_format` does log headers and cookies,
so keep it away from production logs that are not access-controlled.
"""

import json
import logging
from typing import Any, Callable, Optional

from starlette.requests import Request as StarletteRequest

from jsonwire.exceptions import ApiError
from jsonwire.handler import HandlerFunc
from jsonwire.middleware.chain import Middleware
from jsonwire.middleware.request_id import request_id_var
from jsonwire.request import Context, Request

LogProvider = Callable[[Optional[StarletteRequest], Any, Optional[BaseException]], None]


def log_in(p: LogProvider) -> Middleware:
    """Report every call to `p`; errors are re-raised unchanged."""

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            try:
                data = await h(ctx, req)
            except Exception as exc:
                p(req.http_request, None, exc)
                raise
            p(req.http_request, data, None)
            return data

        return handler

    return middleware


def log_err_in(p: LogProvider) -> Middleware:
    """Report failed calls to `p`; errors are re-raised unchanged."""

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            try:
                return await h(ctx, req)
            except Exception as exc:
                p(req.http_request, None, exc)
                raise

        return handler

    return middleware


# ── Helpers ───────────────────────────────────────────────────────────────


def _origin_first(err: Optional[BaseException]) -> Optional[BaseException]:
    if isinstance(err, ApiError) and err.origin is not None:
        return err.origin
    return err


def level_of(err: Optional[BaseException]) -> int:
    if err is None:
        return logging.INFO
    if isinstance(err, ApiError) and err.code != 0:
        if err.code < 400:
            return logging.INFO
        if err.code < 500:
            return logging.WARNING
    return logging.ERROR


def _url(r: Optional[StarletteRequest]) -> str:
    return str(r.url) if r is not None else "-"


# ── Providers ─────────────────────────────────────────────────────────────


def simple_format(logger: logging.Logger) -> LogProvider:
    """Log the error only; the wrapped origin replaces an ApiError if present."""

    def provider(r: Optional[StarletteRequest], data: Any, err: Optional[BaseException]) -> None:
        logger.log(level_of(err), "%s", _origin_first(err) if err is not None else "OK")

    return provider


def basic_format(logger: logging.Logger) -> LogProvider:
    """Log `<url>: <error>`, the wrapped origin preferred."""

    def provider(r: Optional[StarletteRequest], data: Any, err: Optional[BaseException]) -> None:
        logger.log(
            level_of(err),
            "%s: %s",
            _url(r),
            _origin_first(err) if err is not None else "OK",
        )

    return provider


def json_format(logger: logging.Logger) -> LogProvider:
    """
    Log one JSON object per call.

    Keys: request_id, request_method, request_url, request_header,
    request_host, request_remote_addr, cookies, reply_data, reply_error.
    Data that JSON cannot represent is logged through `str()`.
    """

    def provider(r: Optional[StarletteRequest], data: Any, err: Optional[BaseException]) -> None:
        entry = {
            "request_id": request_id_var.get(""),
            "request_method": None,
            "request_url": None,
            "request_header": {},
            "request_host": None,
            "request_remote_addr": None,
            "cookies": [],
            "reply_data": data,
            "reply_error": str(err) if err is not None else None,
        }
        if r is not None:
            headers = {}
            for k, v in r.headers.items():
                headers.setdefault(k, []).append(v)
            entry.update(
                request_method=r.method,
                request_url=str(r.url),
                request_header=headers,
                request_host=r.headers.get("host"),
                request_remote_addr=f"{r.client.host}:{r.client.port}" if r.client else None,
                cookies=[{"name": k, "value": v} for k, v in r.cookies.items()],
            )
        logger.log(level_of(err), json.dumps(entry, default=str, ensure_ascii=False))

    return provider
