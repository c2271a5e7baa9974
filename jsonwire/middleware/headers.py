"""
JSONWire — Response Header Middlewares
========================================

What:  `force_header` pins response headers; `new_cors` / `cors` answer
       cross-origin requests on top of it.
How:   Headers are written to `req.writer` AFTER the inner handler ran, so
       they override whatever the handler set. They are written on failure
       too, before the error continues to the envelope.

CORS flow:
    non-OPTIONS request              → simple headers
    OPTIONS without
      Access-Control-Request-Method
      or Access-Control-Request-Headers → simple headers
    OPTIONS with both                → preflight headers

    simple:     Allow-Origin [, Allow-Credentials] [, Max-Age]
    preflight:  simple + Allow-Methods + Allow-Headers [, Expose-Headers]

Zero values (empty lists, max_age 0, credential False) produce no header.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from jsonwire.config import settings
from jsonwire.handler import HandlerFunc
from jsonwire.middleware.chain import Middleware
from jsonwire.request import Context, Request

H_ORIGIN = "Access-Control-Allow-Origin"
H_CREDENTIALS = "Access-Control-Allow-Credentials"
H_METHODS = "Access-Control-Allow-Methods"
H_HEADERS = "Access-Control-Allow-Headers"
H_EXPOSE = "Access-Control-Expose-Headers"
H_MAX_AGE = "Access-Control-Max-Age"


def _set_headers(req: Request, headers: Mapping[str, str]) -> None:
    for k, v in headers.items():
        req.writer.headers[k] = v


def force_header(headers: Mapping[str, str]) -> Middleware:
    """Create a middleware that sets `headers` on every response."""
    headers = dict(headers)

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            try:
                return await h(ctx, req)
            finally:
                _set_headers(req, headers)

        return handler

    return middleware


# ══════════════════════════════════════════════════════════════════════════
# CORS
# ══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class CORSOption:
    """Parameters of `new_cors()`. Defaults come from settings."""

    origin: str = field(default_factory=lambda: settings.cors_origin)
    expose_headers: List[str] = field(default_factory=list)
    headers: List[str] = field(default_factory=list)
    max_age: int = field(default_factory=lambda: settings.cors_max_age)
    credential: bool = field(default_factory=lambda: settings.cors_allow_credentials)
    methods: List[str] = field(default_factory=list)


def _simple_headers(opt: CORSOption) -> Dict[str, str]:
    ret = {H_ORIGIN: opt.origin}
    if opt.credential:
        ret[H_CREDENTIALS] = "true"
    if opt.max_age > 0:
        ret[H_MAX_AGE] = str(opt.max_age)
    return ret


def _preflight_headers(opt: CORSOption, method: str, headers: str) -> Dict[str, str]:
    ret = _simple_headers(opt)
    ret[H_METHODS] = ", ".join(opt.methods) if opt.methods else method
    ret[H_HEADERS] = ", ".join(opt.headers) if opt.headers else headers
    if opt.expose_headers:
        ret[H_EXPOSE] = ", ".join(opt.expose_headers)
    return ret


def new_cors(opt: Optional[CORSOption] = None) -> Middleware:
    """Create a middleware setting CORS headers as described by `opt`."""
    opt = opt or CORSOption()
    simple = _simple_headers(opt)

    def middleware(h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            hdr = simple
            request_headers = req.http_request.headers
            if req.http_request.method == "OPTIONS":
                method = request_headers.get("Access-Control-Request-Method", "")
                wanted = request_headers.get("Access-Control-Request-Headers", "")
                if method and wanted:
                    hdr = _preflight_headers(opt, method, wanted)

            try:
                return await h(ctx, req)
            finally:
                _set_headers(req, hdr)

        return handler

    return middleware


def cors(h: HandlerFunc) -> HandlerFunc:
    """Allow any origin: `Access-Control-Allow-Origin: *`."""
    return new_cors(CORSOption(origin="*", max_age=0, credential=False))(h)
