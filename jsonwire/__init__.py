"""
JSONWire — JSON API Convenience Layer
=======================================

What: Write JSON APIs as plain `async def handler(ctx, req) -> result`
      functions; the envelope protocol turns results and raised errors into
      `{"data": ...}` / `{"errors": [...]}` responses.
Who:  Applications mount handlers on Starlette/FastAPI with `register`, or on
      any ASGI server through `Handler`.

Architecture Note:

    ┌─────────────────────────────────────┐
    │     Registration (register, Chain)  │  ← mounting + middleware order
    ├─────────────────────────────────────┤
    │     Middlewares & Sessions          │  ← cross-cutting concerns
    ├─────────────────────────────────────┤
    │     Handler (envelope protocol)     │  ← result / error → response
    ├─────────────────────────────────────┤
    │     Request, Context, ApiError      │  ← per-call capabilities
    └─────────────────────────────────────┘

    The outbound client (jsonwire.client) speaks the same envelope from the
    calling side.
"""

__version__ = "1.0.0"

from jsonwire.exceptions import (  # noqa: E402
    APPERR,
    ASIS,
    E301,
    E302,
    E303,
    E304,
    E307,
    E400,
    E401,
    E403,
    E404,
    E408,
    E409,
    E410,
    E413,
    E415,
    E418,
    E426,
    E429,
    E500,
    E501,
    E502,
    E503,
    E504,
    EUNKNOWN,
    ApiError,
    DecodeError,
    failed,
)
from jsonwire.handler import Handler, HandlerFunc  # noqa: E402
from jsonwire.middleware import Chain, Middleware, use  # noqa: E402
from jsonwire.register import (  # noqa: E402
    API,
    convert_camel_to_slash,
    convert_camel_to_snake,
    register,
    register_all,
)
from jsonwire.request import (  # noqa: E402
    Context,
    HTTPRequest,
    Request,
    ResponseWriter,
    from_http,
    wrap_request,
    wrap_response,
)
