"""
JSONWire — Request ID Middleware
==================================

What:  Assigns a correlation id to each call and returns it to the client.
How:   Reuses the client's `X-Request-ID` header, otherwise generates a short
       uuid. The id is stored in three places:
           - `request_id_var` (ContextVar) for loggers and deeper code
           - the call context under REQUEST_ID_KEY, for handlers
           - the `X-Request-ID` response header, for the client
When:  Attach it last so it wraps outermost and the id is available to every
       other middleware, including the logging ones.

Why ContextVar: concurrent calls share a thread in async Python, each
coroutine sees its own value.
"""

import uuid
from contextvars import ContextVar
from typing import Any

from jsonwire.handler import HandlerFunc
from jsonwire.request import Context, Request

HEADER = "X-Request-ID"
REQUEST_ID_KEY = "jsonwire.request_id"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def request_id(h: HandlerFunc) -> HandlerFunc:
    async def handler(ctx: Context, req: Request) -> Any:
        # 8 chars is enough for correlation and readable in logs
        rid = req.http_request.headers.get(HEADER) or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        req.writer.headers[HEADER] = rid
        try:
            return await h(ctx.with_value(REQUEST_ID_KEY, rid), req.with_value(REQUEST_ID_KEY, rid))
        finally:
            request_id_var.reset(token)

    return handler


def get_request_id(req: Request) -> str:
    """The id assigned to this call, empty when the middleware is absent."""
    return req.context.value(REQUEST_ID_KEY, "")
