"""
JSONWire — Conditional GET Middleware
=======================================

What:  Answers 304 Not Modified when the client already holds the current
       version of a resource.
How:   The handler announces the resource age through `Last-Modified`:

           async def article(ctx, req):
               req.writer.headers["Last-Modified"] = formatdate(mtime, usegmt=True)
               return body

       After a successful call, if the request carries `If-Modified-Since`
       and the resource is not newer, the result is replaced by E304 (the
       body is dropped on the wire). A failed call is left untouched.
"""

from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime
from typing import Any, Optional

from jsonwire.exceptions import E304
from jsonwire.handler import HandlerFunc
from jsonwire.request import Context, Request


def parse_http_date(text: str) -> Optional[datetime]:
    """Parse an HTTP date into an aware UTC datetime, None if malformed."""
    if not text:
        return None
    try:
        ret = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None
    if ret is None:
        return None
    if ret.tzinfo is None:
        ret = ret.replace(tzinfo=timezone.utc)
    return ret


def last_modify(h: HandlerFunc) -> HandlerFunc:
    async def handler(ctx: Context, req: Request) -> Any:
        data = await h(ctx, req)

        has = parse_http_date(req.writer.headers.get("Last-Modified", ""))
        if has is None:
            return data

        if not req.writer.headers.get("Date"):
            req.writer.headers["Date"] = formatdate(usegmt=True)

        want = parse_http_date(req.http_request.headers.get("If-Modified-Since", ""))
        if want is not None and not has > want:
            raise E304.copy()

        return data

    return handler
