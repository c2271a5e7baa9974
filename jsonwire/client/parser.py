"""
JSONWire — Response Parsers
=============================

What:  Turn an httpx.Response into the call result.
How:   `default_parser` understands the JSON envelope:

           body is not an envelope        → FormatError
           "data" does not fit `into`     → ClientError
           "errors" is not empty          → errors[0] raised as an exception
           otherwise                      → data (validated into `into` if given)

Parsers own the response: they read it fully and close it.
"""

from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from jsonwire.exceptions import ClientError, FormatError
from jsonwire.schemas.envelope import Envelope

Parser = Callable[[httpx.Response, Optional[Any]], Awaitable[Any]]


async def default_parser(resp: httpx.Response, into: Optional[Any] = None) -> Any:
    try:
        raw = await resp.aread()
        envelope = Envelope.model_validate_json(raw)
    except (httpx.HTTPError, ValidationError) as e:
        raise FormatError(e)
    finally:
        await resp.aclose()

    data = envelope.data
    if data is not None and into is not None:
        try:
            data = TypeAdapter(into).validate_python(data)
        except ValidationError as e:
            raise ClientError(e)

    if envelope.errors:
        raise envelope.errors[0].as_error()

    return data
