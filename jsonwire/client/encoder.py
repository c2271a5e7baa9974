"""
JSONWire — Request Body Encoders
==================================

What:  Functions turning a call parameter into request body bytes, and `ep()`
       building an Endpoint on top of one.
"""

import json
from typing import Any, Callable, Optional

import httpx

from jsonwire.client.endpoint import Endpoint
from jsonwire.exceptions import ClientError
from jsonwire.schemas.envelope import to_jsonable

Encoder = Callable[[Any], bytes]


def default_encoder(v: Any) -> bytes:
    """Compact JSON; pydantic models and dataclasses are accepted."""
    return json.dumps(v, default=to_jsonable, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def slow_sort_encoder(v: Any) -> bytes:
    """
    JSON with keys sorted at every level.

    Encodes twice; meant for signatures and tests, not for hot paths.
    """
    plain = json.loads(default_encoder(v))
    return json.dumps(plain, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def ep(encoder: Encoder, method: str, url: str) -> Endpoint:
    """
    Create an Endpoint sending `encoder(param)` as the request body.

    A None parameter sends no body and no Content-Type.
    """

    async def make(param: Optional[Any]) -> httpx.Request:
        if param is None:
            return httpx.Request(method, url)

        try:
            body = encoder(param)
        except (TypeError, ValueError) as e:
            raise ClientError(e)
        return httpx.Request(method, url, content=body, headers={"Content-Type": "application/json"})

    return Endpoint(make)
