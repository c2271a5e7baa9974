# Client package init
"""
JSONWire — Outbound API Client
================================

What:  Calls remote APIs that speak the jsonwire envelope.
How:   For the common case one line is enough:

           user = await call_ep("POST", "https://api.example.com/api/user/get").call(
               {"id": 3}, into=User,
           )

       Errors reported by the server are raised: coded errors as ApiError
       (compare them with your own templates), others as RemoteError.

       For custom needs compose the stages yourself, see
       jsonwire.client.endpoint, or share settings with a Builder.
"""

from jsonwire.client.builder import Builder, call_ep, new_ep
from jsonwire.client.encoder import Encoder, default_encoder, ep, slow_sort_encoder
from jsonwire.client.endpoint import (
    Caller,
    Endpoint,
    Sender,
    TypedCaller,
    close_default_client,
    default_client,
    typed,
)
from jsonwire.client.parser import Parser, default_parser

__all__ = [
    "Builder",
    "call_ep",
    "new_ep",
    "Encoder",
    "default_encoder",
    "ep",
    "slow_sort_encoder",
    "Caller",
    "Endpoint",
    "Sender",
    "TypedCaller",
    "close_default_client",
    "default_client",
    "typed",
    "Parser",
    "default_parser",
]
