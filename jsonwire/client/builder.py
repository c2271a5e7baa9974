"""
JSONWire — Caller Builder
===========================

What:  Builds many Callers sharing the same maker, client and parser.
When:  Worth it for API clients with many endpoints, or when most endpoints
       need the same request modifier (auth header, signature, ...):

           api = Builder(sender=client).use_maker(
               lambda method, url: new_ep(method, url).with_(add_token)
           )
           get_user = typed(api.ep("POST", base + "/api/user/get"), User)

A zero-value Builder builds the same Caller as `call_ep()`.
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional

import httpx

from jsonwire.client.encoder import default_encoder, ep
from jsonwire.client.endpoint import Caller, Endpoint
from jsonwire.client.parser import Parser, default_parser

Maker = Callable[[str, str], Endpoint]


def new_ep(method: str, url: str) -> Endpoint:
    """Endpoint with the default JSON encoder."""
    return ep(default_encoder, method, url)


def call_ep(method: str, url: str) -> Caller:
    """Caller with every default: JSON body, shared client, envelope parser."""
    return new_ep(method, url).default_caller()


@dataclass(frozen=True)
class Builder:
    maker: Optional[Maker] = None
    sender: Optional[httpx.AsyncClient] = None
    parser: Optional[Parser] = None

    def use_maker(self, maker: Maker) -> "Builder":
        return replace(self, maker=maker)

    def use_sender(self, client: httpx.AsyncClient) -> "Builder":
        return replace(self, sender=client)

    def use_parser(self, parser: Parser) -> "Builder":
        return replace(self, parser=parser)

    def ep(self, method: str, url: str) -> Caller:
        maker = self.maker or new_ep
        parser = self.parser or default_parser
        return maker(method, url).send_by(self.sender).parse_with(parser)
