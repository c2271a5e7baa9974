"""
JSONWire — Route Registration
===============================

What:  Mounts handler functions on a Starlette/FastAPI application (or any
       object with a compatible `add_route`), each wrapped in
       jsonwire.handler.Handler.
How:   `register()` takes explicit (pattern, handler) pairs. `register_all()`
       discovers the handler methods of an object and derives each pattern
       from the method name:

           class UserAPI:
               async def GetProfile(self, ctx, req): ...
               async def list_friends(self, ctx, req): ...

           register_all(app, "/api/user", UserAPI(), convert_camel_to_slash)
           # → /api/user/get/profile, /api/user/list/friends
"""

import inspect
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Protocol

from jsonwire.handler import Handler, HandlerFunc

logger = logging.getLogger(__name__)


class Mux(Protocol):
    """Anything routes can be added to; Starlette and FastAPI apps qualify."""

    def add_route(self, path: str, route: Any) -> None:
        ...


@dataclass(frozen=True)
class API:
    """A handler and the URL pattern it is mounted on."""

    pattern: str
    handler: HandlerFunc


def register(mux: Mux, apis: Iterable[API]) -> None:
    for api in apis:
        logger.debug("Registering %s → %r", api.pattern, api.handler)
        mux.add_route(api.pattern, Handler(api.handler))


def _is_handler_method(member: Any) -> bool:
    if not inspect.iscoroutinefunction(member):
        return False
    try:
        params = inspect.signature(member).parameters
    except (TypeError, ValueError):
        return False
    return len(params) == 2


def find_apis(
    prefix: str,
    bundle: Any,
    converter: Optional[Callable[[str], str]] = None,
) -> List[API]:
    """
    Collect the public handler methods of `bundle`, sorted by name.

    A handler method is a coroutine method taking exactly `(ctx, req)`
    besides `self`. Everything else is skipped silently.
    """
    ret = []
    for name, member in inspect.getmembers(bundle, _is_handler_method):
        if name.startswith("_"):
            continue
        if converter is not None:
            name = converter(name)
        ret.append(API(pattern=f"{prefix}/{name}", handler=member))
    return ret


def register_all(
    mux: Mux,
    prefix: str,
    bundle: Any,
    converter: Optional[Callable[[str], str]] = None,
) -> None:
    """
    Register every handler method of `bundle` under `prefix`.

    When `converter` is None the method name is used unchanged.
    """
    register(mux, find_apis(prefix, bundle, converter))


# ══════════════════════════════════════════════════════════════════════════
# Name converters
# ══════════════════════════════════════════════════════════════════════════

# word boundaries: "aB" and the last capital of a run ("IDGetter" → "ID", "Getter")
_CAMEL_BOUNDARY = re.compile(r"([^A-Z])([A-Z])|([A-Z0-9]+)([A-Z])")
_ALL_CAPS = re.compile(r"^[A-Z0-9]*$")


def _split_camel(name: str, sep: str) -> str:
    if _ALL_CAPS.match(name):
        return name.lower()

    def repl(m: "re.Match[str]") -> str:
        return (m.group(1) or "") + (m.group(3) or "") + sep + (m.group(2) or "") + (m.group(4) or "")

    return _CAMEL_BOUNDARY.sub(repl, name).lower()


def convert_camel_to_snake(name: str) -> str:
    """CamelCase → camel_case, TestIDGetter → test_id_getter, URL123 → url123."""
    return _split_camel(name, "_")


def convert_camel_to_slash(name: str) -> str:
    """CamelCase → camel/case; snake_case method names become snake/case too."""
    return _split_camel(name, "/").replace("_", "/")
