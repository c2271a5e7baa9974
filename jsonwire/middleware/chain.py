"""
JSONWire — Middleware Composition
===================================

What:  `Middleware` is a function from handler to handler. `Chain` is an
       immutable, parent-linked list of middlewares.
How:   `chain.wrap(fn)` applies the newest middleware last, so it ends up
       OUTERMOST:

           chain = use(m1).use(m2)
           chain.wrap(h) == m2(m1(h))

           call order:  m2 → m1 → h → m1 → m2

       `use()` never mutates the receiver. A base chain can be shared and
       extended differently by several route groups:

           base = use(log_err_in(simple_format(logger)))
           admin = base.use(totp_in_header(secret))
           base.register(app, public_apis)
           admin.register(app, admin_apis)
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from jsonwire.handler import HandlerFunc
from jsonwire.register import API, find_apis, register

Middleware = Callable[[HandlerFunc], HandlerFunc]


@dataclass(frozen=True)
class Chain:
    middleware: Middleware
    parent: Optional["Chain"] = None

    def use(self, m: Middleware) -> "Chain":
        """Return a new chain with `m` attached on top of this one."""
        return Chain(m, self)

    def wrap(self, fn: HandlerFunc) -> HandlerFunc:
        if self.parent is not None:
            fn = self.parent.wrap(fn)
        return self.middleware(fn)

    def __call__(self, fn: HandlerFunc) -> HandlerFunc:
        # a chain is itself a middleware
        return self.wrap(fn)

    def register(self, mux: Any, apis: Iterable[API]) -> None:
        """Wrap every API handler with this chain, then register them."""
        register(mux, [API(api.pattern, self.wrap(api.handler)) for api in apis])

    def register_all(
        self,
        mux: Any,
        prefix: str,
        bundle: Any,
        converter: Optional[Callable[[str], str]] = None,
    ) -> None:
        register(mux, [
            API(api.pattern, self.wrap(api.handler))
            for api in find_apis(prefix, bundle, converter)
        ])


def use(m: Middleware) -> Chain:
    """Create a root chain holding a single middleware."""
    return Chain(m)
