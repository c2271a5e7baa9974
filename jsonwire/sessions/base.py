"""
JSONWire — Session Interfaces
===============================

What:  Abstract contracts of the session subsystem.
How:   Four roles, each replaceable on its own:

           SessionProvider  hands a SessionData to the `session` middleware
           IDHandler        moves the session id between client and server
           Store            persists session contents (memory, SQL, ...)
           Encrypter        optionally hides the id stored in a cookie

       SessionManager (jsonwire.sessions.provider) is the provider built from
       an IDHandler and a Store.

Thread-safety:
    Providers and stores MUST be safe for concurrent calls.
    A SessionData belongs to one call and MUST NOT be shared.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

from jsonwire.request import Request


@dataclass(frozen=True)
class InternalData:
    """One stored value; `once` marks a value that disappears after a read."""

    val: Any
    once: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"val": self.val, "once": self.once}

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InternalData":
        return cls(val=raw.get("val"), once=bool(raw.get("once", False)))


SessionMap = Dict[str, InternalData]


class SessionData(ABC):
    """
    The session of one call.

    Changes stay local until `save()`; `discard()` deletes the session from
    the store.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @abstractmethod
    def unset(self, key: str) -> None:
        ...

    @abstractmethod
    def set(self, key: str, val: Any) -> None:
        ...

    @abstractmethod
    def set_once(self, key: str, val: Any) -> None:
        """Set a value that can be read only once (flash message)."""
        ...

    @abstractmethod
    def get(self, key: str) -> Tuple[Any, bool]:
        """Return `(value, True)`, or `(None, False)` when the key is absent."""
        ...

    @abstractmethod
    async def save(self) -> None:
        ...

    @abstractmethod
    async def discard(self) -> None:
        ...


class SessionProvider(ABC):
    @abstractmethod
    async def get(self, req: Request) -> SessionData:
        """
        Return the session of this call, creating one if needed.

        Raises:
            Exception: Only for internal failures (e.g. the store is down).
        """
        ...

    @abstractmethod
    async def gc(self) -> None:
        """Remove outdated sessions; a no-op when unsupported."""
        ...


class IDHandler(ABC):
    @abstractmethod
    def get(self, req: Request) -> str:
        """The session id sent by the client, empty string when absent."""
        ...

    @abstractmethod
    def set(self, req: Request, sid: str) -> None:
        """Hand the session id to the client."""
        ...


class Encrypter(ABC):
    @abstractmethod
    def encrypt(self, plain: str) -> str:
        ...

    @abstractmethod
    def decrypt(self, cipher: str) -> str:
        """
        Raises:
            ValueError: `cipher` was not produced by this encrypter.
        """
        ...


class Store(ABC):
    """
    Persistence of session contents.

    Contract:
        - new() allocates an empty session and returns its id
        - get() and set() refresh the idle timer of the session
        - get(), set() raise SessionNotFound for unknown or expired ids
        - unset() of an unknown id is not an error
        - get() returns a copy; mutating it never changes the store
    """

    @abstractmethod
    async def new(self, ttl: float) -> str:
        """Allocate a session living `ttl` seconds after its last use."""
        ...

    @abstractmethod
    async def get(self, sid: str) -> SessionMap:
        ...

    @abstractmethod
    async def set(self, sid: str, data: Mapping[str, InternalData]) -> None:
        ...

    @abstractmethod
    async def unset(self, sid: str) -> None:
        ...

    @abstractmethod
    async def gc(self) -> None:
        ...
