"""
JSONWire — Error Taxonomy
===========================

What:  The structured, client-facing `ApiError`, its predefined templates,
       and the auxiliary exceptions raised by decoding, sessions and the
       outbound client.
How:   Handlers raise. The envelope protocol (jsonwire.handler) tells the two
       variants apart with a single `isinstance` check:

           ApiError      → status code of the error + {"errors": [{code, detail}]}
           any Exception → 500 + {"errors": [{"detail": str(exc)}]}

       Two ApiError codes are special:

           APPERR (200)  → application-level error reported with HTTP 200
           ASIS   (-1)   → skip the envelope and write the carried result verbatim

Who:   Raised by handlers and middlewares; inspected by the envelope protocol,
       the logging formats and the outbound client parser.

Exception Hierarchy:
    ApiError            → status of the error (templates below)
    DecodeError         → generic error unless the handler converts it (usually E400)
    RemoteError         → code-less error reported by a remote JSON API
    SessionNotFound     → unknown or expired session id
    FormatError         → remote API response could not be parsed
    ClientError         → something went wrong on the calling side

Immutability:
    An ApiError never changes after construction. `set_data`, `set_code`,
    `set_origin` and `set_result` all return a NEW instance, so the module
    level templates (E404, E403, ...) can be specialized concurrently by
    many requests:

        raise E404.set_data("User not found").set_code("EUserNotFound")

    A template is never raised itself; use `copy()` when nothing needs to
    change (`raise E404.copy()`).
"""

from typing import Any, Optional


class ApiError(Exception):
    """
    Structured error mapped to an HTTP status and an error envelope.

    Attributes (read-only):
        code:     HTTP status; -1 marks ASIS, 200 marks APPERR, 0 is unknown
        message:  Human readable detail, sent as "detail"
        location: Redirect target, only ever set for 301/302/303
        err_code: Application defined error code, sent as "code"
        origin:   Wrapped cause, logged but NEVER sent to the client
        result:   Payload written verbatim by the ASIS marker, never serialized

    Equality covers the client-visible fields only (code, message, location,
    err_code). Two errors that differ only in origin or result are equal.
    """

    def __init__(
        self,
        code: int = 0,
        message: str = "",
        *,
        location: str = "",
        err_code: str = "",
        origin: Optional[BaseException] = None,
        result: Any = None,
    ):
        self._code = code
        self._message = message
        self._location = location
        self._err_code = err_code
        self._origin = origin
        self._result = result
        super().__init__(self._render())

    # ── Read-only accessors ───────────────────────────────────────────────

    @property
    def code(self) -> int:
        return self._code

    @property
    def message(self) -> str:
        return self._message

    @property
    def data(self) -> str:
        """User defined error message (alias of `message`)."""
        return self._message

    @property
    def location(self) -> str:
        return self._location

    @property
    def err_code(self) -> str:
        return self._err_code

    @property
    def origin(self) -> Optional[BaseException]:
        return self._origin

    @property
    def result(self) -> Any:
        return self._result

    @property
    def is_redirect(self) -> bool:
        """True for 301~303 carrying a location, the only redirecting errors."""
        return 301 <= self._code <= 303 and self._location != ""

    # ── Copy-on-write "setters" ───────────────────────────────────────────

    def _fork(self, **changes: Any) -> "ApiError":
        fields = {
            "code": self._code,
            "message": self._message,
            "location": self._location,
            "err_code": self._err_code,
            "origin": self._origin,
            "result": self._result,
        }
        fields.update(changes)
        return type(self)(**fields)

    def copy(self) -> "ApiError":
        """
        Return an identical, unraised instance. Raising writes the traceback
        onto the exception, so templates are always raised as copies:

            raise E304.copy()
        """
        return self._fork()

    def set_data(self, data: str) -> "ApiError":
        """
        Return a copy carrying `data` as message, or as redirect location
        when the status is 301~303.

            raise E301.set_data("https://example.com/new-home")
        """
        if 301 <= self._code <= 303:
            return self._fork(location=data)
        return self._fork(message=data)

    def set_code(self, err_code: str) -> "ApiError":
        """Return a copy with an application-defined error code."""
        return self._fork(err_code=err_code)

    def set_origin(self, origin: Optional[BaseException]) -> "ApiError":
        """Return a copy preserving the original error for diagnostics."""
        return self._fork(origin=origin)

    def set_result(self, result: Any) -> "ApiError":
        """
        Return a copy carrying a payload. Only ASIS writes it:

            raise ASIS.set_result("plain text body")
        """
        return self._fork(result=result)

    # ── Comparison & rendering ────────────────────────────────────────────

    def _identity(self) -> tuple:
        return (self._code, self._message, self._location, self._err_code)

    def equal_to(self, other: "ApiError") -> bool:
        """Tell whether two errors represent the same client-visible error."""
        return self._identity() == other._identity()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApiError):
            return NotImplemented
        return self.equal_to(other)

    def __hash__(self) -> int:
        return hash(self._identity())

    def _render(self) -> str:
        ret = str(self._code)
        if self._message:
            ret += ": " + self._message
        if self._location:
            ret += ": " + self._location
        return ret

    def __str__(self) -> str:
        return self._render()

    def describe(self) -> str:
        """`str(err)` followed by the origin, for server-side logs only."""
        ret = self._render()
        if self._origin is not None:
            ret += ": " + str(self._origin)
        return ret

    def __repr__(self) -> str:
        return (
            f"ApiError(code={self._code!r}, message={self._message!r}, "
            f"location={self._location!r}, err_code={self._err_code!r})"
        )


def failed(origin: BaseException, template: ApiError) -> ApiError:
    """
    Wrap `origin` into `template`, ready to be raised from a handler.

        try:
            param = await req.decode(Param)
        except DecodeError as e:
            raise failed(e, E400.set_data("invalid parameter"))
    """
    return template.set_origin(origin)


# ══════════════════════════════════════════════════════════════════════════
# Predefined templates
# ══════════════════════════════════════════════════════════════════════════
# Specialize before raising: `raise E404.set_data("User not found")`.
# A plain exception maps to 500 as well, E500 is only needed with a code.

EUNKNOWN = ApiError(0, "Unknown error")
E301 = ApiError(301, "Resource has been moved permanently")
E302 = ApiError(302, "Resource has been found at another location")
E303 = ApiError(303, "See other")
E304 = ApiError(304, "Not modified")
E307 = ApiError(307, "Resource has been moved to another location temporarily")
E400 = ApiError(400, "Error parsing request")
E401 = ApiError(401, "You have to be authorized before accessing this resource")
E403 = ApiError(403, "You have no right to access this resource")
E404 = ApiError(404, "Resource not found")
E408 = ApiError(408, "Request timeout")
E409 = ApiError(409, "Conflict")
E410 = ApiError(410, "Gone")
E413 = ApiError(413, "Request entity too large")
E415 = ApiError(415, "Unsupported media type")
E418 = ApiError(418, "I'm a teapot")
E426 = ApiError(426, "Upgrade required")
E429 = ApiError(429, "Too many requests")
E500 = ApiError(500, "Internal server error")
E501 = ApiError(501, "Not implemented")
E502 = ApiError(502, "Bad gateway")
E503 = ApiError(503, "Service unavailable")
E504 = ApiError(504, "Gateway timeout")

# Application-defined error: HTTP 200 with an error envelope
APPERR = ApiError(200)

# Passthrough marker: the envelope is skipped and the carried result is
# written as-is. The handler must set status code and headers itself.
ASIS = ApiError(-1)


# ══════════════════════════════════════════════════════════════════════════
# Auxiliary exceptions
# ══════════════════════════════════════════════════════════════════════════


class DecodeError(Exception):
    """
    Raised when the request body is absent, malformed, or fails validation.

    What:    `Request.decode()` could not produce the requested value.
    HTTP:    None by itself. Left unhandled it surfaces as a generic 500;
             handlers normally convert it with `failed(e, E400)`.
    """

    def __init__(self, message: str = "cannot decode request body", origin: Optional[BaseException] = None):
        self.origin = origin
        if origin is not None:
            message = f"{message}: {origin}"
        super().__init__(message)


class RemoteError(Exception):
    """A code-less error reported by a remote JSON API (`{"detail": ...}`)."""


class SessionNotFound(Exception):
    """
    Raised by session stores for an unknown or expired session id.

    The session manager treats it as "start a fresh session".
    """


class _ClientSideError(Exception):
    prefix = ""

    def __init__(self, origin: Optional[BaseException] = None):
        self.origin = origin
        message = self.prefix
        if origin is not None:
            message += ": " + str(origin)
        super().__init__(message)


class FormatError(_ClientSideError):
    """The remote API replied with something that is not a JSON envelope."""

    prefix = "cannot parse response from api server"


class ClientError(_ClientSideError):
    """Something went wrong on the calling side (encoding, transport, validation)."""

    prefix = "there's something wrong at client side"
