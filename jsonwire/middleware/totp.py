"""
JSONWire — TOTP Authentication Middleware
===========================================

What:  Rejects calls that do not carry a valid time-based one-time password.
How:   RFC 4226 HOTP over 30-second windows (RFC 6238 TOTP). Only the current
       and the previous window are accepted, so a code stays valid for 30 to
       60 seconds. Codes are compared in constant time.
Who:   Protects admin or machine-to-machine APIs:

           admin = use(totp_in_header(secret, "X-OTP-CODE"))
           admin.register(app, admin_apis)

Security notes:
    - `secret` is binary (10 bytes in most authenticator apps), never plain text.
    - Do not read codes from the URL query; they end up in access logs.
    - `otp_code_by_form` consumes the request body; a protected handler can no
      longer `decode()` it.
"""

import hashlib
import hmac
import struct
import time
from typing import Any, Awaitable, Callable, Optional

from starlette.requests import Request as StarletteRequest

from jsonwire.config import settings
from jsonwire.exceptions import E403
from jsonwire.handler import HandlerFunc
from jsonwire.middleware.chain import Middleware
from jsonwire.request import Context, Request

CodeGetter = Callable[[StarletteRequest], Awaitable[str]]
FailHandler = Callable[[StarletteRequest], Exception]

E403TOTP = E403.set_data("failed to auth with TOTP")

# length of a TOTP window in seconds
PERIOD = 30


def default_otp_fail_handler(r: StarletteRequest) -> Exception:
    return E403TOTP.copy()


def otp_code_by_header(key: str) -> CodeGetter:
    """Read the code from a request header."""

    async def get_code(r: StarletteRequest) -> str:
        return r.headers.get(key, "")

    return get_code


def otp_code_by_form(key: str) -> CodeGetter:
    """Read the code from an urlencoded or multipart form field."""

    async def get_code(r: StarletteRequest) -> str:
        form = await r.form()
        value = form.get(key, "")
        return value if isinstance(value, str) else ""

    return get_code


class TOTPMiddleware:
    """
    Middleware factory authenticating calls with TOTP.

    Args:
        secret:   Shared binary secret.
        digit:    Code length; anything below 6 is raised to 6.
        get_code: How to read the code, defaults to the X-OTP-CODE header.
        failed:   Builds the error raised on failure, defaults to E403TOTP.
        clock:    Seconds since the epoch, replaceable in tests.
    """

    def __init__(
        self,
        secret: bytes,
        digit: Optional[int] = None,
        get_code: Optional[CodeGetter] = None,
        failed: Optional[FailHandler] = None,
        clock: Callable[[], float] = time.time,
    ):
        if digit is None:
            digit = settings.totp_digits
        self.secret = bytes(secret)
        self.digit = max(digit, 6)
        self.get_code = get_code or otp_code_by_header(settings.totp_header)
        self.failed = failed or default_otp_fail_handler
        self.clock = clock

    def hotp(self, counter: int) -> str:
        # https://tools.ietf.org/html/rfc4226#section-5.3
        hs = hmac.new(self.secret, struct.pack(">q", counter), hashlib.sha1).digest()

        offset = hs[19] & 0x0F
        snum = struct.unpack(">I", hs[offset:offset + 4])[0] & 0x7FFFFFFF

        code = str(snum)
        if len(code) < self.digit:
            return code.zfill(self.digit)
        return code[-self.digit:]

    def verify(self, code: str) -> bool:
        frame = int(self.clock()) // PERIOD
        given = code.encode("utf-8")
        current = hmac.compare_digest(self.hotp(frame).encode(), given)
        previous = hmac.compare_digest(self.hotp(frame - 1).encode(), given)
        return current or previous

    def __call__(self, h: HandlerFunc) -> HandlerFunc:
        async def handler(ctx: Context, req: Request) -> Any:
            code = await self.get_code(req.http_request)
            if not self.verify(code):
                raise self.failed(req.http_request)
            return await h(ctx, req)

        return handler


def totp_in_header(secret: bytes, header_key: str) -> Middleware:
    """TOTP middleware reading the code from `header_key`."""
    return TOTPMiddleware(secret, get_code=otp_code_by_header(header_key))


def totp_in_form(secret: bytes, form_key: str) -> Middleware:
    """TOTP middleware reading the code from the posted form field `form_key`."""
    return TOTPMiddleware(secret, get_code=otp_code_by_form(form_key))
