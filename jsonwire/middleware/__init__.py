# Middleware package init
"""
JSONWire — Middleware Package
===============================

What:  Handler-to-handler wrappers for cross-cutting concerns, and `Chain`
       to compose them.
Why:   These concerns are needed by many APIs; a middleware applies them
       without touching each handler.

Typical chain (attach order → the LAST one attached runs first):

    chain = (
        use(new_cors(CORSOption(origin="https://app.example.com")))
        .use(session(manager, "sess"))
        .use(log_err_in(basic_format(logger)))
        .use(request_id)
    )

    Request  → [Request ID] → [Logging] → [Session] → [CORS] → handler
    Response ← [Request ID] ← [Logging] ← [Session] ← [CORS] ← handler
"""

from jsonwire.middleware.chain import Chain, Middleware, use
from jsonwire.middleware.headers import (
    H_CREDENTIALS,
    H_EXPOSE,
    H_HEADERS,
    H_MAX_AGE,
    H_METHODS,
    H_ORIGIN,
    CORSOption,
    cors,
    force_header,
    new_cors,
)
from jsonwire.middleware.last_modified import last_modify, parse_http_date
from jsonwire.middleware.logging import (
    LogProvider,
    basic_format,
    json_format,
    log_err_in,
    log_in,
    simple_format,
)
from jsonwire.middleware.request_id import REQUEST_ID_KEY, get_request_id, request_id, request_id_var
from jsonwire.middleware.totp import (
    E403TOTP,
    TOTPMiddleware,
    otp_code_by_form,
    otp_code_by_header,
    totp_in_form,
    totp_in_header,
)

__all__ = [
    "Chain",
    "Middleware",
    "use",
    "CORSOption",
    "cors",
    "force_header",
    "new_cors",
    "H_ORIGIN",
    "H_CREDENTIALS",
    "H_METHODS",
    "H_HEADERS",
    "H_EXPOSE",
    "H_MAX_AGE",
    "last_modify",
    "parse_http_date",
    "LogProvider",
    "basic_format",
    "json_format",
    "log_err_in",
    "log_in",
    "simple_format",
    "REQUEST_ID_KEY",
    "get_request_id",
    "request_id",
    "request_id_var",
    "E403TOTP",
    "TOTPMiddleware",
    "otp_code_by_form",
    "otp_code_by_header",
    "totp_in_form",
    "totp_in_header",
]
