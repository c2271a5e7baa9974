"""
JSONWire — Response Envelope Schemas
======================================

What:  Pydantic models and encoders for the JSON envelope wrapped around
       every non-passthrough response.
How:   Two wire shapes, always followed by a single newline:

           success: {"data": <any>}
           failure: {"errors": [{"code": "...", "detail": "..."}]}

       Empty `code`/`detail` are omitted on the wire. The `errors` array
       always holds exactly one object.
Who:   Written by jsonwire.handler; read back by jsonwire.client.parser.
"""

import json
from typing import Any, List, Optional

from pydantic import BaseModel, Field
from pydantic_core import to_jsonable_python

from jsonwire.exceptions import ApiError, RemoteError


class ErrorObject(BaseModel):
    """
    What:  How a single error is exported to (or received from) a client.
    Who:   Built from an ApiError (code = err_code, detail = message) or from
           any other exception (detail = str(exc), no code).
    """
    code: Optional[str] = Field(default=None, description="Application defined error code")
    detail: Optional[str] = Field(default=None, description="Human readable error message")

    model_config = {"frozen": True}

    @classmethod
    def from_api_error(cls, err: ApiError) -> "ErrorObject":
        return cls(code=err.err_code, detail=err.message)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorObject":
        return cls(detail=str(exc))

    def as_error(self) -> Exception:
        """
        Rebuild an exception from a received error object.

        Returns an ApiError (status 0) when a code is present, so callers can
        compare it against their own templates; a RemoteError otherwise.
        """
        if self.code:
            return ApiError(message=self.detail or "", err_code=self.code)
        return RemoteError(self.detail or "")

    def to_wire(self) -> dict:
        """Dictionary form with empty fields dropped."""
        return {k: v for k, v in (("code", self.code), ("detail", self.detail)) if v}


class Envelope(BaseModel):
    """
    What:  A received response envelope, used by the outbound client.
    Why `data: Any`: the payload is validated later against the caller's type.
    """
    data: Any = None
    errors: List[ErrorObject] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Encoders
# ══════════════════════════════════════════════════════════════════════════


def to_jsonable(value: Any) -> Any:
    """
    json.dumps `default` hook, delegating to pydantic's own JSON conversion:
    models, dataclasses, datetimes, UUIDs, Decimals, enums, sets, bytes.

    Raises:
        PydanticSerializationError (a ValueError): unknown type.
    """
    return to_jsonable_python(value)


def dumps(value: Any) -> bytes:
    """
    Compact UTF-8 JSON followed by a newline.

    Raises:
        TypeError / ValueError: value (or a nested value) is not serializable,
        including NaN and infinities which JSON cannot represent.
    """
    text = json.dumps(
        value,
        default=to_jsonable,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return (text + "\n").encode("utf-8")


def encode_data(result: Any) -> bytes:
    """Success envelope `{"data": result}`."""
    return dumps({"data": result})


def encode_errors(error: ErrorObject) -> bytes:
    """Failure envelope with exactly one error object."""
    return dumps({"errors": [error.to_wire()]})
