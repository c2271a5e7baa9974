"""
JSONWire — TOTP Middleware Tests
==================================

What we test:
    ✅ HOTP reference values for a known secret
    ✅ Current and previous 30s windows accepted, others rejected
    ✅ Short digit counts are raised to 6
    ✅ Middleware rejects with E403TOTP without calling the handler
    ✅ Codes read from headers and from posted forms
"""

import pytest

from jsonwire.exceptions import E401, ApiError
from jsonwire.middleware import (
    E403TOTP,
    TOTPMiddleware,
    otp_code_by_form,
    otp_code_by_header,
    totp_in_header,
)
from jsonwire.register import API, register
from jsonwire.testing import HandlerTest, assert_error, new_request

SECRET = bytes.fromhex("cafebabedeadbeef4b1d")


def at_frame(frame: int, offset: int = 5):
    return lambda: float(frame * 30 + offset)


async def protected(ctx, req):
    return "secret data"


class TestHOTP:
    @pytest.mark.parametrize(
        "counter,expect",
        [(0, "323633"), (1, "178548"), (16, "000635")],
    )
    def test_reference_values(self, counter, expect):
        assert TOTPMiddleware(SECRET, 6).hotp(counter) == expect

    def test_minimum_six_digits(self):
        m = TOTPMiddleware(SECRET, 4)

        assert m.digit == 6
        assert len(m.hotp(3)) == 6

    def test_eight_digits(self):
        code = TOTPMiddleware(SECRET, 8).hotp(16)

        assert len(code) == 8
        assert code.endswith("0635")


class TestVerify:
    def test_current_window(self):
        assert TOTPMiddleware(SECRET, clock=at_frame(16)).verify("000635")

    def test_previous_window(self):
        assert TOTPMiddleware(SECRET, clock=at_frame(17)).verify("000635")

    def test_old_window_rejected(self):
        assert not TOTPMiddleware(SECRET, clock=at_frame(18)).verify("000635")

    def test_garbage_rejected(self):
        m = TOTPMiddleware(SECRET, clock=at_frame(16))

        assert not m.verify("")
        assert not m.verify("00063")
        assert not m.verify("ü00635")


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_valid_header(self):
        m = TOTPMiddleware(SECRET, clock=at_frame(1))
        req = new_request("POST", "/", None, {"X-OTP-CODE": "178548"})

        assert await HandlerTest(m(protected)).use_request(req) == "secret data"

    @pytest.mark.asyncio
    async def test_missing_code(self):
        called = []

        async def h(ctx, req):
            called.append(1)

        m = TOTPMiddleware(SECRET, clock=at_frame(1))
        with pytest.raises(ApiError) as info:
            await HandlerTest(m(h)).call()

        assert_error(E403TOTP, info.value)
        assert called == []

    @pytest.mark.asyncio
    async def test_template_left_untouched(self):
        m = TOTPMiddleware(SECRET, clock=at_frame(1))
        t = HandlerTest(m(protected))
        for _ in range(3):
            with pytest.raises(ApiError) as info:
                await t.use_request(new_request("POST", "/", None, {"X-OTP-CODE": "000000"}))
            assert info.value is not E403TOTP

        assert E403TOTP.__traceback__ is None

    @pytest.mark.asyncio
    async def test_custom_failure_and_header(self):
        m = TOTPMiddleware(
            SECRET,
            get_code=otp_code_by_header("X-Code"),
            failed=lambda r: E401.set_data(f"bad code for {r.url.path}"),
            clock=at_frame(0),
        )
        req = new_request("POST", "/admin", None, {"X-Code": "000000"})

        with pytest.raises(ApiError) as info:
            await HandlerTest(m(protected)).use_request(req)
        assert info.value.code == 401
        assert info.value.message == "bad code for /admin"

    @pytest.mark.asyncio
    async def test_totp_in_header(self):
        m = totp_in_header(SECRET, "X-Admin-OTP")
        with pytest.raises(ApiError) as info:
            await HandlerTest(m(protected)).use_request(
                new_request("POST", "/", None, {"X-Admin-OTP": "nope"})
            )
        assert_error(E403TOTP, info.value)

    @pytest.mark.asyncio
    async def test_form_code_over_the_wire(self, mux, client):
        m = TOTPMiddleware(SECRET, get_code=otp_code_by_form("otp"), clock=at_frame(16))
        register(mux, [API("/admin", m(protected))])

        ok = await client.post("/admin", data={"otp": "000635"})
        denied = await client.post("/admin", data={"otp": "323633"})

        assert ok.json() == {"data": "secret data"}
        assert denied.status_code == 403
        assert denied.json() == {"errors": [{"detail": "failed to auth with TOTP"}]}
