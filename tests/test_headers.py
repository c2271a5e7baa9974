"""
JSONWire — Header Middleware Tests
====================================

What we test:
    ✅ force_header overrides handler headers, also on failure
    ✅ CORS simple requests and preflight requests
    ✅ CORS configured methods / headers / expose / credentials / max-age
    ✅ last_modify: 304 when not newer, passthrough otherwise
"""

from email.utils import formatdate

import pytest

from jsonwire.exceptions import E304, E404, ApiError
from jsonwire.middleware import (
    H_CREDENTIALS,
    H_EXPOSE,
    H_HEADERS,
    H_MAX_AGE,
    H_METHODS,
    H_ORIGIN,
    CORSOption,
    cors,
    force_header,
    last_modify,
    new_cors,
    parse_http_date,
    use,
)
from jsonwire.register import API, register
from jsonwire.request import ResponseWriter
from jsonwire.testing import HandlerTest, assert_error, new_request

PREFLIGHT = {
    "Access-Control-Request-Method": "PUT",
    "Access-Control-Request-Headers": "X-Token",
}


async def ok(ctx, req):
    req.writer.headers["X-Version"] = "handler"
    return "ok"


async def not_found(ctx, req):
    raise E404.copy()


async def _run(h, method="POST", headers=None):
    writer = ResponseWriter()
    try:
        await HandlerTest(h).use_request(new_request(method, "/", None, headers), writer)
    except ApiError:
        pass
    return writer.headers


class TestForceHeader:
    @pytest.mark.asyncio
    async def test_overrides_handler(self):
        headers = await _run(force_header({"X-Version": "forced"})(ok))
        assert headers["x-version"] == "forced"

    @pytest.mark.asyncio
    async def test_set_on_failure(self):
        headers = await _run(force_header({"Cache-Control": "no-store"})(not_found))
        assert headers["cache-control"] == "no-store"

    @pytest.mark.asyncio
    async def test_error_still_propagates(self):
        with pytest.raises(ApiError) as info:
            await HandlerTest(force_header({"A": "b"})(not_found)).call()
        assert_error(E404, info.value)


class TestCORS:
    @pytest.mark.asyncio
    async def test_simple_request(self):
        headers = await _run(cors(ok))

        assert headers[H_ORIGIN] == "*"
        assert H_METHODS not in headers
        assert H_CREDENTIALS not in headers
        assert H_MAX_AGE not in headers

    @pytest.mark.asyncio
    async def test_preflight_echoes_request(self):
        headers = await _run(cors(ok), method="OPTIONS", headers=PREFLIGHT)

        assert headers[H_ORIGIN] == "*"
        assert headers[H_METHODS] == "PUT"
        assert headers[H_HEADERS] == "X-Token"
        assert H_EXPOSE not in headers

    @pytest.mark.asyncio
    async def test_options_without_both_headers_is_simple(self):
        headers = await _run(
            cors(ok),
            method="OPTIONS",
            headers={"Access-Control-Request-Method": "PUT"},
        )

        assert headers[H_ORIGIN] == "*"
        assert H_METHODS not in headers

    @pytest.mark.asyncio
    async def test_configured_preflight(self):
        opt = CORSOption(
            origin="https://app.example.com",
            expose_headers=["X-Request-ID"],
            headers=["X-Token", "X-Trace"],
            max_age=600,
            credential=True,
            methods=["GET", "POST"],
        )
        headers = await _run(new_cors(opt)(ok), method="OPTIONS", headers=PREFLIGHT)

        assert headers[H_ORIGIN] == "https://app.example.com"
        assert headers[H_METHODS] == "GET, POST"
        assert headers[H_HEADERS] == "X-Token, X-Trace"
        assert headers[H_EXPOSE] == "X-Request-ID"
        assert headers[H_CREDENTIALS] == "true"
        assert headers[H_MAX_AGE] == "600"

    @pytest.mark.asyncio
    async def test_configured_simple(self):
        opt = CORSOption(origin="https://a.b", credential=True, max_age=60, methods=["GET"])
        headers = await _run(new_cors(opt)(ok))

        assert headers[H_ORIGIN] == "https://a.b"
        assert headers[H_CREDENTIALS] == "true"
        assert headers[H_MAX_AGE] == "60"
        assert H_METHODS not in headers

    @pytest.mark.asyncio
    async def test_set_on_failure(self):
        headers = await _run(cors(not_found))
        assert headers[H_ORIGIN] == "*"

    @pytest.mark.asyncio
    async def test_over_the_wire(self, mux, client):
        use(cors).register(mux, [API("/c", ok)])
        resp = await client.options("/c", headers=PREFLIGHT)

        assert resp.status_code == 200
        assert resp.headers["access-control-allow-methods"] == "PUT"


JAN = formatdate(1_600_000_000, usegmt=True)
FEB = formatdate(1_600_000_000 + 30 * 86400, usegmt=True)


def modified_at(stamp):
    async def handler(ctx, req):
        if stamp:
            req.writer.headers["Last-Modified"] = stamp
        return {"article": 1}

    return handler


class TestLastModify:
    def test_parse_http_date(self):
        assert parse_http_date(JAN).timestamp() == 1_600_000_000
        assert parse_http_date("") is None
        assert parse_http_date("yesterday") is None

    @pytest.mark.asyncio
    async def test_not_modified(self):
        t = HandlerTest(last_modify(modified_at(JAN)))
        with pytest.raises(ApiError) as info:
            await t.use_request(new_request("GET", "/", None, {"If-Modified-Since": JAN}))
        assert_error(E304, info.value)

    @pytest.mark.asyncio
    async def test_template_left_untouched(self):
        t = HandlerTest(last_modify(modified_at(JAN)))
        raised = []
        for _ in range(3):
            with pytest.raises(ApiError) as info:
                await t.use_request(new_request("GET", "/", None, {"If-Modified-Since": JAN}))
            raised.append(info.value)

        assert all(err is not E304 for err in raised)
        assert len({id(err) for err in raised}) == 3
        assert E304.__traceback__ is None

    @pytest.mark.asyncio
    async def test_client_copy_newer(self):
        t = HandlerTest(last_modify(modified_at(JAN)))
        with pytest.raises(ApiError):
            await t.use_request(new_request("GET", "/", None, {"If-Modified-Since": FEB}))

    @pytest.mark.asyncio
    async def test_resource_newer(self):
        writer = ResponseWriter()
        t = HandlerTest(last_modify(modified_at(FEB)))
        data = await t.use_request(new_request("GET", "/", None, {"If-Modified-Since": JAN}), writer)

        assert data == {"article": 1}
        assert writer.headers["date"]

    @pytest.mark.asyncio
    async def test_without_conditional_header(self):
        t = HandlerTest(last_modify(modified_at(JAN)))
        assert await t.use_request(new_request("GET", "/")) == {"article": 1}

    @pytest.mark.asyncio
    async def test_unparseable_dates_are_ignored(self):
        t = HandlerTest(last_modify(modified_at("garbage")))
        assert await t.use_request(new_request("GET", "/", None, {"If-Modified-Since": JAN})) == {"article": 1}

        t = HandlerTest(last_modify(modified_at(JAN)))
        assert await t.use_request(new_request("GET", "/", None, {"If-Modified-Since": "?"})) == {"article": 1}

    @pytest.mark.asyncio
    async def test_handler_error_passes_through(self):
        with pytest.raises(ApiError) as info:
            await HandlerTest(last_modify(not_found)).call()
        assert_error(E404, info.value)

    @pytest.mark.asyncio
    async def test_304_over_the_wire(self, mux, client):
        register(mux, [API("/a", last_modify(modified_at(JAN)))])
        resp = await client.get("/a", headers={"If-Modified-Since": JAN})

        assert resp.status_code == 304
        assert resp.content == b""
        assert resp.headers["last-modified"] == JAN
