import httpx
import pytest

from reproxy.forwarding.adapters import (
    RewriteAdapter,
    StreamAdapter,
    rewrite_absolute_urls,
    service_unavailable,
)
from reproxy.utils_tests.origin import failing_body, stream_body


def _origin(status_code=200, headers=None, content=None):
    request = httpx.Request("GET", "https://example.com/file")
    return httpx.Response(
        status_code, headers=headers or [], content=content, request=request
    )


def _names(response):
    return [name.lower() for name, _ in response.raw_headers]


async def _collect(response) -> bytes:
    body = b""
    async for chunk in response.body_iterator:
        body += chunk
    return body


class TestRewriteAbsoluteUrls:
    def test_https_link(self):
        result = rewrite_absolute_urls(
            '<a href="https://example.com">', "proxy.local"
        )
        assert result == '<a href="https://proxy.local/example.com">'

    def test_http_link_with_port(self):
        result = rewrite_absolute_urls("http://example.com/a", "proxy.local:8080")
        assert result == "http://proxy.local:8080/example.com/a"

    def test_substitution_is_not_url_aware(self):
        text = "curl https:// and http:// in prose"
        expected = "curl https://p/ and http://p/ in prose"
        assert rewrite_absolute_urls(text, "p") == expected

    def test_https_not_rewritten_twice(self):
        assert rewrite_absolute_urls("https://a", "p") == "https://p/a"


class TestStreamAdapter:
    @pytest.mark.asyncio
    async def test_relays_chunks_and_headers(self):
        chunks = [bytes([i]) * 4096 for i in range(8)]
        origin = _origin(
            status_code=206,
            headers=[
                ("X-Marker", "origin"),
                ("Content-Type", "application/octet-stream"),
            ],
            content=stream_body(*chunks),
        )

        response = await StreamAdapter().adapt(origin, "proxy.local")

        assert response.status_code == 206
        assert (b"X-Marker", b"origin") in response.raw_headers
        assert b"transfer-encoding" not in _names(response)
        assert await _collect(response) == b"".join(chunks)

    @pytest.mark.asyncio
    async def test_content_encoding_untouched(self):
        origin = _origin(
            headers=[("Content-Encoding", "gzip")],
            content=stream_body(b"\x1f\x8b\x08 not really gzip"),
        )

        response = await StreamAdapter().adapt(origin, "proxy.local")

        assert (b"Content-Encoding", b"gzip") in response.raw_headers
        assert await _collect(response) == b"\x1f\x8b\x08 not really gzip"

    @pytest.mark.asyncio
    async def test_read_error_ends_body(self):
        origin = _origin(content=failing_body(b"partial"))

        response = await StreamAdapter().adapt(origin, "proxy.local")

        assert await _collect(response) == b"partial"

    def test_keeps_accept_encoding(self):
        headers = StreamAdapter().outbound_headers(
            [("host", "proxy.local"), ("accept-encoding", "br")]
        )
        assert dict(headers) == {"accept-encoding": "br"}


class TestRewriteAdapter:
    @pytest.mark.asyncio
    async def test_rewrites_body_and_drops_csp(self):
        origin = _origin(
            headers=[
                ("Content-Type", "text/html; charset=utf-8"),
                ("Content-Security-Policy", "default-src 'self'"),
                ("Content-Length", "31"),
            ],
            content=stream_body(b'<a href="https://example.com">'),
        )

        response = await RewriteAdapter().adapt(origin, "proxy.local")

        assert response.status_code == 200
        assert response.body == b'<a href="https://proxy.local/example.com">'
        assert b"content-security-policy" not in _names(response)
        assert dict(response.raw_headers)[b"content-length"] == str(
            len(response.body)
        ).encode()
        content_type = dict(response.raw_headers)[b"Content-Type"]
        assert content_type == b"text/html; charset=utf-8"

    @pytest.mark.asyncio
    async def test_non_utf8_body_gives_empty_200(self):
        origin = _origin(content=stream_body(b"\xff\xfe\xfa binary"))

        response = await RewriteAdapter().adapt(origin, "proxy.local")

        assert response.status_code == 200
        assert response.body == b""

    @pytest.mark.asyncio
    async def test_origin_status_passed_through(self):
        origin = _origin(status_code=404, content=stream_body(b"not here"))

        response = await RewriteAdapter().adapt(origin, "proxy.local")

        assert response.status_code == 404
        assert response.body == b"not here"

    @pytest.mark.asyncio
    async def test_read_failure_gives_empty_503(self):
        origin = _origin(content=failing_body(b"<html>"))

        response = await RewriteAdapter().adapt(origin, "proxy.local")

        assert response.status_code == 503
        assert response.body == b""

    def test_drops_accept_encoding(self):
        headers = RewriteAdapter().outbound_headers(
            [("host", "proxy.local"), ("accept-encoding", "gzip"), ("accept", "*/*")]
        )
        assert dict(headers) == {"accept": "*/*"}


def test_service_unavailable_body():
    response = service_unavailable()
    assert response.status_code == 503
    assert response.body == b"503"
