"""
Response adapters turning an origin response into the proxy's response.

Two policies are selected per route:

    StreamAdapter:  headers and raw body bytes are relayed chunk by chunk,
                    nothing is buffered or modified.
    RewriteAdapter: the body is buffered, decoded as UTF-8 and every absolute
                    ``http://`` / ``https://`` prefix is pointed back at the
                    proxy so that followed links are forwarded too.
"""

import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Iterable, Tuple

import httpx
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from reproxy.forwarding.headers import (
    FRAMING_RESPONSE_HEADERS,
    REWRITE_EXCLUDED_REQUEST_HEADERS,
    REWRITE_EXCLUDED_RESPONSE_HEADERS,
    STREAM_EXCLUDED_REQUEST_HEADERS,
    filter_request_headers,
    filter_response_headers,
)

logger = logging.getLogger("uvicorn.error")


def service_unavailable(content: bytes = b"503") -> Response:
    return Response(content=content, status_code=503)


class ResponseAdapter(ABC):
    """Strategy interface for relaying an origin response to the caller."""

    name = "adapter"
    excluded_request_headers = STREAM_EXCLUDED_REQUEST_HEADERS

    def outbound_headers(self, headers: Iterable[Tuple[str, str]]) -> httpx.Headers:
        return filter_request_headers(headers, self.excluded_request_headers)

    @abstractmethod
    async def adapt(self, origin: httpx.Response, requesting_host: str) -> Response:
        """
        Build the proxy response. The adapter owns ``origin`` from here on
        and must close it once the body has been consumed.
        """


class StreamAdapter(ResponseAdapter):
    name = "stream"

    async def adapt(self, origin: httpx.Response, requesting_host: str) -> Response:
        return self.adapt_streaming(origin)

    def adapt_streaming(self, origin: httpx.Response) -> Response:
        response = StreamingResponse(
            relay_body(origin),
            status_code=origin.status_code,
            background=BackgroundTask(origin.aclose),
        )
        response.raw_headers.extend(
            filter_response_headers(origin.headers.raw, FRAMING_RESPONSE_HEADERS)
        )
        return response


async def relay_body(origin: httpx.Response) -> AsyncIterator[bytes]:
    """Yield the origin body exactly as received, content-encoding untouched."""
    try:
        async for chunk in origin.aiter_raw():
            if chunk:
                yield chunk
    except httpx.HTTPError as e:
        # Status and headers are already on the wire; the body ends here.
        logger.warning(f"[Stream] Origin body read failed for {origin.url}: {e}")


def rewrite_absolute_urls(text: str, requesting_host: str) -> str:
    """
    Point absolute URLs back through the proxy.

    This is a plain substring substitution, not URL-aware: any occurrence of
    ``https://`` or ``http://`` is rewritten, including ones inside code
    samples or other text that merely looks like a URL.
    """
    return text.replace("https://", f"https://{requesting_host}/").replace(
        "http://", f"http://{requesting_host}/"
    )


class RewriteAdapter(ResponseAdapter):
    name = "rewrite"
    excluded_request_headers = REWRITE_EXCLUDED_REQUEST_HEADERS

    async def adapt(self, origin: httpx.Response, requesting_host: str) -> Response:
        try:
            body = await origin.aread()
        except httpx.HTTPError as e:
            logger.warning(f"[Rewrite] Origin body read failed for {origin.url}: {e}")
            return service_unavailable(b"")
        finally:
            await origin.aclose()
        return self.adapt_buffered(
            origin.status_code, origin.headers.raw, body, requesting_host
        )

    def adapt_buffered(
        self,
        status_code: int,
        raw_headers: Iterable[Tuple[bytes, bytes]],
        body: bytes,
        requesting_host: str,
    ) -> Response:
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("[Rewrite] Origin body is not UTF-8, responding empty")
            content = b""
        else:
            content = rewrite_absolute_urls(text, requesting_host).encode("utf-8")

        response = Response(content=content, status_code=status_code)
        response.raw_headers.extend(
            filter_response_headers(raw_headers, REWRITE_EXCLUDED_RESPONSE_HEADERS)
        )
        return response
