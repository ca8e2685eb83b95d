import logging
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from reproxy.forwarding import (
    ResponseAdapter,
    RewriteAdapter,
    StreamAdapter,
    forward,
    requesting_host,
    resolve_request,
    service_unavailable,
)
from reproxy.utils.exception_logging import log_exception_with_details
from reproxy.vars import DOC_ROUTE_PREFIX

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

# Everything reaches the forwarder so unsupported methods get its 503, not a 405
PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

ZERO_CHUNK = bytes(10240)

stream_adapter = StreamAdapter()
rewrite_adapter = RewriteAdapter()


@router.get("/", response_class=PlainTextResponse)
async def hello():
    return "Hello"


async def zero_stream() -> AsyncIterator[bytes]:
    while True:
        yield ZERO_CHUNK


@router.get("/zero")
async def zero():
    """Endless zero-filled body, for measuring raw throughput."""
    return StreamingResponse(zero_stream())


async def proxy_with(
    request: Request, adapter: ResponseAdapter, prefix: str = ""
) -> Response:
    try:
        proxy_request = await resolve_request(request, prefix)
        return await forward(proxy_request, adapter, requesting_host(request))
    except Exception as e:
        log_exception_with_details(
            logger,
            f"[Proxy] {request.method} {request.url.path}:",
            e,
            level=logging.WARNING,
        )
        return service_unavailable()


@router.api_route(f"/{DOC_ROUTE_PREFIX}/{{domain}}/{{path:path}}", methods=PROXY_METHODS)
@router.api_route(f"/{DOC_ROUTE_PREFIX}/{{domain}}", methods=PROXY_METHODS)
async def proxy_document(request: Request):
    """Forward to the origin and rewrite absolute links to route through the proxy."""
    return await proxy_with(request, rewrite_adapter, DOC_ROUTE_PREFIX)


@router.api_route("/{domain}/{path:path}", methods=PROXY_METHODS)
@router.api_route("/{domain}", methods=PROXY_METHODS)
async def proxy_download(request: Request):
    """Forward to the origin and stream the response back unmodified."""
    return await proxy_with(request, stream_adapter)
