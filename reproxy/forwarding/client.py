import logging
import ssl
from typing import Optional

import httpx
from fastapi.responses import Response
from opentelemetry import trace

from reproxy.forwarding.adapters import ResponseAdapter, service_unavailable
from reproxy.models import OutboundAttempt, ProxyRequest
from reproxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from reproxy.vars import PROXY_CA_BUNDLE, PROXY_TIMEOUT_SECONDS

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

# Attempt order; the length of this tuple bounds the number of attempts
SCHEMES = ("https", "http")

# Followed the way the origin's own clients would, up to this many hops
MAX_REDIRECTS = 10

_http_client: Optional[httpx.AsyncClient] = None


def build_http_client() -> httpx.AsyncClient:
    """Create the outbound client shared by every request in this worker."""
    kwargs = {}
    if PROXY_CA_BUNDLE:
        kwargs["verify"] = ssl.create_default_context(cafile=PROXY_CA_BUNDLE)
    if PROXY_TIMEOUT_SECONDS:
        kwargs["timeout"] = httpx.Timeout(PROXY_TIMEOUT_SECONDS)
    return httpx.AsyncClient(
        # Inbound Accept-Encoding overrides this; without one the origin sends identity
        headers={"Accept-Encoding": "identity"},
        follow_redirects=True,
        max_redirects=MAX_REDIRECTS,
        **kwargs,
    )


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = build_http_client()
    return _http_client


def set_http_client(client: Optional[httpx.AsyncClient]) -> None:
    global _http_client
    _http_client = client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


async def _attempt(
    client: httpx.AsyncClient,
    attempt: OutboundAttempt,
    proxy_request: ProxyRequest,
    headers: httpx.Headers,
) -> httpx.Response:
    outbound = client.build_request(
        proxy_request.method,
        attempt.url,
        params=list(proxy_request.query) or None,
        headers=headers,
        content=proxy_request.body or None,
    )
    return await client.send(outbound, stream=True)


async def forward(
    proxy_request: ProxyRequest, adapter: ResponseAdapter, requesting_host: str
) -> Response:
    """
    Forward ``proxy_request`` to its origin and relay the answer through ``adapter``.

    HTTPS is tried first; any transport-level failure is retried exactly once
    over plain HTTP. HTTP error statuses from the origin are not failures here
    and are passed to the adapter unchanged. When no origin can be reached the
    caller gets a 503 with body ``503``.
    """
    if not proxy_request.is_supported:
        logger.debug(f"[Forward] Unsupported method {proxy_request.method}")
        return service_unavailable()

    try:
        client = get_http_client()
    except Exception as e:
        log_exception_with_details(
            logger, "[Forward] Error building HTTP client:", e, level=logging.WARNING
        )
        return service_unavailable()

    with tracer.start_as_current_span("proxy_request") as span:
        span.set_attribute("proxy.host", proxy_request.host)
        span.set_attribute("proxy.path", proxy_request.path)
        span.set_attribute("proxy.method", proxy_request.method)
        span.set_attribute("proxy.policy", adapter.name)

        headers = adapter.outbound_headers(proxy_request.headers)
        origin = None
        last_error = None
        for scheme in SCHEMES:
            attempt = OutboundAttempt(scheme, proxy_request.host, proxy_request.path)
            try:
                origin = await _attempt(client, attempt, proxy_request, headers)
                break
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                last_error = e
                logger.debug(f"[Forward] {attempt.url} failed: {e!r}")

        if origin is None:
            logger.warning(
                f"Error making request to {proxy_request.host}/{proxy_request.path}: "
                f"{format_exception_message(last_error)}"
            )
            span.set_attribute("proxy.error", str(last_error))
            return service_unavailable()

        span.set_attribute("proxy.scheme", attempt.scheme)
        span.set_attribute("proxy.status_code", origin.status_code)

        try:
            return await adapter.adapt(origin, requesting_host)
        except Exception as e:
            await origin.aclose()
            log_exception_with_details(
                logger,
                f"[Forward] {adapter.name} adapter failed:",
                e,
                level=logging.WARNING,
            )
            span.set_attribute("proxy.error", str(e))
            return service_unavailable()
