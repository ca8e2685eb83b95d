import logging
from typing import List, Tuple

from fastapi import Request

from reproxy.models import ProxyRequest

logger = logging.getLogger("uvicorn.error")


def parse_query(raw_query: str) -> List[Tuple[str, str]]:
    """
    Split a raw query string into ordered (key, value) pairs.

    Tokens are split on the first ``=``; tokens without one are dropped.
    Keys and values are kept literally, nothing is percent-decoded.
    """
    pairs = []
    if not raw_query:
        return pairs
    for token in raw_query.split("&"):
        key, sep, value = token.partition("=")
        if not sep:
            continue
        pairs.append((key, value))
    return pairs


def split_target(raw_path: str, prefix: str = "") -> Tuple[str, str]:
    """Return ``(host, remainder_path)`` from an undecoded request path."""
    remainder = raw_path.lstrip("/")
    if prefix:
        marker = prefix.strip("/") + "/"
        if remainder.startswith(marker):
            remainder = remainder[len(marker):]
    host, _, path = remainder.partition("/")
    return host, path


def _raw_path(request: Request) -> str:
    raw = request.scope.get("raw_path")
    if raw:
        return raw.split(b"?", 1)[0].decode("utf-8", errors="replace")
    return request.url.path


def _raw_query(request: Request) -> str:
    raw = request.scope.get("query_string")
    if raw:
        return raw.decode("latin-1")
    return ""


def requesting_host(request: Request) -> str:
    """Authority the caller used to reach the proxy, port included when present."""
    host = request.headers.get("host")
    if host:
        return host
    return request.url.netloc


async def resolve_request(request: Request, prefix: str = "") -> ProxyRequest:
    host, path = split_target(_raw_path(request), prefix)
    body = await request.body()
    logger.debug(f"[Resolver] {request.method} host: {host}, path: {path}")
    return ProxyRequest(
        method=request.method.upper(),
        host=host,
        path=path,
        query=tuple(parse_query(_raw_query(request))),
        headers=tuple(request.headers.items()),
        body=body,
    )
