from .adapters import (
    ResponseAdapter,
    RewriteAdapter,
    StreamAdapter,
    service_unavailable,
)
from .client import close_http_client, forward, get_http_client
from .target import parse_query, requesting_host, resolve_request, split_target

__all__ = [
    "ResponseAdapter",
    "RewriteAdapter",
    "StreamAdapter",
    "service_unavailable",
    "close_http_client",
    "forward",
    "get_http_client",
    "parse_query",
    "requesting_host",
    "resolve_request",
    "split_target",
]
