import logging
from typing import Iterable, List, Tuple

import httpx

logger = logging.getLogger("uvicorn.error")

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Request headers never sent to the origin; the transport addresses the new host
STREAM_EXCLUDED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {"host"}

# Rewriting needs an identity-encoded body from the origin
REWRITE_EXCLUDED_REQUEST_HEADERS = STREAM_EXCLUDED_REQUEST_HEADERS | {"accept-encoding"}

# Response framing is owned by the server relaying the body
FRAMING_RESPONSE_HEADERS = {"connection", "keep-alive", "transfer-encoding"}

# Headers that would stop rewritten content from rendering under the proxy origin
REWRITE_EXCLUDED_RESPONSE_HEADERS = FRAMING_RESPONSE_HEADERS | {
    "content-security-policy",
    "content-length",
    "content-encoding",
}


def filter_request_headers(
    headers: Iterable[Tuple[str, str]], excluded=STREAM_EXCLUDED_REQUEST_HEADERS
) -> httpx.Headers:
    """
    Build the outbound header set from the inbound headers.

    Names in ``excluded`` are matched case-insensitively. A header whose
    name or value cannot be sent as ASCII is dropped on its own; if filtering
    fails altogether an empty header set is returned.
    """
    try:
        outbound = []
        for name, value in headers:
            if name.lower() in excluded:
                continue
            try:
                name.encode("ascii")
                value.encode("ascii")
            except UnicodeError:
                logger.warning(f"[Headers] Dropping unrepresentable header: {name!r}")
                continue
            outbound.append((name, value))
        return httpx.Headers(outbound)
    except Exception as e:
        logger.warning(f"[Headers] Header filtering failed, sending none: {e}")
        return httpx.Headers()


def filter_response_headers(
    raw_headers: Iterable[Tuple[bytes, bytes]], excluded=FRAMING_RESPONSE_HEADERS
) -> List[Tuple[bytes, bytes]]:
    """
    Origin response headers as raw byte pairs, in received order, minus ``excluded``.

    Duplicates are kept as separate entries and names keep the origin's casing.
    """
    filtered = []
    for name, value in raw_headers:
        if name.decode("latin-1").lower() in excluded:
            continue
        filtered.append((name, value))
    return filtered
