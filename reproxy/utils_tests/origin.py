from typing import Callable, List

import httpx


async def stream_body(*chunks: bytes):
    """Origin body delivered in separate chunks, the way a network read would."""
    for chunk in chunks:
        yield chunk


async def failing_body(*chunks: bytes):
    """Origin body that breaks off with a transport error after ``chunks``."""
    for chunk in chunks:
        yield chunk
    raise httpx.ReadError("connection reset by origin")


class RecordingOrigin:
    """
    MockTransport handler that records every outbound request and answers
    with ``respond``. Schemes listed in ``refuse`` fail at connect time.
    """

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response], refuse=()):
        self.respond = respond
        self.refuse = set(refuse)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.scheme in self.refuse:
            raise httpx.ConnectError("connection refused", request=request)
        return self.respond(request)

    @property
    def schemes(self) -> List[str]:
        return [request.url.scheme for request in self.requests]
