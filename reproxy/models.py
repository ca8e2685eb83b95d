from dataclasses import dataclass
from typing import Tuple

SUPPORTED_METHODS = ("GET", "POST")


@dataclass(frozen=True)
class ProxyRequest:
    """One inbound request, resolved to the origin it should be forwarded to."""

    method: str
    host: str
    path: str = ""
    query: Tuple[Tuple[str, str], ...] = ()
    headers: Tuple[Tuple[str, str], ...] = ()
    body: bytes = b""

    @property
    def is_supported(self) -> bool:
        return self.method.upper() in SUPPORTED_METHODS


@dataclass(frozen=True)
class OutboundAttempt:
    scheme: str
    host: str
    path: str = ""

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}/{self.path}"
