import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "reproxy")
HOST = os.environ.get("HOST", "")
PORT = os.environ.get("PORT", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "info").lower()

PROXY_WORKERS_PER_CPU = int(os.getenv("PROXY_WORKERS_PER_CPU", "2"))
# Unset means the httpx default timeout
PROXY_TIMEOUT = os.getenv("PROXY_TIMEOUT", "")
PROXY_CA_BUNDLE = os.getenv("PROXY_CA_BUNDLE", "")

DOC_ROUTE_PREFIX = os.getenv("DOC_ROUTE_PREFIX", "doc").strip("/")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")


def _parse_timeout(raw: str):
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


PROXY_TIMEOUT_SECONDS = _parse_timeout(PROXY_TIMEOUT)
