# Ensure tests import the package from this checkout even when it is not installed.
import os
import sys

import httpx
import pytest

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)


@pytest.fixture
def mock_origin():
    """Route the shared outbound client through an in-process origin handler."""
    from reproxy.forwarding import client as forwarding_client

    def _install(handler):
        origin_client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            headers={"Accept-Encoding": "identity"},
            follow_redirects=True,
        )
        forwarding_client.set_http_client(origin_client)
        return origin_client

    yield _install
    forwarding_client.set_http_client(None)
