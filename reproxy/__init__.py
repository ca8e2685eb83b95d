"""Reverse-forwarding HTTP proxy that routes ``/{host}/{path}`` to the origin."""

__version__ = "0.1.0"
