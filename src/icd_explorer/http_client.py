"""Shared httpx client factory for upstream API calls."""

import os

import httpx

HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "10"))

# Replaced in tests with httpx.MockTransport
_transport: httpx.AsyncBaseTransport | None = None


def async_client(timeout: float | None = None) -> httpx.AsyncClient:
    """Create an AsyncClient with the project-wide timeout."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout or HTTP_TIMEOUT_SECONDS),
        transport=_transport,
        follow_redirects=True,
    )
