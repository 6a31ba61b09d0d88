"""Per-host httpx transport overrides for upstream traffic.

Tests route an upstream host to an in-process app (``httpx.ASGITransport``)
or a ``httpx.MockTransport``; hosts without an override use the network.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

logger = logging.getLogger("lmgateway")

_overrides: dict[str, httpx.AsyncBaseTransport] = {}


def _host_key(target: str) -> str:
    """Reduce a URL or a bare ``host[:port]`` to the lookup key."""
    url = httpx.URL(target if "://" in target else f"http://{target}")
    host = url.host.lower()
    return f"{host}:{url.port}" if url.port else host


def register_upstream_transport(target: str, transport: httpx.AsyncBaseTransport) -> None:
    """Send requests for ``target`` (URL or ``host[:port]``) through ``transport``."""
    if not target or not target.strip():
        raise ValueError("an upstream host or URL is required")
    key = _host_key(target.strip())
    _overrides[key] = transport
    logger.debug(f"Upstream traffic for '{key}' now uses {type(transport).__name__}")


def clear_upstream_transports() -> None:
    _overrides.clear()


def get_upstream_transport(url: str) -> Optional[httpx.AsyncBaseTransport]:
    if not url or not _overrides:
        return None
    return _overrides.get(_host_key(url))
