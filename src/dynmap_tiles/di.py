from __future__ import annotations

import threading
from typing import Optional

import httpx

from .services.endpoints import DynmapEndpoint


class Container:
    """Process-wide registry: one resolver, and so one catalog, per server URL."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport
        self._endpoints: dict[str, DynmapEndpoint] = {}
        self._lock = threading.Lock()

    def endpoint(self, url: str) -> DynmapEndpoint:
        key = url if url.endswith("/") else url + "/"
        with self._lock:
            endpoint = self._endpoints.get(key)
            if endpoint is None:
                endpoint = DynmapEndpoint(key, transport=self._transport)
                self._endpoints[key] = endpoint
            return endpoint


_container: Container | None = None


def get_container() -> Container:
    global _container
    if _container is None:
        _container = Container()
    return _container
