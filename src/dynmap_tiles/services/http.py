import ssl
from typing import Optional

import httpx

from ..config import CONNECT_TIMEOUT, DEFAULT_CONCURRENCY, REQUEST_TIMEOUT, USER_AGENT


def tls_context() -> ssl.SSLContext:
    """
    Client-side TLS settings; anything older than TLS 1.2 is refused.
    Scoped to the client that receives it, nothing global is touched.
    """
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


def build_http_client(
    base_url: str,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)
    return httpx.Client(
        base_url=base_url,
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
        verify=tls_context(),
        follow_redirects=True,
        transport=transport,
    )


def build_async_http_client(
    concurrency: int = DEFAULT_CONCURRENCY,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    timeout = httpx.Timeout(REQUEST_TIMEOUT, connect=CONNECT_TIMEOUT)
    limits = httpx.Limits(
        max_connections=concurrency,
        max_keepalive_connections=concurrency,
    )
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
        limits=limits,
        verify=tls_context(),
        follow_redirects=True,
        transport=transport,
    )
