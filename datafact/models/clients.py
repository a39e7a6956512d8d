"""
Process-scoped HTTP connection pools.

Each pool is created lazily on first use and then shared by every caller,
including concurrent worker threads; httpx.Client is safe for that. Pools are
only re-created after close_clients() has been called (application shutdown).
"""

from __future__ import annotations
from typing import Dict, Optional
import logging
import threading

import httpx

from ..config import GeminiSettings, FormSettings

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_clients: Dict[str, httpx.Client] = {}


def _build_generation_client(settings: GeminiSettings) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(settings.request_timeout_s, connect=settings.connect_timeout_s),
        limits=httpx.Limits(
            max_connections=settings.max_connections,
            max_keepalive_connections=settings.max_keepalive_connections,
            keepalive_expiry=120.0,
        ),
        headers={"Content-Type": "application/json"},
    )


def _build_fast_client(settings: FormSettings) -> httpx.Client:
    return httpx.Client(
        timeout=httpx.Timeout(settings.request_timeout_s, connect=settings.connect_timeout_s),
        limits=httpx.Limits(max_connections=200, max_keepalive_connections=100, keepalive_expiry=90.0),
        follow_redirects=True,
    )


def _get(name: str, factory) -> httpx.Client:
    with _lock:
        client = _clients.get(name)
        if client is None or client.is_closed:
            client = factory()
            _clients[name] = client
            logger.info(f"initialized http client: {name}")
        return client


def get_generation_client(settings: Optional[GeminiSettings] = None) -> httpx.Client:
    """Pool used for generation calls (long per-attempt timeout)."""
    return _get("generation", lambda: _build_generation_client(settings or GeminiSettings()))


def get_fast_client(settings: Optional[FormSettings] = None) -> httpx.Client:
    """Pool used for scraping, form submission and the persona store."""
    return _get("fast", lambda: _build_fast_client(settings or FormSettings()))


def clients_open() -> Dict[str, bool]:
    with _lock:
        return {name: not client.is_closed for name, client in _clients.items()}


def close_clients() -> None:
    with _lock:
        for name, client in _clients.items():
            try:
                client.close()
                logger.info(f"Closed http client: {name}")
            except Exception as e:
                logger.error(f"Closing http client {name} failed: {e}")
        _clients.clear()
