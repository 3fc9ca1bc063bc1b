"""Helper to create Redis clients, with TLS handling for hosted providers."""

from __future__ import annotations

import ssl
from typing import Any

from redis import Redis

DEFAULT_TIMEOUT_SECONDS = 2


def uses_tls(url: str) -> bool:
    """Whether the URL needs a TLS connection (rediss:// or an Upstash host)."""
    return url.startswith("rediss://") or ".upstash.io" in url


def normalize_redis_url(url: str) -> str:
    """Upstash only accepts TLS; rewrite plain redis:// URLs for it."""
    if ".upstash.io" in url and url.startswith("redis://"):
        return url.replace("redis://", "rediss://", 1)
    return url


def create_redis_client(url: str, **kwargs: Any) -> Redis:
    """Create a Redis client with short connect timeouts.

    Args:
        url: Redis connection URL (redis:// or rediss://)
        **kwargs: Additional arguments passed to Redis.from_url

    Returns:
        Configured Redis client
    """
    url = normalize_redis_url(url)
    kwargs.setdefault("socket_connect_timeout", DEFAULT_TIMEOUT_SECONDS)
    kwargs.setdefault("socket_timeout", DEFAULT_TIMEOUT_SECONDS)
    if uses_tls(url):
        kwargs.setdefault("ssl_cert_reqs", ssl.CERT_NONE)
    return Redis.from_url(url, **kwargs)
