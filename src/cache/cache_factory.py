# src/cache/cache_factory.py — v3
"""Factory for fingerprint store instantiation."""

from __future__ import annotations

import logging

from fpcache.cache.base_cache_store import BaseFingerprintStore
from fpcache.cache.models import BackendDescriptor, LocalBackend, RedisBackend
from fpcache.config.settings import Settings

logger = logging.getLogger(__name__)


def backend_from_settings(settings: Settings | None = None) -> BackendDescriptor:
    """Build the backend descriptor selected by CACHE_BACKEND.

    Raises:
        ValueError: If the redis backend is selected without a URL.
    """
    if settings is None:
        settings = Settings(_env_file=None)  # type: ignore[call-arg]

    if settings.cache_backend == "json":
        return LocalBackend(path=settings.cache_file)

    if settings.cache_backend == "redis":
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisBackend(
            url=settings.cache_redis_url,
            timeout=settings.cache_redis_timeout,
            key_prefix=settings.cache_redis_key_prefix,
            verify=settings.cache_redis_verify,
        )

    raise ValueError(f"Unsupported cache backend: {settings.cache_backend!r}")


def open_store(backend: BackendDescriptor) -> BaseFingerprintStore:
    """Open the store described by a backend descriptor.

    Raises:
        StoreInitError: If the backend cannot be opened.
    """
    if isinstance(backend, LocalBackend):
        from fpcache.cache.json_store import JsonFingerprintStore

        logger.debug("Opening JSON fingerprint store at %s", backend.path)
        return JsonFingerprintStore(path=backend.path)

    if isinstance(backend, RedisBackend):
        from fpcache.cache.redis_store import RedisFingerprintStore

        logger.debug("Opening Redis fingerprint store (prefix=%r)", backend.key_prefix)
        return RedisFingerprintStore(
            redis_url=backend.url,
            timeout=backend.timeout,
            key_prefix=backend.key_prefix,
            verify=backend.verify,
        )

    raise ValueError(f"Unsupported backend descriptor: {backend!r}")


def create_fingerprint_store(settings: Settings | None = None) -> BaseFingerprintStore:
    """Instantiate the configured fingerprint store.

    Args:
        settings: Application settings. Defaults to the JSON backend.

    Returns:
        Configured BaseFingerprintStore implementation.
    """
    return open_store(backend_from_settings(settings))
