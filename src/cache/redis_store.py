# src/cache/redis_store.py — v2
"""Redis-backed fingerprint store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Each fingerprint is a JSON string under the path key (optionally prefixed).
Responses stay raw bytes so a non-UTF-8 value fails validation, not the client.
Every set is one SET command and is durable immediately; flush is a no-op.
Read failures of any kind are reported as a miss.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from fpcache.cache.base_cache_store import (
    BaseFingerprintStore,
    StoreInitError,
    StoreReadError,
    StoreWriteError,
)
from fpcache.cache.models import Fingerprint

logger = logging.getLogger(__name__)


class RedisFingerprintStore(BaseFingerprintStore):
    """Redis-backed store for shared deployments."""

    def __init__(
        self,
        redis_url: str,
        timeout: float = 5.0,
        key_prefix: str = "",
        verify: bool = False,
    ) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._errors = (redis.RedisError, OSError)
        self._key_prefix = key_prefix
        try:
            # Connections are opened on first command.
            self._client = redis.Redis.from_url(
                redis_url,
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
        except ValueError as e:
            raise StoreInitError(f"Invalid redis URL {redis_url!r}: {e}") from e

        if verify:
            try:
                self._client.ping()
            except self._errors as e:
                raise StoreInitError(f"Redis unreachable at {redis_url!r}: {e}") from e

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _read(self, key: str) -> Fingerprint | None:
        try:
            data = self._client.get(self._redis_key(key))
        except self._errors as e:
            raise StoreReadError(f"GET failed: {e}") from e
        if data is None:
            return None
        try:
            return Fingerprint.model_validate_json(data)
        except ValidationError as e:
            raise StoreReadError(f"Undecodable record: {e.error_count()} errors") from e

    def get(self, key: str) -> Fingerprint | None:
        """Fetch one fingerprint; failures degrade to a miss."""
        try:
            return self._read(key)
        except StoreReadError as e:
            logger.warning("Treating cache entry %s as missing: %s", key, e)
            return None

    def set(self, key: str, fingerprint: Fingerprint) -> None:
        """Write one fingerprint with a single SET."""
        try:
            self._client.set(self._redis_key(key), fingerprint.to_json())
        except self._errors as e:
            raise StoreWriteError(f"SET {key!r} failed: {e}") from e

    def flush(self) -> None:
        """No-op: every set is already persisted by the server."""

    def list_entries(self) -> list[tuple[str, Fingerprint]]:
        """Scan keys under the prefix and return the decodable entries."""
        entries: list[tuple[str, Fingerprint]] = []
        try:
            redis_keys = list(self._client.scan_iter(match=f"{self._key_prefix}*"))
        except self._errors as e:
            logger.warning("Cannot list cache entries: %s", e)
            return entries

        for redis_key in redis_keys:
            try:
                key = redis_key.decode("utf-8")[len(self._key_prefix):]
            except UnicodeDecodeError:
                logger.debug("Skipping non-UTF-8 key %r", redis_key)
                continue
            try:
                fp = self._read(key)
            except StoreReadError:
                logger.debug("Skipping unreadable key %s", redis_key)
                continue
            if fp is not None:
                entries.append((key, fp))
        return entries

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()
