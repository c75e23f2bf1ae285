# src/cache/base_cache_store.py — v2
"""Abstract fingerprint store interface and store error types."""

from __future__ import annotations

from abc import ABC, abstractmethod

from fpcache.cache.models import Fingerprint


class FingerprintStoreError(Exception):
    """Base class for fingerprint store failures."""


class StoreInitError(FingerprintStoreError):
    """Backend could not be opened (unreadable file, bad URL, unreachable server)."""


class StoreWriteError(FingerprintStoreError):
    """An entry or the whole map could not be persisted."""


class StoreReadError(FingerprintStoreError):
    """A single read failed. Never escapes a store: callers see a miss."""


class BaseFingerprintStore(ABC):
    """Unified interface for fingerprint storage backends.

    Keys are path strings used verbatim; no canonicalization is applied.
    """

    @abstractmethod
    def get(self, key: str) -> Fingerprint | None:
        """Retrieve the fingerprint for a path key, or None on miss or read failure."""

    @abstractmethod
    def set(self, key: str, fingerprint: Fingerprint) -> None:
        """Store a fingerprint, replacing any previous record for the key.

        Raises:
            StoreWriteError: If the backend rejects the write.
        """

    @abstractmethod
    def flush(self) -> None:
        """Make all previous writes durable.

        Raises:
            StoreWriteError: If persisting fails.
        """

    @abstractmethod
    def list_entries(self) -> list[tuple[str, Fingerprint]]:
        """List all (key, fingerprint) pairs currently readable."""

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> BaseFingerprintStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
