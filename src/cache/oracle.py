# src/cache/oracle.py — v1
"""Staleness decision: must a file's fingerprint be recomputed?

Only size and whole-second mtime are compared; content is never hashed
here. A rewrite within the same second that keeps the size is therefore
not detected.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fpcache.cache.base_cache_store import BaseFingerprintStore
from fpcache.cache.fingerprint import observed_metadata

logger = logging.getLogger(__name__)


class StalenessOracle:
    """Compare cached fingerprints against live filesystem metadata."""

    def __init__(self, store: BaseFingerprintStore) -> None:
        self._store = store

    def should_recompute(self, path: Path | str) -> bool:
        """True if the file is missing from the cache or its size/mtime changed.

        An unreadable file also yields True so the computer surfaces the I/O error.
        """
        try:
            size, mtime = observed_metadata(path)
        except OSError:
            logger.debug("Cannot stat %s, forcing recompute", path)
            return True

        cached = self._store.get(str(path))
        if cached is None:
            logger.debug("No cached fingerprint for %s", path)
            return True

        if cached.observed_size != size or cached.observed_mtime != mtime:
            logger.debug(
                "Stale fingerprint for %s (size %d->%d, mtime %d->%d)",
                path, cached.observed_size, size, cached.observed_mtime, mtime,
            )
            return True
        return False
