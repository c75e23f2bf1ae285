# src/cache/json_store.py — v2
"""JSON file-backed fingerprint store (default CACHE_BACKEND=json).

The whole map is loaded at open and kept in memory; ``set`` only updates
memory and ``flush`` rewrites the file. A cache file that cannot be parsed
is discarded with a warning and the store starts empty, so a corrupted
cache costs a full recompute instead of blocking startup.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from fpcache.cache.base_cache_store import BaseFingerprintStore, StoreInitError, StoreWriteError
from fpcache.cache.models import Fingerprint, FingerprintMap

logger = logging.getLogger(__name__)


class JsonFingerprintStore(BaseFingerprintStore):
    """In-memory map persisted to a single pretty-printed JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._entries: dict[str, Fingerprint] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Fingerprint]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_bytes()
        except OSError as e:
            raise StoreInitError(f"Cannot read cache file {self._path}: {e}") from e
        try:
            entries = FingerprintMap.validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "Discarding unparseable cache file %s (%d errors), starting empty",
                self._path, e.error_count(),
            )
            return {}
        logger.debug("Loaded %d fingerprints from %s", len(entries), self._path)
        return entries

    def get(self, key: str) -> Fingerprint | None:
        """Look up a fingerprint in memory."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, fingerprint: Fingerprint) -> None:
        """Upsert in memory. Not durable until flush()."""
        with self._lock:
            self._entries[key] = fingerprint

    def flush(self) -> None:
        """Serialize a snapshot of the map and atomically replace the cache file."""
        with self._lock:
            try:
                payload = json.dumps(
                    {
                        key: fp.model_dump(mode="json", by_alias=True)
                        for key, fp in self._entries.items()
                    },
                    indent=2,
                )
            except (TypeError, ValueError) as e:
                raise StoreWriteError(f"Cannot serialize fingerprint map: {e}") from e
            count = len(self._entries)

            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        fh.write(payload)
                    os.replace(tmp_name, self._path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as e:
                raise StoreWriteError(f"Cannot write cache file {self._path}: {e}") from e

        logger.debug("Flushed %d fingerprints to %s", count, self._path)

    def list_entries(self) -> list[tuple[str, Fingerprint]]:
        """Snapshot of all entries."""
        with self._lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
