# src/batch/scanner.py — v2
"""Batch scanner: file discovery and cache refresh.

For each file the scanner asks the staleness oracle, recomputes the
fingerprint when needed and writes it back through the store. Files are
processed in worker threads; the store is flushed once at the end.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from fpcache.batch.models import BatchResult, ScanEntry
from fpcache.cache.base_cache_store import StoreWriteError
from fpcache.cache.computer import ComputeError, FingerprintComputer
from fpcache.cache.fingerprint import is_image_file
from fpcache.cache.oracle import StalenessOracle
from fpcache.logging.context import set_file_context, set_run_context

if TYPE_CHECKING:
    from fpcache.cache.base_cache_store import BaseFingerprintStore
    from fpcache.config.settings import Settings

logger = logging.getLogger(__name__)


class BatchScanner:
    """Scan directories and keep the fingerprint cache up to date.

    Workflow:
        1. List all regular files (recursive if enabled)
        2. For each file: staleness check, recompute if stale, store
        3. Flush the store
        4. Return BatchResult with stats
    """

    def __init__(
        self,
        store: BaseFingerprintStore,
        computer: FingerprintComputer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._oracle = StalenessOracle(store)
        if computer is None:
            computer = (
                FingerprintComputer.from_settings(settings)
                if settings is not None
                else FingerprintComputer()
            )
        self._computer = computer
        self._max_workers = settings.batch_max_workers if settings else 4
        self._include_raw = settings.include_raw_formats if settings else False

    @property
    def store(self) -> BaseFingerprintStore:
        return self._store

    @property
    def computer(self) -> FingerprintComputer:
        return self._computer

    def scan(
        self,
        scan_root: Path,
        recursive: bool = True,
        images_only: bool = False,
    ) -> list[ScanEntry]:
        """Discover files under a directory.

        Args:
            scan_root: Root directory to scan.
            recursive: If True, scan subdirectories recursively.
            images_only: If True, only include recognized image files.

        Returns:
            List of pending ScanEntry objects, sorted by path.
        """
        if not scan_root.is_dir():
            msg = f"Scan root is not a directory: {scan_root}"
            raise ValueError(msg)

        entries: list[ScanEntry] = []
        pattern_fn = scan_root.rglob if recursive else scan_root.glob
        for path in sorted(pattern_fn("*")):
            if not path.is_file():
                continue
            image = is_image_file(path, self._include_raw)
            if images_only and not image:
                continue
            entries.append(self._make_entry(path, image))

        logger.info(
            "Scanned %s: found %d files (recursive=%s)",
            scan_root, len(entries), recursive,
        )
        return entries

    def refresh_file(self, path: Path | str) -> bool:
        """Bring one file's cache entry up to date.

        Returns:
            True if the fingerprint was recomputed, False if the cached one is fresh.

        Raises:
            ComputeError: If the fingerprint cannot be computed.
            StoreWriteError: If the store rejects the new fingerprint.
        """
        key = str(path)
        if not self._oracle.should_recompute(key):
            return False
        fingerprint = self._computer.compute(key)
        self._store.set(key, fingerprint)
        return True

    async def refresh(
        self,
        targets: Iterable[ScanEntry | Path | str],
        scan_root: Path | None = None,
    ) -> BatchResult:
        """Refresh the cache for many files concurrently, then flush.

        Per-file failures are logged and counted. A flush failure propagates.
        """
        t0 = time.perf_counter()
        set_run_context(uuid.uuid4().hex[:12])

        entries = [
            t if isinstance(t, ScanEntry) else self._make_entry(Path(t))
            for t in targets
        ]
        semaphore = asyncio.Semaphore(self._max_workers)

        async def _run(entry: ScanEntry) -> None:
            async with semaphore:
                await asyncio.to_thread(self._refresh_entry, entry)

        await asyncio.gather(*(_run(e) for e in entries))
        await asyncio.to_thread(self._store.flush)

        recomputed = sum(1 for e in entries if e.status == "recomputed")
        skipped = sum(1 for e in entries if e.status == "fresh")
        errors = sum(1 for e in entries if e.status == "error")
        duration = time.perf_counter() - t0

        logger.info(
            "Refresh complete: %d recomputed, %d fresh, %d errors in %.2fs",
            recomputed, skipped, errors, duration,
        )
        return BatchResult(
            scan_root=str(scan_root) if scan_root is not None else None,
            total_files_found=len(entries),
            recomputed=recomputed,
            skipped=skipped,
            errors=errors,
            entries=entries,
            duration_seconds=round(duration, 2),
        )

    async def scan_and_refresh(
        self,
        scan_root: Path,
        recursive: bool = True,
        images_only: bool = False,
    ) -> BatchResult:
        """Full batch pipeline: scan, then refresh every discovered file."""
        entries = self.scan(scan_root, recursive, images_only)
        return await self.refresh(entries, scan_root=scan_root)

    def _refresh_entry(self, entry: ScanEntry) -> None:
        set_file_context(entry.file_path, stage="refresh")
        try:
            recomputed = self.refresh_file(entry.file_path)
        except (ComputeError, StoreWriteError) as e:
            entry.status = "error"
            entry.error = str(e)
            logger.warning("Failed to refresh %s: %s", entry.file_path, e)
            return
        entry.status = "recomputed" if recomputed else "fresh"

    def _make_entry(self, path: Path, image: bool | None = None) -> ScanEntry:
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return ScanEntry(
            file_path=str(path),
            filename=path.name,
            size_bytes=size,
            is_image=is_image_file(path, self._include_raw) if image is None else image,
        )
