# src/batch/dedup.py — v2
"""Duplicate detection over cached fingerprints.

Exact duplicates share an exact digest. Near duplicates are image pairs
whose perceptual digests lie within a Hamming distance threshold and are
not already exact duplicates of each other.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from itertools import combinations
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from fpcache.batch.models import DedupReport, NearDuplicatePair
from fpcache.cache.models import Fingerprint

if TYPE_CHECKING:
    from fpcache.cache.base_cache_store import BaseFingerprintStore

logger = logging.getLogger(__name__)


def group_exact_duplicates(
    entries: Iterable[tuple[str, Fingerprint]],
) -> list[list[str]]:
    """Group keys whose fingerprints are content-equal.

    Returns:
        Groups of two or more keys, each sorted, ordered by first key.
    """
    by_digest: dict[int, list[str]] = defaultdict(list)
    for key, fp in entries:
        by_digest[fp.exact_digest].append(key)
    groups = [sorted(keys) for keys in by_digest.values() if len(keys) > 1]
    return sorted(groups, key=lambda g: g[0])


def find_near_duplicates(
    entries: Iterable[tuple[str, Fingerprint]],
    threshold: int,
) -> list[NearDuplicatePair]:
    """Pairwise scan of image fingerprints for perceptual near duplicates.

    Digests of a different length than the first image seen are skipped,
    since distances between them are meaningless.
    """
    images = sorted(
        ((key, fp) for key, fp in entries if fp.perceptual_digest is not None),
        key=lambda item: item[0],
    )
    if not images:
        return []

    digest_len = len(images[0][1].perceptual_digest)  # type: ignore[arg-type]
    comparable = []
    for key, fp in images:
        if len(fp.perceptual_digest) != digest_len:  # type: ignore[arg-type]
            logger.warning(
                "Skipping %s: perceptual digest length %d != %d",
                key, len(fp.perceptual_digest), digest_len,  # type: ignore[arg-type]
            )
            continue
        comparable.append((key, fp))

    bits = digest_len * 8
    pairs: list[NearDuplicatePair] = []
    for (key_a, fp_a), (key_b, fp_b) in combinations(comparable, 2):
        if fp_a.content_equal(fp_b):
            continue
        distance = fp_a.perceptual_distance(fp_b)
        if distance <= threshold:
            pairs.append(
                NearDuplicatePair(
                    first=key_a,
                    second=key_b,
                    distance=distance,
                    similarity=round(1.0 - distance / bits, 4),
                )
            )
    return sorted(pairs, key=lambda p: (p.distance, p.first, p.second))


class BatchDeduplicator:
    """Build duplicate reports from fingerprints held in a store."""

    def __init__(self, store: BaseFingerprintStore) -> None:
        self._store = store

    def report(
        self,
        paths: Iterable[Path | str] | None = None,
        threshold: int = 5,
    ) -> DedupReport:
        """Report duplicates among the given paths, or all stored entries.

        Paths without a cached fingerprint are listed under ``missing``.
        """
        missing: list[str] = []
        if paths is None:
            entries = self._store.list_entries()
        else:
            entries = []
            for path in paths:
                key = str(path)
                fp = self._store.get(key)
                if fp is None:
                    missing.append(key)
                else:
                    entries.append((key, fp))

        report = DedupReport(
            exact_groups=group_exact_duplicates(entries),
            near_duplicates=find_near_duplicates(entries, threshold),
            missing=missing,
        )
        logger.info(
            "Dedup complete: %d exact groups, %d near-duplicate pairs, %d missing",
            len(report.exact_groups), len(report.near_duplicates), len(missing),
        )
        return report
