# src/cache/computer.py — v1
"""Fingerprint computation for a single file.

The exact digest is always computed over the full byte stream. Image files
(by extension) additionally get a perceptual digest; a decode failure is
raised as ComputeError rather than dropped, the caller decides what to do.
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path

from fpcache.cache.fingerprint import (
    AverageHasher,
    PerceptualHasher,
    create_perceptual_hasher,
    exact_digest_stream,
    is_image_file,
    observed_metadata,
)
from fpcache.cache.models import Fingerprint
from fpcache.config.settings import Settings

logger = logging.getLogger(__name__)


class ComputeError(Exception):
    """File unreadable, or image undecodable while a perceptual digest was required."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = str(path)
        self.reason = reason


class FingerprintComputer:
    """Produce fresh Fingerprints; holds no cache state."""

    def __init__(
        self,
        hasher: PerceptualHasher | None = None,
        perceptual_enabled: bool = True,
        include_raw: bool = False,
    ) -> None:
        self._hasher = hasher if hasher is not None else AverageHasher()
        self._perceptual_enabled = perceptual_enabled
        self._include_raw = include_raw

    @classmethod
    def from_settings(cls, settings: Settings) -> FingerprintComputer:
        return cls(
            hasher=create_perceptual_hasher(
                settings.perceptual_algorithm, settings.perceptual_hash_size
            ),
            perceptual_enabled=settings.perceptual_enabled,
            include_raw=settings.include_raw_formats,
        )

    @property
    def hasher(self) -> PerceptualHasher:
        return self._hasher

    def wants_perceptual(self, path: Path | str) -> bool:
        return self._perceptual_enabled and is_image_file(path, self._include_raw)

    def compute(self, path: Path | str) -> Fingerprint:
        """Compute the fingerprint of one file.

        Raises:
            ComputeError: If the file cannot be read or an image cannot be decoded.
        """
        path = Path(path)
        try:
            size, mtime = observed_metadata(path)
            with path.open("rb") as fh:
                digest = exact_digest_stream(fh)
        except OSError as e:
            raise ComputeError(path, f"cannot read file: {e}") from e

        perceptual = self._perceptual_digest(path) if self.wants_perceptual(path) else None

        logger.debug(
            "Computed fingerprint for %s (size=%d, perceptual=%s)",
            path, size, perceptual is not None,
        )
        return Fingerprint(
            exact_digest=digest,
            perceptual_digest=perceptual,
            observed_size=size,
            observed_mtime=mtime,
        )

    def _perceptual_digest(self, path: Path) -> bytes:
        from PIL import Image, UnidentifiedImageError

        # Large photos decode fine; only Pillow's hard pixel limit is a failure.
        draft_side = (self._hasher.hash_size + 1) * 4
        try:
            with warnings.catch_warnings():
                warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)
                with Image.open(path) as img:
                    # JPEG only: decode at a reduced scale, still well above the grid.
                    img.draft("L", (draft_side, draft_side))
                    img.load()
                    return self._hasher.hash_image(img)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            ValueError,
        ) as e:
            raise ComputeError(path, f"cannot decode image: {e}") from e
