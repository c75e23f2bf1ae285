# src/cache/fingerprint.py — v3
"""Hash primitives: exact content digest and perceptual image digests.

The exact digest is a 64-bit BLAKE2b over the whole file, used for
byte-identity tests. Perceptual digests are coarse visual summaries
compared by Hamming distance; several algorithms are available behind
the PerceptualHasher interface and all produce ``hash_size ** 2 / 8``
bytes, packed least significant bit first in grid order.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

import numpy as np

if TYPE_CHECKING:
    from PIL import Image

EXACT_DIGEST_SIZE = 8
DEFAULT_HASH_SIZE = 8
READ_CHUNK_SIZE = 1024 * 1024

IMAGE_EXTENSIONS: frozenset[str] = frozenset(
    {"jpg", "jpeg", "png", "gif", "bmp", "tiff", "tif", "webp"}
)
RAW_IMAGE_EXTENSIONS: frozenset[str] = frozenset({"raw", "cr2", "nef", "arw"})


def is_image_file(path: Path | str, include_raw: bool = False) -> bool:
    """Classify a path as an image by extension (case-insensitive)."""
    ext = Path(path).suffix.lower().lstrip(".")
    if not ext:
        return False
    if ext in IMAGE_EXTENSIONS:
        return True
    return include_raw and ext in RAW_IMAGE_EXTENSIONS


# === Exact digest ===


def exact_digest_stream(stream: BinaryIO, chunk_size: int = READ_CHUNK_SIZE) -> int:
    """Hash a binary stream to an unsigned 64-bit integer."""
    hasher = hashlib.blake2b(digest_size=EXACT_DIGEST_SIZE)
    while chunk := stream.read(chunk_size):
        hasher.update(chunk)
    return int.from_bytes(hasher.digest(), "big")


def exact_digest_bytes(data: bytes) -> int:
    """Hash an in-memory buffer to an unsigned 64-bit integer."""
    return int.from_bytes(
        hashlib.blake2b(data, digest_size=EXACT_DIGEST_SIZE).digest(), "big"
    )


# === Perceptual digests ===


def perceptual_distance(a: bytes, b: bytes) -> int:
    """Count differing bits between two equal-length perceptual digests.

    Raises:
        ValueError: If the digests have different lengths.
    """
    if len(a) != len(b):
        raise ValueError(
            f"Perceptual digests differ in length: {len(a)} != {len(b)}"
        )
    return sum((x ^ y).bit_count() for x, y in zip(a, b))


def _pack_bits(bits: np.ndarray) -> bytes:
    return np.packbits(bits.flatten(), bitorder="little").tobytes()


class PerceptualHasher(ABC):
    """Strategy producing a fixed-length perceptual digest from an image."""

    name: str = ""

    def __init__(self, hash_size: int = DEFAULT_HASH_SIZE) -> None:
        if hash_size < 2 or (hash_size * hash_size) % 8:
            raise ValueError(
                f"hash_size must be >= 2 with hash_size**2 a multiple of 8, got {hash_size}"
            )
        self.hash_size = hash_size

    @property
    def digest_size(self) -> int:
        """Digest length in bytes."""
        return self.hash_size * self.hash_size // 8

    @property
    def bit_count(self) -> int:
        return self.hash_size * self.hash_size

    @abstractmethod
    def hash_image(self, image: Image.Image) -> bytes:
        """Compute the digest for a decoded image."""

    def _luma_grid(self, image: Image.Image, width: int, height: int) -> np.ndarray:
        from PIL import Image

        gray = image.convert("L").resize((width, height), Image.Resampling.LANCZOS)
        return np.asarray(gray, dtype=np.uint32)


class AverageHasher(PerceptualHasher):
    """Average hash: one bit per cell, set when the cell is above the grid mean."""

    name = "average"

    def hash_image(self, image: Image.Image) -> bytes:
        grid = self._luma_grid(image, self.hash_size, self.hash_size)
        mean = int(grid.sum()) // grid.size
        return _pack_bits(grid > mean)


class GradientHasher(PerceptualHasher):
    """Difference hash: one bit per cell, set when brightness rises left to right."""

    name = "gradient"

    def hash_image(self, image: Image.Image) -> bytes:
        grid = self._luma_grid(image, self.hash_size + 1, self.hash_size)
        return _pack_bits(grid[:, 1:] > grid[:, :-1])


class VerticalGradientHasher(PerceptualHasher):
    """Difference hash over rows: bit set when brightness rises top to bottom."""

    name = "vert-gradient"

    def hash_image(self, image: Image.Image) -> bytes:
        grid = self._luma_grid(image, self.hash_size, self.hash_size + 1)
        return _pack_bits(grid[1:, :] > grid[:-1, :])


PERCEPTUAL_HASHERS: dict[str, type[PerceptualHasher]] = {
    AverageHasher.name: AverageHasher,
    GradientHasher.name: GradientHasher,
    VerticalGradientHasher.name: VerticalGradientHasher,
}


def create_perceptual_hasher(
    name: str = "average", hash_size: int = DEFAULT_HASH_SIZE
) -> PerceptualHasher:
    """Instantiate a perceptual hasher by algorithm name.

    Raises:
        ValueError: If the algorithm name is unknown.
    """
    try:
        hasher_cls = PERCEPTUAL_HASHERS[name]
    except KeyError:
        raise ValueError(f"Unsupported perceptual algorithm: {name!r}") from None
    return hasher_cls(hash_size=hash_size)


# === File metadata ===


def observed_metadata(path: Path | str) -> tuple[int, int]:
    """Return (size, mtime) with mtime floored to whole seconds, clamped at 0.

    Raises:
        OSError: If the file cannot be stat'ed.
    """
    st = Path(path).stat()
    return st.st_size, max(0, st.st_mtime_ns // 1_000_000_000)
