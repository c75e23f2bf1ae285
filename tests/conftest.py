# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides synthetic images, plain files and sample fingerprints.
No external services: Redis is always mocked.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from fpcache.cache.models import Fingerprint


# === FIXTURES: Files ===


def _split_image(size: int, mode: str = "horizontal") -> Image.Image:
    """Black/white split image: left/right halves or top/bottom halves."""
    img = Image.new("L", (size, size), 0)
    half = size // 2
    box = (half, 0, size, size) if mode == "horizontal" else (0, half, size, size)
    img.paste(255, box)
    return img


@pytest.fixture
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a split black/white image to tmp_path."""

    def _make(
        name: str = "split.png",
        size: int = 64,
        mode: str = "horizontal",
        mtime: int | None = None,
    ) -> Path:
        path = tmp_path / name
        _split_image(size, mode).convert("RGB").save(path)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _make


@pytest.fixture
def text_file(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_bytes(b"duplicate finder test content\n")
    os.utime(path, (1000, 1000))
    return path


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_fingerprint() -> Fingerprint:
    """Image fingerprint as it would be computed for a small JPEG."""
    return Fingerprint(
        exact_digest=0x1234_5678_9ABC_DEF0,
        perceptual_digest=bytes([0xF0] * 8),
        observed_size=2048,
        observed_mtime=1000,
    )


@pytest.fixture
def text_fingerprint() -> Fingerprint:
    return Fingerprint(
        exact_digest=42,
        perceptual_digest=None,
        observed_size=30,
        observed_mtime=1000,
    )


@pytest.fixture(autouse=True)
def _reset_fpcache_logging():
    """Drop handlers installed by setup_logging so they never outlive a test."""
    yield
    root = logging.getLogger("fpcache")
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
