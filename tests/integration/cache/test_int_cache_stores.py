# tests/integration/cache/test_int_cache_stores.py — v3
"""Integration tests: computer + oracle + JSON store on real files.

No external services required.
Coverage targets: json_store.py, computer.py, oracle.py, cache_factory.py
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from fpcache.cache.cache_factory import create_fingerprint_store, open_store
from fpcache.cache.computer import FingerprintComputer
from fpcache.cache.models import LocalBackend
from fpcache.cache.oracle import StalenessOracle
from fpcache.config.settings import Settings


class TestFingerprintLifecycle:

    def test_jpeg_round_trip(self, tmp_path: Path, make_image):
        photo = make_image("holiday.jpg", mtime=1000)
        cache_path = tmp_path / "cache.json"

        store = open_store(LocalBackend(path=cache_path))
        oracle = StalenessOracle(store)
        assert oracle.should_recompute(photo) is True

        fp = FingerprintComputer().compute(photo)
        assert fp.observed_size == photo.stat().st_size
        assert fp.observed_mtime == 1000
        assert len(fp.perceptual_digest) == 8

        store.set(str(photo), fp)
        store.flush()

        reloaded = open_store(LocalBackend(path=cache_path))
        assert reloaded.get(str(photo)) == fp
        assert StalenessOracle(reloaded).should_recompute(photo) is False

    def test_text_file_round_trip(self, tmp_path: Path, text_file: Path):
        store = create_fingerprint_store(
            Settings(_env_file=None, cache_file=tmp_path / "cache.json")
        )
        fp = FingerprintComputer().compute(text_file)
        assert fp.perceptual_digest is None
        store.set(str(text_file), fp)
        store.flush()

        reloaded = create_fingerprint_store(
            Settings(_env_file=None, cache_file=tmp_path / "cache.json")
        )
        assert reloaded.get(str(text_file)) == fp

    def test_touch_invalidates_after_reload(self, tmp_path: Path, text_file: Path):
        cache_path = tmp_path / "cache.json"
        store = open_store(LocalBackend(path=cache_path))
        store.set(str(text_file), FingerprintComputer().compute(text_file))
        store.flush()

        os.utime(text_file, (1234, 1234))
        reloaded = open_store(LocalBackend(path=cache_path))
        assert StalenessOracle(reloaded).should_recompute(text_file) is True

    def test_corrupted_cache_forces_recompute(self, tmp_path: Path, text_file: Path):
        cache_path = tmp_path / "cache.json"
        store = open_store(LocalBackend(path=cache_path))
        store.set(str(text_file), FingerprintComputer().compute(text_file))
        store.flush()

        cache_path.write_text(cache_path.read_text()[:-10], encoding="utf-8")
        reloaded = open_store(LocalBackend(path=cache_path))
        assert reloaded.get(str(text_file)) is None
        assert StalenessOracle(reloaded).should_recompute(text_file) is True

    @pytest.mark.parametrize("algorithm", ["average", "gradient", "vert-gradient"])
    def test_resized_copy_is_perceptually_close(self, make_image, algorithm):
        computer = FingerprintComputer.from_settings(
            Settings(_env_file=None, perceptual_algorithm=algorithm)
        )
        small = computer.compute(make_image("small.png", size=64))
        large = computer.compute(make_image("large.png", size=256))
        assert not small.content_equal(large)
        assert small.perceptual_distance(large) <= 5
