# tests/unit/cache/test_json_store.py — v2
"""Tests for cache/json_store.py: in-memory map persisted on flush."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from fpcache.cache.base_cache_store import StoreInitError, StoreWriteError
from fpcache.cache.json_store import JsonFingerprintStore
from fpcache.cache.models import Fingerprint


def _fp(n: int) -> Fingerprint:
    return Fingerprint(exact_digest=n, observed_size=n, observed_mtime=n)


class TestOpen:
    def test_missing_file_starts_empty(self, tmp_path: Path):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        assert len(store) == 0
        assert store.get("/never/set") is None

    def test_open_does_not_create_file(self, tmp_path: Path):
        JsonFingerprintStore(tmp_path / "cache.json")
        assert not (tmp_path / "cache.json").exists()

    def test_corrupt_file_soft_fails_to_empty(self, tmp_path: Path, caplog):
        path = tmp_path / "cache.json"
        path.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="fpcache.cache.json_store"):
            store = JsonFingerprintStore(path)
        assert len(store) == 0
        assert "Discarding unparseable cache file" in caplog.text

    def test_wrong_shape_soft_fails_to_empty(self, tmp_path: Path):
        path = tmp_path / "cache.json"
        path.write_text('{"/a.jpg": {"size": "big"}}', encoding="utf-8")
        assert len(JsonFingerprintStore(path)) == 0

    @pytest.mark.parametrize("items", ['["x"]', "[1.5]", "[[1, 2]]"])
    def test_mistyped_digest_items_soft_fail_to_empty(self, tmp_path: Path, items: str, caplog):
        path = tmp_path / "cache.json"
        path.write_text(
            '{"/a.jpg": {"content_digest": 1, "perceptual_digest": %s,'
            ' "size": 1, "modified": 1}}' % items,
            encoding="utf-8",
        )
        with caplog.at_level(logging.WARNING, logger="fpcache.cache.json_store"):
            store = JsonFingerprintStore(path)
        assert len(store) == 0
        assert "Discarding unparseable cache file" in caplog.text

    def test_unreadable_path_is_init_error(self, tmp_path: Path):
        directory = tmp_path / "cache.json"
        directory.mkdir()
        with pytest.raises(StoreInitError, match="Cannot read cache file"):
            JsonFingerprintStore(directory)


class TestGetSet:
    def test_set_then_get(self, tmp_path: Path, sample_fingerprint):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        store.set("/photos/a.jpg", sample_fingerprint)
        assert store.get("/photos/a.jpg") == sample_fingerprint

    def test_set_is_not_durable_until_flush(self, tmp_path: Path, sample_fingerprint):
        path = tmp_path / "cache.json"
        store = JsonFingerprintStore(path)
        store.set("/photos/a.jpg", sample_fingerprint)
        assert not path.exists()
        assert JsonFingerprintStore(path).get("/photos/a.jpg") is None

    def test_overwrite_is_wholesale(self, tmp_path: Path, sample_fingerprint, text_fingerprint):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        store.set("k", sample_fingerprint)
        store.set("k", text_fingerprint)
        assert store.get("k") == text_fingerprint
        assert store.get("k").perceptual_digest is None

    def test_keys_are_not_canonicalized(self, tmp_path: Path, sample_fingerprint):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        store.set("photos/a.jpg", sample_fingerprint)
        assert store.get("./photos/a.jpg") is None
        assert store.get(str(Path("photos/a.jpg").resolve())) is None

    def test_concurrent_sets_for_different_keys(self, tmp_path: Path):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda n: store.set(f"/f{n}", _fp(n)), range(200)))
        assert len(store) == 200
        assert all(store.get(f"/f{n}") == _fp(n) for n in range(200))


class TestFlush:
    def test_round_trip(self, tmp_path: Path, sample_fingerprint, text_fingerprint):
        path = tmp_path / "cache.json"
        store = JsonFingerprintStore(path)
        store.set("/photos/a.jpg", sample_fingerprint)
        store.set("/docs/notes.txt", text_fingerprint)
        store.flush()

        reloaded = JsonFingerprintStore(path)
        assert reloaded.get("/photos/a.jpg") == sample_fingerprint
        assert reloaded.get("/docs/notes.txt") == text_fingerprint

    def test_pretty_printed_records(self, tmp_path: Path, sample_fingerprint):
        path = tmp_path / "cache.json"
        store = JsonFingerprintStore(path)
        store.set("/photos/a.jpg", sample_fingerprint)
        store.flush()

        text = path.read_text(encoding="utf-8")
        assert "\n  " in text
        assert json.loads(text) == {
            "/photos/a.jpg": {
                "content_digest": sample_fingerprint.exact_digest,
                "perceptual_digest": [0xF0] * 8,
                "size": 2048,
                "modified": 1000,
            }
        }

    def test_creates_parent_directories(self, tmp_path: Path, sample_fingerprint):
        path = tmp_path / "nested" / "dir" / "cache.json"
        store = JsonFingerprintStore(path)
        store.set("k", sample_fingerprint)
        store.flush()
        assert path.is_file()

    def test_leaves_no_temp_files(self, tmp_path: Path, sample_fingerprint):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        store.set("k", sample_fingerprint)
        store.flush()
        store.flush()
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    def test_write_failure(self, tmp_path: Path, sample_fingerprint):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = JsonFingerprintStore(blocker / "cache.json")
        store.set("k", sample_fingerprint)
        with pytest.raises(StoreWriteError, match="Cannot write cache file"):
            store.flush()
        assert store.get("k") == sample_fingerprint

    def test_list_entries_snapshot(self, tmp_path: Path):
        store = JsonFingerprintStore(tmp_path / "cache.json")
        store.set("a", _fp(1))
        snapshot = store.list_entries()
        store.set("b", _fp(2))
        assert snapshot == [("a", _fp(1))]
        assert dict(store.list_entries()) == {"a": _fp(1), "b": _fp(2)}
