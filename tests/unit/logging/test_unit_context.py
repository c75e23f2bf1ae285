# tests/unit/logging/test_unit_context.py — v2
"""Tests for logging/context.py."""

from __future__ import annotations

import asyncio

import pytest

from fpcache.logging.context import (
    LogContext,
    clear_context,
    get_context,
    set_file_context,
    set_run_context,
)


class TestContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_empty(self):
        assert get_context().as_dict() == {}

    def test_run_and_file(self):
        set_run_context("r1")
        set_file_context("/a.png", stage="compute")
        ctx = get_context()
        assert ctx == LogContext(run_id="r1", path="/a.png", stage="compute")

    def test_clear(self):
        set_run_context("r1")
        clear_context()
        assert get_context().run_id is None

    @pytest.mark.asyncio
    async def test_worker_threads_do_not_leak_file_context(self):
        set_run_context("r2")

        def worker() -> str | None:
            set_file_context("/in/thread.png")
            return get_context().run_id

        assert await asyncio.to_thread(worker) == "r2"
        assert get_context().path is None
