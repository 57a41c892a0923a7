# tests/unit/logging/test_context_handlers.py — v1
"""Tests for logging/context.py and logging/handlers.py."""

from __future__ import annotations

import asyncio

import pytest

from healthfacts.logging.context import (
    LogContext,
    clear_context,
    get_context,
    set_domain_context,
    set_source_context,
)
from healthfacts.logging.handlers import create_rotating_handler, parse_size


class TestContext:
    def teardown_method(self):
        clear_context()

    def test_empty_by_default(self):
        clear_context()
        assert get_context() == LogContext()
        assert get_context().as_dict() == {}

    def test_set_and_clear(self):
        set_source_context("/a.txt", 2)
        set_domain_context("activity")
        assert get_context().as_dict() == {
            "source": "/a.txt", "domain": "activity", "sync_generation": 2,
        }
        clear_context()
        assert get_context().source is None

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def work(name: str) -> str | None:
            set_source_context(name)
            await asyncio.sleep(0.01)
            return get_context().source

        results = await asyncio.gather(work("/a"), work("/b"))
        assert results == ["/a", "/b"]


class TestParseSize:
    @pytest.mark.parametrize("text,expected", [
        ("10MB", 10 * 1024**2),
        ("512 KB", 512 * 1024),
        ("1gb", 1024**3),
        ("100B", 100),
    ])
    def test_valid(self, text, expected):
        assert parse_size(text) == expected

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("ten megabytes")


class TestRotatingHandler:
    def test_creates_parent(self, tmp_path):
        handler = create_rotating_handler(str(tmp_path / "deep" / "app.log"), "2KB", 5)
        assert (tmp_path / "deep").is_dir()
        assert handler.maxBytes == 2048
        assert handler.backupCount == 5
        handler.close()
