# tests/unit/cache/test_manifest.py — v1
"""Tests for cache/manifest.py — change detection, generations, persistence."""

from __future__ import annotations

import json

import pytest

from healthfacts.cache.fingerprint import hash_file
from healthfacts.cache.manifest import CacheManifest, atomic_write_text, source_key
from healthfacts.core.errors import CacheStorageError


@pytest.fixture
def manifest_path(tmp_path):
    return tmp_path / "cache" / "manifest.json"


@pytest.fixture
def report(tmp_path):
    f = tmp_path / "report.txt"
    f.write_text("ALBUMIN 4.34")
    return f


@pytest.fixture
def manifest(manifest_path):
    return CacheManifest(manifest_path, "extract-test")


class TestNeedsExtraction:
    @pytest.mark.asyncio
    async def test_new_source(self, manifest, report):
        assert await manifest.needs_extraction(report) is True

    @pytest.mark.asyncio
    async def test_false_after_update(self, manifest, report):
        await manifest.update_entry(report, hash_file(report))
        assert await manifest.needs_extraction(report) is False

    @pytest.mark.asyncio
    async def test_changed_content(self, manifest, report):
        await manifest.update_entry(report, hash_file(report))
        report.write_text("ALBUMIN 4.40")
        assert await manifest.needs_extraction(report) is True

    @pytest.mark.asyncio
    async def test_other_extractor_version(self, manifest_path, report):
        old = CacheManifest(manifest_path, "extract-old")
        await old.update_entry(report, hash_file(report))
        new = CacheManifest(manifest_path, "extract-new")
        assert await new.needs_extraction(report) is True

    @pytest.mark.asyncio
    async def test_explicit_version_in_update(self, manifest, report):
        await manifest.update_entry(report, hash_file(report), "extract-other")
        assert await manifest.needs_extraction(report) is True

    @pytest.mark.asyncio
    async def test_vanished_source_evicted(self, manifest, report):
        await manifest.update_entry(report, hash_file(report))
        report.unlink()
        assert await manifest.needs_extraction(report) is True
        assert manifest.get_entry(report) is None

    @pytest.mark.asyncio
    async def test_precomputed_hash(self, manifest, report):
        await manifest.update_entry(report, "h1")
        assert await manifest.needs_extraction(report, current_hash="h1") is False
        assert await manifest.needs_extraction(report, current_hash="h2") is True

    @pytest.mark.asyncio
    async def test_key_is_canonical(self, manifest, report, monkeypatch):
        await manifest.update_entry(report, hash_file(report))
        monkeypatch.chdir(report.parent)
        assert await manifest.needs_extraction("report.txt") is False
        assert source_key("report.txt") == str(report.resolve())


class TestUpdateEntry:
    @pytest.mark.asyncio
    async def test_idempotent(self, manifest, report, manifest_path):
        digest = hash_file(report)
        assert await manifest.update_entry(report, digest) is True
        first = manifest_path.read_text()
        assert await manifest.update_entry(report, digest) is True
        assert manifest_path.read_text() == first

    @pytest.mark.asyncio
    async def test_stale_generation_dropped(self, manifest, report):
        generation = manifest.generation
        await manifest.clear_all()
        accepted = await manifest.update_entry(report, hash_file(report), generation=generation)
        assert accepted is False
        assert manifest.get_entry(report) is None
        assert await manifest.needs_extraction(report) is True

    @pytest.mark.asyncio
    async def test_current_generation_accepted(self, manifest, report):
        accepted = await manifest.update_entry(
            report, hash_file(report), generation=manifest.generation,
        )
        assert accepted is True
        assert manifest.get_entry(report) is not None


class TestClearAll:
    @pytest.mark.asyncio
    async def test_bumps_generation(self, manifest):
        assert manifest.generation == 0
        await manifest.clear_all()
        await manifest.clear_all()
        assert manifest.generation == 2

    @pytest.mark.asyncio
    async def test_drops_entries_and_persists(self, manifest, manifest_path, report):
        await manifest.update_entry(report, hash_file(report))
        snapshot = manifest.entries()
        await manifest.clear_all()
        assert manifest.entries() == {}
        assert len(snapshot) == 1
        document = json.loads(manifest_path.read_text())
        assert document["entries"] == {}

    @pytest.mark.asyncio
    async def test_remove_entry(self, manifest, report):
        await manifest.update_entry(report, hash_file(report))
        await manifest.remove_entry(report)
        await manifest.remove_entry(report)
        assert manifest.get_entry(report) is None


class TestPersistence:
    @pytest.mark.asyncio
    async def test_reload(self, manifest, manifest_path, report):
        await manifest.update_entry(report, hash_file(report))
        reloaded = CacheManifest(manifest_path, "extract-test")
        entry = reloaded.get_entry(report)
        assert entry is not None
        assert entry.content_hash == hash_file(report)
        assert await reloaded.needs_extraction(report) is False

    def test_corrupt_manifest_treated_as_empty(self, manifest_path):
        manifest_path.parent.mkdir(parents=True)
        manifest_path.write_text("{not json")
        assert CacheManifest(manifest_path, "v").entries() == {}

    @pytest.mark.asyncio
    async def test_stale_entries_kept_on_load(self, manifest, manifest_path, report):
        await manifest.update_entry(report, hash_file(report))
        report.unlink()
        reloaded = CacheManifest(manifest_path, "extract-test")
        assert reloaded.get_entry(report) is not None

    @pytest.mark.asyncio
    async def test_unwritable_location_raises(self, tmp_path, report):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        manifest = CacheManifest(blocker / "manifest.json", "v")
        with pytest.raises(CacheStorageError):
            await manifest.update_entry(report, hash_file(report))
        assert manifest.get_entry(report) is None


class TestAtomicWrite:
    def test_replaces_whole_file(self, tmp_path):
        target = tmp_path / "sub" / "file.json"
        atomic_write_text(target, "first")
        atomic_write_text(target, "second")
        assert target.read_text() == "second"
        assert [p.name for p in target.parent.iterdir()] == ["file.json"]
