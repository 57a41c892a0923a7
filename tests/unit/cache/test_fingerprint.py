# tests/unit/cache/test_fingerprint.py — v1
"""Tests for cache/fingerprint.py — file and folder content hashing."""

from __future__ import annotations

import hashlib

import pytest

from healthfacts.cache.fingerprint import (
    ABSENT_HASH,
    content_hash,
    fingerprint_source,
    hash_file,
    hash_folder,
    hash_source,
)
from healthfacts.core.errors import IoError


class TestHashFile:
    def test_sha256_of_bytes(self, tmp_path):
        f = tmp_path / "report.txt"
        f.write_bytes(b"ALBUMIN 4.34")
        assert hash_file(f) == hashlib.sha256(b"ALBUMIN 4.34").hexdigest()

    def test_missing_file_is_absent(self, tmp_path):
        assert hash_file(tmp_path / "nope.txt") == ABSENT_HASH

    def test_absent_never_equals_a_digest(self, tmp_path):
        f = tmp_path / "empty.txt"
        f.write_bytes(b"")
        assert hash_file(f) != ABSENT_HASH
        assert len(hash_file(f)) == 64

    def test_directory_raises_io_error(self, tmp_path):
        with pytest.raises(IoError):
            hash_file(tmp_path)

    def test_change_detected(self, tmp_path):
        f = tmp_path / "report.txt"
        f.write_text("a")
        before = hash_file(f)
        f.write_text("b")
        assert hash_file(f) != before


class TestHashFolder:
    def test_order_independent(self, tmp_path):
        a = tmp_path / "a"
        b = tmp_path / "b"
        for folder, names in ((a, ["x.csv", "y.csv"]), (b, ["y.csv", "x.csv"])):
            folder.mkdir()
            for name in names:
                (folder / name).write_text(name)
        assert hash_folder(a) == hash_folder(b)

    def test_empty_folder_differs_from_absent(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert hash_folder(empty) == hashlib.sha256(b"").hexdigest()
        assert hash_folder(empty) != ABSENT_HASH

    def test_missing_folder_is_absent(self, tmp_path):
        assert hash_folder(tmp_path / "missing") == ABSENT_HASH

    def test_rename_changes_digest(self, tmp_path):
        folder = tmp_path / "export"
        folder.mkdir()
        (folder / "one.csv").write_text("same")
        before = hash_folder(folder)
        (folder / "one.csv").rename(folder / "two.csv")
        assert hash_folder(folder) != before

    def test_hidden_files_ignored(self, tmp_path):
        folder = tmp_path / "export"
        folder.mkdir()
        (folder / "cycles.csv").write_text("data")
        before = hash_folder(folder)
        (folder / ".DS_Store").write_text("junk")
        assert hash_folder(folder) == before

    def test_pattern_filters_members(self, tmp_path):
        folder = tmp_path / "export"
        folder.mkdir()
        (folder / "cycles.csv").write_text("data")
        before = hash_folder(folder, "*.csv")
        (folder / "notes.txt").write_text("ignored")
        assert hash_folder(folder, "*.csv") == before
        assert hash_folder(folder) != before

    def test_file_path_raises(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(IoError):
            hash_folder(f)


class TestHashSource:
    def test_dispatches_on_kind(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        folder = tmp_path / "folder"
        folder.mkdir()
        assert hash_source(f) == hash_file(f)
        assert hash_source(folder) == hash_folder(folder)


class TestFingerprintSource:
    def test_file(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("hello")
        fp = fingerprint_source(f)
        assert fp.content_hash == hash_file(f)
        assert fp.size_bytes == 5
        assert fp.modified_at is not None
        assert fp.is_folder is False

    def test_folder(self, whoop_folder):
        fp = fingerprint_source(whoop_folder)
        assert fp.is_folder is True
        assert fp.size_bytes == 0
        assert fp.content_hash == hash_folder(whoop_folder)

    def test_missing(self, tmp_path):
        fp = fingerprint_source(tmp_path / "gone.txt")
        assert fp.content_hash == ABSENT_HASH
        assert fp.modified_at is None


class TestContentHash:
    def test_whitespace_and_case_folded(self):
        assert content_hash("Albumin  4.34\n") == content_hash("albumin 4.34")

    def test_different_text(self):
        assert content_hash("albumin 4.34") != content_hash("albumin 4.35")
