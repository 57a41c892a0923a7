# src/cache/fingerprint.py — v3
"""Content hashing — the unit of change detection.

A file hashes to the SHA-256 of its bytes; a folder hashes to a digest of
its sorted ``(relative path, file digest)`` pairs so that file-system
iteration order never changes the result. A missing path hashes to
``ABSENT_HASH`` which no real digest can equal, so deletion shows up as a
hash change.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from pathlib import Path

from healthfacts.core.errors import IoError
from healthfacts.core.models import SourceFile

ABSENT_HASH = "absent"

_CHUNK_SIZE = 1 << 16


def hash_file(path: str | Path) -> str:
    """SHA-256 hex digest of a file's bytes.

    Raises:
        IoError: If the path exists but cannot be read as a file.
    """
    file_path = Path(path)
    if not file_path.exists():
        return ABSENT_HASH
    digest = hashlib.sha256()
    try:
        with file_path.open("rb") as fh:
            for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        raise IoError(f"Cannot read source file: {file_path}", path=file_path, cause=e) from e
    return digest.hexdigest()


def hash_folder(path: str | Path, pattern: str = "*") -> str:
    """Order-independent digest of all files under ``path`` matching ``pattern``.

    Dot-files and dot-directories are skipped. An empty folder yields the
    digest of empty input, which differs from ``ABSENT_HASH``.

    Raises:
        IoError: If the folder or one of its files cannot be read.
    """
    root = Path(path)
    if not root.exists():
        return ABSENT_HASH
    if not root.is_dir():
        raise IoError(f"Not a directory: {root}", path=root)

    try:
        members = [
            p for p in root.rglob(pattern)
            if p.is_file() and not _is_hidden(p.relative_to(root))
        ]
    except OSError as e:
        raise IoError(f"Cannot list folder: {root}", path=root, cause=e) from e

    digest = hashlib.sha256()
    for member in sorted(members, key=lambda p: p.relative_to(root).as_posix()):
        rel = member.relative_to(root).as_posix()
        digest.update(rel.encode("utf-8"))
        digest.update(b"\0")
        digest.update(hash_file(member).encode("ascii"))
        digest.update(b"\n")
    return digest.hexdigest()


def hash_source(path: str | Path, pattern: str = "*") -> str:
    """Hash a file or folder, whichever ``path`` is."""
    p = Path(path)
    if p.is_dir():
        return hash_folder(p, pattern)
    return hash_file(p)


def fingerprint_source(path: str | Path) -> SourceFile:
    """Build a SourceFile (hash, size, mtime) for a file or folder."""
    p = Path(path).expanduser().resolve()
    content_hash = hash_source(p)
    if content_hash == ABSENT_HASH:
        return SourceFile(path=str(p), content_hash=ABSENT_HASH)
    try:
        stat = p.stat()
    except OSError as e:
        raise IoError(f"Cannot stat source: {p}", path=p, cause=e) from e
    return SourceFile(
        path=str(p),
        content_hash=content_hash,
        size_bytes=0 if p.is_dir() else stat.st_size,
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        is_folder=p.is_dir(),
    )


def content_hash(text: str) -> str:
    """SHA-256 on normalized text (case and whitespace folded).

    Used to key extraction of raw text blobs that have no file identity.
    """
    normalized = re.sub(r"\s+", " ", text.lower()).strip()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def _is_hidden(rel: Path) -> bool:
    return any(part.startswith(".") for part in rel.parts)
