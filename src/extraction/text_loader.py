# src/extraction/text_loader.py — v2
"""Source -> raw text. Plain-text formats are read directly; anything else
(PDF, scans) goes through an injected decoder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from healthfacts.core.errors import IoError

logger = logging.getLogger(__name__)

PLAIN_TEXT_EXTENSIONS = frozenset({".txt", ".csv", ".md", ".text"})


@runtime_checkable
class TextDecoder(Protocol):
    """Turns a binary document (e.g. a PDF) into its flattened text."""

    def decode(self, path: Path) -> str:
        ...


def load_text(path: str | Path, decoder: TextDecoder | None = None) -> str:
    """Read the text of a source document.

    Raises:
        IoError: If the file cannot be read, or it needs a decoder and none
            was given, or the decoder fails.
    """
    p = Path(path)
    if p.suffix.lower() in PLAIN_TEXT_EXTENSIONS:
        try:
            return p.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise IoError(f"Cannot read source file: {p}", path=p, cause=e) from e

    if decoder is None:
        raise IoError(f"No text decoder configured for {p.suffix or 'extensionless'} file: {p}", path=p)
    try:
        text = decoder.decode(p)
    except OSError as e:
        raise IoError(f"Cannot decode source file: {p}", path=p, cause=e) from e
    except ValueError as e:
        raise IoError(f"Decoder rejected source file: {p}", path=p, cause=e) from e
    logger.debug("Decoded %d chars from %s", len(text), p)
    return text
