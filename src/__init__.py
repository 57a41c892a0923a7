# src/__init__.py — v1
"""healthfacts — normalized biomarker, body-composition and event facts."""

from healthfacts.version import EXTRACTOR_VERSION, __version__

__all__ = ["EXTRACTOR_VERSION", "__version__"]
