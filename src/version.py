# src/version.py — v1
"""Package version and extraction schema tags."""

__version__ = "0.4.0"

# Bump when extraction output can change for identical input. Every manifest
# entry written under another tag is treated as stale.
EXTRACTOR_VERSION = "extract-3"
