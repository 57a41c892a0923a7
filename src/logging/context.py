# src/logging/context.py — v2
"""Contextual logging support — attach source, domain and sync generation to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging — set per source extraction.
_source: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "source", default=None
)
_domain: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "domain", default=None
)
_generation: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "sync_generation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    source: str | None = None
    domain: str | None = None
    sync_generation: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        source=_source.get(),
        domain=_domain.get(),
        sync_generation=_generation.get(),
    )


def set_source_context(source: str, generation: int | None = None) -> None:
    """Set source-level context (called once per extraction run)."""
    _source.set(source)
    _generation.set(generation)


def set_domain_context(domain: str) -> None:
    """Set the extraction domain (biomarker, body_comp, activity)."""
    _domain.set(domain)


def clear_context() -> None:
    """Reset all context variables."""
    _source.set(None)
    _domain.set(None)
    _generation.set(None)
