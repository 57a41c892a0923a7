# src/events/query.py — v1
"""Event feed query: domain/severity filters plus a bounded result size.

Out-of-bounds or unknown parameters are rejected with
``InvalidQueryParameter``; nothing is clamped silently.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, ConfigDict

from healthfacts.core.errors import InvalidQueryParameter
from healthfacts.core.models import DOMAINS, SEVERITIES, HealthEvent

MIN_LIMIT = 1
MAX_LIMIT = 200
DEFAULT_LIMIT = 50


class EventQuery(BaseModel):
    """Validated feed query. Build with ``EventQuery.create``."""

    model_config = ConfigDict(frozen=True)

    domains: frozenset[str] | None = None
    severities: frozenset[str] | None = None
    limit: int = DEFAULT_LIMIT

    @classmethod
    def create(
        cls,
        domains: Iterable[str] | None = None,
        severities: Iterable[str] | None = None,
        limit: int | None = None,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> EventQuery:
        """Validate raw parameters.

        Empty filter collections mean "no filter".

        Raises:
            InvalidQueryParameter: Unknown domain or severity, or a limit
                outside ``[1, max_limit]``.
        """
        domain_set = _check_members("domains", domains, DOMAINS)
        severity_set = _check_members("severities", severities, SEVERITIES)

        if limit is None:
            limit = default_limit
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise InvalidQueryParameter("limit", limit, "must be an integer")
        if not MIN_LIMIT <= limit <= max_limit:
            raise InvalidQueryParameter("limit", limit, f"must be between {MIN_LIMIT} and {max_limit}")

        return cls(domains=domain_set, severities=severity_set, limit=limit)


def _check_members(name: str, values: Iterable[str] | None, allowed: Sequence[str]) -> frozenset[str] | None:
    if values is None:
        return None
    if isinstance(values, str):
        values = [values]
    chosen = frozenset(values)
    unknown = sorted(chosen - set(allowed))
    if unknown:
        raise InvalidQueryParameter(name, unknown, f"allowed values are {', '.join(allowed)}")
    return chosen or None


def query_events(events: Sequence[HealthEvent], query: EventQuery | None = None) -> list[HealthEvent]:
    """Filter ``events`` (already ordered) and keep the first ``limit``."""
    query = query or EventQuery()
    selected = [
        event for event in events
        if (query.domains is None or event.domain in query.domains)
        and (query.severities is None or event.severity in query.severities)
    ]
    return selected[:query.limit]
