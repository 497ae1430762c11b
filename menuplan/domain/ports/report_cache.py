"""Analytics report cache port (interface)."""

from typing import Optional, Protocol

from menuplan.domain.analytics.report import AnalyticsReport


class IReportCache(Protocol):
    """
    Per-plan cache of computed analytics reports.

    Entries expire after a TTL and are invalidated whenever the plan or one
    of its assignments changes.
    """

    async def get(self, plan_id: str) -> Optional[AnalyticsReport]:
        """Return the cached report, or None if absent or expired."""
        ...

    async def set(
        self, plan_id: str, report: AnalyticsReport, ttl_seconds: Optional[float] = None
    ) -> None:
        """Store a report (``ttl_seconds`` None -> cache default)."""
        ...

    async def invalidate(self, plan_id: str) -> bool:
        """Drop the cached report. Returns True if one was present."""
        ...

    async def clear(self) -> None:
        """Drop all entries (test utility)."""
        ...
