"""
In-memory analytics report cache.

Per-process cache of analytics reports with a TTL. Entries are dropped on
expiry or when the workflow façade invalidates them after a plan change.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Tuple

import structlog

from menuplan.config import DEFAULT_ANALYTICS_CACHE_TTL_S
from menuplan.domain.analytics.report import AnalyticsReport

logger = structlog.get_logger(__name__)


class InMemoryReportCache:
    """In-memory implementation of IReportCache.

    NOT shared between processes; each worker keeps its own entries.
    """

    def __init__(
        self,
        default_ttl_seconds: float = DEFAULT_ANALYTICS_CACHE_TTL_S,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        # Storage: plan_id -> (report, expiration_time)
        self._cache: Dict[str, Tuple[AnalyticsReport, datetime]] = {}
        self._default_ttl = default_ttl_seconds
        self._clock = clock

    async def get(self, plan_id: str) -> Optional[AnalyticsReport]:
        entry = self._cache.get(plan_id)
        if entry is None:
            logger.debug("report_cache_miss", plan_id=plan_id)
            return None

        report, expiration = entry
        if self._clock() > expiration:
            del self._cache[plan_id]
            logger.debug("report_cache_expired", plan_id=plan_id)
            return None

        logger.debug("report_cache_hit", plan_id=plan_id)
        return report

    async def set(
        self, plan_id: str, report: AnalyticsReport, ttl_seconds: Optional[float] = None
    ) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        self._cache[plan_id] = (report, self._clock() + timedelta(seconds=ttl))
        logger.debug("report_cached", plan_id=plan_id, ttl_seconds=ttl)

    async def invalidate(self, plan_id: str) -> bool:
        removed = self._cache.pop(plan_id, None) is not None
        if removed:
            logger.debug("report_cache_invalidated", plan_id=plan_id)
        return removed

    async def clear(self) -> None:
        self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns number removed."""
        now = self._clock()
        expired = [key for key, (_, expiration) in self._cache.items() if now > expiration]
        for key in expired:
            del self._cache[key]
        return len(expired)
