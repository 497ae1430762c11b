"""Analytics: pure metrics and the report aggregation engine."""

from menuplan.domain.analytics.engine import AnalyticsEngine
from menuplan.domain.analytics.report import AnalyticsReport

__all__ = ["AnalyticsEngine", "AnalyticsReport"]
