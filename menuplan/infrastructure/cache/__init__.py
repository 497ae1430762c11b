"""Analytics report cache adapters."""

from menuplan.infrastructure.cache.in_memory_report_cache import InMemoryReportCache

__all__ = ["InMemoryReportCache"]
