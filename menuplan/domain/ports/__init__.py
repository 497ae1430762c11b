"""Domain ports: interfaces implemented by infrastructure adapters."""

from menuplan.domain.ports.event_bus import EventHandler, IEventBus
from menuplan.domain.ports.report_cache import IReportCache
from menuplan.domain.ports.repositories import (
    IAssignmentRepository,
    IAuditLogRepository,
    ICatalogRepository,
    IPlanRepository,
)

__all__ = [
    "EventHandler",
    "IAssignmentRepository",
    "IAuditLogRepository",
    "ICatalogRepository",
    "IEventBus",
    "IPlanRepository",
    "IReportCache",
]
