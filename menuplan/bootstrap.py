"""Service wiring.

Builds a ready-to-use :class:`MenuPlanningService` from the environment:
repositories from the configured backend, an in-memory event bus and the
analytics report cache.

Usage:
    from menuplan.bootstrap import create_menu_planning_service

    service = create_menu_planning_service()
    result = await service.get_plan("plan_123")
"""

from typing import Optional

import structlog

from menuplan.application.planning.service import MenuPlanningService
from menuplan.config import get_analytics_cache_ttl, get_default_calorie_tolerance, load_environment
from menuplan.domain.analytics.engine import AnalyticsEngine
from menuplan.domain.ports.event_bus import IEventBus
from menuplan.infrastructure.cache.in_memory_report_cache import InMemoryReportCache
from menuplan.infrastructure.events.in_memory_bus import InMemoryEventBus
from menuplan.infrastructure.persistence.factory import Repositories, create_repositories

logger = structlog.get_logger(__name__)


def create_menu_planning_service(
    backend: Optional[str] = None,
    repositories: Optional[Repositories] = None,
    event_bus: Optional[IEventBus] = None,
) -> MenuPlanningService:
    """Create the workflow façade with all dependencies.

    Args:
        backend: Persistence backend override (``inmemory`` | ``mongodb``)
        repositories: Pre-built repository bundle; wins over ``backend``
        event_bus: Shared bus, a fresh InMemoryEventBus by default

    Returns:
        MenuPlanningService
    """
    load_environment()
    repos = repositories or create_repositories(backend)
    bus = event_bus or InMemoryEventBus()
    ttl = get_analytics_cache_ttl()

    service = MenuPlanningService(
        plan_repository=repos.plans,
        assignment_repository=repos.assignments,
        catalog_repository=repos.catalog,
        audit_log_repository=repos.audit_log,
        event_bus=bus,
        report_cache=InMemoryReportCache(default_ttl_seconds=ttl),
        analytics_engine=AnalyticsEngine(default_calorie_tolerance=get_default_calorie_tolerance()),
        cache_ttl_seconds=ttl,
    )
    logger.info("menu_planning_service_created", cache_ttl_s=ttl)
    return service
