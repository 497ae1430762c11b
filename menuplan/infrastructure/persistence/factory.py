"""Repository Factory for Persistence Layer.

Environment-based repository selection.
Strategy:
- .env (runtime): REPOSITORY_BACKEND=mongodb (production persistence)
- tests: REPOSITORY_BACKEND=inmemory (fast, isolated)
- Default: inmemory (safe fallback if env vars not set)

Usage:
    from menuplan.infrastructure.persistence.factory import get_repositories

    repos = get_repositories()   # Singleton bundle
    plan = await repos.plans.get_by_id(plan_id)
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient

from menuplan.config import get_mongodb_database, get_mongodb_uri, get_repository_backend
from menuplan.domain.ports.repositories import (
    IAssignmentRepository,
    IAuditLogRepository,
    ICatalogRepository,
    IPlanRepository,
)
from menuplan.infrastructure.persistence.in_memory import (
    InMemoryAssignmentRepository,
    InMemoryAuditLogRepository,
    InMemoryCatalogRepository,
    InMemoryPlanRepository,
)
from menuplan.infrastructure.persistence.mongodb import (
    MongoAssignmentRepository,
    MongoAuditLogRepository,
    MongoCatalogRepository,
    MongoPlanRepository,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Repositories:
    """All repositories the workflow façade needs, from one backend."""

    plans: IPlanRepository
    assignments: IAssignmentRepository
    audit_log: IAuditLogRepository
    catalog: ICatalogRepository


def create_repositories(backend: Optional[str] = None) -> Repositories:
    """Create repositories based on REPOSITORY_BACKEND env var.

    Values:
        - "inmemory": In-memory repositories (default, fast, transient)
        - "mongodb": MongoDB repositories (persistent, requires MONGODB_URI)

    Raises:
        ValueError: If mongodb selected but MONGODB_URI not set, or the
            backend name is unknown
    """
    mode = (backend or get_repository_backend()).lower()

    if mode == "mongodb":
        mongodb_uri = get_mongodb_uri()
        if not mongodb_uri:
            raise ValueError(
                "REPOSITORY_BACKEND=mongodb but MONGODB_URI not set. "
                "Set MONGODB_URI in .env or use REPOSITORY_BACKEND=inmemory"
            )
        client: AsyncIOMotorClient = AsyncIOMotorClient(mongodb_uri, tz_aware=True)
        db = client[get_mongodb_database()]
        logger.info("repositories_created", backend="mongodb", database=get_mongodb_database())
        return Repositories(
            plans=MongoPlanRepository(db),
            assignments=MongoAssignmentRepository(db),
            audit_log=MongoAuditLogRepository(db),
            catalog=MongoCatalogRepository(db),
        )

    if mode != "inmemory":
        raise ValueError(f"Unknown REPOSITORY_BACKEND: {mode!r} (expected inmemory or mongodb)")

    logger.info("repositories_created", backend="inmemory")
    return Repositories(
        plans=InMemoryPlanRepository(),
        assignments=InMemoryAssignmentRepository(),
        audit_log=InMemoryAuditLogRepository(),
        catalog=InMemoryCatalogRepository(),
    )


# Singleton instance (lazy initialization)
_repositories: Optional[Repositories] = None


def get_repositories() -> Repositories:
    """Get singleton repository bundle."""
    global _repositories
    if _repositories is None:
        _repositories = create_repositories()
    return _repositories


def reset_repositories() -> None:
    """Reset singleton so the next call re-reads the environment (test utility)."""
    global _repositories
    _repositories = None
