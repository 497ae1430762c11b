"""In-memory persistence adapters."""

from menuplan.infrastructure.persistence.in_memory.assignment_repository import (
    InMemoryAssignmentRepository,
)
from menuplan.infrastructure.persistence.in_memory.audit_repository import (
    InMemoryAuditLogRepository,
)
from menuplan.infrastructure.persistence.in_memory.catalog_repository import (
    InMemoryCatalogRepository,
)
from menuplan.infrastructure.persistence.in_memory.plan_repository import (
    InMemoryPlanRepository,
)

__all__ = [
    "InMemoryAssignmentRepository",
    "InMemoryAuditLogRepository",
    "InMemoryCatalogRepository",
    "InMemoryPlanRepository",
]
