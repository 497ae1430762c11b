"""MongoDB persistence adapters (motor)."""

from menuplan.infrastructure.persistence.mongodb.assignment_repository import (
    MongoAssignmentRepository,
)
from menuplan.infrastructure.persistence.mongodb.audit_repository import MongoAuditLogRepository
from menuplan.infrastructure.persistence.mongodb.catalog_repository import MongoCatalogRepository
from menuplan.infrastructure.persistence.mongodb.plan_repository import MongoPlanRepository

__all__ = [
    "MongoAssignmentRepository",
    "MongoAuditLogRepository",
    "MongoCatalogRepository",
    "MongoPlanRepository",
]
