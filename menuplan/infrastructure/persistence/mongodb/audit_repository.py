"""MongoDB audit log repository (collection: menu_plan_audit_log)."""

from typing import Any, Dict, List

from menuplan.domain.planning.models import AuditEntry
from menuplan.domain.shared.value_objects import PlanId
from menuplan.infrastructure.persistence.mongodb.base import IndexSpec, MongoBaseRepository, to_bson


class MongoAuditLogRepository(MongoBaseRepository[AuditEntry]):
    """Append-only MongoDB implementation of IAuditLogRepository."""

    @property
    def collection_name(self) -> str:
        return "menu_plan_audit_log"

    @property
    def indexes(self) -> List[IndexSpec]:
        return [
            ("audit_id", {"unique": True, "name": "unique_audit_id"}),
            ([("plan_id", 1), ("occurred_at", 1)], {"name": "idx_plan_timeline"}),
        ]

    def to_document(self, entity: AuditEntry) -> Dict[str, Any]:
        doc = to_bson(entity)
        doc["audit_id"] = doc.pop("id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> AuditEntry:
        data = self._strip_id(doc)
        data["id"] = data.pop("audit_id")
        return AuditEntry.model_validate(data)

    async def append(self, entry: AuditEntry) -> None:
        await self._ensure_indexes()
        await self._collection.insert_one(self.to_document(entry))

    async def list_by_plan(self, plan_id: PlanId) -> List[AuditEntry]:
        docs = await self._find_many({"plan_id": plan_id.value}, sort=[("occurred_at", 1)])
        return [self.from_document(doc) for doc in docs]
