"""MongoDB menu plan repository.

Storage design:
- Collection: menu_plans
- Unique index on plan_id
- Index on (program_id, status) for listing and the overlap check
- Index on created_at DESC (newest first listing)

``save`` and ``delete`` are compare-and-set: the filter includes the version the
caller read, so a concurrent writer makes the operation match nothing.
"""

import re
from typing import Any, Dict, List, Optional

import structlog
from pymongo.errors import DuplicateKeyError

from menuplan.domain.planning.models import Plan, PlanFilters
from menuplan.domain.shared.errors import (
    ConcurrentModificationError,
    PlanNotFoundError,
    StateConflictError,
)
from menuplan.domain.shared.value_objects import PlanId
from menuplan.infrastructure.persistence.mongodb.base import IndexSpec, MongoBaseRepository, to_bson

logger = structlog.get_logger(__name__)


class MongoPlanRepository(MongoBaseRepository[Plan]):
    """MongoDB implementation of IPlanRepository."""

    @property
    def collection_name(self) -> str:
        return "menu_plans"

    @property
    def indexes(self) -> List[IndexSpec]:
        return [
            ("plan_id", {"unique": True, "name": "unique_plan_id"}),
            ([("program_id", 1), ("status", 1)], {"name": "idx_program_status"}),
            ([("created_at", -1)], {"name": "idx_created_at"}),
        ]

    def to_document(self, entity: Plan) -> Dict[str, Any]:
        doc = to_bson(entity)
        doc["plan_id"] = doc.pop("id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> Plan:
        data = self._strip_id(doc)
        data["id"] = data.pop("plan_id")
        return Plan.model_validate(data)

    @staticmethod
    def _build_query(filters: PlanFilters) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if filters.program_id is not None:
            query["program_id"] = filters.program_id.value
        if filters.status is not None:
            query["status"] = filters.status.value
        elif not filters.include_archived:
            query["is_archived"] = {"$ne": True}

        start: Dict[str, Any] = {}
        if filters.start_from is not None:
            start["$gte"] = filters.start_from.isoformat()
        if filters.start_to is not None:
            start["$lte"] = filters.start_to.isoformat()
        if start:
            query["start_date"] = start

        if filters.search:
            pattern = {"$regex": re.escape(filters.search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"description": pattern}]
        return query

    async def get_by_id(self, plan_id: PlanId) -> Optional[Plan]:
        doc = await self._find_one({"plan_id": plan_id.value})
        return self.from_document(doc) if doc is not None else None

    async def list(self, filters: Optional[PlanFilters] = None) -> List[Plan]:
        docs = await self._find_many(
            self._build_query(filters or PlanFilters()),
            sort=[("created_at", -1), ("plan_id", -1)],
        )
        return [self.from_document(doc) for doc in docs]

    async def add(self, plan: Plan) -> None:
        await self._ensure_indexes()
        try:
            await self._collection.insert_one(self.to_document(plan))
        except DuplicateKeyError:
            raise StateConflictError(
                f"Menu plan {plan.id} already exists", context={"plan_id": str(plan.id)}
            ) from None

    async def save(self, plan: Plan, expected_version: int) -> None:
        await self._ensure_indexes()
        doc = self.to_document(plan)
        result = await self._collection.update_one(
            {"plan_id": doc["plan_id"], "version": expected_version},
            {"$set": doc},
        )
        if result.matched_count == 0:
            exists = await self._collection.find_one({"plan_id": doc["plan_id"]}, {"version": 1})
            if exists is None:
                raise PlanNotFoundError(doc["plan_id"])
            logger.warning(
                "plan_version_conflict",
                plan_id=doc["plan_id"],
                expected_version=expected_version,
                stored_version=exists.get("version"),
            )
            raise ConcurrentModificationError(doc["plan_id"], expected_version)

    async def update_summary(
        self,
        plan_id: PlanId,
        *,
        total_days: int,
        total_menus: int,
        total_estimated_cost: float,
        average_cost_per_day: float,
    ) -> None:
        await self._set_fields(
            plan_id,
            {
                "total_days": total_days,
                "total_menus": total_menus,
                "total_estimated_cost": total_estimated_cost,
                "average_cost_per_day": average_cost_per_day,
            },
        )

    async def update_scores(
        self,
        plan_id: PlanId,
        *,
        nutrition_score: Optional[float],
        variety_score: Optional[float],
        cost_efficiency: Optional[float],
    ) -> None:
        # None is written as null so a score can be cleared
        await self._set_fields(
            plan_id,
            {
                "nutrition_score": nutrition_score,
                "variety_score": variety_score,
                "cost_efficiency": cost_efficiency,
            },
        )

    async def _set_fields(self, plan_id: PlanId, fields: Dict[str, Any]) -> None:
        await self._ensure_indexes()
        result = await self._collection.update_one({"plan_id": plan_id.value}, {"$set": fields})
        if result.matched_count == 0:
            raise PlanNotFoundError(plan_id.value)

    async def delete(self, plan_id: PlanId, expected_version: int) -> bool:
        await self._ensure_indexes()
        result = await self._collection.delete_one(
            {"plan_id": plan_id.value, "version": expected_version}
        )
        if result.deleted_count > 0:
            return True

        exists = await self._collection.find_one({"plan_id": plan_id.value}, {"version": 1})
        if exists is None:
            return False
        logger.warning(
            "plan_delete_version_conflict",
            plan_id=plan_id.value,
            expected_version=expected_version,
            stored_version=exists.get("version"),
        )
        raise ConcurrentModificationError(plan_id.value, expected_version)
