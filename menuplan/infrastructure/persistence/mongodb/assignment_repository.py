"""MongoDB menu assignment repository.

Storage design:
- Collection: menu_assignments
- Unique index on assignment_id
- Unique compound index on (plan_id, assigned_date, meal_type): the slot
  invariant lives in the database, a duplicate insert fails atomically
"""

from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from menuplan.domain.planning.models import Assignment, AssignmentFilters
from menuplan.domain.shared.errors import AssignmentNotFoundError, SlotOccupiedError
from menuplan.domain.shared.value_objects import AssignmentId, PlanId
from menuplan.infrastructure.persistence.mongodb.base import IndexSpec, MongoBaseRepository, to_bson


class MongoAssignmentRepository(MongoBaseRepository[Assignment]):
    """MongoDB implementation of IAssignmentRepository."""

    @property
    def collection_name(self) -> str:
        return "menu_assignments"

    @property
    def indexes(self) -> List[IndexSpec]:
        return [
            ("assignment_id", {"unique": True, "name": "unique_assignment_id"}),
            (
                [("plan_id", 1), ("assigned_date", 1), ("meal_type", 1)],
                {"unique": True, "name": "unique_plan_slot"},
            ),
        ]

    def to_document(self, entity: Assignment) -> Dict[str, Any]:
        doc = to_bson(entity)
        doc["assignment_id"] = doc.pop("id")
        return doc

    def from_document(self, doc: Dict[str, Any]) -> Assignment:
        data = self._strip_id(doc)
        data["id"] = data.pop("assignment_id")
        return Assignment.model_validate(data)

    async def get_by_id(self, assignment_id: AssignmentId) -> Optional[Assignment]:
        doc = await self._find_one({"assignment_id": assignment_id.value})
        return self.from_document(doc) if doc is not None else None

    async def list_by_plan(
        self, plan_id: PlanId, filters: Optional[AssignmentFilters] = None
    ) -> List[Assignment]:
        filters = filters or AssignmentFilters()
        query: Dict[str, Any] = {"plan_id": plan_id.value}

        date_range: Dict[str, Any] = {}
        if filters.start_date is not None:
            date_range["$gte"] = filters.start_date.isoformat()
        if filters.end_date is not None:
            date_range["$lte"] = filters.end_date.isoformat()
        if date_range:
            query["assigned_date"] = date_range
        if filters.meal_type is not None:
            query["meal_type"] = filters.meal_type.value

        docs = await self._find_many(query)
        # Meal type order is not alphabetical, sort after mapping
        return sorted((self.from_document(doc) for doc in docs), key=lambda a: a.sort_key)

    async def count_by_plan(self, plan_id: PlanId) -> int:
        await self._ensure_indexes()
        return await self._collection.count_documents({"plan_id": plan_id.value})

    async def add(self, assignment: Assignment) -> None:
        await self._ensure_indexes()
        try:
            await self._collection.insert_one(self.to_document(assignment))
        except DuplicateKeyError:
            raise SlotOccupiedError(
                str(assignment.plan_id), assignment.assigned_date, assignment.meal_type.value
            ) from None

    async def save(self, assignment: Assignment) -> None:
        await self._ensure_indexes()
        doc = self.to_document(assignment)
        try:
            result = await self._collection.update_one(
                {"assignment_id": doc["assignment_id"]},
                {"$set": doc},
            )
        except DuplicateKeyError:
            raise SlotOccupiedError(
                str(assignment.plan_id), assignment.assigned_date, assignment.meal_type.value
            ) from None
        if result.matched_count == 0:
            raise AssignmentNotFoundError(doc["assignment_id"])

    async def delete(self, assignment_id: AssignmentId) -> bool:
        await self._ensure_indexes()
        result = await self._collection.delete_one({"assignment_id": assignment_id.value})
        return result.deleted_count > 0

    async def delete_by_plan(self, plan_id: PlanId) -> int:
        await self._ensure_indexes()
        result = await self._collection.delete_many({"plan_id": plan_id.value})
        return result.deleted_count
