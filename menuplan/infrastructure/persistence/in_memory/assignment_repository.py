"""In-memory menu assignment repository.

Keeps a slot index next to the storage so slot occupancy is enforced at
the storage layer, the same way the MongoDB adapter relies on a unique
compound index.
"""

import asyncio
from copy import deepcopy
from datetime import date
from typing import Dict, List, Optional, Tuple

from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import Assignment, AssignmentFilters
from menuplan.domain.shared.errors import AssignmentNotFoundError, SlotOccupiedError
from menuplan.domain.shared.value_objects import AssignmentId, PlanId

SlotKey = Tuple[str, date, MealType]


class InMemoryAssignmentRepository:
    """
    In-memory implementation of IAssignmentRepository port.

    Concurrency: The occupancy check and the write run under one
        asyncio.Lock, so two concurrent inserts into the same slot cannot
        both succeed
    """

    def __init__(self) -> None:
        self._storage: Dict[str, Assignment] = {}
        self._slots: Dict[SlotKey, str] = {}
        self._lock = asyncio.Lock()

    async def get_by_id(self, assignment_id: AssignmentId) -> Optional[Assignment]:
        assignment = self._storage.get(str(assignment_id))
        return deepcopy(assignment) if assignment is not None else None

    async def list_by_plan(
        self, plan_id: PlanId, filters: Optional[AssignmentFilters] = None
    ) -> List[Assignment]:
        filters = filters or AssignmentFilters()
        matches = [
            a for a in self._storage.values() if a.plan_id == plan_id and filters.matches(a)
        ]
        matches.sort(key=lambda a: a.sort_key)
        return [deepcopy(a) for a in matches]

    async def count_by_plan(self, plan_id: PlanId) -> int:
        return sum(1 for a in self._storage.values() if a.plan_id == plan_id)

    async def add(self, assignment: Assignment) -> None:
        async with self._lock:
            slot = assignment.slot
            if slot in self._slots:
                raise SlotOccupiedError(*_slot_args(slot))
            key = str(assignment.id)
            self._storage[key] = deepcopy(assignment)
            self._slots[slot] = key

    async def save(self, assignment: Assignment) -> None:
        async with self._lock:
            key = str(assignment.id)
            stored = self._storage.get(key)
            if stored is None:
                raise AssignmentNotFoundError(key)

            new_slot = assignment.slot
            owner = self._slots.get(new_slot)
            if owner is not None and owner != key:
                raise SlotOccupiedError(*_slot_args(new_slot))

            del self._slots[stored.slot]
            self._slots[new_slot] = key
            self._storage[key] = deepcopy(assignment)

    async def delete(self, assignment_id: AssignmentId) -> bool:
        async with self._lock:
            stored = self._storage.pop(str(assignment_id), None)
            if stored is None:
                return False
            self._slots.pop(stored.slot, None)
            return True

    async def delete_by_plan(self, plan_id: PlanId) -> int:
        async with self._lock:
            keys = [key for key, a in self._storage.items() if a.plan_id == plan_id]
            for key in keys:
                stored = self._storage.pop(key)
                self._slots.pop(stored.slot, None)
            return len(keys)

    def clear(self) -> None:
        """Clear all assignments (test utility)."""
        self._storage.clear()
        self._slots.clear()


def _slot_args(slot: SlotKey) -> Tuple[str, date, str]:
    plan_id, assigned_date, meal_type = slot
    return plan_id, assigned_date, meal_type.value
