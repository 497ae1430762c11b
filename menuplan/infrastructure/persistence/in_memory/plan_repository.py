"""In-memory menu plan repository.

Implementation of IPlanRepository for tests and local development.
"""

import asyncio
from copy import deepcopy
from typing import Any, Dict, List, Optional

from menuplan.domain.planning.models import Plan, PlanFilters
from menuplan.domain.shared.errors import (
    ConcurrentModificationError,
    PlanNotFoundError,
    StateConflictError,
)
from menuplan.domain.shared.value_objects import PlanId


class InMemoryPlanRepository:
    """
    In-memory implementation of IPlanRepository port.

    Persistence: Data lost on process restart
    Concurrency: Writes are serialized by an asyncio.Lock so the version
        check and the replace happen as one step

    Example:
        >>> repository = InMemoryPlanRepository()
        >>> await repository.add(plan)
        >>> submitted = lifecycle.apply(plan, "submit", actor_id, role)
        >>> await repository.save(submitted, expected_version=plan.version)
    """

    def __init__(self) -> None:
        self._storage: Dict[str, Plan] = {}
        self._lock = asyncio.Lock()

    async def get_by_id(self, plan_id: PlanId) -> Optional[Plan]:
        plan = self._storage.get(str(plan_id))
        # Return deep copy to prevent external modifications
        return deepcopy(plan) if plan is not None else None

    async def list(self, filters: Optional[PlanFilters] = None) -> List[Plan]:
        filters = filters or PlanFilters()
        plans = [p for p in self._storage.values() if filters.matches(p)]
        plans.sort(key=lambda p: (p.created_at, str(p.id)), reverse=True)
        return [deepcopy(p) for p in plans]

    async def add(self, plan: Plan) -> None:
        async with self._lock:
            key = str(plan.id)
            if key in self._storage:
                raise StateConflictError(
                    f"Menu plan {key} already exists", context={"plan_id": key}
                )
            self._storage[key] = deepcopy(plan)

    async def save(self, plan: Plan, expected_version: int) -> None:
        async with self._lock:
            key = str(plan.id)
            stored = self._storage.get(key)
            if stored is None:
                raise PlanNotFoundError(key)
            if stored.version != expected_version:
                raise ConcurrentModificationError(key, expected_version)
            self._storage[key] = deepcopy(plan)

    async def update_summary(
        self,
        plan_id: PlanId,
        *,
        total_days: int,
        total_menus: int,
        total_estimated_cost: float,
        average_cost_per_day: float,
    ) -> None:
        await self._patch(
            plan_id,
            total_days=total_days,
            total_menus=total_menus,
            total_estimated_cost=total_estimated_cost,
            average_cost_per_day=average_cost_per_day,
        )

    async def update_scores(
        self,
        plan_id: PlanId,
        *,
        nutrition_score: Optional[float],
        variety_score: Optional[float],
        cost_efficiency: Optional[float],
    ) -> None:
        await self._patch(
            plan_id,
            nutrition_score=nutrition_score,
            variety_score=variety_score,
            cost_efficiency=cost_efficiency,
        )

    async def _patch(self, plan_id: PlanId, **fields: Any) -> None:
        # Derived fields only, version untouched
        async with self._lock:
            key = str(plan_id)
            stored = self._storage.get(key)
            if stored is None:
                raise PlanNotFoundError(key)
            self._storage[key] = stored.model_copy(update=fields, deep=True)

    async def delete(self, plan_id: PlanId, expected_version: int) -> bool:
        async with self._lock:
            key = str(plan_id)
            stored = self._storage.get(key)
            if stored is None:
                return False
            if stored.version != expected_version:
                raise ConcurrentModificationError(key, expected_version)
            del self._storage[key]
            return True

    def clear(self) -> None:
        """Clear all plans (test utility)."""
        self._storage.clear()

    def count(self) -> int:
        return len(self._storage)
