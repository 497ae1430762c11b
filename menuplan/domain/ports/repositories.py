"""Repository ports (interfaces).

Contracts for plan, assignment, audit log and catalog persistence.
The domain defines the ports, infrastructure provides the implementations
(in-memory for tests/dev, MongoDB for production).

Atomicity contract:
- ``IPlanRepository.save`` is a compare-and-set on ``plan.version``
- ``IAssignmentRepository.add``/``save`` check slot occupancy and write in
  one atomic step
"""

from typing import List, Optional, Protocol, runtime_checkable

from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import (
    Assignment,
    AssignmentFilters,
    AuditEntry,
    Menu,
    Plan,
    PlanFilters,
    Program,
)
from menuplan.domain.shared.value_objects import (
    AssignmentId,
    MenuId,
    PlanId,
    ProgramId,
)


@runtime_checkable
class IPlanRepository(Protocol):
    """
    Interface for menu plan persistence.

    Example usage (application layer):
        >>> plan = await plan_repository.get_by_id(plan_id)
        >>> submitted = lifecycle.apply(plan, "submit", actor_id, role)
        >>> await plan_repository.save(submitted, expected_version=plan.version)
    """

    async def get_by_id(self, plan_id: PlanId) -> Optional[Plan]:
        """
        Retrieve plan by ID.

        Returns:
            Plan if found, None otherwise
        """
        ...

    async def list(self, filters: Optional[PlanFilters] = None) -> List[Plan]:
        """
        List plans matching filters.

        Returns:
            Plans ordered by created_at descending (newest first)
        """
        ...

    async def add(self, plan: Plan) -> None:
        """
        Insert a new plan.

        Raises:
            StateConflictError: If a plan with the same id exists
        """
        ...

    async def save(self, plan: Plan, expected_version: int) -> None:
        """
        Replace a plan if the stored version equals ``expected_version``.

        Args:
            plan: New plan state (its ``version`` is the new version)
            expected_version: Version the caller read before mutating

        Raises:
            PlanNotFoundError: If the plan does not exist
            ConcurrentModificationError: If the stored version differs
        """
        ...

    async def update_summary(
        self,
        plan_id: PlanId,
        *,
        total_days: int,
        total_menus: int,
        total_estimated_cost: float,
        average_cost_per_day: float,
    ) -> None:
        """
        Write cached aggregates.

        Does not bump ``version``: aggregates are derived data and must not
        invalidate a concurrent reviewer's view.

        Raises:
            PlanNotFoundError: If the plan does not exist
        """
        ...

    async def update_scores(
        self,
        plan_id: PlanId,
        *,
        nutrition_score: Optional[float],
        variety_score: Optional[float],
        cost_efficiency: Optional[float],
    ) -> None:
        """
        Overwrite all three quality scores; None clears a score.

        Does not bump ``version``.

        Raises:
            PlanNotFoundError: If the plan does not exist
        """
        ...

    async def delete(self, plan_id: PlanId, expected_version: int) -> bool:
        """
        Hard delete a plan if it is still at ``expected_version``.

        Returns:
            True if deleted, False if not found

        Raises:
            ConcurrentModificationError: If the stored version differs
        """
        ...


@runtime_checkable
class IAssignmentRepository(Protocol):
    """Interface for menu assignment persistence."""

    async def get_by_id(self, assignment_id: AssignmentId) -> Optional[Assignment]:
        ...

    async def list_by_plan(
        self, plan_id: PlanId, filters: Optional[AssignmentFilters] = None
    ) -> List[Assignment]:
        """
        List assignments of a plan.

        Returns:
            Assignments ordered by (assigned_date, meal type order, id)
        """
        ...

    async def count_by_plan(self, plan_id: PlanId) -> int:
        ...

    async def add(self, assignment: Assignment) -> None:
        """
        Insert an assignment into an empty slot.

        Raises:
            SlotOccupiedError: If (plan_id, assigned_date, meal_type) is taken
        """
        ...

    async def save(self, assignment: Assignment) -> None:
        """
        Replace an existing assignment, possibly moving it to another slot.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist
            SlotOccupiedError: If the target slot belongs to another assignment
        """
        ...

    async def delete(self, assignment_id: AssignmentId) -> bool:
        ...

    async def delete_by_plan(self, plan_id: PlanId) -> int:
        """Delete all assignments of a plan. Returns number deleted."""
        ...


@runtime_checkable
class IAuditLogRepository(Protocol):
    """Append-only audit log of plan mutations."""

    async def append(self, entry: AuditEntry) -> None:
        ...

    async def list_by_plan(self, plan_id: PlanId) -> List[AuditEntry]:
        """Entries of a plan ordered by occurred_at ascending."""
        ...


@runtime_checkable
class ICatalogRepository(Protocol):
    """
    Read-only access to programs and menus.

    Reference data is owned by another bounded context; this package never
    writes it.
    """

    async def get_program(self, program_id: ProgramId) -> Optional[Program]:
        ...

    async def get_menu(self, menu_id: MenuId) -> Optional[Menu]:
        ...

    async def list_menus(
        self, program_id: ProgramId, meal_type: Optional[MealType] = None
    ) -> List[Menu]:
        """
        Menus of a program, optionally limited to one meal type.

        Menus without a meal type are included for every meal type.
        """
        ...
