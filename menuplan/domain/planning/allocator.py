"""
Assignment allocator.

Places menus into (date, meal type) slots of a plan and keeps the slot
invariants:

- a plan holds at most one assignment per (date, meal type)
- assignment dates lie inside the plan range
- assignments only change while the plan is editable for the actor

The allocator never touches plan status; the workflow façade reads its
state (assignment count) before asking the lifecycle to transition.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from menuplan.domain.planning.enums import ActorRole, AssignmentStatus, MealType
from menuplan.domain.planning.events import (
    AssignmentCreated,
    AssignmentDeleted,
    AssignmentUpdated,
)
from menuplan.domain.planning.lifecycle import ensure_editable
from menuplan.domain.planning.models import (
    MAX_NOTES_LENGTH,
    MAX_PORTIONS,
    Assignment,
    AssignmentFilters,
    Menu,
    Plan,
    utc_now,
)
from menuplan.domain.planning.rules import AllowedMealTypesRule, find_rule
from menuplan.domain.ports.event_bus import IEventBus
from menuplan.domain.ports.repositories import (
    IAssignmentRepository,
    ICatalogRepository,
    IPlanRepository,
)
from menuplan.domain.shared.errors import (
    AssignmentNotFoundError,
    DateOutOfRangeError,
    InvalidPortionsError,
    MenuNotFoundError,
    PlanNotFoundError,
    SlotOccupiedError,
    ValidationError,
)
from menuplan.domain.shared.value_objects import AssignmentId, MenuId, PlanId

logger = structlog.get_logger(__name__)

# Fields a patch may change but never clear
REQUIRED_ASSIGNMENT_FIELDS = (
    "menu_id",
    "assigned_date",
    "meal_type",
    "planned_portions",
    "status",
    "is_substitute",
)


class AssignmentPatch(BaseModel):
    """
    Partial update of an assignment.

    Only fields explicitly set are applied (``model_fields_set``), so
    ``notes=None`` clears the notes while omitting ``notes`` keeps them.
    """

    model_config = ConfigDict(extra="forbid")

    menu_id: Optional[MenuId] = None
    assigned_date: Optional[date] = None
    meal_type: Optional[MealType] = None
    planned_portions: Optional[int] = None
    notes: Optional[str] = None
    status: Optional[AssignmentStatus] = None
    is_substitute: Optional[bool] = None
    actual_portions: Optional[int] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)


def parse_meal_type(raw: Union[str, MealType]) -> MealType:
    try:
        return MealType(raw)
    except ValueError:
        raise ValidationError(
            f"Unknown meal type: {raw!r}", context={"meal_type": str(raw)}
        ) from None


def _check_portions(portions: int) -> None:
    is_int = isinstance(portions, int) and not isinstance(portions, bool)
    if not is_int or not 1 <= portions <= MAX_PORTIONS:
        raise InvalidPortionsError(
            f"Planned portions must be between 1 and {MAX_PORTIONS}, got {portions!r}",
            context={"planned_portions": portions},
        )


def _check_notes(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"Notes must be at most {MAX_NOTES_LENGTH} characters")
    return notes or None


class AssignmentAllocator:
    """
    Creates, updates, deletes and lists assignments.

    Flow for every mutation:
    1. Resolve the plan (and menu) and check editability for the actor role
    2. Validate date range, portions, menu/slot meal type and rules
    3. Check slot occupancy (the repository re-checks atomically on write)
    4. Persist
    5. Publish the corresponding domain event
    """

    def __init__(
        self,
        plan_repository: IPlanRepository,
        assignment_repository: IAssignmentRepository,
        catalog_repository: ICatalogRepository,
        event_bus: IEventBus,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._plans = plan_repository
        self._assignments = assignment_repository
        self._catalog = catalog_repository
        self._event_bus = event_bus
        self._clock = clock

    # ═══════════════════════════════════════════════════════════
    # VALIDATION
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def _validate_placement(
        plan: Plan, menu: Menu, assigned_date: date, meal_type: MealType
    ) -> None:
        if not plan.contains(assigned_date):
            raise DateOutOfRangeError(assigned_date, plan.start_date, plan.end_date)

        if menu.program_id != plan.program_id:
            raise ValidationError(
                f"Menu {menu.id} does not belong to program {plan.program_id}",
                context={"menu_id": str(menu.id), "program_id": str(plan.program_id)},
            )

        if menu.meal_type is not None and menu.meal_type != meal_type:
            raise ValidationError(
                f"Menu meal type {menu.meal_type.value} does not match slot {meal_type.value}",
                context={"menu_id": str(menu.id), "meal_type": meal_type.value},
            )

        allowed = find_rule(plan.planning_rules, AllowedMealTypesRule)
        if allowed is not None and not allowed.allows(meal_type):
            raise ValidationError(
                f"Meal type {meal_type.value} is not allowed by the plan rules",
                context={
                    "meal_type": meal_type.value,
                    "allowed": ",".join(m.value for m in allowed.meal_types),
                },
            )

    async def _ensure_slot_free(
        self,
        plan_id: PlanId,
        assigned_date: date,
        meal_type: MealType,
        exclude: Optional[AssignmentId] = None,
    ) -> None:
        occupants = await self._assignments.list_by_plan(
            plan_id,
            AssignmentFilters(
                start_date=assigned_date, end_date=assigned_date, meal_type=meal_type
            ),
        )
        if any(a.id != exclude for a in occupants):
            raise SlotOccupiedError(str(plan_id), assigned_date, meal_type.value)

    async def _get_plan(self, plan_id: PlanId) -> Plan:
        plan = await self._plans.get_by_id(plan_id)
        if plan is None:
            raise PlanNotFoundError(str(plan_id))
        return plan

    async def _get_menu(self, menu_id: MenuId) -> Menu:
        menu = await self._catalog.get_menu(menu_id)
        if menu is None:
            raise MenuNotFoundError(str(menu_id))
        return menu

    async def _get_assignment(self, assignment_id: AssignmentId) -> Assignment:
        assignment = await self._assignments.get_by_id(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(str(assignment_id))
        return assignment

    # ═══════════════════════════════════════════════════════════
    # OPERATIONS
    # ═══════════════════════════════════════════════════════════

    async def create_assignment(
        self,
        plan: Plan,
        menu: Menu,
        assigned_date: date,
        meal_type: Union[str, MealType],
        planned_portions: int,
        actor_role: Union[str, ActorRole],
        notes: Optional[str] = None,
        is_substitute: bool = False,
    ) -> Assignment:
        """
        Place a menu into an empty slot.

        Returns:
            The persisted assignment

        Raises:
            PermissionDeniedError: Unknown role
            PlanNotEditableError: Plan status does not allow edits for role
            DateOutOfRangeError: Date outside plan range
            ValidationError: Bad portions, notes, menu/slot mismatch or
                meal type forbidden by the plan rules
            SlotOccupiedError: Slot already holds an assignment
        """
        role = ActorRole.parse(actor_role)
        ensure_editable(plan, role)
        slot_meal_type = parse_meal_type(meal_type)
        self._validate_placement(plan, menu, assigned_date, slot_meal_type)
        _check_portions(planned_portions)
        notes = _check_notes(notes)

        await self._ensure_slot_free(plan.id, assigned_date, slot_meal_type)

        now = self._clock()
        assignment = Assignment(
            id=AssignmentId.generate(),
            plan_id=plan.id,
            menu_id=menu.id,
            assigned_date=assigned_date,
            meal_type=slot_meal_type,
            planned_portions=planned_portions,
            estimated_cost=menu.cost_per_serving * planned_portions,
            nutrition=menu.nutrition,
            ingredient_ids=menu.ingredient_ids,
            is_substitute=is_substitute,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        await self._assignments.add(assignment)

        await self._event_bus.publish(
            AssignmentCreated.create(
                plan_id=str(plan.id),
                assignment_id=str(assignment.id),
                assigned_date=assigned_date,
                meal_type=slot_meal_type.value,
            )
        )
        logger.info(
            "assignment_created",
            plan_id=str(plan.id),
            assignment_id=str(assignment.id),
            assigned_date=assigned_date.isoformat(),
            meal_type=slot_meal_type.value,
            estimated_cost=assignment.estimated_cost,
        )
        return assignment

    async def update_assignment(
        self,
        assignment_id: AssignmentId,
        patch: AssignmentPatch,
        actor_role: Union[str, ActorRole],
    ) -> Assignment:
        """
        Apply a partial update.

        Re-validates range and slot occupancy (ignoring the assignment's own
        slot). Cost is recomputed when the menu or the portions change;
        nutrition and ingredients are re-snapshotted only on a menu change.

        Returns:
            Updated assignment (unchanged instance if the patch is a no-op)
        """
        role = ActorRole.parse(actor_role)
        current = await self._get_assignment(assignment_id)
        plan = await self._get_plan(current.plan_id)
        ensure_editable(plan, role)

        requested = {name: getattr(patch, name) for name in patch.model_fields_set}
        changes = {
            name: value for name, value in requested.items() if getattr(current, name) != value
        }
        if not changes:
            return current

        for required in REQUIRED_ASSIGNMENT_FIELDS:
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be cleared", context={"field": required})

        if "notes" in changes:
            changes["notes"] = _check_notes(changes["notes"])
        if "planned_portions" in changes:
            _check_portions(changes["planned_portions"])

        new_date = changes.get("assigned_date", current.assigned_date)
        new_meal_type = changes.get("meal_type", current.meal_type)
        new_portions = changes.get("planned_portions", current.planned_portions)

        placement_changed = {"menu_id", "assigned_date", "meal_type"} & changes.keys()
        cost_changed = {"menu_id", "planned_portions"} & changes.keys()

        menu: Optional[Menu] = None
        if placement_changed or cost_changed:
            menu = await self._get_menu(changes.get("menu_id", current.menu_id))
        if placement_changed and menu is not None:
            self._validate_placement(plan, menu, new_date, new_meal_type)
        if {"assigned_date", "meal_type"} & changes.keys():
            await self._ensure_slot_free(plan.id, new_date, new_meal_type, exclude=current.id)

        if cost_changed and menu is not None:
            changes["estimated_cost"] = menu.cost_per_serving * new_portions
        if "menu_id" in changes and menu is not None:
            # Snapshots follow the menu, never later edits of the same menu
            changes["nutrition"] = menu.nutrition
            changes["ingredient_ids"] = menu.ingredient_ids

        updated = current.model_copy(update={**changes, "updated_at": self._clock()}, deep=True)
        await self._assignments.save(updated)

        updated_fields = tuple(sorted(changes))
        await self._event_bus.publish(
            AssignmentUpdated.create(
                plan_id=str(plan.id),
                assignment_id=str(updated.id),
                updated_fields=updated_fields,
            )
        )
        logger.info(
            "assignment_updated",
            plan_id=str(plan.id),
            assignment_id=str(updated.id),
            updated_fields=list(updated_fields),
        )
        return updated

    async def delete_assignment(
        self,
        assignment_id: AssignmentId,
        actor_role: Union[str, ActorRole],
    ) -> Assignment:
        """
        Hard delete an assignment.

        Returns:
            The deleted assignment
        """
        role = ActorRole.parse(actor_role)
        assignment = await self._get_assignment(assignment_id)
        plan = await self._get_plan(assignment.plan_id)
        ensure_editable(plan, role)

        deleted = await self._assignments.delete(assignment_id)
        if not deleted:
            # Removed concurrently between read and delete
            raise AssignmentNotFoundError(str(assignment_id))

        await self._event_bus.publish(
            AssignmentDeleted.create(plan_id=str(plan.id), assignment_id=str(assignment_id))
        )
        logger.info("assignment_deleted", plan_id=str(plan.id), assignment_id=str(assignment_id))
        return assignment

    async def list_assignments(
        self,
        plan_id: PlanId,
        filters: Optional[AssignmentFilters] = None,
    ) -> List[Assignment]:
        """Assignments of a plan, ordered by (date, meal type order, id)."""
        assignments = await self._assignments.list_by_plan(plan_id, filters)
        return sorted(assignments, key=lambda a: a.sort_key)
