"""Menu planning commands.

Immutable inputs of the workflow façade. Ids and the actor role arrive as
plain strings from the transport layer; the façade parses them.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Optional, Sequence


@dataclass(frozen=True)
class CreatePlanCommand:
    """
    Command: Create a DRAFT plan.

    Attributes:
        program_id: Owning program
        name: 3..100 characters
        start_date / end_date: Inclusive range, end strictly after start
        actor_id / actor_role: Creator (role must hold WRITE)
        planning_rules: Rule list or legacy rule dict, None for no rules
    """

    program_id: str
    name: str
    start_date: date
    end_date: date
    actor_id: str
    actor_role: str
    description: Optional[str] = None
    planning_rules: Any = None


@dataclass(frozen=True)
class UpdatePlanCommand:
    """
    Command: Edit plan header fields.

    ``changes`` may hold ``name``, ``description``, ``start_date``,
    ``end_date`` and ``planning_rules``. Absent keys are left untouched.
    """

    plan_id: str
    actor_id: str
    actor_role: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeletePlanCommand:
    plan_id: str
    actor_id: str
    actor_role: str


@dataclass(frozen=True)
class TransitionPlanCommand:
    """
    Command: Move a plan through the lifecycle.

    The action is chosen by the façade method (submit_plan, approve_plan...).

    Attributes:
        reason: Rejection reason, required by reject only
        notes: Optional notes appended to the description (submit, approve,
            publish)
    """

    plan_id: str
    actor_id: str
    actor_role: str
    reason: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class CreateAssignmentCommand:
    """Command: Place a menu into an empty (date, meal type) slot."""

    plan_id: str
    menu_id: str
    assigned_date: date
    meal_type: str
    planned_portions: int
    actor_id: str
    actor_role: str
    notes: Optional[str] = None
    is_substitute: bool = False


@dataclass(frozen=True)
class UpdateAssignmentCommand:
    """
    Command: Patch an assignment.

    ``changes`` keys follow :class:`AssignmentPatch`; unknown keys are a
    validation failure.
    """

    assignment_id: str
    actor_id: str
    actor_role: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeleteAssignmentCommand:
    assignment_id: str
    actor_id: str
    actor_role: str


@dataclass(frozen=True)
class AutoFillPlanCommand:
    """
    Command: Fill every empty slot of the given meal types.

    Attributes:
        meal_types: Meal type names to fill
        planned_portions: Portions for each created assignment
        seed: Random seed; the same seed over the same plan and catalog
            yields the same assignments
    """

    plan_id: str
    actor_id: str
    actor_role: str
    meal_types: Sequence[str]
    planned_portions: int
    seed: Optional[int] = None
