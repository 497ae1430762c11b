"""
Domain models for menu planning.

Plan and Assignment are the two entities owned by this package. Program and
Menu are read-only reference data supplied by the catalog collaborator.
Nutrition values are stored per serving.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from menuplan.domain.planning.enums import AssignmentStatus, MealType, PlanStatus
from menuplan.domain.planning.rules import PlanningRule, parse_planning_rules
from menuplan.domain.shared.errors import InvalidDateRangeError, InvalidPortionsError
from menuplan.domain.shared.value_objects import (
    ActorId,
    AssignmentId,
    AuditEntryId,
    MenuId,
    PlanId,
    ProgramId,
)

MAX_PORTIONS = 100_000
MAX_NOTES_LENGTH = 500


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_utc(v: Optional[datetime]) -> Optional[datetime]:
    if v is None:
        return None
    if v.tzinfo is None:
        # Naive datetime -> assume UTC
        return v.replace(tzinfo=timezone.utc)
    return v


# ═══════════════════════════════════════════════════════════
# REFERENCE DATA
# ═══════════════════════════════════════════════════════════


class NutritionSnapshot(BaseModel):
    """
    Per-serving nutrition values.

    Captured on the assignment at assignment time so later menu edits do not
    rewrite the history of a plan.
    """

    model_config = ConfigDict(frozen=True)

    calories: float = Field(default=0.0, ge=0, description="Energy in kcal")
    protein: float = Field(default=0.0, ge=0, description="Protein in g")
    carbohydrates: float = Field(default=0.0, ge=0, description="Carbohydrates in g")
    fat: float = Field(default=0.0, ge=0, description="Fat in g")
    fiber: float = Field(default=0.0, ge=0, description="Fiber in g")


class NutritionTargets(BaseModel):
    """Daily nutrition targets of a program."""

    model_config = ConfigDict(frozen=True)

    calories_per_day: float = Field(..., gt=0)
    protein_per_day: float = Field(..., ge=0)
    calorie_tolerance: float = Field(default=0.10, ge=0, le=1, description="Fraction, 0.10 = ±10%")


class Program(BaseModel):
    """Nutrition program that owns plans."""

    model_config = ConfigDict(frozen=True)

    id: ProgramId
    name: str = Field(..., min_length=1)
    target_recipients: Optional[int] = Field(default=None, ge=0)
    nutrition_targets: Optional[NutritionTargets] = None


class Menu(BaseModel):
    """
    Catalog menu.

    ``meal_type`` is optional: menus without one fit any slot.
    """

    model_config = ConfigDict(frozen=True)

    id: MenuId
    program_id: ProgramId
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    meal_type: Optional[MealType] = None
    cost_per_serving: float = Field(default=0.0, ge=0)
    nutrition: NutritionSnapshot = Field(default_factory=NutritionSnapshot)
    ingredient_ids: tuple[str, ...] = ()


# ═══════════════════════════════════════════════════════════
# PLAN
# ═══════════════════════════════════════════════════════════


class Plan(BaseModel):
    """
    Menu plan aggregate.

    A plan covers ``[start_date, end_date]`` for one program and moves through
    the lifecycle in :mod:`menuplan.domain.planning.lifecycle`. Status and its
    audit fields are only ever changed by the lifecycle; everything else by
    the workflow façade.

    Attributes:
        version: Optimistic concurrency token. Bumped on every status change
            or plan edit; the repository rejects writes based on a stale one.
        total_days / total_menus / total_estimated_cost / average_cost_per_day:
            Cached aggregates refreshed after every assignment mutation.
        nutrition_score / variety_score / cost_efficiency: Quality scores,
            None until computed.

    Example:
        >>> plan = Plan.new(
        ...     program_id=ProgramId(value="prog_1"),
        ...     name="November week 1",
        ...     start_date=date(2025, 11, 1),
        ...     end_date=date(2025, 11, 7),
        ...     created_by=ActorId(value="user_1"),
        ... )
        >>> assert plan.status == PlanStatus.DRAFT
        >>> assert plan.calendar_days == 7
    """

    model_config = ConfigDict(validate_assignment=True)

    id: PlanId
    program_id: ProgramId
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    start_date: date
    end_date: date

    status: PlanStatus = PlanStatus.DRAFT
    is_draft: bool = True
    is_active: bool = False
    is_archived: bool = False

    created_by: ActorId
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    # Workflow trail
    submitted_by: Optional[ActorId] = None
    submitted_at: Optional[datetime] = None
    approved_by: Optional[ActorId] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[ActorId] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    published_by: Optional[ActorId] = None
    published_at: Optional[datetime] = None
    archived_by: Optional[ActorId] = None
    archived_at: Optional[datetime] = None
    cancelled_by: Optional[ActorId] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Cached aggregates
    total_days: int = Field(default=0, ge=0)
    total_menus: int = Field(default=0, ge=0)
    total_estimated_cost: float = Field(default=0.0, ge=0)
    average_cost_per_day: float = Field(default=0.0, ge=0)

    # Quality scores
    nutrition_score: Optional[float] = Field(default=None, ge=0, le=100)
    variety_score: Optional[float] = Field(default=None, ge=0, le=100)
    cost_efficiency: Optional[float] = Field(default=None, ge=0, le=100)

    planning_rules: list[PlanningRule] = Field(default_factory=list)
    version: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Plan name cannot be empty or whitespace")
        return v.strip()

    @field_validator("planning_rules", mode="before")
    @classmethod
    def parse_rules(cls, v: Any) -> list[PlanningRule]:
        return parse_planning_rules(v)

    @field_validator(
        "created_at",
        "updated_at",
        "submitted_at",
        "approved_at",
        "rejected_at",
        "published_at",
        "archived_at",
        "cancelled_at",
        "completed_at",
    )
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _ensure_utc(v)

    @model_validator(mode="after")
    def check_date_range(self) -> "Plan":
        if self.end_date <= self.start_date:
            raise InvalidDateRangeError(self.start_date, self.end_date)
        return self

    @classmethod
    def new(
        cls,
        program_id: ProgramId,
        name: str,
        start_date: date,
        end_date: date,
        created_by: ActorId,
        description: Optional[str] = None,
        planning_rules: Any = None,
    ) -> "Plan":
        """Create a fresh DRAFT plan, validating the date range first."""
        if end_date <= start_date:
            raise InvalidDateRangeError(start_date, end_date)
        now = utc_now()
        return cls(
            id=PlanId.generate(),
            program_id=program_id,
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            created_by=created_by,
            created_at=now,
            updated_at=now,
            planning_rules=planning_rules,
        )

    @property
    def calendar_days(self) -> int:
        """Number of calendar days in the inclusive range."""
        return (self.end_date - self.start_date).days + 1

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def iter_days(self) -> list[date]:
        return [self.start_date + timedelta(days=i) for i in range(self.calendar_days)]

    def overlaps(self, other: "Plan") -> bool:
        return self.start_date <= other.end_date and self.end_date >= other.start_date


class PlanFilters(BaseModel):
    """
    Plan listing filters.

    ``start_from``/``start_to`` bound the plan's start date. Archived plans
    are excluded unless requested or filtered on explicitly.
    """

    model_config = ConfigDict(frozen=True)

    program_id: Optional[ProgramId] = None
    status: Optional[PlanStatus] = None
    start_from: Optional[date] = None
    start_to: Optional[date] = None
    search: Optional[str] = None
    include_archived: bool = False

    def matches(self, plan: Plan) -> bool:
        if self.program_id is not None and plan.program_id != self.program_id:
            return False
        if self.status is not None and plan.status != self.status:
            return False
        if self.status is None and not self.include_archived and plan.is_archived:
            return False
        if self.start_from is not None and plan.start_date < self.start_from:
            return False
        if self.start_to is not None and plan.start_date > self.start_to:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = f"{plan.name}\n{plan.description or ''}".lower()
            if needle not in haystack:
                return False
        return True


# ═══════════════════════════════════════════════════════════
# ASSIGNMENT
# ═══════════════════════════════════════════════════════════


class Assignment(BaseModel):
    """
    One menu placed into one (date, meal type) slot of a plan.

    At most one assignment exists per (plan_id, assigned_date, meal_type).
    ``estimated_cost`` is ``menu.cost_per_serving * planned_portions`` at the
    time the menu or portions were last set.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: AssignmentId
    plan_id: PlanId
    menu_id: MenuId
    assigned_date: date
    meal_type: MealType
    planned_portions: int
    estimated_cost: float = Field(default=0.0, ge=0)
    nutrition: NutritionSnapshot = Field(default_factory=NutritionSnapshot)
    ingredient_ids: tuple[str, ...] = ()

    status: AssignmentStatus = AssignmentStatus.PLANNED
    is_substitute: bool = False
    actual_portions: Optional[int] = Field(default=None, ge=0)
    actual_cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("planned_portions")
    @classmethod
    def portions_in_range(cls, v: int) -> int:
        if v < 1 or v > MAX_PORTIONS:
            raise InvalidPortionsError(
                f"Planned portions must be between 1 and {MAX_PORTIONS}, got {v}"
            )
        return v

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)  # type: ignore[return-value]

    @property
    def slot(self) -> tuple[str, date, MealType]:
        """Uniqueness key of the assignment."""
        return (str(self.plan_id), self.assigned_date, self.meal_type)

    @property
    def sort_key(self) -> tuple[date, int, str]:
        return (self.assigned_date, self.meal_type.order, str(self.id))


class AssignmentFilters(BaseModel):
    """Assignment listing filters (inclusive date bounds)."""

    model_config = ConfigDict(frozen=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    meal_type: Optional[MealType] = None

    def matches(self, assignment: Assignment) -> bool:
        if self.start_date is not None and assignment.assigned_date < self.start_date:
            return False
        if self.end_date is not None and assignment.assigned_date > self.end_date:
            return False
        if self.meal_type is not None and assignment.meal_type != self.meal_type:
            return False
        return True


# ═══════════════════════════════════════════════════════════
# AUDIT LOG
# ═══════════════════════════════════════════════════════════


class AuditAction(str, Enum):
    CREATE_PLAN = "CREATE_PLAN"
    UPDATE_PLAN = "UPDATE_PLAN"
    DELETE_PLAN = "DELETE_PLAN"
    SUBMIT_FOR_REVIEW = "SUBMIT_FOR_REVIEW"
    APPROVE_PLAN = "APPROVE_PLAN"
    REJECT_PLAN = "REJECT_PLAN"
    PUBLISH_PLAN = "PUBLISH_PLAN"
    ACTIVATE_PLAN = "ACTIVATE_PLAN"
    COMPLETE_PLAN = "COMPLETE_PLAN"
    ARCHIVE_PLAN = "ARCHIVE_PLAN"
    CANCEL_PLAN = "CANCEL_PLAN"


class AuditEntry(BaseModel):
    """Append-only record of a plan mutation."""

    model_config = ConfigDict(frozen=True)

    id: AuditEntryId = Field(default_factory=AuditEntryId.generate)
    plan_id: PlanId
    action: AuditAction
    actor_id: ActorId
    actor_role: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utc_now)

    @field_validator("occurred_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _ensure_utc(v)  # type: ignore[return-value]
