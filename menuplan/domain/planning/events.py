"""Planning domain events.

Published on the event bus after a successful write. Subscribers (report
cache invalidation, audit projections) must not be able to fail the write.
"""

from dataclasses import dataclass
from datetime import date

from menuplan.domain.shared.events import DomainEvent


@dataclass(frozen=True)
class AssignmentCreated(DomainEvent):
    """Domain event: a menu was placed into an empty slot.

    Examples:
        >>> event = AssignmentCreated.create(
        ...     plan_id="plan_1",
        ...     assignment_id="asg_1",
        ...     assigned_date=date(2025, 11, 1),
        ...     meal_type="LUNCH",
        ... )
        >>> event.meal_type
        'LUNCH'
    """

    plan_id: str
    assignment_id: str
    assigned_date: date
    meal_type: str

    @classmethod
    def create(
        cls, plan_id: str, assignment_id: str, assigned_date: date, meal_type: str
    ) -> "AssignmentCreated":
        return cls(
            **cls.stamp(),
            plan_id=plan_id,
            assignment_id=assignment_id,
            assigned_date=assigned_date,
            meal_type=meal_type,
        )


@dataclass(frozen=True)
class AssignmentUpdated(DomainEvent):
    """Domain event: an assignment was patched.

    Attributes:
        updated_fields: Names of the fields that actually changed.
    """

    plan_id: str
    assignment_id: str
    updated_fields: tuple[str, ...]

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.updated_fields:
            raise ValueError("updated_fields cannot be empty")

    @classmethod
    def create(
        cls, plan_id: str, assignment_id: str, updated_fields: tuple[str, ...]
    ) -> "AssignmentUpdated":
        return cls(
            **cls.stamp(),
            plan_id=plan_id,
            assignment_id=assignment_id,
            updated_fields=tuple(updated_fields),
        )


@dataclass(frozen=True)
class AssignmentDeleted(DomainEvent):
    """Domain event: an assignment was removed (hard delete)."""

    plan_id: str
    assignment_id: str

    @classmethod
    def create(cls, plan_id: str, assignment_id: str) -> "AssignmentDeleted":
        return cls(
            **cls.stamp(),
            plan_id=plan_id,
            assignment_id=assignment_id,
        )


@dataclass(frozen=True)
class PlanStatusChanged(DomainEvent):
    """Domain event: a lifecycle transition was committed.

    Attributes:
        action: Transition name (submit, approve, reject, ...).
        from_status / to_status: Status values before and after.
        actor_id: User who performed the transition.
    """

    plan_id: str
    action: str
    from_status: str
    to_status: str
    actor_id: str

    @classmethod
    def create(
        cls, plan_id: str, action: str, from_status: str, to_status: str, actor_id: str
    ) -> "PlanStatusChanged":
        return cls(
            **cls.stamp(),
            plan_id=plan_id,
            action=action,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
        )


@dataclass(frozen=True)
class PlanUpdated(DomainEvent):
    """Domain event: plan header fields (name, dates, rules...) were edited."""

    plan_id: str
    updated_fields: tuple[str, ...]

    @classmethod
    def create(cls, plan_id: str, updated_fields: tuple[str, ...]) -> "PlanUpdated":
        return cls(
            **cls.stamp(),
            plan_id=plan_id,
            updated_fields=tuple(updated_fields),
        )


@dataclass(frozen=True)
class PlanDeleted(DomainEvent):
    """Domain event: a DRAFT plan and its assignments were deleted."""

    plan_id: str
    actor_id: str

    @classmethod
    def create(cls, plan_id: str, actor_id: str) -> "PlanDeleted":
        return cls(
            **cls.stamp(),
            plan_id=plan_id,
            actor_id=actor_id,
        )


# Events after which a plan's derived data (analytics report) is stale
PLAN_CHANGE_EVENTS = (
    AssignmentCreated,
    AssignmentUpdated,
    AssignmentDeleted,
    PlanUpdated,
    PlanStatusChanged,
    PlanDeleted,
)
