"""Shared kernel: identifiers, domain errors, event base class."""

from menuplan.domain.shared.errors import (
    AssignmentNotFoundError,
    ConcurrentModificationError,
    DateOutOfRangeError,
    DomainError,
    InvalidDateRangeError,
    InvalidPortionsError,
    InvalidTransitionError,
    MenuNotFoundError,
    NotFoundError,
    OverlappingActivePlanError,
    PermissionDeniedError,
    PlanNotEditableError,
    PlanNotFoundError,
    ProgramNotFoundError,
    SlotOccupiedError,
    StateConflictError,
    TransitionPreconditionError,
    ValidationError,
)
from menuplan.domain.shared.events import DomainEvent
from menuplan.domain.shared.value_objects import (
    ActorId,
    AssignmentId,
    AuditEntryId,
    EntityId,
    MenuId,
    PlanId,
    ProgramId,
)

__all__ = [
    "ActorId",
    "AssignmentId",
    "AssignmentNotFoundError",
    "AuditEntryId",
    "ConcurrentModificationError",
    "DateOutOfRangeError",
    "DomainError",
    "DomainEvent",
    "EntityId",
    "InvalidDateRangeError",
    "InvalidPortionsError",
    "InvalidTransitionError",
    "MenuId",
    "MenuNotFoundError",
    "NotFoundError",
    "OverlappingActivePlanError",
    "PermissionDeniedError",
    "PlanId",
    "PlanNotEditableError",
    "PlanNotFoundError",
    "ProgramId",
    "ProgramNotFoundError",
    "SlotOccupiedError",
    "StateConflictError",
    "TransitionPreconditionError",
    "ValidationError",
]
