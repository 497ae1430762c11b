"""
Domain exceptions.

Typed exceptions for explicit error handling. Every failure that a caller
can act on has its own type, grouped under five families:

- ValidationError: malformed input, rejected before any write
- PermissionDeniedError: actor role not authorized for the action
- StateConflictError: stale status, occupied slot, concurrent write
- DateOutOfRangeError: assignment date outside the plan range
- NotFoundError: plan / assignment / menu / program id unresolved
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    Attributes:
        message: Human readable description
        code: Stable machine readable code (e.g. "SLOT_OCCUPIED")
        context: Extra structured data; the workflow façade adds
            actor/action details here before returning a failure.
    """

    code = "DOMAIN_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context: dict[str, Any] = dict(context or {})

    def with_context(self, **extra: Any) -> "DomainError":
        """Attach additional context and return self (for re-raise chains)."""
        self.context.update(extra)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable view used by transport layers."""
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "context": {k: str(v) for k, v in self.context.items()},
        }


# ═══════════════════════════════════════════════════════════
# VALIDATION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Raised when:
    - Invalid date range (end not after start)
    - Non-positive portions
    - Rejection reason too short
    - Menu meal type does not match the slot

    Example:
        >>> raise ValidationError("Plan name must be at least 3 characters")
    """

    code = "VALIDATION_ERROR"


class InvalidDateRangeError(ValidationError):
    """Plan end date is not after its start date."""

    code = "INVALID_DATE_RANGE"

    def __init__(self, start_date: date, end_date: date) -> None:
        super().__init__(
            f"End date {end_date.isoformat()} must be after start date {start_date.isoformat()}",
            context={"start_date": start_date, "end_date": end_date},
        )


class InvalidPortionsError(ValidationError):
    """Planned portions outside 1..MAX_PORTIONS."""

    code = "INVALID_PORTIONS"


class TransitionPreconditionError(ValidationError):
    """
    A lifecycle transition precondition does not hold.

    Example:
        >>> raise TransitionPreconditionError(
        ...     "Cannot submit empty plan", action="submit"
        ... )
    """

    code = "TRANSITION_PRECONDITION_FAILED"

    def __init__(self, message: str, action: str) -> None:
        super().__init__(message, context={"action": action})
        self.action = action


# ═══════════════════════════════════════════════════════════
# PERMISSION EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class PermissionDeniedError(DomainError):
    """
    Actor role not authorized.

    Surfaced verbatim to the caller, never retried automatically.

    Example:
        >>> raise PermissionDeniedError(
        ...     "Role SPPG_STAFF_DAPUR cannot approve plans",
        ...     role="SPPG_STAFF_DAPUR",
        ...     action="approve",
        ... )
    """

    code = "PERMISSION_DENIED"

    def __init__(
        self, message: str, role: Optional[str] = None, action: Optional[str] = None
    ) -> None:
        super().__init__(message, context={"role": role, "action": action})
        self.role = role
        self.action = action


# ═══════════════════════════════════════════════════════════
# STATE CONFLICT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class StateConflictError(DomainError):
    """
    Resource state conflicts with the requested operation.

    Indicates a race or stale client view: the caller should refetch and
    may retry once.
    """

    code = "STATE_CONFLICT"


class InvalidTransitionError(StateConflictError):
    """Transition attempted from a status other than its declared source."""

    code = "INVALID_TRANSITION"

    def __init__(self, action: str, current_status: str, allowed_from: list[str]) -> None:
        super().__init__(
            f"Cannot {action} plan with status {current_status}. "
            f"Allowed from: {', '.join(allowed_from)}",
            context={"action": action, "current_status": current_status},
        )
        self.action = action
        self.current_status = current_status
        self.allowed_from = allowed_from


class PlanNotEditableError(StateConflictError):
    """Plan status does not allow edits for this actor."""

    code = "PLAN_NOT_EDITABLE"

    def __init__(self, plan_id: str, status: str, role: Optional[str] = None) -> None:
        super().__init__(
            f"Plan {plan_id} with status {status} cannot be edited"
            + (f" by {role}" if role else ""),
            context={"plan_id": plan_id, "status": status, "role": role},
        )
        self.status = status


class SlotOccupiedError(StateConflictError):
    """A (plan, date, meal type) slot already holds an assignment."""

    code = "SLOT_OCCUPIED"

    def __init__(self, plan_id: str, assigned_date: date, meal_type: str) -> None:
        super().__init__(
            f"Assignment already exists for {meal_type} on {assigned_date.isoformat()}",
            context={"plan_id": plan_id, "assigned_date": assigned_date, "meal_type": meal_type},
        )
        self.assigned_date = assigned_date
        self.meal_type = meal_type


class ConcurrentModificationError(StateConflictError):
    """Stored version differs from the version the write was based on."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, plan_id: str, expected_version: int) -> None:
        super().__init__(
            f"Plan {plan_id} was modified concurrently (expected version {expected_version})",
            context={"plan_id": plan_id, "expected_version": expected_version},
        )


class OverlappingActivePlanError(StateConflictError):
    """Another ACTIVE plan of the same program overlaps the date range."""

    code = "OVERLAPPING_ACTIVE_PLAN"

    def __init__(self, plan_id: str, overlapping_ids: list[str]) -> None:
        super().__init__(
            "Cannot publish: there are overlapping active plans for this program",
            context={"plan_id": plan_id, "overlapping": ",".join(overlapping_ids)},
        )
        self.overlapping_ids = overlapping_ids


# ═══════════════════════════════════════════════════════════
# RANGE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class DateOutOfRangeError(DomainError):
    """Assignment date is outside the plan's [start, end] range."""

    code = "DATE_OUT_OF_RANGE"

    def __init__(self, assigned_date: date, start_date: date, end_date: date) -> None:
        super().__init__(
            f"Assignment date {assigned_date.isoformat()} must be between "
            f"{start_date.isoformat()} and {end_date.isoformat()}",
            context={
                "assigned_date": assigned_date,
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        self.assigned_date = assigned_date


# ═══════════════════════════════════════════════════════════
# NOT FOUND EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class NotFoundError(DomainError):
    """
    Resource not found.

    Generic not found error. Prefer the specific subclasses.
    """

    code = "NOT_FOUND"
    resource = "Resource"

    def __init__(self, resource_id: str) -> None:
        super().__init__(
            f"{self.resource} {resource_id} not found",
            context={"id": resource_id},
        )
        self.resource_id = resource_id


class PlanNotFoundError(NotFoundError):
    code = "PLAN_NOT_FOUND"
    resource = "Menu plan"


class AssignmentNotFoundError(NotFoundError):
    code = "ASSIGNMENT_NOT_FOUND"
    resource = "Assignment"


class MenuNotFoundError(NotFoundError):
    code = "MENU_NOT_FOUND"
    resource = "Menu"


class ProgramNotFoundError(NotFoundError):
    code = "PROGRAM_NOT_FOUND"
    resource = "Program"
