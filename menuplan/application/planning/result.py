"""Command results returned by the workflow façade.

Callers get either the value or the typed domain error that stopped the
command. Nothing has been written when a failure is returned, so there is
no local state to roll back.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from menuplan.domain.planning.enums import PlanStatus
from menuplan.domain.planning.models import Plan
from menuplan.domain.shared.errors import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class CommandResult(Generic[T]):
    """
    Success value or failure error.

    Example:
        >>> result = await service.submit_plan(command)
        >>> if result.ok:
        ...     plan = result.value
        ... else:
        ...     print(result.error.code)
        >>> plan = result.unwrap()  # or re-raise the error
    """

    value: Optional[T] = None
    error: Optional[DomainError] = None

    @classmethod
    def success(cls, value: T) -> "CommandResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: DomainError) -> "CommandResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the failure's error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class PlanStatusSummary:
    """Plan counts per status for list views."""

    total: int
    by_status: dict[PlanStatus, int] = field(default_factory=dict)

    def count(self, status: PlanStatus) -> int:
        return self.by_status.get(status, 0)


@dataclass(frozen=True)
class PlanListResult:
    plans: list[Plan]
    summary: PlanStatusSummary
