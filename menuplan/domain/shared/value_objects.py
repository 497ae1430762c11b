"""
Shared value objects.

Immutable, validated identifiers for the menu planning domain.
Following DDD value object pattern.
"""

from __future__ import annotations

import uuid
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TId = TypeVar("TId", bound="EntityId")


class EntityId(BaseModel):
    """
    Base identifier value object.

    Wraps a non-empty string. Subclasses set ``prefix`` so generated ids are
    self-describing ("plan_3fa85f645717").

    Example:
        >>> plan_id = PlanId.generate()
        >>> assert str(plan_id).startswith("plan_")
        >>> assert PlanId.from_string(str(plan_id)) == plan_id
    """

    model_config = ConfigDict(frozen=True)

    prefix: ClassVar[str] = "id"

    value: str = Field(..., min_length=1, max_length=100, description="Identifier")

    @model_validator(mode="before")
    @classmethod
    def accept_plain_string(cls, data: Any) -> Any:
        """Allow ``PlanId.model_validate("plan_1")`` (stored documents keep bare strings)."""
        if isinstance(data, str):
            return {"value": data}
        return data

    @field_validator("value")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Ensure not empty or whitespace."""
        if not v.strip():
            raise ValueError(f"{cls.__name__} cannot be empty or whitespace")
        return v.strip()

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"{type(self).__name__}('{self.value}')"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash((type(self).__name__, self.value))

    @classmethod
    def generate(cls: type[TId]) -> TId:
        """Generate new id with a random 12 hex chars suffix."""
        return cls(value=f"{cls.prefix}_{uuid.uuid4().hex[:12]}")

    @classmethod
    def from_string(cls: type[TId], s: str) -> TId:
        """Create from string."""
        return cls(value=s)


class PlanId(EntityId):
    """Menu plan identifier."""

    prefix: ClassVar[str] = "plan"


class AssignmentId(EntityId):
    """Menu assignment identifier."""

    prefix: ClassVar[str] = "asg"


class ProgramId(EntityId):
    """Nutrition program identifier (owned by the reference-data collaborator)."""

    prefix: ClassVar[str] = "prog"


class MenuId(EntityId):
    """Menu identifier (owned by the reference-data collaborator)."""

    prefix: ClassVar[str] = "menu"


class ActorId(EntityId):
    """
    Identifier of the user performing an action.

    Resolved by the authentication collaborator; opaque to the domain.
    """

    prefix: ClassVar[str] = "user"


class AuditEntryId(EntityId):
    """Audit log entry identifier."""

    prefix: ClassVar[str] = "audit"
