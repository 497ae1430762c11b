"""Enumerations for the planning domain."""

from __future__ import annotations

from enum import Enum

from menuplan.domain.shared.errors import PermissionDeniedError


class PlanStatus(str, Enum):
    """
    Lifecycle status of a menu plan.

    DRAFT → PENDING_REVIEW → APPROVED → PUBLISHED → ACTIVE → COMPLETED,
    with ARCHIVED (from DRAFT) and CANCELLED (from any non-terminal state).
    """

    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"  # Approved and released, period not started yet
    ACTIVE = "ACTIVE"  # Governs production for the current period
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"  # Soft-deleted draft
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({PlanStatus.COMPLETED, PlanStatus.ARCHIVED, PlanStatus.CANCELLED})


class MealType(str, Enum):
    """
    Slot category within a day.

    Declaration order is the display/sort order of a day.
    """

    BREAKFAST = "BREAKFAST"
    MORNING_SNACK = "MORNING_SNACK"
    LUNCH = "LUNCH"
    AFTERNOON_SNACK = "AFTERNOON_SNACK"
    DINNER = "DINNER"

    @property
    def order(self) -> int:
        return _MEAL_TYPE_ORDER[self]

    @classmethod
    def sort(cls, meal_types: list[MealType]) -> list[MealType]:
        """Return meal types in day order."""
        return sorted(meal_types, key=lambda m: m.order)


_MEAL_TYPE_ORDER = {meal_type: index for index, meal_type in enumerate(MealType)}


class AssignmentStatus(str, Enum):
    """
    Assignment-local progress flag.

    Independent of the owning plan's status.
    """

    PLANNED = "PLANNED"
    CONFIRMED = "CONFIRMED"
    PRODUCED = "PRODUCED"
    DISTRIBUTED = "DISTRIBUTED"
    COMPLETED = "COMPLETED"


class ActorRole(str, Enum):
    """
    Authorization identity of the actor performing an action.

    Resolved by the authentication collaborator and handed to the domain as
    an opaque string; :meth:`parse` turns it into this closed enumeration.
    """

    # Platform level
    PLATFORM_SUPERADMIN = "PLATFORM_SUPERADMIN"
    PLATFORM_SUPPORT = "PLATFORM_SUPPORT"
    PLATFORM_ANALYST = "PLATFORM_ANALYST"

    # Program management
    SPPG_KEPALA = "SPPG_KEPALA"
    SPPG_ADMIN = "SPPG_ADMIN"

    # Program operational
    SPPG_AHLI_GIZI = "SPPG_AHLI_GIZI"
    SPPG_AKUNTAN = "SPPG_AKUNTAN"
    SPPG_PRODUKSI_MANAGER = "SPPG_PRODUKSI_MANAGER"
    SPPG_DISTRIBUSI_MANAGER = "SPPG_DISTRIBUSI_MANAGER"
    SPPG_HRD_MANAGER = "SPPG_HRD_MANAGER"

    # Program staff
    SPPG_STAFF_DAPUR = "SPPG_STAFF_DAPUR"
    SPPG_STAFF_DISTRIBUSI = "SPPG_STAFF_DISTRIBUSI"
    SPPG_STAFF_ADMIN = "SPPG_STAFF_ADMIN"
    SPPG_STAFF_QC = "SPPG_STAFF_QC"

    # Limited
    SPPG_VIEWER = "SPPG_VIEWER"
    DEMO_USER = "DEMO_USER"

    @classmethod
    def parse(cls, raw: str | ActorRole) -> ActorRole:
        """
        Parse an opaque role string.

        Raises:
            PermissionDeniedError: If the role is not recognised
        """
        if isinstance(raw, ActorRole):
            return raw
        try:
            return cls(raw.strip().upper())
        except (ValueError, AttributeError):
            raise PermissionDeniedError(
                f"Unrecognised actor role: {raw!r}", role=str(raw)
            ) from None
