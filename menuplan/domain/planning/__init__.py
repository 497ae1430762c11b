"""Planning domain: plans, assignments, lifecycle and allocation."""

from menuplan.domain.planning.enums import (
    ActorRole,
    AssignmentStatus,
    MealType,
    PlanStatus,
)
from menuplan.domain.planning.models import (
    Assignment,
    AssignmentFilters,
    AuditAction,
    AuditEntry,
    Menu,
    NutritionSnapshot,
    NutritionTargets,
    Plan,
    PlanFilters,
    Program,
)
from menuplan.domain.planning.rules import (
    AllowedMealTypesRule,
    MaxBudgetPerDayRule,
    MaxRepeatPerWeekRule,
    PlanningRule,
    UnknownRule,
    parse_planning_rules,
)

__all__ = [
    "ActorRole",
    "AllowedMealTypesRule",
    "Assignment",
    "AssignmentFilters",
    "AssignmentStatus",
    "AuditAction",
    "AuditEntry",
    "MaxBudgetPerDayRule",
    "MaxRepeatPerWeekRule",
    "MealType",
    "Menu",
    "NutritionSnapshot",
    "NutritionTargets",
    "Plan",
    "PlanFilters",
    "PlanStatus",
    "PlanningRule",
    "Program",
    "UnknownRule",
    "parse_planning_rules",
]
