"""
Metrics library.

Pure functions over assignment snapshots. No I/O, no clock, no randomness:
the same inputs always give the same outputs.

All percentages are on a 0-100 scale and clamped to that range.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from menuplan.domain.analytics.report import DailyComplianceCheck, NutritionTotals
from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import Assignment, NutritionTargets, Plan

EXCELLENT_VARIETY = 70.0
ADEQUATE_VARIETY = 50.0


def clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, value))


def percentage(part: float, whole: float) -> float:
    """``part / whole * 100`` clamped to [0, 100]; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0.0
    return clamp_percentage(part / whole * 100)


# ═══════════════════════════════════════════════════════════
# GROUPING
# ═══════════════════════════════════════════════════════════


def group_by_day(assignments: Iterable[Assignment]) -> dict[date, list[Assignment]]:
    """Group by assigned date, keys in ascending date order."""
    groups: dict[date, list[Assignment]] = defaultdict(list)
    for assignment in sorted(assignments, key=lambda a: a.sort_key):
        groups[assignment.assigned_date].append(assignment)
    return dict(sorted(groups.items()))


def group_by_meal_type(assignments: Iterable[Assignment]) -> dict[MealType, list[Assignment]]:
    """Group by meal type, keys in day order (breakfast first)."""
    groups: dict[MealType, list[Assignment]] = defaultdict(list)
    for assignment in sorted(assignments, key=lambda a: a.sort_key):
        groups[assignment.meal_type].append(assignment)
    return {meal_type: groups[meal_type] for meal_type in MealType.sort(list(groups))}


def days_with_assignments(assignments: Iterable[Assignment]) -> set[date]:
    return {a.assigned_date for a in assignments}


# ═══════════════════════════════════════════════════════════
# NUTRITION
# ═══════════════════════════════════════════════════════════


def sum_nutrition(assignments: Iterable[Assignment]) -> NutritionTotals:
    """Sum of per-serving snapshots."""
    calories = protein = carbohydrates = fat = fiber = 0.0
    for a in assignments:
        calories += a.nutrition.calories
        protein += a.nutrition.protein
        carbohydrates += a.nutrition.carbohydrates
        fat += a.nutrition.fat
        fiber += a.nutrition.fiber
    return NutritionTotals(
        calories=calories,
        protein=protein,
        carbohydrates=carbohydrates,
        fat=fat,
        fiber=fiber,
    )


def divide_nutrition(totals: NutritionTotals, count: int) -> NutritionTotals:
    if count <= 0:
        return NutritionTotals()
    return NutritionTotals(
        calories=totals.calories / count,
        protein=totals.protein / count,
        carbohydrates=totals.carbohydrates / count,
        fat=totals.fat / count,
        fiber=totals.fiber / count,
    )


def calorie_band(targets: NutritionTargets) -> tuple[float, float]:
    """Inclusive ``(min, max)`` calories for a compliant day."""
    return (
        targets.calories_per_day * (1 - targets.calorie_tolerance),
        targets.calories_per_day * (1 + targets.calorie_tolerance),
    )


def check_day_compliance(
    day: date,
    assignments: Sequence[Assignment],
    targets: NutritionTargets,
) -> DailyComplianceCheck:
    """
    Check one day's nutrition against program targets.

    A day is compliant only when both the calorie band and the protein
    minimum are met.
    """
    totals = sum_nutrition(assignments)
    low, high = calorie_band(targets)
    calories_ok = low <= totals.calories <= high
    protein_ok = totals.protein >= targets.protein_per_day
    return DailyComplianceCheck(
        day=day,
        total_calories=totals.calories,
        total_protein=totals.protein,
        calorie_min=low,
        calorie_max=high,
        protein_target=targets.protein_per_day,
        meal_types_covered=len({a.meal_type for a in assignments}),
        calories_ok=calories_ok,
        protein_ok=protein_ok,
        is_compliant=calories_ok and protein_ok,
    )


def compliance_rate(checks: Sequence[DailyComplianceCheck]) -> float:
    """Percentage of checked days that are compliant (0 when nothing checked)."""
    return percentage(sum(1 for c in checks if c.is_compliant), len(checks))


# ═══════════════════════════════════════════════════════════
# COST
# ═══════════════════════════════════════════════════════════


def total_cost(assignments: Iterable[Assignment]) -> float:
    return sum(a.estimated_cost for a in assignments)


def total_portions(assignments: Iterable[Assignment]) -> int:
    return sum(a.planned_portions for a in assignments)


def average_cost_per_day(assignments: Sequence[Assignment]) -> float:
    """Total cost divided by the number of distinct days that have assignments."""
    days = len(days_with_assignments(assignments))
    return total_cost(assignments) / days if days else 0.0


def average_cost_per_portion(assignments: Sequence[Assignment]) -> float:
    portions = total_portions(assignments)
    return total_cost(assignments) / portions if portions else 0.0


def cost_per_beneficiary(cost: float, target_recipients: Optional[int]) -> Optional[float]:
    """None when the program has no (or zero) target recipients."""
    if not target_recipients:
        return None
    return cost / target_recipients


# ═══════════════════════════════════════════════════════════
# VARIETY / COVERAGE
# ═══════════════════════════════════════════════════════════


def unique_menu_count(assignments: Iterable[Assignment]) -> int:
    return len({str(a.menu_id) for a in assignments})


def variety_score(assignments: Sequence[Assignment]) -> float:
    """Unique menus / total assignments × 100."""
    return percentage(unique_menu_count(assignments), len(assignments))


def ingredient_counts(assignments: Iterable[Assignment]) -> tuple[int, int]:
    """``(distinct ingredient ids, ingredient slots consumed)``."""
    distinct: set[str] = set()
    slots = 0
    for a in assignments:
        distinct.update(a.ingredient_ids)
        slots += len(a.ingredient_ids)
    return len(distinct), slots


def ingredient_diversity(assignments: Sequence[Assignment]) -> Optional[float]:
    """Distinct ingredients / ingredient slots × 100, None without ingredient data."""
    distinct, slots = ingredient_counts(assignments)
    if slots == 0:
        return None
    return percentage(distinct, slots)


def variety_recommendation(score: float) -> str:
    if score >= EXCELLENT_VARIETY:
        return "Excellent menu variety"
    if score >= ADEQUATE_VARIETY:
        return "Adequate menu variety"
    return "Increase menu variety: too many repeated menus"


def coverage_percentage(assignments: Iterable[Assignment], calendar_days: int) -> float:
    return percentage(len(days_with_assignments(assignments)), calendar_days)


# ═══════════════════════════════════════════════════════════
# PLAN SUMMARY
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PlanSummary:
    """Cached aggregates stored on the plan for list views."""

    total_days: int
    total_menus: int
    total_estimated_cost: float
    average_cost_per_day: float


def plan_summary(plan: Plan, assignments: Sequence[Assignment]) -> PlanSummary:
    """
    Recompute the plan's cached aggregates.

    ``total_days`` counts calendar days of the range (inclusive);
    ``average_cost_per_day`` divides by days that have assignments.
    """
    return PlanSummary(
        total_days=plan.calendar_days,
        total_menus=len(assignments),
        total_estimated_cost=total_cost(assignments),
        average_cost_per_day=average_cost_per_day(assignments),
    )
