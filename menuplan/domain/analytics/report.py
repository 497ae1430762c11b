"""
Analytics report models.

Immutable, derived views of a plan snapshot. Never persisted; computed on
demand by :class:`menuplan.domain.analytics.engine.AnalyticsEngine` and
optionally cached per plan.

Sections that cannot be computed from the available reference data are set
to None (or hold None values) and named in ``AnalyticsReport.unavailable``.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from menuplan.domain.planning.enums import MealType

UNAVAILABLE_COMPLIANCE = "compliance"
UNAVAILABLE_PER_BENEFICIARY_COST = "per_beneficiary_cost"
UNAVAILABLE_INGREDIENT_DIVERSITY = "ingredient_diversity"


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True)


# ═══════════════════════════════════════════════════════════
# CONTEXT
# ═══════════════════════════════════════════════════════════


class DateRangeSection(_Section):
    start_date: date
    end_date: date
    calendar_days: int


class ProgramSection(_Section):
    program_id: str
    name: Optional[str] = None
    target_recipients: Optional[int] = None
    calories_per_day: Optional[float] = None
    protein_per_day: Optional[float] = None
    calorie_tolerance: Optional[float] = None


# ═══════════════════════════════════════════════════════════
# NUTRITION
# ═══════════════════════════════════════════════════════════


class NutritionTotals(_Section):
    """Summed per-serving nutrition values."""

    calories: float = 0.0
    protein: float = 0.0
    carbohydrates: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0


class MealTypeNutrition(_Section):
    meal_type: MealType
    meal_count: int
    totals: NutritionTotals
    averages: NutritionTotals


class DayNutrition(_Section):
    """Nutrition of one day summed across all its meal types."""

    day: date
    totals: NutritionTotals
    meal_types: list[MealType]


class NutritionSummary(_Section):
    total: NutritionTotals
    average_daily: NutritionTotals
    days: int


class NutritionSection(_Section):
    by_meal_type: list[MealTypeNutrition]
    by_day: list[DayNutrition]
    summary: NutritionSummary


# ═══════════════════════════════════════════════════════════
# COST
# ═══════════════════════════════════════════════════════════


class MealTypeCost(_Section):
    meal_type: MealType
    total_cost: float
    average_cost_per_meal: float
    meal_count: int
    total_portions: int


class DayCost(_Section):
    day: date
    total_cost: float
    meal_count: int
    cost_per_beneficiary: Optional[float] = None


class CostSummary(_Section):
    total_plan_cost: float
    average_cost_per_day: float
    total_planned_portions: int
    average_cost_per_portion: float
    cost_per_beneficiary: Optional[float] = None


class CostSection(_Section):
    by_meal_type: list[MealTypeCost]
    by_day: list[DayCost]
    summary: CostSummary


# ═══════════════════════════════════════════════════════════
# VARIETY / COMPLIANCE / COVERAGE
# ═══════════════════════════════════════════════════════════


class VarietySection(_Section):
    unique_menus: int
    total_assignments: int
    variety_score: float = Field(..., ge=0, le=100)
    distinct_ingredients: int
    ingredient_slots: int
    ingredient_diversity: Optional[float] = Field(default=None, ge=0, le=100)
    recommendation: str


class DailyComplianceCheck(_Section):
    """
    Nutrition compliance of one day with at least one assignment.

    Compliant iff calories fall in ``[calorie_min, calorie_max]`` and protein
    reaches ``protein_target``.
    """

    day: date
    total_calories: float
    total_protein: float
    calorie_min: float
    calorie_max: float
    protein_target: float
    meal_types_covered: int
    calories_ok: bool
    protein_ok: bool
    is_compliant: bool


class ComplianceSection(_Section):
    daily_checks: list[DailyComplianceCheck]
    checked_days: int
    compliant_days: int
    compliance_rate: float = Field(..., ge=0, le=100, description="Percentage of checked days")


class CoverageSection(_Section):
    calendar_days: int
    days_with_assignments: int
    coverage_percentage: float = Field(..., ge=0, le=100)
    total_assignments: int


class RuleViolation(_Section):
    """An advisory planning rule broken by the current assignments."""

    rule: str
    message: str
    day: Optional[date] = None
    menu_id: Optional[str] = None
    meal_type: Optional[MealType] = None
    value: Optional[float] = None
    limit: Optional[float] = None


class QualityScores(_Section):
    """Scores written back onto the plan by ``refresh_quality_scores``."""

    nutrition_score: Optional[float] = None
    variety_score: Optional[float] = None
    cost_efficiency: Optional[float] = None


class AnalyticsReport(_Section):
    """
    Full analytics of a plan snapshot.

    Deterministic: the same plan, assignments, program and menus always
    produce an equal report.
    """

    plan_id: str
    date_range: DateRangeSection
    program: ProgramSection
    nutrition: NutritionSection
    cost: CostSection
    variety: VarietySection
    compliance: Optional[ComplianceSection] = None
    coverage: CoverageSection
    rule_violations: list[RuleViolation] = Field(default_factory=list)
    quality_scores: QualityScores = Field(default_factory=QualityScores)
    unavailable: list[str] = Field(default_factory=list)

    def is_available(self, section: str) -> bool:
        return section not in self.unavailable
