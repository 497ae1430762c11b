"""
Analytics aggregation engine.

Builds an :class:`AnalyticsReport` from a plan snapshot. Stateless and
deterministic; never mutates plans or assignments. Missing reference data
degrades the report instead of failing it:

- no nutrition targets -> ``compliance`` is None, marker "compliance"
- no target recipients -> per-beneficiary costs None, marker
  "per_beneficiary_cost"
- no ingredient data -> ``ingredient_diversity`` None, marker
  "ingredient_diversity"
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import date
from typing import Mapping, Optional, Sequence

import structlog

from menuplan.domain.analytics import metrics
from menuplan.domain.analytics.report import (
    UNAVAILABLE_COMPLIANCE,
    UNAVAILABLE_INGREDIENT_DIVERSITY,
    UNAVAILABLE_PER_BENEFICIARY_COST,
    AnalyticsReport,
    ComplianceSection,
    CostSection,
    CostSummary,
    CoverageSection,
    DateRangeSection,
    DayCost,
    DayNutrition,
    MealTypeCost,
    MealTypeNutrition,
    NutritionSection,
    NutritionSummary,
    ProgramSection,
    QualityScores,
    RuleViolation,
    VarietySection,
)
from menuplan.domain.planning.models import Assignment, Menu, NutritionTargets, Plan, Program
from menuplan.domain.planning.rules import (
    AllowedMealTypesRule,
    MaxBudgetPerDayRule,
    MaxRepeatPerWeekRule,
    find_rule,
)

logger = structlog.get_logger(__name__)


class AnalyticsEngine:
    """
    Computes analytics reports.

    Example:
        >>> engine = AnalyticsEngine()
        >>> report = engine.build_report(plan, assignments, program)
        >>> report.cost.summary.total_plan_cost
        1000000.0
    """

    def __init__(self, default_calorie_tolerance: Optional[float] = None) -> None:
        # Overrides the tolerance of programs that do not carry their own
        self._default_tolerance = default_calorie_tolerance

    def build_report(
        self,
        plan: Plan,
        assignments: Sequence[Assignment],
        program: Optional[Program] = None,
        menus: Optional[Mapping[str, Menu]] = None,
    ) -> AnalyticsReport:
        """
        Build the full report.

        Args:
            plan: Plan snapshot
            assignments: All assignments of the plan
            program: Owning program (None if unresolved)
            menus: Menus by id, used to name menus in rule violations

        Returns:
            Report; equal inputs give equal reports
        """
        ordered = sorted(assignments, key=lambda a: a.sort_key)
        unavailable: list[str] = []

        targets = self._targets(program)
        recipients = program.target_recipients if program is not None else None
        if not recipients:
            unavailable.append(UNAVAILABLE_PER_BENEFICIARY_COST)

        nutrition = self._nutrition(ordered)
        cost = self._cost(ordered, recipients)

        compliance: Optional[ComplianceSection] = None
        if targets is None:
            unavailable.append(UNAVAILABLE_COMPLIANCE)
        else:
            compliance = self._compliance(ordered, targets)

        variety = self._variety(ordered)
        if variety.ingredient_diversity is None:
            unavailable.append(UNAVAILABLE_INGREDIENT_DIVERSITY)

        coverage = CoverageSection(
            calendar_days=plan.calendar_days,
            days_with_assignments=len(metrics.days_with_assignments(ordered)),
            coverage_percentage=metrics.coverage_percentage(ordered, plan.calendar_days),
            total_assignments=len(ordered),
        )

        violations = self._rule_violations(plan, ordered, menus or {})

        report = AnalyticsReport(
            plan_id=str(plan.id),
            date_range=DateRangeSection(
                start_date=plan.start_date,
                end_date=plan.end_date,
                calendar_days=plan.calendar_days,
            ),
            program=self._program_section(plan, program, targets),
            nutrition=nutrition,
            cost=cost,
            variety=variety,
            compliance=compliance,
            coverage=coverage,
            rule_violations=violations,
            quality_scores=self._quality_scores(plan, ordered, compliance, variety),
            unavailable=unavailable,
        )

        logger.debug(
            "analytics_report_built",
            plan_id=str(plan.id),
            assignments=len(ordered),
            unavailable=unavailable,
            violations=len(violations),
        )
        return report

    # ═══════════════════════════════════════════════════════════
    # SECTIONS
    # ═══════════════════════════════════════════════════════════

    def _targets(self, program: Optional[Program]) -> Optional[NutritionTargets]:
        if program is None or program.nutrition_targets is None:
            return None
        targets = program.nutrition_targets
        explicit = "calorie_tolerance" in targets.model_fields_set
        if self._default_tolerance is not None and not explicit:
            targets = targets.model_copy(update={"calorie_tolerance": self._default_tolerance})
        return targets

    @staticmethod
    def _program_section(
        plan: Plan, program: Optional[Program], targets: Optional[NutritionTargets]
    ) -> ProgramSection:
        return ProgramSection(
            program_id=str(plan.program_id),
            name=program.name if program is not None else None,
            target_recipients=program.target_recipients if program is not None else None,
            calories_per_day=targets.calories_per_day if targets else None,
            protein_per_day=targets.protein_per_day if targets else None,
            calorie_tolerance=targets.calorie_tolerance if targets else None,
        )

    @staticmethod
    def _nutrition(assignments: Sequence[Assignment]) -> NutritionSection:
        by_meal_type = []
        for meal_type, group in metrics.group_by_meal_type(assignments).items():
            totals = metrics.sum_nutrition(group)
            by_meal_type.append(
                MealTypeNutrition(
                    meal_type=meal_type,
                    meal_count=len(group),
                    totals=totals,
                    averages=metrics.divide_nutrition(totals, len(group)),
                )
            )

        by_day = [
            DayNutrition(
                day=day,
                totals=metrics.sum_nutrition(group),
                meal_types=[a.meal_type for a in group],
            )
            for day, group in metrics.group_by_day(assignments).items()
        ]

        total = metrics.sum_nutrition(assignments)
        return NutritionSection(
            by_meal_type=by_meal_type,
            by_day=by_day,
            summary=NutritionSummary(
                total=total,
                average_daily=metrics.divide_nutrition(total, len(by_day)),
                days=len(by_day),
            ),
        )

    @staticmethod
    def _cost(assignments: Sequence[Assignment], recipients: Optional[int]) -> CostSection:
        by_meal_type = []
        for meal_type, group in metrics.group_by_meal_type(assignments).items():
            group_cost = metrics.total_cost(group)
            by_meal_type.append(
                MealTypeCost(
                    meal_type=meal_type,
                    total_cost=group_cost,
                    average_cost_per_meal=group_cost / len(group),
                    meal_count=len(group),
                    total_portions=metrics.total_portions(group),
                )
            )

        by_day = []
        for day, group in metrics.group_by_day(assignments).items():
            day_cost = metrics.total_cost(group)
            by_day.append(
                DayCost(
                    day=day,
                    total_cost=day_cost,
                    meal_count=len(group),
                    cost_per_beneficiary=metrics.cost_per_beneficiary(day_cost, recipients),
                )
            )

        plan_cost = metrics.total_cost(assignments)
        return CostSection(
            by_meal_type=by_meal_type,
            by_day=by_day,
            summary=CostSummary(
                total_plan_cost=plan_cost,
                average_cost_per_day=metrics.average_cost_per_day(assignments),
                total_planned_portions=metrics.total_portions(assignments),
                average_cost_per_portion=metrics.average_cost_per_portion(assignments),
                cost_per_beneficiary=metrics.cost_per_beneficiary(plan_cost, recipients),
            ),
        )

    @staticmethod
    def _compliance(
        assignments: Sequence[Assignment], targets: NutritionTargets
    ) -> ComplianceSection:
        # Days without assignments are not checked at all
        checks = [
            metrics.check_day_compliance(day, group, targets)
            for day, group in metrics.group_by_day(assignments).items()
        ]
        return ComplianceSection(
            daily_checks=checks,
            checked_days=len(checks),
            compliant_days=sum(1 for c in checks if c.is_compliant),
            compliance_rate=metrics.compliance_rate(checks),
        )

    @staticmethod
    def _variety(assignments: Sequence[Assignment]) -> VarietySection:
        score = metrics.variety_score(assignments)
        distinct, slots = metrics.ingredient_counts(assignments)
        return VarietySection(
            unique_menus=metrics.unique_menu_count(assignments),
            total_assignments=len(assignments),
            variety_score=score,
            distinct_ingredients=distinct,
            ingredient_slots=slots,
            ingredient_diversity=metrics.ingredient_diversity(assignments),
            recommendation=metrics.variety_recommendation(score),
        )

    @staticmethod
    def _daily_costs(assignments: Sequence[Assignment]) -> dict[date, float]:
        by_day = metrics.group_by_day(assignments)
        return {day: metrics.total_cost(group) for day, group in by_day.items()}

    def _rule_violations(
        self,
        plan: Plan,
        assignments: Sequence[Assignment],
        menus: Mapping[str, Menu],
    ) -> list[RuleViolation]:
        violations: list[RuleViolation] = []

        budget = find_rule(plan.planning_rules, MaxBudgetPerDayRule)
        if budget is not None:
            for day, cost in self._daily_costs(assignments).items():
                if cost > budget.amount:
                    violations.append(
                        RuleViolation(
                            rule=budget.kind,
                            message=f"Cost on {day.isoformat()} exceeds daily budget",
                            day=day,
                            value=cost,
                            limit=budget.amount,
                        )
                    )

        max_repeat = find_rule(plan.planning_rules, MaxRepeatPerWeekRule)
        if max_repeat is not None:
            usage: dict[tuple[int, int], Counter[str]] = defaultdict(Counter)
            first_day: dict[tuple[int, int], date] = {}
            for a in assignments:
                iso = a.assigned_date.isocalendar()
                week = (iso[0], iso[1])
                usage[week][str(a.menu_id)] += 1
                first_day.setdefault(week, a.assigned_date)
            for week in sorted(usage):
                for menu_id, count in sorted(usage[week].items()):
                    if count > max_repeat.max_repeats:
                        menu = menus.get(menu_id)
                        label = menu.name if menu is not None else menu_id
                        violations.append(
                            RuleViolation(
                                rule=max_repeat.kind,
                                message=(
                                    f"Menu {label} used {count} times"
                                    f" in week {week[0]}-W{week[1]:02d}"
                                ),
                                day=first_day[week],
                                menu_id=menu_id,
                                value=count,
                                limit=max_repeat.max_repeats,
                            )
                        )

        allowed = find_rule(plan.planning_rules, AllowedMealTypesRule)
        if allowed is not None:
            for a in assignments:
                if not allowed.allows(a.meal_type):
                    violations.append(
                        RuleViolation(
                            rule=allowed.kind,
                            message=f"Meal type {a.meal_type.value} is not allowed",
                            day=a.assigned_date,
                            menu_id=str(a.menu_id),
                            meal_type=a.meal_type,
                        )
                    )

        return violations

    def _quality_scores(
        self,
        plan: Plan,
        assignments: Sequence[Assignment],
        compliance: Optional[ComplianceSection],
        variety: VarietySection,
    ) -> QualityScores:
        cost_efficiency: Optional[float] = None
        budget = find_rule(plan.planning_rules, MaxBudgetPerDayRule)
        daily = self._daily_costs(assignments)
        if budget is not None and daily:
            within = sum(1 for cost in daily.values() if cost <= budget.amount)
            cost_efficiency = metrics.percentage(within, len(daily))

        return QualityScores(
            nutrition_score=compliance.compliance_rate if compliance is not None else None,
            variety_score=variety.variety_score if assignments else None,
            cost_efficiency=cost_efficiency,
        )
