"""Unit tests for the pure metrics functions."""

from datetime import date

import pytest

from menuplan.domain.analytics import metrics
from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import NutritionTargets


@pytest.fixture
def menu_by_id(menus):
    return {str(m.id): m for m in menus}


class TestPercentages:
    def test_zero_whole_is_zero(self):
        assert metrics.percentage(3, 0) == 0.0

    def test_clamped(self):
        assert metrics.percentage(5, 4) == 100.0
        assert metrics.clamp_percentage(-1) == 0.0


class TestGrouping:
    def test_group_by_day_is_date_ordered(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        later = make_assignment(plan, menu_by_id["menu_m1"], date(2025, 11, 3))
        earlier = make_assignment(plan, menu_by_id["menu_m2"], date(2025, 11, 1))

        groups = metrics.group_by_day([later, earlier])

        assert list(groups) == [date(2025, 11, 1), date(2025, 11, 3)]

    def test_group_by_meal_type_follows_day_order(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        lunch = make_assignment(plan, menu_by_id["menu_m1"], date(2025, 11, 1))
        breakfast = make_assignment(
            plan, menu_by_id["menu_b1"], date(2025, 11, 1), meal_type=MealType.BREAKFAST
        )

        groups = metrics.group_by_meal_type([lunch, breakfast])

        assert list(groups) == [MealType.BREAKFAST, MealType.LUNCH]


class TestNutrition:
    def test_sum_and_divide(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        assignments = [
            make_assignment(plan, menu_by_id["menu_m1"], date(2025, 11, 1)),
            make_assignment(plan, menu_by_id["menu_m2"], date(2025, 11, 2)),
        ]

        totals = metrics.sum_nutrition(assignments)
        averages = metrics.divide_nutrition(totals, 2)

        assert totals.calories == 1350
        assert totals.protein == 55
        assert averages.calories == 675
        assert metrics.divide_nutrition(totals, 0).calories == 0.0

    def test_calorie_band(self):
        low, high = metrics.calorie_band(NutritionTargets(calories_per_day=700, protein_per_day=20))

        assert low == pytest.approx(630)
        assert high == pytest.approx(770)

    def test_day_compliance_needs_calories_and_protein(
        self, make_plan, make_assignment, menu_by_id
    ):
        plan = make_plan()
        day = date(2025, 11, 1)
        targets = NutritionTargets(calories_per_day=700, protein_per_day=20)

        ok = metrics.check_day_compliance(
            day, [make_assignment(plan, menu_by_id["menu_m1"], day)], targets
        )
        too_low = metrics.check_day_compliance(
            day, [make_assignment(plan, menu_by_id["menu_fruit"], day)], targets
        )

        assert ok.is_compliant
        assert ok.meal_types_covered == 1
        assert not too_low.calories_ok
        assert not too_low.protein_ok
        assert not too_low.is_compliant

    def test_protein_shortfall_alone_fails_the_day(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        day = date(2025, 11, 1)
        targets = NutritionTargets(calories_per_day=650, protein_per_day=30)

        check = metrics.check_day_compliance(
            day, [make_assignment(plan, menu_by_id["menu_m1"], day)], targets
        )

        assert check.calories_ok
        assert not check.protein_ok
        assert not check.is_compliant

    def test_compliance_rate_empty(self):
        assert metrics.compliance_rate([]) == 0.0


class TestCost:
    def test_cost_aggregates(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        day = date(2025, 11, 1)
        assignments = [
            make_assignment(plan, menu_by_id["menu_b1"], day, meal_type=MealType.BREAKFAST),
            make_assignment(plan, menu_by_id["menu_m1"], day),
            make_assignment(plan, menu_by_id["menu_m3"], date(2025, 11, 2), planned_portions=50),
        ]

        # 500k + 1.0M + 450k
        assert metrics.total_cost(assignments) == 1_950_000
        assert metrics.total_portions(assignments) == 250
        assert metrics.average_cost_per_day(assignments) == 975_000
        assert metrics.average_cost_per_portion(assignments) == 7800

    def test_empty_costs_are_zero(self):
        assert metrics.average_cost_per_day([]) == 0.0
        assert metrics.average_cost_per_portion([]) == 0.0

    @pytest.mark.parametrize("recipients", [None, 0])
    def test_cost_per_beneficiary_unavailable(self, recipients):
        assert metrics.cost_per_beneficiary(1000, recipients) is None

    def test_cost_per_beneficiary(self):
        assert metrics.cost_per_beneficiary(1_000_000, 100) == 10_000


class TestVarietyAndCoverage:
    def test_variety_score(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        m1 = menu_by_id["menu_m1"]
        assignments = [
            make_assignment(plan, m1, date(2025, 11, 1)),
            make_assignment(plan, m1, date(2025, 11, 2)),
            make_assignment(plan, menu_by_id["menu_m2"], date(2025, 11, 3)),
            make_assignment(plan, m1, date(2025, 11, 4)),
        ]

        assert metrics.unique_menu_count(assignments) == 2
        assert metrics.variety_score(assignments) == 50.0
        assert metrics.variety_score([]) == 0.0

    def test_ingredient_diversity(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        assignments = [
            make_assignment(plan, menu_by_id["menu_m1"], date(2025, 11, 1)),
            make_assignment(plan, menu_by_id["menu_m2"], date(2025, 11, 2)),
        ]

        # rice is shared: 5 distinct out of 6 slots
        assert metrics.ingredient_counts(assignments) == (5, 6)
        assert metrics.ingredient_diversity(assignments) == pytest.approx(500 / 6)

    def test_ingredient_diversity_without_data(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()

        assignment = make_assignment(plan, menu_by_id["menu_other"], date(2025, 11, 1))

        assert metrics.ingredient_diversity([assignment]) is None

    @pytest.mark.parametrize(
        "score, expected",
        [
            (100.0, "Excellent menu variety"),
            (70.0, "Excellent menu variety"),
            (50.0, "Adequate menu variety"),
            (49.9, "Increase menu variety: too many repeated menus"),
        ],
    )
    def test_variety_recommendation(self, score, expected):
        assert metrics.variety_recommendation(score) == expected

    def test_coverage(self, make_plan, make_assignment, menu_by_id):
        plan = make_plan()
        day = date(2025, 11, 1)
        assignments = [
            make_assignment(plan, menu_by_id["menu_b1"], day, meal_type=MealType.BREAKFAST),
            make_assignment(plan, menu_by_id["menu_m1"], day),
        ]

        coverage = metrics.coverage_percentage(assignments, plan.calendar_days)
        assert coverage == pytest.approx(100 / 7)


class TestPlanSummary:
    def test_summary_uses_calendar_days_and_assigned_days(
        self, make_plan, make_assignment, menu_by_id
    ):
        plan = make_plan()
        assignments = [
            make_assignment(plan, menu_by_id["menu_m1"], date(2025, 11, 1)),
            make_assignment(plan, menu_by_id["menu_m3"], date(2025, 11, 2)),
        ]

        summary = metrics.plan_summary(plan, assignments)

        assert summary.total_days == 7
        assert summary.total_menus == 2
        assert summary.total_estimated_cost == 1_900_000
        assert summary.average_cost_per_day == 950_000
