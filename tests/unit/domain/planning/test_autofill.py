"""Unit tests for seeded auto-fill proposals."""

from datetime import date

from menuplan.domain.planning.autofill import propose_assignments
from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.rules import (
    AllowedMealTypesRule,
    MaxBudgetPerDayRule,
    MaxRepeatPerWeekRule,
)


def _signature(proposals):
    return [(p.assigned_date, p.meal_type, str(p.menu.id)) for p in proposals]


class TestProposeAssignments:
    def test_fills_every_empty_slot(self, make_plan, menus):
        plan = make_plan()

        proposals = propose_assignments(plan, menus, [], [MealType.LUNCH], 100, seed=7)

        assert [p.assigned_date for p in proposals] == plan.iter_days()
        assert all(p.meal_type == MealType.LUNCH for p in proposals)
        # Only LUNCH menus or menus without a meal type, never another program's
        lunch_fits = {"menu_m1", "menu_m2", "menu_m3", "menu_fruit"}
        assert {str(p.menu.id) for p in proposals} <= lunch_fits

    def test_same_seed_same_proposal(self, make_plan, menus):
        plan = make_plan()

        first = propose_assignments(
            plan, menus, [], [MealType.LUNCH, MealType.BREAKFAST], 100, seed=42
        )
        second = propose_assignments(
            plan, list(reversed(menus)), [], [MealType.BREAKFAST, MealType.LUNCH], 100, seed=42
        )

        assert _signature(first) == _signature(second)

    def test_occupied_slots_are_skipped(self, make_plan, make_assignment, lunch_menu, menus):
        plan = make_plan()
        existing = [make_assignment(plan, lunch_menu, date(2025, 11, 3))]

        proposals = propose_assignments(plan, menus, existing, [MealType.LUNCH], 100, seed=1)

        assert date(2025, 11, 3) not in {p.assigned_date for p in proposals}
        assert len(proposals) == 6

    def test_max_repeat_per_week_respected(self, make_plan, menus):
        # 2025-11-03..09 is one ISO week; four candidates, seven days
        plan = make_plan(
            start_date=date(2025, 11, 3),
            end_date=date(2025, 11, 9),
            planning_rules=[MaxRepeatPerWeekRule(max_repeats=1)],
        )

        proposals = propose_assignments(plan, menus, [], [MealType.LUNCH], 100, seed=3)

        used = [str(p.menu.id) for p in proposals]
        assert len(used) == len(set(used)) == 4

    def test_prefers_menus_not_used_this_week(self, make_plan, menus):
        plan = make_plan(start_date=date(2025, 11, 3), end_date=date(2025, 11, 6))

        proposals = propose_assignments(plan, menus, [], [MealType.LUNCH], 100, seed=11)

        assert len({str(p.menu.id) for p in proposals}) == 4

    def test_budget_rule_excludes_expensive_menus(self, make_plan, menus):
        # 100 portions: m1=1.0M, m2=1.2M, m3=0.9M, fruit=0.3M
        plan = make_plan(planning_rules=[MaxBudgetPerDayRule(amount=950_000)])

        proposals = propose_assignments(plan, menus, [], [MealType.LUNCH], 100, seed=5)

        assert {str(p.menu.id) for p in proposals} <= {"menu_m3", "menu_fruit"}
        assert len(proposals) == 7

    def test_disallowed_meal_types_not_filled(self, make_plan, menus):
        plan = make_plan(planning_rules=[AllowedMealTypesRule(meal_types=(MealType.LUNCH,))])

        proposals = propose_assignments(
            plan, menus, [], [MealType.BREAKFAST, MealType.LUNCH], 100, seed=2
        )

        assert {p.meal_type for p in proposals} == {MealType.LUNCH}

    def test_slot_left_empty_without_candidates(self, make_plan, menus):
        plan = make_plan(planning_rules=[MaxBudgetPerDayRule(amount=1000)])

        assert propose_assignments(plan, menus, [], [MealType.LUNCH], 100, seed=0) == []
