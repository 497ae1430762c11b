"""
Seeded auto-fill of empty plan slots.

Pure proposal step: given the plan, the existing assignments and the
candidate menus it decides which menu goes into which empty slot. The
workflow façade turns proposals into assignments through the allocator, so
every proposal still passes the allocator's checks.

Selection per slot:
- candidates are the menus usable for the slot's meal type, sorted by id
- menus that would break MaxRepeatPerWeekRule or MaxBudgetPerDayRule are
  dropped
- menus not yet used in the same ISO week are preferred
- the pick among the remaining candidates uses ``random.Random(seed)``, so
  the same inputs and seed always yield the same proposal
"""

from __future__ import annotations

import random
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.models import Assignment, Menu, Plan
from menuplan.domain.planning.rules import (
    AllowedMealTypesRule,
    MaxBudgetPerDayRule,
    MaxRepeatPerWeekRule,
    find_rule,
)


@dataclass(frozen=True)
class SlotProposal:
    assigned_date: date
    meal_type: MealType
    menu: Menu


def _iso_week(day: date) -> tuple[int, int]:
    iso = day.isocalendar()
    return (iso[0], iso[1])


def propose_assignments(
    plan: Plan,
    menus: Iterable[Menu],
    existing: Iterable[Assignment],
    meal_types: Sequence[MealType],
    planned_portions: int,
    seed: Optional[int] = None,
) -> list[SlotProposal]:
    """
    Propose a menu for every empty slot of the requested meal types.

    Slots that no candidate can fill without breaking a rule are left empty.

    Args:
        plan: Plan to fill (its rules are honoured)
        menus: Candidate menus of the plan's program
        existing: Assignments already in the plan
        meal_types: Meal types to fill
        planned_portions: Portions for every proposed assignment (used by
            the budget check)
        seed: Random seed; None draws from system entropy

    Returns:
        Proposals ordered by (date, meal type order)
    """
    rng = random.Random(seed)
    catalog = sorted(menus, key=lambda m: str(m.id))

    allowed = find_rule(plan.planning_rules, AllowedMealTypesRule)
    max_repeat = find_rule(plan.planning_rules, MaxRepeatPerWeekRule)
    budget = find_rule(plan.planning_rules, MaxBudgetPerDayRule)

    wanted = [
        m
        for m in MealType.sort(list(dict.fromkeys(meal_types)))
        if allowed is None or allowed.allows(m)
    ]

    occupied: set[tuple[date, MealType]] = set()
    week_usage: dict[tuple[int, int], Counter[str]] = defaultdict(Counter)
    day_cost: dict[date, float] = defaultdict(float)
    for assignment in existing:
        occupied.add((assignment.assigned_date, assignment.meal_type))
        week_usage[_iso_week(assignment.assigned_date)][str(assignment.menu_id)] += 1
        day_cost[assignment.assigned_date] += assignment.estimated_cost

    proposals: list[SlotProposal] = []
    for day in plan.iter_days():
        week = _iso_week(day)
        for meal_type in wanted:
            if (day, meal_type) in occupied:
                continue

            candidates = []
            for menu in catalog:
                if menu.meal_type is not None and menu.meal_type != meal_type:
                    continue
                if menu.program_id != plan.program_id:
                    continue
                used = week_usage[week][str(menu.id)]
                if max_repeat is not None and used >= max_repeat.max_repeats:
                    continue
                cost = menu.cost_per_serving * planned_portions
                if budget is not None and day_cost[day] + cost > budget.amount:
                    continue
                candidates.append(menu)

            if not candidates:
                continue

            fresh = [m for m in candidates if week_usage[week][str(m.id)] == 0]
            chosen = rng.choice(fresh or candidates)

            proposals.append(SlotProposal(assigned_date=day, meal_type=meal_type, menu=chosen))
            occupied.add((day, meal_type))
            week_usage[week][str(chosen.id)] += 1
            day_cost[day] += chosen.cost_per_serving * planned_portions

    return proposals
