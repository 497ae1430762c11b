"""Shared pytest fixtures.

Everything runs on the in-memory adapters; MongoDB adapters are tested
separately against mocked motor collections.
"""

from datetime import date
from typing import Any, Callable

import pytest

from menuplan.application.planning.service import MenuPlanningService
from menuplan.domain.analytics.engine import AnalyticsEngine
from menuplan.domain.planning.enums import MealType
from menuplan.domain.planning.lifecycle import PlanLifecycle
from menuplan.domain.planning.models import (
    Assignment,
    Menu,
    NutritionSnapshot,
    NutritionTargets,
    Plan,
    Program,
)
from menuplan.domain.shared.value_objects import (
    ActorId,
    AssignmentId,
    MenuId,
    PlanId,
    ProgramId,
)
from menuplan.infrastructure.cache.in_memory_report_cache import InMemoryReportCache
from menuplan.infrastructure.events.in_memory_bus import InMemoryEventBus
from menuplan.infrastructure.persistence.in_memory import (
    InMemoryAssignmentRepository,
    InMemoryAuditLogRepository,
    InMemoryCatalogRepository,
    InMemoryPlanRepository,
)

PROGRAM_ID = "prog_school"
OTHER_PROGRAM_ID = "prog_other"

NUTRITIONIST = "SPPG_AHLI_GIZI"  # creator-class
HEAD = "SPPG_KEPALA"  # approver-class
KITCHEN_STAFF = "SPPG_STAFF_DAPUR"  # read-only

# Before every plan period used in the tests: publish lands in PUBLISHED
TODAY = date(2025, 10, 20)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer .env files and exported settings out of the tests."""
    monkeypatch.setenv("MENUPLAN_ENV_FILE", "/nonexistent/.env")
    for name in (
        "REPOSITORY_BACKEND",
        "MONGODB_URI",
        "ANALYTICS_CACHE_TTL_S",
        "DEFAULT_CALORIE_TOLERANCE",
    ):
        monkeypatch.delenv(name, raising=False)


# ═══════════════════════════════════════════════════════════
# REFERENCE DATA
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def program() -> Program:
    return Program(
        id=ProgramId(value=PROGRAM_ID),
        name="School Lunch Program",
        target_recipients=100,
        nutrition_targets=NutritionTargets(calories_per_day=700, protein_per_day=20),
    )


@pytest.fixture
def lunch_menu() -> Menu:
    """M1 of the worked example: 10000 per serving."""
    return Menu(
        id=MenuId(value="menu_m1"),
        program_id=ProgramId(value=PROGRAM_ID),
        name="Nasi Ayam Bayam",
        meal_type=MealType.LUNCH,
        cost_per_serving=10000,
        nutrition=NutritionSnapshot(calories=650, protein=25, carbohydrates=80, fat=20, fiber=5),
        ingredient_ids=("rice", "chicken", "spinach"),
    )


@pytest.fixture
def menus(lunch_menu: Menu) -> list[Menu]:
    program_id = ProgramId(value=PROGRAM_ID)
    return [
        lunch_menu,
        Menu(
            id=MenuId(value="menu_m2"),
            program_id=program_id,
            name="Nasi Ikan Wortel",
            meal_type=MealType.LUNCH,
            cost_per_serving=12000,
            nutrition=NutritionSnapshot(
                calories=700, protein=30, carbohydrates=85, fat=18, fiber=6
            ),
            ingredient_ids=("rice", "fish", "carrot"),
        ),
        Menu(
            id=MenuId(value="menu_m3"),
            program_id=program_id,
            name="Mie Telur",
            meal_type=MealType.LUNCH,
            cost_per_serving=9000,
            nutrition=NutritionSnapshot(
                calories=600, protein=22, carbohydrates=90, fat=15, fiber=3
            ),
            ingredient_ids=("noodle", "egg"),
        ),
        Menu(
            id=MenuId(value="menu_b1"),
            program_id=program_id,
            name="Roti Telur",
            meal_type=MealType.BREAKFAST,
            cost_per_serving=5000,
            nutrition=NutritionSnapshot(
                calories=350, protein=12, carbohydrates=40, fat=10, fiber=2
            ),
            ingredient_ids=("bread", "egg"),
        ),
        Menu(
            id=MenuId(value="menu_fruit"),
            program_id=program_id,
            name="Pisang",
            meal_type=None,
            cost_per_serving=3000,
            nutrition=NutritionSnapshot(calories=120, protein=1, carbohydrates=30, fat=0, fiber=3),
            ingredient_ids=("banana",),
        ),
        Menu(
            id=MenuId(value="menu_other"),
            program_id=ProgramId(value=OTHER_PROGRAM_ID),
            name="Other Program Lunch",
            meal_type=MealType.LUNCH,
            cost_per_serving=8000,
        ),
    ]


# ═══════════════════════════════════════════════════════════
# FACTORIES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def make_plan() -> Callable[..., Plan]:
    """Build a plan directly (no repository), defaulting to 2025-11-01..07."""

    def _make(**overrides: Any) -> Plan:
        fields: dict[str, Any] = {
            "id": PlanId.generate(),
            "program_id": ProgramId(value=PROGRAM_ID),
            "name": "November week 1",
            "start_date": date(2025, 11, 1),
            "end_date": date(2025, 11, 7),
            "created_by": ActorId(value="user_creator"),
        }
        fields.update(overrides)
        return Plan(**fields)

    return _make


@pytest.fixture
def make_assignment() -> Callable[..., Assignment]:
    """Build an assignment snapshot for pure metric/engine tests."""

    def _make(
        plan: Plan,
        menu: Menu,
        assigned_date: date,
        meal_type: MealType = MealType.LUNCH,
        planned_portions: int = 100,
    ) -> Assignment:
        return Assignment(
            id=AssignmentId.generate(),
            plan_id=plan.id,
            menu_id=menu.id,
            assigned_date=assigned_date,
            meal_type=meal_type,
            planned_portions=planned_portions,
            estimated_cost=menu.cost_per_serving * planned_portions,
            nutrition=menu.nutrition,
            ingredient_ids=menu.ingredient_ids,
        )

    return _make


# ═══════════════════════════════════════════════════════════
# ADAPTERS
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def plan_repository() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def assignment_repository() -> InMemoryAssignmentRepository:
    return InMemoryAssignmentRepository()


@pytest.fixture
def audit_repository() -> InMemoryAuditLogRepository:
    return InMemoryAuditLogRepository()


@pytest.fixture
def catalog(program: Program, menus: list[Menu]) -> InMemoryCatalogRepository:
    other = Program(id=ProgramId(value=OTHER_PROGRAM_ID), name="Other Program")
    return InMemoryCatalogRepository(programs=[program, other], menus=menus)


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def report_cache() -> InMemoryReportCache:
    return InMemoryReportCache()


@pytest.fixture
def lifecycle() -> PlanLifecycle:
    return PlanLifecycle(today=lambda: TODAY)


@pytest.fixture
def service(
    plan_repository: InMemoryPlanRepository,
    assignment_repository: InMemoryAssignmentRepository,
    catalog: InMemoryCatalogRepository,
    audit_repository: InMemoryAuditLogRepository,
    event_bus: InMemoryEventBus,
    report_cache: InMemoryReportCache,
    lifecycle: PlanLifecycle,
) -> MenuPlanningService:
    """Workflow façade wired to fresh in-memory adapters."""
    return MenuPlanningService(
        plan_repository=plan_repository,
        assignment_repository=assignment_repository,
        catalog_repository=catalog,
        audit_log_repository=audit_repository,
        event_bus=event_bus,
        report_cache=report_cache,
        lifecycle=lifecycle,
        analytics_engine=AnalyticsEngine(),
    )
