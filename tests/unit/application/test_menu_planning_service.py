"""Unit tests for the MenuPlanningService workflow façade."""

import asyncio
from datetime import date

import pytest
import pytest_asyncio

from menuplan.application.planning.commands import (
    AutoFillPlanCommand,
    CreateAssignmentCommand,
    CreatePlanCommand,
    DeleteAssignmentCommand,
    DeletePlanCommand,
    TransitionPlanCommand,
    UpdateAssignmentCommand,
    UpdatePlanCommand,
)
from menuplan.domain.planning.enums import MealType, PlanStatus
from menuplan.domain.planning.events import (
    AssignmentCreated,
    PlanDeleted,
    PlanStatusChanged,
    PlanUpdated,
)
from menuplan.domain.planning.models import AssignmentFilters, AuditAction, PlanFilters
from menuplan.domain.shared.errors import (
    AssignmentNotFoundError,
    ConcurrentModificationError,
    DateOutOfRangeError,
    InvalidDateRangeError,
    InvalidTransitionError,
    MenuNotFoundError,
    OverlappingActivePlanError,
    PermissionDeniedError,
    PlanNotEditableError,
    PlanNotFoundError,
    ProgramNotFoundError,
    SlotOccupiedError,
    StateConflictError,
    TransitionPreconditionError,
    ValidationError,
)

NUTRITIONIST = "SPPG_AHLI_GIZI"
HEAD = "SPPG_KEPALA"
KITCHEN_STAFF = "SPPG_STAFF_DAPUR"

CREATOR_ID = "user_creator"
HEAD_ID = "user_head"


def _create_command(**overrides):
    fields = {
        "program_id": "prog_school",
        "name": "November week 1",
        "start_date": date(2025, 11, 1),
        "end_date": date(2025, 11, 7),
        "actor_id": CREATOR_ID,
        "actor_role": NUTRITIONIST,
    }
    fields.update(overrides)
    return CreatePlanCommand(**fields)


def _transition(plan_id, role=HEAD, actor_id=HEAD_ID, **kwargs):
    return TransitionPlanCommand(plan_id=str(plan_id), actor_id=actor_id, actor_role=role, **kwargs)


def _by_creator(plan_id, **kwargs):
    return _transition(plan_id, role=NUTRITIONIST, actor_id=CREATOR_ID, **kwargs)


@pytest.fixture
def published_events(event_bus):
    events = []

    async def record(event):
        events.append(event)

    for event_type in (AssignmentCreated, PlanStatusChanged, PlanUpdated, PlanDeleted):
        event_bus.subscribe(event_type, record)
    return events


@pytest_asyncio.fixture
async def draft_plan(service):
    result = await service.create_plan(_create_command())
    return result.unwrap()


@pytest.fixture
def assign(service):
    """Create an assignment through the façade, M1 on 2025-11-03 LUNCH by default."""

    async def _assign(
        plan, menu_id="menu_m1", day=date(2025, 11, 3), meal_type="LUNCH", portions=100
    ):
        return await service.create_assignment(
            CreateAssignmentCommand(
                plan_id=str(plan.id),
                menu_id=menu_id,
                assigned_date=day,
                meal_type=meal_type,
                planned_portions=portions,
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
            )
        )

    return _assign


# ═══════════════════════════════════════════════════════════
# PLAN COMMANDS
# ═══════════════════════════════════════════════════════════


class TestCreatePlan:
    @pytest.mark.asyncio
    async def test_creates_draft_with_audit_entry(self, service, audit_repository):
        # Act
        result = await service.create_plan(_create_command())

        # Assert
        assert result.ok
        plan = result.value
        assert plan.status == PlanStatus.DRAFT
        assert plan.total_days == 7
        entries = await audit_repository.list_by_plan(plan.id)
        assert [e.action for e in entries] == [AuditAction.CREATE_PLAN]
        assert entries[0].actor_role == NUTRITIONIST

    @pytest.mark.asyncio
    async def test_read_only_role_cannot_create(self, service):
        result = await service.create_plan(_create_command(actor_role=KITCHEN_STAFF))

        assert not result.ok
        assert isinstance(result.error, PermissionDeniedError)
        assert result.error.context["action"] == "create"
        assert result.error.context["actor_role"] == KITCHEN_STAFF

    @pytest.mark.asyncio
    async def test_unknown_program(self, service):
        result = await service.create_plan(_create_command(program_id="prog_missing"))

        assert isinstance(result.error, ProgramNotFoundError)

    @pytest.mark.asyncio
    async def test_bad_date_range(self, service):
        result = await service.create_plan(_create_command(end_date=date(2025, 11, 1)))

        assert isinstance(result.error, InvalidDateRangeError)

    @pytest.mark.asyncio
    async def test_short_name_is_validation_error(self, service):
        result = await service.create_plan(_create_command(name="ab"))

        assert isinstance(result.error, ValidationError)
        assert result.error.context["subject"] == "plan"

    @pytest.mark.asyncio
    async def test_unwrap_raises_failure(self, service):
        result = await service.create_plan(_create_command(actor_role="NOT_A_ROLE"))

        with pytest.raises(PermissionDeniedError):
            result.unwrap()


class TestUpdatePlan:
    @pytest.mark.asyncio
    async def test_updates_fields_and_bumps_version(self, service, draft_plan, published_events):
        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"name": "November week one", "description": "Local produce"},
            )
        )

        plan = result.unwrap()
        assert plan.name == "November week one"
        assert plan.description == "Local produce"
        assert plan.version == draft_plan.version + 1
        (event,) = [e for e in published_events if isinstance(e, PlanUpdated)]
        assert event.updated_fields == ("description", "name")

    @pytest.mark.asyncio
    async def test_no_change_keeps_version(self, service, draft_plan):
        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"name": draft_plan.name},
            )
        )

        assert result.unwrap().version == draft_plan.version

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, service, draft_plan):
        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"status": "APPROVED"},
            )
        )

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_range_cannot_drop_assignments(self, service, draft_plan, assign):
        (await assign(draft_plan, day=date(2025, 11, 6))).unwrap()

        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"end_date": date(2025, 11, 5)},
            )
        )

        assert isinstance(result.error, DateOutOfRangeError)

    @pytest.mark.asyncio
    async def test_range_change_refreshes_total_days(self, service, draft_plan):
        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"end_date": date(2025, 11, 14)},
            )
        )

        assert result.unwrap().total_days == 14

    @pytest.mark.asyncio
    async def test_not_editable_after_submit(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"name": "Too late"},
            )
        )

        assert isinstance(result.error, PlanNotEditableError)

    @pytest.mark.asyncio
    async def test_approver_cannot_edit_header_under_review(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        result = await service.update_plan(
            UpdatePlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=HEAD_ID,
                actor_role=HEAD,
                changes={"name": "Renamed in review"},
            )
        )

        assert isinstance(result.error, PlanNotEditableError)
        stored = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert stored.name == draft_plan.name


class TestDeletePlan:
    @pytest.mark.asyncio
    async def test_deletes_draft_and_assignments(
        self, service, draft_plan, assign, assignment_repository, published_events
    ):
        (await assign(draft_plan)).unwrap()

        result = await service.delete_plan(
            DeletePlanCommand(
                plan_id=str(draft_plan.id), actor_id=CREATOR_ID, actor_role=NUTRITIONIST
            )
        )

        assert result.unwrap() is True
        assert await assignment_repository.count_by_plan(draft_plan.id) == 0
        assert isinstance((await service.get_plan(str(draft_plan.id))).error, PlanNotFoundError)
        assert any(isinstance(e, PlanDeleted) for e in published_events)

    @pytest.mark.asyncio
    async def test_only_drafts_can_be_deleted(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        result = await service.delete_plan(
            DeletePlanCommand(plan_id=str(draft_plan.id), actor_id=HEAD_ID, actor_role=HEAD)
        )

        assert isinstance(result.error, PlanNotEditableError)

    @pytest.mark.asyncio
    async def test_stale_draft_read_does_not_delete_submitted_plan(
        self, service, draft_plan, assign, plan_repository, assignment_repository, monkeypatch
    ):
        # Arrange: the plan is submitted after the deleter read it as DRAFT
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        async def stale_read(plan_id):
            return draft_plan

        monkeypatch.setattr(plan_repository, "get_by_id", stale_read)

        # Act
        result = await service.delete_plan(
            DeletePlanCommand(
                plan_id=str(draft_plan.id), actor_id=CREATOR_ID, actor_role=NUTRITIONIST
            )
        )

        # Assert
        assert isinstance(result.error, ConcurrentModificationError)
        monkeypatch.undo()
        stored = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert stored.status == PlanStatus.PENDING_REVIEW
        assert await assignment_repository.count_by_plan(draft_plan.id) == 1

    @pytest.mark.asyncio
    async def test_read_only_role(self, service, draft_plan):
        result = await service.delete_plan(
            DeletePlanCommand(
                plan_id=str(draft_plan.id), actor_id="user_kitchen", actor_role=KITCHEN_STAFF
            )
        )

        assert isinstance(result.error, PermissionDeniedError)


# ═══════════════════════════════════════════════════════════
# LIFECYCLE
# ═══════════════════════════════════════════════════════════


class TestTransitions:
    @pytest.mark.asyncio
    async def test_submit_requires_assignments(self, service, draft_plan):
        result = await service.submit_plan(_by_creator(draft_plan.id))

        assert isinstance(result.error, TransitionPreconditionError)
        assert result.error.context["action"] == "submit"

    @pytest.mark.asyncio
    async def test_full_happy_path(
        self, service, draft_plan, assign, audit_repository, published_events
    ):
        (await assign(draft_plan)).unwrap()

        submitted = (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()
        approval = _transition(draft_plan.id, notes="Looks balanced")
        approved = (await service.approve_plan(approval)).unwrap()
        published = (await service.publish_plan(_transition(draft_plan.id))).unwrap()

        assert submitted.status == PlanStatus.PENDING_REVIEW
        assert approved.status == PlanStatus.APPROVED
        assert "Approval Notes: Looks balanced" in approved.description
        assert published.status == PlanStatus.PUBLISHED
        assert published.is_active is False

        entries = await audit_repository.list_by_plan(draft_plan.id)
        assert [e.action for e in entries] == [
            AuditAction.CREATE_PLAN,
            AuditAction.SUBMIT_FOR_REVIEW,
            AuditAction.APPROVE_PLAN,
            AuditAction.PUBLISH_PLAN,
        ]
        assert entries[1].metadata["assignment_count"] == 1
        assert entries[3].metadata == {
            "from_status": "APPROVED",
            "to_status": "PUBLISHED",
            "assignment_count": 1,
        }
        changes = [e for e in published_events if isinstance(e, PlanStatusChanged)]
        assert [e.to_status for e in changes] == ["PENDING_REVIEW", "APPROVED", "PUBLISHED"]

    @pytest.mark.asyncio
    async def test_creator_cannot_approve(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        result = await service.approve_plan(_by_creator(draft_plan.id))

        assert isinstance(result.error, PermissionDeniedError)
        assert result.error.context["actor_role"] == NUTRITIONIST

    @pytest.mark.asyncio
    async def test_reject_records_reason(self, service, draft_plan, assign, audit_repository):
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        rejection = _transition(draft_plan.id, reason="Budget too high")
        rejected = (await service.reject_plan(rejection)).unwrap()

        assert rejected.status == PlanStatus.DRAFT
        assert rejected.rejection_reason == "Budget too high"
        entries = await audit_repository.list_by_plan(draft_plan.id)
        assert entries[-1].metadata["reason"] == "Budget too high"

    @pytest.mark.asyncio
    async def test_short_rejection_reason(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        result = await service.reject_plan(_transition(draft_plan.id, reason="too short"))

        assert isinstance(result.error, TransitionPreconditionError)
        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert plan.status == PlanStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_wrong_source_status(self, service, draft_plan):
        result = await service.publish_plan(_transition(draft_plan.id))

        assert isinstance(result.error, InvalidTransitionError)

    @pytest.mark.asyncio
    async def test_publish_blocked_by_overlapping_active_plan(
        self, service, draft_plan, assign, plan_repository, make_plan
    ):
        active = make_plan(
            start_date=date(2025, 10, 27),
            end_date=date(2025, 11, 2),
            status=PlanStatus.ACTIVE,
            is_draft=False,
            is_active=True,
        )
        await plan_repository.add(active)
        (await assign(draft_plan)).unwrap()
        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()
        (await service.approve_plan(_transition(draft_plan.id))).unwrap()

        result = await service.publish_plan(_transition(draft_plan.id))

        assert isinstance(result.error, OverlappingActivePlanError)
        assert (await service.get_plan(str(draft_plan.id))).unwrap().status == PlanStatus.APPROVED

    @pytest.mark.asyncio
    async def test_archive_and_cancel(self, service, draft_plan):
        cancelled_plan = (await service.create_plan(_create_command(name="Second plan"))).unwrap()

        archived = (await service.archive_plan(_by_creator(draft_plan.id))).unwrap()
        cancelled = (await service.cancel_plan(_transition(cancelled_plan.id))).unwrap()

        assert archived.status == PlanStatus.ARCHIVED
        assert archived.is_archived
        assert cancelled.status == PlanStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_concurrent_submits_only_one_wins(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        command = _by_creator(draft_plan.id)

        results = await asyncio.gather(service.submit_plan(command), service.submit_plan(command))

        assert sum(1 for r in results if r.ok) == 1
        (failure,) = [r for r in results if not r.ok]
        assert isinstance(failure.error, StateConflictError)

    @pytest.mark.asyncio
    async def test_unknown_plan(self, service):
        result = await service.submit_plan(_transition("plan_missing", role=NUTRITIONIST))

        assert isinstance(result.error, PlanNotFoundError)


# ═══════════════════════════════════════════════════════════
# ASSIGNMENTS
# ═══════════════════════════════════════════════════════════


class TestAssignments:
    @pytest.mark.asyncio
    async def test_create_refreshes_summary(self, service, draft_plan, assign):
        assignment = (await assign(draft_plan)).unwrap()

        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert assignment.estimated_cost == 1_000_000
        assert plan.total_menus == 1
        assert plan.total_estimated_cost == 1_000_000
        assert plan.average_cost_per_day == 1_000_000

    @pytest.mark.asyncio
    async def test_slot_occupied(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()

        result = await assign(draft_plan, menu_id="menu_m2")

        assert isinstance(result.error, SlotOccupiedError)
        assert result.error.context["action"] == "create_assignment"

    @pytest.mark.asyncio
    async def test_unknown_menu(self, service, draft_plan, assign):
        result = await assign(draft_plan, menu_id="menu_missing")

        assert isinstance(result.error, MenuNotFoundError)

    @pytest.mark.asyncio
    async def test_update_portions_recomputes_cost(self, service, draft_plan, assign):
        assignment = (await assign(draft_plan)).unwrap()

        result = await service.update_assignment(
            UpdateAssignmentCommand(
                assignment_id=str(assignment.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"planned_portions": 50},
            )
        )

        assert result.unwrap().estimated_cost == 500_000
        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert plan.total_estimated_cost == 500_000

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_fields(self, service, draft_plan, assign):
        assignment = (await assign(draft_plan)).unwrap()

        result = await service.update_assignment(
            UpdateAssignmentCommand(
                assignment_id=str(assignment.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                changes={"estimated_cost": 1},
            )
        )

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_delete_refreshes_summary(self, service, draft_plan, assign):
        assignment = (await assign(draft_plan)).unwrap()

        result = await service.delete_assignment(
            DeleteAssignmentCommand(
                assignment_id=str(assignment.id), actor_id=CREATOR_ID, actor_role=NUTRITIONIST
            )
        )

        assert result.ok
        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert plan.total_menus == 0
        assert plan.total_estimated_cost == 0

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service):
        result = await service.delete_assignment(
            DeleteAssignmentCommand(
                assignment_id="asg_missing", actor_id=CREATOR_ID, actor_role=NUTRITIONIST
            )
        )

        assert isinstance(result.error, AssignmentNotFoundError)

    @pytest.mark.asyncio
    async def test_list_assignments_filters(self, service, draft_plan, assign):
        (await assign(draft_plan, day=date(2025, 11, 2))).unwrap()
        breakfast = await assign(
            draft_plan, menu_id="menu_b1", day=date(2025, 11, 2), meal_type="BREAKFAST"
        )
        breakfast.unwrap()

        everything = (await service.list_assignments(str(draft_plan.id))).unwrap()
        only_breakfast = AssignmentFilters(meal_type=MealType.BREAKFAST)
        breakfasts = (
            await service.list_assignments(str(draft_plan.id), only_breakfast)
        ).unwrap()

        assert [a.meal_type for a in everything] == [MealType.BREAKFAST, MealType.LUNCH]
        assert len(breakfasts) == 1


class TestAutoFill:
    @pytest.mark.asyncio
    async def test_fills_empty_slots(self, service, draft_plan, assign):
        (await assign(draft_plan, day=date(2025, 11, 3))).unwrap()

        created = (
            await service.auto_fill_plan(
                AutoFillPlanCommand(
                    plan_id=str(draft_plan.id),
                    actor_id=CREATOR_ID,
                    actor_role=NUTRITIONIST,
                    meal_types=["LUNCH"],
                    planned_portions=100,
                    seed=21,
                )
            )
        ).unwrap()

        assert len(created) == 6
        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert plan.total_menus == 7

    @pytest.mark.asyncio
    async def test_requires_meal_types(self, service, draft_plan):
        result = await service.auto_fill_plan(
            AutoFillPlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                meal_types=[],
                planned_portions=100,
            )
        )

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_unknown_meal_type(self, service, draft_plan):
        result = await service.auto_fill_plan(
            AutoFillPlanCommand(
                plan_id=str(draft_plan.id),
                actor_id=CREATOR_ID,
                actor_role=NUTRITIONIST,
                meal_types=["BRUNCH"],
                planned_portions=100,
            )
        )

        assert isinstance(result.error, ValidationError)


# ═══════════════════════════════════════════════════════════
# ANALYTICS
# ═══════════════════════════════════════════════════════════


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_report_is_cached(self, service, draft_plan, assign, report_cache):
        (await assign(draft_plan)).unwrap()

        report = (await service.get_analytics(str(draft_plan.id))).unwrap()

        assert report.cost.summary.total_plan_cost == 1_000_000
        assert await report_cache.get(str(draft_plan.id)) == report

    @pytest.mark.asyncio
    async def test_assignment_change_invalidates_report(
        self, service, draft_plan, assign, report_cache
    ):
        (await assign(draft_plan)).unwrap()
        (await service.get_analytics(str(draft_plan.id))).unwrap()

        (await assign(draft_plan, menu_id="menu_m2", day=date(2025, 11, 4))).unwrap()

        assert await report_cache.get(str(draft_plan.id)) is None
        report = (await service.get_analytics(str(draft_plan.id))).unwrap()
        assert report.cost.summary.total_plan_cost == 2_200_000

    @pytest.mark.asyncio
    async def test_status_change_invalidates_report(
        self, service, draft_plan, assign, report_cache
    ):
        (await assign(draft_plan)).unwrap()
        (await service.get_analytics(str(draft_plan.id))).unwrap()

        (await service.submit_plan(_by_creator(draft_plan.id))).unwrap()

        assert await report_cache.get(str(draft_plan.id)) is None

    @pytest.mark.asyncio
    async def test_unknown_plan(self, service):
        result = await service.get_analytics("plan_missing")

        assert isinstance(result.error, PlanNotFoundError)

    @pytest.mark.asyncio
    async def test_refresh_quality_scores(self, service, draft_plan, assign):
        (await assign(draft_plan, day=date(2025, 11, 3))).unwrap()
        (await assign(draft_plan, day=date(2025, 11, 4))).unwrap()

        scores = (await service.refresh_quality_scores(str(draft_plan.id))).unwrap()

        assert scores.variety_score == 50.0
        assert scores.nutrition_score == 100.0
        assert scores.cost_efficiency is None
        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert plan.variety_score == 50.0
        assert plan.nutrition_score == 100.0

    @pytest.mark.asyncio
    async def test_refresh_clears_scores_when_plan_empties(self, service, draft_plan, assign):
        created = (await assign(draft_plan)).unwrap()
        (await service.refresh_quality_scores(str(draft_plan.id))).unwrap()
        (
            await service.delete_assignment(
                DeleteAssignmentCommand(
                    assignment_id=str(created.id), actor_id=CREATOR_ID, actor_role=NUTRITIONIST
                )
            )
        ).unwrap()

        scores = (await service.refresh_quality_scores(str(draft_plan.id))).unwrap()

        assert scores.variety_score is None
        plan = (await service.get_plan(str(draft_plan.id))).unwrap()
        assert plan.variety_score is None
        assert plan.total_menus == 0


# ═══════════════════════════════════════════════════════════
# QUERIES
# ═══════════════════════════════════════════════════════════


class TestQueries:
    @pytest.mark.asyncio
    async def test_list_plans_with_status_summary(self, service, draft_plan):
        second = (await service.create_plan(_create_command(name="December week 1"))).unwrap()
        (await service.archive_plan(_transition(second.id))).unwrap()

        result = (await service.list_plans()).unwrap()

        assert [p.id for p in result.plans] == [draft_plan.id]
        assert result.summary.total == 2
        assert result.summary.count(PlanStatus.DRAFT) == 1
        assert result.summary.count(PlanStatus.ARCHIVED) == 1
        assert result.summary.count(PlanStatus.ACTIVE) == 0

    @pytest.mark.asyncio
    async def test_list_plans_status_filter_keeps_full_summary(self, service, draft_plan):
        result = (await service.list_plans(PlanFilters(status=PlanStatus.APPROVED))).unwrap()

        assert result.plans == []
        assert result.summary.total == 1

    @pytest.mark.asyncio
    async def test_timeline_keeps_every_round(self, service, draft_plan, assign):
        (await assign(draft_plan)).unwrap()
        submit = _by_creator(draft_plan.id)
        (await service.submit_plan(submit)).unwrap()
        rejection = _transition(draft_plan.id, reason="Budget too high")
        (await service.reject_plan(rejection)).unwrap()
        (await service.submit_plan(submit)).unwrap()

        timeline = (await service.get_plan_timeline(str(draft_plan.id))).unwrap()

        assert [e.status for e in timeline] == [
            PlanStatus.DRAFT,
            PlanStatus.PENDING_REVIEW,
            PlanStatus.DRAFT,
            PlanStatus.PENDING_REVIEW,
        ]
        assert timeline[2].note == "Budget too high"
