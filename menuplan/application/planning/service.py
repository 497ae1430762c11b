"""
Menu planning workflow façade.

Single entry point for callers (transport, jobs, tests). Coordinates the
lifecycle state machine, the assignment allocator and the analytics engine
over the repository ports, and turns domain failures into
``CommandResult.failure`` values.

Control flow:
    caller -> MenuPlanningService -> {PlanLifecycle | AssignmentAllocator}
           -> metrics / AnalyticsEngine (read) -> CommandResult

Lifecycle and allocator never call each other: the façade reads the
assignment count before asking the lifecycle to submit or publish.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, TypeVar, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

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
from menuplan.application.planning.result import (
    CommandResult,
    PlanListResult,
    PlanStatusSummary,
)
from menuplan.domain.analytics import metrics
from menuplan.domain.analytics.engine import AnalyticsEngine
from menuplan.domain.analytics.report import AnalyticsReport, QualityScores
from menuplan.domain.planning.allocator import AssignmentAllocator, AssignmentPatch, parse_meal_type
from menuplan.domain.planning.autofill import propose_assignments
from menuplan.domain.planning.enums import ActorRole, PlanStatus
from menuplan.domain.planning.events import (
    PLAN_CHANGE_EVENTS,
    PlanDeleted,
    PlanStatusChanged,
    PlanUpdated,
)
from menuplan.domain.planning.lifecycle import (
    APPROVER_ROLES,
    CREATOR_ROLES,
    PlanAction,
    PlanLifecycle,
    TimelineEntry,
    build_timeline,
    ensure_editable,
    ensure_header_editable,
)
from menuplan.domain.planning.models import (
    Assignment,
    AssignmentFilters,
    AuditAction,
    AuditEntry,
    Plan,
    PlanFilters,
    utc_now,
)
from menuplan.domain.ports.event_bus import IEventBus
from menuplan.domain.ports.report_cache import IReportCache
from menuplan.domain.ports.repositories import (
    IAssignmentRepository,
    IAuditLogRepository,
    ICatalogRepository,
    IPlanRepository,
)
from menuplan.domain.shared.errors import (
    DateOutOfRangeError,
    DomainError,
    MenuNotFoundError,
    OverlappingActivePlanError,
    PermissionDeniedError,
    PlanNotFoundError,
    ProgramNotFoundError,
    SlotOccupiedError,
    TransitionPreconditionError,
    ValidationError,
)
from menuplan.domain.shared.value_objects import (
    ActorId,
    AssignmentId,
    MenuId,
    PlanId,
    ProgramId,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Plan header fields callers may edit through update_plan
EDITABLE_PLAN_FIELDS = frozenset(
    {"name", "description", "start_date", "end_date", "planning_rules"}
)


@contextmanager
def _input(subject: str) -> Iterator[None]:
    """Translate pydantic input errors into the domain ValidationError."""
    try:
        yield
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or subject
        raise ValidationError(
            f"Invalid {subject}: {location}: {first.get('msg')}",
            context={"subject": subject, "field": location},
        ) from exc


class MenuPlanningService:
    """
    Workflow orchestration façade.

    Every public coroutine returns a :class:`CommandResult`. Domain errors
    are logged, enriched with ``actor_role`` and ``action`` and returned as
    failures; anything else (driver errors, bugs) propagates.

    Example:
        >>> service = MenuPlanningService(plans, assignments, catalog, audit_log, bus)
        >>> result = await service.create_plan(CreatePlanCommand(...))
        >>> plan = result.unwrap()
    """

    def __init__(
        self,
        plan_repository: IPlanRepository,
        assignment_repository: IAssignmentRepository,
        catalog_repository: ICatalogRepository,
        audit_log_repository: IAuditLogRepository,
        event_bus: IEventBus,
        *,
        report_cache: Optional[IReportCache] = None,
        lifecycle: Optional[PlanLifecycle] = None,
        analytics_engine: Optional[AnalyticsEngine] = None,
        cache_ttl_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._plans = plan_repository
        self._assignments = assignment_repository
        self._catalog = catalog_repository
        self._audit_log = audit_log_repository
        self._event_bus = event_bus
        self._report_cache = report_cache
        self._lifecycle = lifecycle or PlanLifecycle(clock=clock)
        self._engine = analytics_engine or AnalyticsEngine()
        self._cache_ttl = cache_ttl_seconds
        self._clock = clock
        self._allocator = AssignmentAllocator(
            plan_repository=plan_repository,
            assignment_repository=assignment_repository,
            catalog_repository=catalog_repository,
            event_bus=event_bus,
            clock=clock,
        )

        if report_cache is not None:
            for event_type in PLAN_CHANGE_EVENTS:
                event_bus.subscribe(event_type, self._invalidate_report)

    # ═══════════════════════════════════════════════════════════
    # PLUMBING
    # ═══════════════════════════════════════════════════════════

    async def _run(
        self,
        action: str,
        actor_role: Optional[str],
        operation: Callable[[], Awaitable[T]],
    ) -> CommandResult[T]:
        try:
            value = await operation()
        except DomainError as error:
            error.with_context(actor_role=actor_role, action=action)
            logger.warning(
                "menu_planning_command_failed",
                action=action,
                actor_role=actor_role,
                error=type(error).__name__,
                code=error.code,
                message=error.message,
            )
            return CommandResult.failure(error)
        return CommandResult.success(value)

    async def _invalidate_report(self, event: Any) -> None:
        if self._report_cache is not None:
            await self._report_cache.invalidate(event.plan_id)

    async def _get_plan(self, plan_id: Union[str, PlanId]) -> Plan:
        with _input("plan id"):
            pid = plan_id if isinstance(plan_id, PlanId) else PlanId.from_string(plan_id)
        plan = await self._plans.get_by_id(pid)
        if plan is None:
            raise PlanNotFoundError(str(pid))
        return plan

    async def _refresh_summary(self, plan: Plan) -> metrics.PlanSummary:
        assignments = await self._assignments.list_by_plan(plan.id)
        summary = metrics.plan_summary(plan, assignments)
        await self._plans.update_summary(
            plan.id,
            total_days=summary.total_days,
            total_menus=summary.total_menus,
            total_estimated_cost=summary.total_estimated_cost,
            average_cost_per_day=summary.average_cost_per_day,
        )
        return summary

    async def _audit(
        self,
        plan: Plan,
        action: AuditAction,
        actor_id: ActorId,
        actor_role: ActorRole,
        **metadata: Any,
    ) -> None:
        await self._audit_log.append(
            AuditEntry(
                plan_id=plan.id,
                action=action,
                actor_id=actor_id,
                actor_role=actor_role.value,
                metadata={k: v for k, v in metadata.items() if v is not None},
                occurred_at=self._clock(),
            )
        )

    @staticmethod
    def _actor(actor_id: str) -> ActorId:
        with _input("actor id"):
            return ActorId.from_string(actor_id)

    # ═══════════════════════════════════════════════════════════
    # PLAN COMMANDS
    # ═══════════════════════════════════════════════════════════

    async def create_plan(self, command: CreatePlanCommand) -> CommandResult[Plan]:
        """
        Create a DRAFT plan.

        Flow:
        1. Parse role and require WRITE (creator-class) permission
        2. Resolve the program
        3. Validate and persist the plan, write its initial summary
        4. Append the CREATE_PLAN audit entry
        """

        async def operation() -> Plan:
            role = ActorRole.parse(command.actor_role)
            if role not in CREATOR_ROLES:
                raise PermissionDeniedError(
                    f"Role {role.value} cannot create menu plans", role=role.value, action="create"
                )
            actor_id = self._actor(command.actor_id)
            with _input("program id"):
                program_id = ProgramId.from_string(command.program_id)
            if await self._catalog.get_program(program_id) is None:
                raise ProgramNotFoundError(str(program_id))

            with _input("plan"):
                plan = Plan.new(
                    program_id=program_id,
                    name=command.name,
                    start_date=command.start_date,
                    end_date=command.end_date,
                    created_by=actor_id,
                    description=command.description,
                    planning_rules=command.planning_rules,
                )
            plan.total_days = plan.calendar_days

            await self._plans.add(plan)
            await self._audit(
                plan, AuditAction.CREATE_PLAN, actor_id, role, to_status=plan.status.value
            )

            logger.info(
                "plan_created",
                plan_id=str(plan.id),
                program_id=str(program_id),
                start_date=plan.start_date.isoformat(),
                end_date=plan.end_date.isoformat(),
            )
            return plan

        return await self._run("create", command.actor_role, operation)

    async def update_plan(self, command: UpdatePlanCommand) -> CommandResult[Plan]:
        """
        Edit plan header fields.

        DRAFT only. Existing assignments must stay inside a changed date
        range. Bumps ``version`` and publishes PlanUpdated when something
        changed.
        """

        async def operation() -> Plan:
            role = ActorRole.parse(command.actor_role)
            actor_id = self._actor(command.actor_id)
            plan = await self._get_plan(command.plan_id)
            ensure_header_editable(plan, role)

            unknown = set(command.changes) - EDITABLE_PLAN_FIELDS
            if unknown:
                raise ValidationError(
                    f"Plan fields cannot be updated: {', '.join(sorted(unknown))}",
                    context={"fields": ",".join(sorted(unknown))},
                )

            with _input("plan"):
                candidate = Plan.model_validate({**plan.model_dump(), **command.changes})
            changed = sorted(
                name for name in command.changes if getattr(candidate, name) != getattr(plan, name)
            )
            if not changed:
                return plan

            if {"start_date", "end_date"} & set(changed):
                for assignment in await self._assignments.list_by_plan(plan.id):
                    if not candidate.contains(assignment.assigned_date):
                        raise DateOutOfRangeError(
                            assignment.assigned_date, candidate.start_date, candidate.end_date
                        )

            updated = candidate.model_copy(
                update={"updated_at": self._clock(), "version": plan.version + 1}
            )
            await self._plans.save(updated, expected_version=plan.version)
            await self._refresh_summary(updated)
            await self._audit(plan, AuditAction.UPDATE_PLAN, actor_id, role, updated_fields=changed)
            await self._event_bus.publish(
                PlanUpdated.create(plan_id=str(plan.id), updated_fields=tuple(changed))
            )

            logger.info("plan_updated", plan_id=str(plan.id), updated_fields=changed)
            return await self._get_plan(plan.id)

        return await self._run("update", command.actor_role, operation)

    async def delete_plan(self, command: DeletePlanCommand) -> CommandResult[bool]:
        """
        Hard delete a DRAFT plan together with its assignments.

        Flow:
        1. Verify role holds WRITE and the plan is DRAFT
        2. Delete the plan at the version read, then its assignments
        3. Append the DELETE_PLAN audit entry and publish PlanDeleted
        """

        async def operation() -> bool:
            role = ActorRole.parse(command.actor_role)
            if role not in CREATOR_ROLES | APPROVER_ROLES:
                raise PermissionDeniedError(
                    f"Role {role.value} cannot delete menu plans", role=role.value, action="delete"
                )
            actor_id = self._actor(command.actor_id)
            plan = await self._get_plan(command.plan_id)
            ensure_header_editable(plan, role)

            if not await self._plans.delete(plan.id, expected_version=plan.version):
                raise PlanNotFoundError(str(plan.id))
            removed = await self._assignments.delete_by_plan(plan.id)
            await self._audit(
                plan, AuditAction.DELETE_PLAN, actor_id, role, assignments_deleted=removed
            )
            await self._event_bus.publish(
                PlanDeleted.create(plan_id=str(plan.id), actor_id=str(actor_id))
            )

            logger.info("plan_deleted", plan_id=str(plan.id), assignments_deleted=removed)
            return True

        return await self._run("delete", command.actor_role, operation)

    # ═══════════════════════════════════════════════════════════
    # LIFECYCLE TRANSITIONS
    # ═══════════════════════════════════════════════════════════

    async def _transition(self, action: PlanAction, command: TransitionPlanCommand) -> Plan:
        """
        Run one lifecycle transition.

        Flow:
        1. Load plan, check action / role / source status (no mutation)
        2. Storage preconditions: assignment count, overlapping ACTIVE plans
        3. Apply the transition (new plan, bumped version)
        4. Compare-and-set save on the version read in step 1
        5. Audit entry and PlanStatusChanged event
        """
        actor_id = self._actor(command.actor_id)
        plan = await self._get_plan(command.plan_id)
        transition = self._lifecycle.check(plan, action, command.actor_role)

        assignment_count = await self._assignments.count_by_plan(plan.id)
        if transition.requires_assignments and assignment_count == 0:
            raise TransitionPreconditionError(
                f"Cannot {action.value} plan without menu assignments", action=action.value
            )

        if action in (PlanAction.PUBLISH, PlanAction.ACTIVATE):
            active = await self._plans.list(
                PlanFilters(program_id=plan.program_id, status=PlanStatus.ACTIVE)
            )
            overlapping = [str(p.id) for p in active if p.id != plan.id and p.overlaps(plan)]
            if overlapping:
                raise OverlappingActivePlanError(str(plan.id), overlapping)

        updated = self._lifecycle.apply(
            plan,
            action,
            actor_id,
            command.actor_role,
            reason=command.reason,
            notes=command.notes,
        )
        await self._plans.save(updated, expected_version=plan.version)

        role = ActorRole.parse(command.actor_role)
        await self._audit(
            plan,
            transition.audit_action,
            actor_id,
            role,
            from_status=plan.status.value,
            to_status=updated.status.value,
            reason=updated.rejection_reason if action == PlanAction.REJECT else None,
            notes=command.notes,
            assignment_count=assignment_count,
        )
        await self._event_bus.publish(
            PlanStatusChanged.create(
                plan_id=str(plan.id),
                action=action.value,
                from_status=plan.status.value,
                to_status=updated.status.value,
                actor_id=str(actor_id),
            )
        )
        return updated

    async def submit_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        """DRAFT -> PENDING_REVIEW. Requires at least one assignment."""
        return await self._run(
            PlanAction.SUBMIT.value,
            command.actor_role,
            lambda: self._transition(PlanAction.SUBMIT, command),
        )

    async def approve_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        return await self._run(
            PlanAction.APPROVE.value,
            command.actor_role,
            lambda: self._transition(PlanAction.APPROVE, command),
        )

    async def reject_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        """PENDING_REVIEW -> DRAFT with a 10..500 character reason."""
        return await self._run(
            PlanAction.REJECT.value,
            command.actor_role,
            lambda: self._transition(PlanAction.REJECT, command),
        )

    async def publish_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        """
        APPROVED -> ACTIVE (period already started) or PUBLISHED.

        Fails when another ACTIVE plan of the program overlaps the range.
        """
        return await self._run(
            PlanAction.PUBLISH.value,
            command.actor_role,
            lambda: self._transition(PlanAction.PUBLISH, command),
        )

    async def activate_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        return await self._run(
            PlanAction.ACTIVATE.value,
            command.actor_role,
            lambda: self._transition(PlanAction.ACTIVATE, command),
        )

    async def complete_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        return await self._run(
            PlanAction.COMPLETE.value,
            command.actor_role,
            lambda: self._transition(PlanAction.COMPLETE, command),
        )

    async def archive_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        return await self._run(
            PlanAction.ARCHIVE.value,
            command.actor_role,
            lambda: self._transition(PlanAction.ARCHIVE, command),
        )

    async def cancel_plan(self, command: TransitionPlanCommand) -> CommandResult[Plan]:
        return await self._run(
            PlanAction.CANCEL.value,
            command.actor_role,
            lambda: self._transition(PlanAction.CANCEL, command),
        )

    # ═══════════════════════════════════════════════════════════
    # ASSIGNMENT COMMANDS
    # ═══════════════════════════════════════════════════════════

    async def create_assignment(
        self, command: CreateAssignmentCommand
    ) -> CommandResult[Assignment]:
        """
        Place a menu into a slot and refresh the plan summary.

        Flow:
        1. Resolve plan and menu
        2. Allocator validates editability, range, meal type, portions, slot
        3. Recompute the plan's cached aggregates
        """

        async def operation() -> Assignment:
            plan = await self._get_plan(command.plan_id)
            with _input("menu id"):
                menu_id = MenuId.from_string(command.menu_id)
            menu = await self._catalog.get_menu(menu_id)
            if menu is None:
                raise MenuNotFoundError(str(menu_id))

            assignment = await self._allocator.create_assignment(
                plan=plan,
                menu=menu,
                assigned_date=command.assigned_date,
                meal_type=command.meal_type,
                planned_portions=command.planned_portions,
                actor_role=command.actor_role,
                notes=command.notes,
                is_substitute=command.is_substitute,
            )
            await self._refresh_summary(plan)
            return assignment

        return await self._run("create_assignment", command.actor_role, operation)

    async def update_assignment(
        self, command: UpdateAssignmentCommand
    ) -> CommandResult[Assignment]:
        async def operation() -> Assignment:
            with _input("assignment id"):
                assignment_id = AssignmentId.from_string(command.assignment_id)
            with _input("assignment patch"):
                patch = AssignmentPatch(**command.changes)

            updated = await self._allocator.update_assignment(
                assignment_id, patch, command.actor_role
            )
            await self._refresh_summary(await self._get_plan(updated.plan_id))
            return updated

        return await self._run("update_assignment", command.actor_role, operation)

    async def delete_assignment(
        self, command: DeleteAssignmentCommand
    ) -> CommandResult[Assignment]:
        async def operation() -> Assignment:
            with _input("assignment id"):
                assignment_id = AssignmentId.from_string(command.assignment_id)
            deleted = await self._allocator.delete_assignment(assignment_id, command.actor_role)
            await self._refresh_summary(await self._get_plan(deleted.plan_id))
            return deleted

        return await self._run("delete_assignment", command.actor_role, operation)

    async def auto_fill_plan(self, command: AutoFillPlanCommand) -> CommandResult[List[Assignment]]:
        """
        Fill empty slots with catalog menus.

        Proposals come from :func:`propose_assignments` (seeded, rule aware)
        and are written one by one through the allocator. A slot taken
        concurrently between proposal and write is skipped.
        """

        async def operation() -> List[Assignment]:
            role = ActorRole.parse(command.actor_role)
            plan = await self._get_plan(command.plan_id)
            ensure_editable(plan, role)

            if not command.meal_types:
                raise ValidationError("At least one meal type is required for auto-fill")
            meal_types = [parse_meal_type(raw) for raw in command.meal_types]

            menus = await self._catalog.list_menus(plan.program_id)
            existing = await self._assignments.list_by_plan(plan.id)
            proposals = propose_assignments(
                plan,
                menus,
                existing,
                meal_types,
                command.planned_portions,
                seed=command.seed,
            )

            created: List[Assignment] = []
            for proposal in proposals:
                try:
                    assignment = await self._allocator.create_assignment(
                        plan=plan,
                        menu=proposal.menu,
                        assigned_date=proposal.assigned_date,
                        meal_type=proposal.meal_type,
                        planned_portions=command.planned_portions,
                        actor_role=role,
                    )
                except SlotOccupiedError:
                    logger.info(
                        "auto_fill_slot_taken",
                        plan_id=str(plan.id),
                        assigned_date=proposal.assigned_date.isoformat(),
                        meal_type=proposal.meal_type.value,
                    )
                    continue
                created.append(assignment)

            if created:
                await self._refresh_summary(plan)
            logger.info(
                "plan_auto_filled",
                plan_id=str(plan.id),
                proposed=len(proposals),
                created=len(created),
                seed=command.seed,
            )
            return created

        return await self._run("auto_fill", command.actor_role, operation)

    # ═══════════════════════════════════════════════════════════
    # ANALYTICS
    # ═══════════════════════════════════════════════════════════

    async def _build_report(self, plan: Plan) -> AnalyticsReport:
        assignments = await self._assignments.list_by_plan(plan.id)
        program = await self._catalog.get_program(plan.program_id)
        menus = {str(menu.id): menu for menu in await self._catalog.list_menus(plan.program_id)}
        return self._engine.build_report(plan, assignments, program, menus)

    async def get_analytics(self, plan_id: str) -> CommandResult[AnalyticsReport]:
        """Analytics report of a plan, served from the report cache when fresh."""

        async def operation() -> AnalyticsReport:
            if self._report_cache is not None:
                cached = await self._report_cache.get(plan_id)
                if cached is not None:
                    return cached

            plan = await self._get_plan(plan_id)
            report = await self._build_report(plan)
            if self._report_cache is not None:
                await self._report_cache.set(str(plan.id), report, self._cache_ttl)
            return report

        return await self._run("get_analytics", None, operation)

    async def refresh_quality_scores(self, plan_id: str) -> CommandResult[QualityScores]:
        """Recompute quality scores from a fresh report and store them on the plan."""

        async def operation() -> QualityScores:
            plan = await self._get_plan(plan_id)
            report = await self._build_report(plan)
            scores = report.quality_scores
            summary = metrics.plan_summary(plan, await self._assignments.list_by_plan(plan.id))

            await self._plans.update_summary(
                plan.id,
                total_days=summary.total_days,
                total_menus=summary.total_menus,
                total_estimated_cost=summary.total_estimated_cost,
                average_cost_per_day=summary.average_cost_per_day,
            )
            await self._plans.update_scores(
                plan.id,
                nutrition_score=scores.nutrition_score,
                variety_score=scores.variety_score,
                cost_efficiency=scores.cost_efficiency,
            )
            if self._report_cache is not None:
                await self._report_cache.set(str(plan.id), report, self._cache_ttl)

            logger.info(
                "quality_scores_refreshed",
                plan_id=str(plan.id),
                nutrition_score=scores.nutrition_score,
                variety_score=scores.variety_score,
                cost_efficiency=scores.cost_efficiency,
            )
            return scores

        return await self._run("refresh_quality_scores", None, operation)

    # ═══════════════════════════════════════════════════════════
    # QUERIES
    # ═══════════════════════════════════════════════════════════

    async def get_plan(self, plan_id: str) -> CommandResult[Plan]:
        return await self._run("get_plan", None, lambda: self._get_plan(plan_id))

    async def list_plans(
        self, filters: Optional[PlanFilters] = None
    ) -> CommandResult[PlanListResult]:
        """
        Plans matching ``filters`` plus a per-status count.

        The status summary ignores the status filter (and includes archived
        plans) so list views can show every status tab at once.
        """

        async def operation() -> PlanListResult:
            active_filters = filters or PlanFilters()
            plans = await self._plans.list(active_filters)
            everything = await self._plans.list(
                active_filters.model_copy(update={"status": None, "include_archived": True})
            )
            by_status: Dict[PlanStatus, int] = {}
            for plan in everything:
                by_status[plan.status] = by_status.get(plan.status, 0) + 1
            return PlanListResult(
                plans=plans,
                summary=PlanStatusSummary(total=len(everything), by_status=by_status),
            )

        return await self._run("list_plans", None, operation)

    async def list_assignments(
        self, plan_id: str, filters: Optional[AssignmentFilters] = None
    ) -> CommandResult[List[Assignment]]:
        async def operation() -> List[Assignment]:
            plan = await self._get_plan(plan_id)
            return await self._allocator.list_assignments(plan.id, filters)

        return await self._run("list_assignments", None, operation)

    async def get_plan_timeline(self, plan_id: str) -> CommandResult[List[TimelineEntry]]:
        async def operation() -> List[TimelineEntry]:
            plan = await self._get_plan(plan_id)
            entries = await self._audit_log.list_by_plan(plan.id)
            return build_timeline(plan, entries)

        return await self._run("get_plan_timeline", None, operation)
