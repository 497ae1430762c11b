"""
Plan lifecycle state machine.

The transition table below is the single source of truth for which actions
exist, which statuses they leave from, where they go and which roles may
perform them. ``PlanLifecycle.apply`` checks, in order:

1. action is known
2. actor role is allowed
3. plan is in a source status
4. transition precondition (reason length, date window)

and fails fast with a typed error before touching the plan. On success it
returns a NEW plan with the status, audit fields, ``updated_at`` and a bumped
``version``; the caller persists it with a compare-and-set on the previous
version.

Preconditions that need storage (assignment count, overlapping active plans)
are checked by the workflow façade before calling ``apply``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union

import structlog

from menuplan.domain.planning.enums import TERMINAL_STATUSES, ActorRole, PlanStatus
from menuplan.domain.planning.models import MAX_NOTES_LENGTH, AuditAction, AuditEntry, Plan, utc_now
from menuplan.domain.shared.errors import (
    InvalidTransitionError,
    PermissionDeniedError,
    PlanNotEditableError,
    TransitionPreconditionError,
    ValidationError,
)
from menuplan.domain.shared.value_objects import ActorId

logger = structlog.get_logger(__name__)

REJECTION_REASON_MIN = 10
REJECTION_REASON_MAX = 500


# ═══════════════════════════════════════════════════════════
# ROLES
# ═══════════════════════════════════════════════════════════

# Roles holding the WRITE permission
CREATOR_ROLES = frozenset(
    {
        ActorRole.PLATFORM_SUPERADMIN,
        ActorRole.SPPG_KEPALA,
        ActorRole.SPPG_ADMIN,
        ActorRole.SPPG_AHLI_GIZI,
        ActorRole.SPPG_AKUNTAN,
        ActorRole.SPPG_PRODUKSI_MANAGER,
        ActorRole.SPPG_DISTRIBUSI_MANAGER,
        ActorRole.SPPG_HRD_MANAGER,
        ActorRole.SPPG_STAFF_ADMIN,
    }
)

APPROVER_ROLES = frozenset(
    {
        ActorRole.PLATFORM_SUPERADMIN,
        ActorRole.SPPG_KEPALA,
        ActorRole.SPPG_ADMIN,
    }
)


# ═══════════════════════════════════════════════════════════
# TRANSITION TABLE
# ═══════════════════════════════════════════════════════════


class PlanAction(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    ACTIVATE = "activate"
    COMPLETE = "complete"
    ARCHIVE = "archive"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Transition:
    """
    One row of the transition table.

    Attributes:
        target: Destination status. ``publish`` resolves it at apply time
            (ACTIVE when today is inside the plan range, else PUBLISHED).
        notes_label: Prefix used when notes are appended to the description;
            None when the action takes no notes.
    """

    action: PlanAction
    sources: frozenset[PlanStatus]
    target: PlanStatus
    roles: frozenset[ActorRole]
    audit_action: AuditAction
    notes_label: Optional[str] = None
    requires_assignments: bool = False


_NON_TERMINAL = frozenset(PlanStatus) - TERMINAL_STATUSES

TRANSITIONS: dict[PlanAction, Transition] = {
    PlanAction.SUBMIT: Transition(
        action=PlanAction.SUBMIT,
        sources=frozenset({PlanStatus.DRAFT}),
        target=PlanStatus.PENDING_REVIEW,
        roles=CREATOR_ROLES,
        audit_action=AuditAction.SUBMIT_FOR_REVIEW,
        notes_label="Submit",
        requires_assignments=True,
    ),
    PlanAction.APPROVE: Transition(
        action=PlanAction.APPROVE,
        sources=frozenset({PlanStatus.PENDING_REVIEW}),
        target=PlanStatus.APPROVED,
        roles=APPROVER_ROLES,
        audit_action=AuditAction.APPROVE_PLAN,
        notes_label="Approval",
    ),
    PlanAction.REJECT: Transition(
        action=PlanAction.REJECT,
        sources=frozenset({PlanStatus.PENDING_REVIEW}),
        target=PlanStatus.DRAFT,
        roles=APPROVER_ROLES,
        audit_action=AuditAction.REJECT_PLAN,
    ),
    PlanAction.PUBLISH: Transition(
        action=PlanAction.PUBLISH,
        sources=frozenset({PlanStatus.APPROVED}),
        target=PlanStatus.PUBLISHED,
        roles=APPROVER_ROLES,
        audit_action=AuditAction.PUBLISH_PLAN,
        notes_label="Publish",
        requires_assignments=True,
    ),
    PlanAction.ACTIVATE: Transition(
        action=PlanAction.ACTIVATE,
        sources=frozenset({PlanStatus.PUBLISHED}),
        target=PlanStatus.ACTIVE,
        roles=APPROVER_ROLES,
        audit_action=AuditAction.ACTIVATE_PLAN,
    ),
    PlanAction.COMPLETE: Transition(
        action=PlanAction.COMPLETE,
        sources=frozenset({PlanStatus.ACTIVE}),
        target=PlanStatus.COMPLETED,
        roles=APPROVER_ROLES,
        audit_action=AuditAction.COMPLETE_PLAN,
    ),
    PlanAction.ARCHIVE: Transition(
        action=PlanAction.ARCHIVE,
        sources=frozenset({PlanStatus.DRAFT}),
        target=PlanStatus.ARCHIVED,
        roles=CREATOR_ROLES | APPROVER_ROLES,
        audit_action=AuditAction.ARCHIVE_PLAN,
    ),
    PlanAction.CANCEL: Transition(
        action=PlanAction.CANCEL,
        sources=_NON_TERMINAL,
        target=PlanStatus.CANCELLED,
        roles=APPROVER_ROLES,
        audit_action=AuditAction.CANCEL_PLAN,
    ),
}

# Status order used to render the allowed-from list deterministically
_STATUS_ORDER = {status: index for index, status in enumerate(PlanStatus)}


def parse_action(raw: Union[str, PlanAction]) -> PlanAction:
    """
    Parse a transition name.

    Raises:
        ValidationError: If the action is unknown
    """
    try:
        return PlanAction(raw)
    except ValueError:
        raise ValidationError(
            f"Unknown plan action: {raw!r}", context={"action": str(raw)}
        ) from None


# ═══════════════════════════════════════════════════════════
# EDITABILITY
# ═══════════════════════════════════════════════════════════


def is_editable(plan: Plan, role: ActorRole) -> bool:
    """
    Whether the assignments of ``plan`` may be changed by ``role``.

    DRAFT: any creator-class role. PENDING_REVIEW: approver-class roles only,
    so reviewers can fix small issues without bouncing the plan.
    """
    if plan.status == PlanStatus.DRAFT:
        return role in CREATOR_ROLES or role in APPROVER_ROLES
    if plan.status == PlanStatus.PENDING_REVIEW:
        return role in APPROVER_ROLES
    return False


def ensure_editable(plan: Plan, role: ActorRole) -> None:
    """
    Raises:
        PlanNotEditableError: If ``is_editable`` is False
    """
    if not is_editable(plan, role):
        raise PlanNotEditableError(str(plan.id), plan.status.value, role.value)


def ensure_header_editable(plan: Plan, role: ActorRole) -> None:
    """Plan header edits and deletion are DRAFT-only, approvers included."""
    if plan.status != PlanStatus.DRAFT or not is_editable(plan, role):
        raise PlanNotEditableError(str(plan.id), plan.status.value, role.value)


# ═══════════════════════════════════════════════════════════
# STATE MACHINE
# ═══════════════════════════════════════════════════════════


class PlanLifecycle:
    """
    Applies lifecycle transitions to plans.

    Stateless apart from its clocks, which are injectable for tests.

    Example:
        >>> lifecycle = PlanLifecycle(today=lambda: date(2025, 11, 3))
        >>> submitted = lifecycle.apply(plan, "submit", actor_id, "SPPG_AHLI_GIZI")
        >>> submitted.status
        <PlanStatus.PENDING_REVIEW: 'PENDING_REVIEW'>
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._clock = clock
        self._today = today or (lambda: self._clock().date())

    def transition_for(self, action: Union[str, PlanAction]) -> Transition:
        return TRANSITIONS[parse_action(action)]

    def check(
        self,
        plan: Plan,
        action: Union[str, PlanAction],
        actor_role: Union[str, ActorRole],
    ) -> Transition:
        """
        Validate action, role and source status without mutating anything.

        Raises:
            ValidationError: Unknown action
            PermissionDeniedError: Role not allowed
            InvalidTransitionError: Plan not in a source status
        """
        transition = self.transition_for(action)
        role = ActorRole.parse(actor_role)

        if role not in transition.roles:
            raise PermissionDeniedError(
                f"Role {role.value} cannot {transition.action.value} menu plans",
                role=role.value,
                action=transition.action.value,
            )

        if plan.status not in transition.sources:
            raise InvalidTransitionError(
                action=transition.action.value,
                current_status=plan.status.value,
                allowed_from=[
                    s.value for s in sorted(transition.sources, key=_STATUS_ORDER.__getitem__)
                ],
            )

        return transition

    def allowed_actions(self, plan: Plan, actor_role: Union[str, ActorRole]) -> list[PlanAction]:
        """Actions the role could attempt on the plan in its current status."""
        role = ActorRole.parse(actor_role)
        return [
            t.action
            for t in TRANSITIONS.values()
            if role in t.roles and plan.status in t.sources
        ]

    def apply(
        self,
        plan: Plan,
        action: Union[str, PlanAction],
        actor_id: ActorId,
        actor_role: Union[str, ActorRole],
        *,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Plan:
        """
        Apply a transition and return the resulting plan.

        The input plan is never mutated.

        Args:
            plan: Current plan state
            action: Transition name
            actor_id: User performing the transition
            actor_role: Opaque role string
            reason: Rejection reason (reject only, 10..500 chars stripped)
            notes: Optional notes appended to the description (≤ 500 chars)

        Returns:
            New plan with bumped version

        Raises:
            ValidationError: Unknown action, bad notes
            PermissionDeniedError: Role not allowed
            InvalidTransitionError: Plan not in a source status
            TransitionPreconditionError: Rejection reason / date window
        """
        transition = self.check(plan, action, actor_role)
        now = self._clock()
        today = self._today()

        if notes is not None:
            notes = notes.strip() or None
            if notes is not None and len(notes) > MAX_NOTES_LENGTH:
                raise ValidationError(
                    f"Notes must be at most {MAX_NOTES_LENGTH} characters",
                    context={"action": transition.action.value},
                )

        target = transition.target
        updates: dict[str, Any] = {}

        if transition.action == PlanAction.SUBMIT:
            updates.update(submitted_by=actor_id, submitted_at=now)

        elif transition.action == PlanAction.APPROVE:
            updates.update(approved_by=actor_id, approved_at=now)

        elif transition.action == PlanAction.REJECT:
            cleaned = (reason or "").strip()
            if not REJECTION_REASON_MIN <= len(cleaned) <= REJECTION_REASON_MAX:
                raise TransitionPreconditionError(
                    f"Rejection reason must be between {REJECTION_REASON_MIN} and "
                    f"{REJECTION_REASON_MAX} characters",
                    action=transition.action.value,
                )
            updates.update(
                rejected_by=actor_id,
                rejected_at=now,
                rejection_reason=cleaned,
                submitted_by=None,
                submitted_at=None,
                approved_by=None,
                approved_at=None,
                description=_append_note(plan.description, "Rejection Reason", cleaned),
            )

        elif transition.action == PlanAction.PUBLISH:
            updates.update(published_by=actor_id, published_at=now)
            if plan.contains(today):
                target = PlanStatus.ACTIVE
                updates["is_active"] = True

        elif transition.action == PlanAction.ACTIVATE:
            if not plan.contains(today):
                raise TransitionPreconditionError(
                    f"Cannot activate plan outside its period "
                    f"{plan.start_date.isoformat()}..{plan.end_date.isoformat()}",
                    action=transition.action.value,
                )
            updates.update(is_active=True)

        elif transition.action == PlanAction.COMPLETE:
            updates.update(completed_at=now, is_active=False)

        elif transition.action == PlanAction.ARCHIVE:
            updates.update(archived_by=actor_id, archived_at=now, is_archived=True)

        elif transition.action == PlanAction.CANCEL:
            updates.update(cancelled_by=actor_id, cancelled_at=now, is_active=False)

        if notes and transition.notes_label:
            updates["description"] = _append_note(
                updates.get("description", plan.description),
                f"{transition.notes_label} Notes",
                notes,
            )

        updates.update(
            status=target,
            is_draft=target == PlanStatus.DRAFT,
            updated_at=now,
            version=plan.version + 1,
        )

        logger.info(
            "plan_transition_applied",
            plan_id=str(plan.id),
            action=transition.action.value,
            from_status=plan.status.value,
            to_status=target.value,
            version=plan.version + 1,
        )

        return plan.model_copy(update=updates, deep=True)


def _append_note(description: Optional[str], label: str, text: str) -> str:
    return f"{description or ''}\n\n{label}: {text}".strip()


# ═══════════════════════════════════════════════════════════
# TIMELINE
# ═══════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TimelineEntry:
    """One step of a plan's status history."""

    status: PlanStatus
    occurred_at: datetime
    action: str
    actor_id: Optional[str] = None
    note: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


_AUDIT_TO_STATUS: dict[AuditAction, PlanStatus] = {
    AuditAction.CREATE_PLAN: PlanStatus.DRAFT,
    AuditAction.SUBMIT_FOR_REVIEW: PlanStatus.PENDING_REVIEW,
    AuditAction.APPROVE_PLAN: PlanStatus.APPROVED,
    AuditAction.REJECT_PLAN: PlanStatus.DRAFT,
    AuditAction.PUBLISH_PLAN: PlanStatus.PUBLISHED,
    AuditAction.ACTIVATE_PLAN: PlanStatus.ACTIVE,
    AuditAction.COMPLETE_PLAN: PlanStatus.COMPLETED,
    AuditAction.ARCHIVE_PLAN: PlanStatus.ARCHIVED,
    AuditAction.CANCEL_PLAN: PlanStatus.CANCELLED,
}


def build_timeline(plan: Plan, audit_entries: Iterable[AuditEntry] = ()) -> list[TimelineEntry]:
    """
    Build the ordered status history of a plan.

    Uses the audit log when it has status entries for the plan (it keeps
    every round of a reject/resubmit cycle). Otherwise falls back to the
    audit fields stored on the plan, which only hold the latest occurrence
    of each step.
    """
    entries: list[TimelineEntry] = []
    for entry in audit_entries:
        status = _AUDIT_TO_STATUS.get(entry.action)
        if status is None or entry.plan_id != plan.id:
            continue
        # publish lands in ACTIVE when the period already started
        status = PlanStatus(entry.metadata.get("to_status", status))
        entries.append(
            TimelineEntry(
                status=status,
                occurred_at=entry.occurred_at,
                action=entry.action.value,
                actor_id=str(entry.actor_id),
                note=entry.metadata.get("reason") or entry.metadata.get("notes"),
                metadata=dict(entry.metadata),
            )
        )

    if not entries:
        entries = _timeline_from_fields(plan)

    return sorted(entries, key=lambda e: e.occurred_at)


def _timeline_from_fields(plan: Plan) -> list[TimelineEntry]:
    def actor(value: Optional[ActorId]) -> Optional[str]:
        return str(value) if value is not None else None

    p = plan
    candidates = [
        (PlanStatus.DRAFT, p.created_at, AuditAction.CREATE_PLAN, actor(p.created_by), None),
        (
            PlanStatus.PENDING_REVIEW,
            p.submitted_at,
            AuditAction.SUBMIT_FOR_REVIEW,
            actor(p.submitted_by),
            None,
        ),
        (PlanStatus.APPROVED, p.approved_at, AuditAction.APPROVE_PLAN, actor(p.approved_by), None),
        (
            PlanStatus.DRAFT,
            p.rejected_at,
            AuditAction.REJECT_PLAN,
            actor(p.rejected_by),
            p.rejection_reason,
        ),
        (
            PlanStatus.PUBLISHED,
            p.published_at,
            AuditAction.PUBLISH_PLAN,
            actor(p.published_by),
            None,
        ),
        (PlanStatus.COMPLETED, p.completed_at, AuditAction.COMPLETE_PLAN, None, None),
        (PlanStatus.ARCHIVED, p.archived_at, AuditAction.ARCHIVE_PLAN, actor(p.archived_by), None),
        (
            PlanStatus.CANCELLED,
            p.cancelled_at,
            AuditAction.CANCEL_PLAN,
            actor(p.cancelled_by),
            None,
        ),
    ]
    return [
        TimelineEntry(
            status=status, occurred_at=at, action=action.value, actor_id=actor_id, note=note
        )
        for status, at, action, actor_id, note in candidates
        if at is not None
    ]
