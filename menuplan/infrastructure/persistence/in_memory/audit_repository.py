"""In-memory audit log repository."""

from copy import deepcopy
from typing import List

from menuplan.domain.planning.models import AuditEntry
from menuplan.domain.shared.value_objects import PlanId


class InMemoryAuditLogRepository:
    """Append-only list of audit entries (IAuditLogRepository)."""

    def __init__(self) -> None:
        self._entries: List[AuditEntry] = []

    async def append(self, entry: AuditEntry) -> None:
        self._entries.append(deepcopy(entry))

    async def list_by_plan(self, plan_id: PlanId) -> List[AuditEntry]:
        # Stable sort keeps append order for equal timestamps
        entries = [e for e in self._entries if e.plan_id == plan_id]
        entries.sort(key=lambda e: e.occurred_at)
        return [deepcopy(e) for e in entries]

    def clear(self) -> None:
        self._entries.clear()
