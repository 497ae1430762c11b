"""Domain event base.

Events are frozen dataclasses stamped with an id and a UTC timestamp.
Concrete events add their payload fields and a ``create()`` factory that
takes the stamp from :meth:`DomainEvent.stamp`.
"""

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from uuid import UUID, uuid4

Clock = Callable[[], datetime]

_STAMP_FIELDS = ("event_id", "occurred_at")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """Immutable record of a change that already happened.

    Attributes:
        event_id: Unique id of this event instance
        occurred_at: Moment of the change, timezone-aware

    Raises:
        ValueError: If occurred_at is naive
    """

    event_id: UUID
    occurred_at: datetime

    def __post_init__(self) -> None:
        if self.occurred_at.tzinfo is None:
            raise ValueError("occurred_at must be timezone-aware (use UTC)")

    @staticmethod
    def stamp(clock: Optional[Clock] = None) -> Dict[str, Any]:
        """Fresh ``event_id`` / ``occurred_at`` keyword arguments."""
        return {"event_id": uuid4(), "occurred_at": (clock or utc_now)()}

    @property
    def name(self) -> str:
        return type(self).__name__

    def payload(self) -> Dict[str, Any]:
        """Event-specific fields without the stamp, for structured logs."""
        return {
            f.name: getattr(self, f.name) for f in fields(self) if f.name not in _STAMP_FIELDS
        }
