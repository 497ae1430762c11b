"""Event bus port.

The application publishes planning events after each committed write;
the report cache and any projections subscribe to them.
"""

from typing import Awaitable, Callable, Protocol, Type, TypeVar

from menuplan.domain.shared.events import DomainEvent

TEvent = TypeVar("TEvent", bound=DomainEvent)

EventHandler = Callable[[TEvent], Awaitable[None]]


class IEventBus(Protocol):
    """
    Publish/subscribe contract for domain events.

    Example:
        >>> async def drop_report(event: AssignmentCreated) -> None:
        ...     await report_cache.invalidate(event.plan_id)
        >>> event_bus.subscribe(AssignmentCreated, drop_report)
    """

    def subscribe(self, event_type: Type[TEvent], handler: EventHandler[TEvent]) -> None:
        ...

    async def publish(self, event: DomainEvent) -> None:
        """
        Deliver ``event`` to the handlers of its exact type, in subscription
        order. Handler failures are logged and never reach the publisher.
        """
        ...

    def unsubscribe(self, event_type: Type[TEvent], handler: EventHandler[TEvent]) -> bool:
        """True if the handler was registered and is now removed."""
        ...

    def clear(self) -> None:
        ...
