"""In-process event bus.

Handlers live in a dict keyed by the concrete event class and are awaited
one after another, in the order they subscribed.
"""

from typing import Any, Awaitable, Callable, Dict, List, Type, TypeVar

import structlog

from menuplan.domain.shared.events import DomainEvent

logger = structlog.get_logger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)
Handler = Callable[[Any], Awaitable[None]]


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or getattr(handler, "__name__", repr(handler))


class InMemoryEventBus:
    """
    IEventBus for a single process and event loop.

    A handler that raises is logged with its traceback and skipped: the
    remaining handlers still run and ``publish`` returns normally, so a
    subscriber can never undo a write that already happened.

    Dispatch matches the exact event class. Subscribing to DomainEvent
    does not receive every event.

    Example:
        >>> bus = InMemoryEventBus()
        >>> bus.subscribe(PlanStatusChanged, audit_projection)
        >>> await bus.publish(PlanStatusChanged.create(...))
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[Handler]] = {}

    def subscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> None:
        # Subscribing twice means being called twice
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "event_handler_subscribed",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )

    async def publish(self, event: DomainEvent) -> None:
        handlers = list(self._handlers.get(type(event), []))
        if not handlers:
            logger.debug("event_without_handlers", event_type=event.name)
            return

        logger.info(
            "event_published",
            event_type=event.name,
            event_id=str(event.event_id),
            handler_count=len(handlers),
            **event.payload(),
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "event_handler_failed",
                    event_type=event.name,
                    event_id=str(event.event_id),
                    handler=_handler_name(handler),
                    error=str(e),
                    exc_info=True,
                )

    def unsubscribe(
        self,
        event_type: Type[TEvent],
        handler: Callable[[TEvent], Awaitable[None]],
    ) -> bool:
        """Remove the first registration of ``handler``; False if it had none."""
        registered = self._handlers.get(event_type)
        if not registered or handler not in registered:
            return False

        registered.remove(handler)
        logger.debug(
            "event_handler_unsubscribed",
            event_type=event_type.__name__,
            handler=_handler_name(handler),
        )
        return True

    def clear(self) -> None:
        self._handlers.clear()
        logger.debug("event_handlers_cleared")

    def get_handler_count(self, event_type: Type[TEvent]) -> int:
        return len(self._handlers.get(event_type, []))
