"""Event bus adapters."""

from menuplan.infrastructure.events.in_memory_bus import InMemoryEventBus

__all__ = ["InMemoryEventBus"]
