"""Infrastructure adapters: persistence, events, cache."""
