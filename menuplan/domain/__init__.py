"""Domain layer: pure menu planning logic, no I/O."""
