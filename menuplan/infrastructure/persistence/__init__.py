"""Persistence adapters and the repository factory."""
