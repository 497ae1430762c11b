"""
Menu Planning core.

This package contains the menu plan management system for nutrition
programs, following Clean Architecture and Domain-Driven Design principles.

Structure:
- domain/: Plan lifecycle, assignment allocation, analytics (pure logic)
- application/: Workflow façade orchestrating domain services
- infrastructure/: External concerns (MongoDB, in-memory stores, event bus, cache)
"""

__version__ = "1.0.0"
