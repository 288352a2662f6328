"""
Common utilities for the finance tracker.

Modules:
- settings: environment-driven configuration
- log: structured logging (structlog)
"""

__all__ = [
    "settings",
    "log",
]
