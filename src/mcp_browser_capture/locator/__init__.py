"""Resilient element locator: primary selector first, then ordered fallback strategies."""

from .locator import (
    Strategy,
    LocatorResult,
    STRATEGIES,
    locate,
    fallback_summary,
)

__all__ = [
    "Strategy",
    "LocatorResult",
    "STRATEGIES",
    "locate",
    "fallback_summary",
]
