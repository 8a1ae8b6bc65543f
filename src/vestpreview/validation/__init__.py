"""Validation and sanity checks for vesting projections."""

from .sanity_checks import TimelineChecker, ValidationWarning, validate_timeline

__all__ = [
    "TimelineChecker",
    "ValidationWarning",
    "validate_timeline"
]
