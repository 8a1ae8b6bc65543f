"""Vesting math and timeline projection."""

from .timeline import Timeline, TimelineRow, metrics_for_day, project_timeline
from .vesting import VestingMetrics, VestingParameters, compute_metrics, current_day

__all__ = [
    "Timeline",
    "TimelineRow",
    "VestingMetrics",
    "VestingParameters",
    "compute_metrics",
    "current_day",
    "metrics_for_day",
    "project_timeline"
]
