"""Module B: Timeline Projector - Day-by-day vesting projection.

Drives the vesting math once per day of the unlock window. Loyalty aggregates
are a point-in-time snapshot and are threaded unchanged across all days.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Union

from ..data.models import GlobalState, ProjectConfig
from ..errors import ProjectionCancelled
from .vesting import VestingMetrics, VestingParameters, compute_metrics


@dataclass(frozen=True)
class TimelineRow:
    """One day of a vesting timeline."""
    day: int
    date: Optional[date]
    metrics: VestingMetrics

    def to_dict(self) -> Dict[str, Any]:
        """Flatten into a plain row: day, ISO date, then all metrics."""
        row = {
            'day': self.day,
            'date': self.date.isoformat() if self.date else '',
        }
        row.update(self.metrics.to_dict())
        return row


Timeline = List[TimelineRow]


def _parse_start_date(start_date: Optional[Union[date, str]]) -> Optional[date]:
    if start_date is None or start_date == '':
        return None
    if isinstance(start_date, str):
        return date.fromisoformat(start_date)
    return start_date


def build_parameters(
    max_token_amount: float,
    config: ProjectConfig,
    global_state: Optional[GlobalState],
    day_t: int
) -> VestingParameters:
    """
    Assemble vesting parameters for one day from source values.

    Args:
        max_token_amount: Wallet allocation
        config: Project season config
        global_state: Loyalty pool snapshot (None counts as an empty pool)
        day_t: Day offset from unlock start

    Returns:
        VestingParameters
    """
    if global_state is None:
        global_state = GlobalState()
    return VestingParameters(
        max_token_amount=max_token_amount,
        base_token_claim_bps=config.base_token_claim_bps,
        unlock_duration_days=config.unlock_duration_days,
        early_vest_ratio_min_bps=config.early_vest_ratio_min_bps,
        early_vest_ratio_max_bps=config.early_vest_ratio_max_bps,
        day_t=day_t,
        total_loyalty=global_state.total_loyalty,
        total_loyalty_ineligible=global_state.total_loyalty_ineligible,
        token_amount=config.token_amount
    )


def project_timeline(
    max_token_amount: float,
    config: Optional[ProjectConfig],
    global_state: Optional[GlobalState] = None,
    start_date: Optional[Union[date, str]] = None,
    cancel_token=None
) -> Timeline:
    """
    Project vesting metrics for every day of the unlock window.

    Args:
        max_token_amount: Wallet allocation
        config: Project season config (None yields an empty timeline)
        global_state: Loyalty pool snapshot
        start_date: Calendar date of day 0; rows are undated when omitted
        cancel_token: Optional token with `is_cancelled()`; checked between days

    Returns:
        Rows for days 0..unlock_duration_days inclusive, or [] when there is
        nothing to project

    Raises:
        ProjectionCancelled: If the cancel token fires mid-projection
    """
    if config is None or not max_token_amount or max_token_amount <= 0:
        return []

    day_zero = _parse_start_date(start_date)
    rows: Timeline = []

    for day in range(max(0, config.unlock_duration_days) + 1):
        if cancel_token is not None and cancel_token.is_cancelled():
            raise ProjectionCancelled(f"Projection cancelled at day {day}")

        params = build_parameters(max_token_amount, config, global_state, day)
        row_date = day_zero + timedelta(days=day) if day_zero else None
        rows.append(TimelineRow(day=day, date=row_date, metrics=compute_metrics(params)))

    return rows


def metrics_for_day(
    max_token_amount: float,
    config: ProjectConfig,
    global_state: Optional[GlobalState],
    day_t: int
) -> VestingMetrics:
    """Single-day metrics without building the whole timeline."""
    return compute_metrics(build_parameters(max_token_amount, config, global_state, day_t))
