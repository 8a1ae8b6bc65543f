"""Module A: Vesting Math - Per-day claim metrics matching the claim contract.

Key Concepts:
- Allocation splits into base (released at unlock start) and bonus (vests linearly)
- Early vest: locked bonus can be claimed before the window ends at a ratio that
  scales linearly from min to max; the remainder is forfeited to the loyalty pool
- Loyalty bonus: pro-rata share of the loyalty pool for wallets that wait
- All percentage inputs are basis points over BPS_DENOMINATOR
"""

from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class VestingParameters:
    """Inputs for a single-day vesting computation."""
    max_token_amount: float  # Wallet allocation
    base_token_claim_bps: int  # Share released immediately
    unlock_duration_days: int  # Length of the linear unlock window
    early_vest_ratio_min_bps: int  # Early-vest ratio at day 0
    early_vest_ratio_max_bps: int  # Early-vest ratio at the last unlock day
    day_t: int  # Days since unlock start (may exceed duration)
    total_loyalty: float = 0.0  # Loyalty pool accumulated from forfeits
    total_loyalty_ineligible: float = 0.0  # Deposits excluded from the pool
    token_amount: float = 0.0  # Total deposited for the season


@dataclass(frozen=True)
class VestingMetrics:
    """Vesting metrics for a single day."""
    base: float
    bonus: float
    vested: float
    unlocked: float
    locked: float
    early_vest_ratio: float
    early_vestable_bonus: float
    forfeited: float
    loyalty_bonus: float
    total_if_early_claim: float
    total_if_wait: float
    is_unlock_complete: bool

    @property
    def early_vest_ratio_percent(self) -> float:
        """Early-vest ratio as a percentage (0-100)."""
        return self.early_vest_ratio * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to a plain dictionary."""
        data = asdict(self)
        data['early_vest_ratio_percent'] = self.early_vest_ratio_percent
        return data


def compute_metrics(params: VestingParameters) -> VestingMetrics:
    """
    Compute vesting metrics for day `params.day_t`.

    Formulas:
        base = max * base_bps / 10000, bonus = max - base
        vested = min(bonus * t / duration, bonus)
        locked = max(0, max - base - vested)
        loyalty_bonus = max * total_loyalty / (token_amount - ineligible)
        early_vest_ratio = min + (max - min) * t / duration   (during unlock only)

    Inputs are not validated. Division by a zero duration or an empty eligible
    pool yields the documented fallback instead of raising.

    Args:
        params: Vesting parameters for one wallet and day

    Returns:
        VestingMetrics for that day
    """
    max_amount = params.max_token_amount
    duration = params.unlock_duration_days
    day_t = params.day_t

    base = max_amount * params.base_token_claim_bps / BPS_DENOMINATOR
    bonus = max_amount - base

    is_unlock_complete = day_t >= duration

    # The completed window vests exactly the bonus; bonus * t / t can round below it
    if is_unlock_complete:
        vested = bonus
    else:
        vested = min(bonus * day_t / duration, bonus)

    unlocked = base + vested
    locked = 0.0 if is_unlock_complete else max(0.0, max_amount - unlocked)

    eligible_pool = params.token_amount - params.total_loyalty_ineligible
    if eligible_pool > 0:
        loyalty_bonus = max_amount * params.total_loyalty / eligible_pool
    else:
        loyalty_bonus = 0.0

    early_vest_ratio = 0.0
    early_vestable_bonus = 0.0
    forfeited = 0.0
    if not is_unlock_complete and locked > 0:
        ratio_min = params.early_vest_ratio_min_bps / BPS_DENOMINATOR
        ratio_max = params.early_vest_ratio_max_bps / BPS_DENOMINATOR
        early_vest_ratio = ratio_min + (ratio_max - ratio_min) * day_t / duration
        early_vestable_bonus = locked * early_vest_ratio
        forfeited = locked - early_vestable_bonus

    total_if_wait = max_amount + loyalty_bonus
    if is_unlock_complete:
        total_if_early_claim = total_if_wait
    else:
        total_if_early_claim = unlocked + early_vestable_bonus

    return VestingMetrics(
        base=base,
        bonus=bonus,
        vested=vested,
        unlocked=unlocked,
        locked=locked,
        early_vest_ratio=early_vest_ratio,
        early_vestable_bonus=early_vestable_bonus,
        forfeited=forfeited,
        loyalty_bonus=loyalty_bonus,
        total_if_early_claim=total_if_early_claim,
        total_if_wait=total_if_wait,
        is_unlock_complete=is_unlock_complete
    )


def clamp_day(day: int, unlock_duration_days: int) -> int:
    """Clamp a day offset to the unlock window [0, unlock_duration_days]."""
    return max(0, min(int(day), max(0, unlock_duration_days)))


def current_day(
    unlock_start_date: Optional[Union[date, str]],
    unlock_duration_days: int,
    today: Optional[date] = None
) -> int:
    """
    Day offset of `today` inside the unlock window.

    Always clamped to [0, unlock_duration_days], including for configs whose
    window length is not set on-chain yet.

    Args:
        unlock_start_date: Unlock start (date or ISO string); None means day 0
        unlock_duration_days: Unlock window length
        today: Reference date (defaults to the current UTC date)

    Returns:
        Clamped day index
    """
    if not unlock_start_date:
        return 0
    if isinstance(unlock_start_date, str):
        unlock_start_date = date.fromisoformat(unlock_start_date)
    if today is None:
        today = datetime.now(timezone.utc).date()
    return clamp_day((today - unlock_start_date).days, unlock_duration_days)
