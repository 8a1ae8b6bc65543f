"""Simulation inputs - Pick chain values or simulation defaults for a projection.

A project whose season config is not set on-chain yet (token amount 0) is
previewed with simulation values instead. Each resolved field records where it
came from so the presentation layer can label it.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from ..config.schema import Simulation
from ..data.models import GlobalState, ProjectConfig
from ..engine.vesting import VestingMetrics

CHAIN = "chain"
SIMULATION = "simulation"


@dataclass(frozen=True)
class ResolvedInputs:
    """Inputs ready for the projector, with per-field provenance."""
    config: ProjectConfig
    global_state: GlobalState
    start_date: date
    sources: Dict[str, str] = field(default_factory=dict)
    max_token_amount: float = 0.0

    @property
    def mode(self) -> str:
        return self.sources.get('mode', SIMULATION)


@dataclass(frozen=True)
class ClaimComparison:
    """Early claim versus waiting for the full unlock."""
    total_if_early_claim: float
    total_if_wait: float
    difference: float  # Extra tokens gained by waiting
    forfeited: float
    loyalty_bonus: float

    @property
    def better_option(self) -> str:
        if self.difference > 0:
            return "wait"
        if self.difference < 0:
            return "early"
        return "equal"


def _simulation_values(defaults: Optional[Simulation], overrides: Optional[Dict[str, Any]]) -> Simulation:
    sim = defaults if defaults is not None else Simulation()
    if not overrides:
        return sim
    # Re-validate so bad user input raises ValidationError
    return Simulation(**{**sim.model_dump(), **overrides})


def resolve_inputs(
    chain_config: Optional[ProjectConfig],
    chain_global: Optional[GlobalState] = None,
    overrides: Optional[Dict[str, Any]] = None,
    defaults: Optional[Simulation] = None
) -> ResolvedInputs:
    """
    Resolve the config, pool state and start date to project.

    When the chain config is set every value comes from the chain. Otherwise the
    simulation values are used, except that the token amount comes from the
    chain's total deposited when positive and the start date from the chain
    when it is scheduled.

    Args:
        chain_config: Season config from the data source, if any
        chain_global: Pool state from the data source, if any
        overrides: User-entered simulation values (Simulation field names)
        defaults: Simulation defaults (usually `config.simulation`)

    Returns:
        ResolvedInputs

    Raises:
        pydantic.ValidationError: If an override is out of range
    """
    sim = _simulation_values(defaults, overrides)

    if chain_config is not None and chain_config.is_chain_config_set:
        start = chain_config.start_date or sim.unlock_start_date
        config = chain_config
        if chain_config.unlock_start_date is None:
            config = ProjectConfig.from_dict({**chain_config.to_dict(), 'unlock_start_date': start.isoformat()})
        sources = {name: CHAIN for name in (
            'mode', 'duration_days', 'start_date', 'base_claim_bps',
            'early_vest_ratio', 'token_amount', 'loyalty_pool'
        )}
        return ResolvedInputs(
            config=config,
            global_state=chain_global if chain_global is not None else GlobalState(),
            start_date=start,
            sources=sources,
            max_token_amount=sim.max_token_amount
        )

    total_deposited = chain_config.total_deposited if chain_config is not None else 0.0
    chain_start = chain_config.start_date if chain_config is not None else None
    start = chain_start or sim.unlock_start_date

    config = ProjectConfig(
        token_amount=total_deposited if total_deposited > 0 else sim.token_amount,
        base_token_claim_bps=sim.base_token_claim_bps,
        unlock_duration_days=sim.unlock_duration_days,
        early_vest_ratio_min_bps=sim.early_vest_ratio_min_bps,
        early_vest_ratio_max_bps=sim.early_vest_ratio_max_bps,
        total_deposited=total_deposited,
        unlock_start_date=start.isoformat()
    )
    # Simulated pool assumes nobody has claimed early yet
    global_state = GlobalState(
        total_loyalty=sim.loyalty_pool,
        total_loyalty_ineligible=0.0,
        total_claimed=chain_global.total_claimed if chain_global is not None else 0.0
    )
    sources = {
        'mode': SIMULATION,
        'duration_days': SIMULATION,
        'start_date': CHAIN if chain_start else SIMULATION,
        'base_claim_bps': SIMULATION,
        'early_vest_ratio': SIMULATION,
        'token_amount': CHAIN if total_deposited > 0 else SIMULATION,
        'loyalty_pool': SIMULATION,
    }
    return ResolvedInputs(
        config=config,
        global_state=global_state,
        start_date=start,
        sources=sources,
        max_token_amount=sim.max_token_amount
    )


def progress_percent(metrics: Optional[VestingMetrics], max_token_amount: float) -> int:
    """Unlocked share of the allocation, rounded half up to a whole percent."""
    if not max_token_amount or metrics is None:
        return 0
    return int(math.floor(metrics.unlocked / max_token_amount * 100 + 0.5))


def compare_claim_options(metrics: VestingMetrics) -> ClaimComparison:
    """Compare claiming early today with waiting for the end of the unlock."""
    return ClaimComparison(
        total_if_early_claim=metrics.total_if_early_claim,
        total_if_wait=metrics.total_if_wait,
        difference=metrics.total_if_wait - metrics.total_if_early_claim,
        forfeited=metrics.forfeited,
        loyalty_bonus=metrics.loyalty_bonus
    )
