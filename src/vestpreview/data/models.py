"""Value shapes supplied by the data source: project config, pool state, user claim.

Each shape parses the decoded contract payload served by the intermediate API
(camelCase keys grouped by contract function) and round-trips through plain
snake_case dictionaries for cache storage.
"""

from dataclasses import asdict, dataclass, fields
from datetime import date
from typing import Any, Dict, Optional


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass(frozen=True)
class ProjectConfig:
    """Season configuration of a project's claim contract."""
    token_amount: float  # Tokens allocated to the season
    base_token_claim_bps: int
    unlock_duration_days: int
    early_vest_ratio_min_bps: int
    early_vest_ratio_max_bps: int
    total_deposited: float = 0.0
    unlock_start_date: Optional[str] = None  # ISO date, None until scheduled
    unlock_delay: int = 0  # Seconds
    is_refunding: bool = False

    @property
    def is_chain_config_set(self) -> bool:
        """A config with a zero token amount has not been set on-chain yet."""
        return self.token_amount > 0

    @property
    def start_date(self) -> Optional[date]:
        """Unlock start as a date."""
        if not self.unlock_start_date:
            return None
        return date.fromisoformat(self.unlock_start_date)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'ProjectConfig':
        """
        Parse the decoded `getProjectSeasonConfig` / `getTokenAmounts` payload.

        Args:
            payload: Dict with `get_project_season_config` and optional
                `get_token_amounts` sections

        Returns:
            ProjectConfig
        """
        season = payload['get_project_season_config']
        amounts = payload.get('get_token_amounts') or {}
        duration_days = season.get('unlockDurationDays')
        if duration_days is None:
            duration_days = round(int(season.get('unlockDuration', 0)) / 86400)
        return cls(
            token_amount=float(season['tokenAmount']),
            base_token_claim_bps=int(season['baseTokenClaimBps']),
            unlock_duration_days=int(duration_days),
            early_vest_ratio_min_bps=int(season['earlyVestRatioMinBps']),
            early_vest_ratio_max_bps=int(season['earlyVestRatioMaxBps']),
            total_deposited=float(amounts.get('totalDeposited', 0.0)),
            unlock_start_date=season.get('seasonUnlockStartTimeFormatted'),
            unlock_delay=int(season.get('unlockDelay', 0)),
            is_refunding=bool(season.get('isRefunding', False))
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create from a cached dictionary."""
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class GlobalState:
    """Pool-wide loyalty aggregates. A point-in-time snapshot."""
    total_loyalty: float = 0.0
    total_loyalty_ineligible: float = 0.0
    total_claimed: float = 0.0

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'GlobalState':
        """Parse the decoded `getGlobalState` payload."""
        state = payload['get_global_state']
        return cls(
            total_loyalty=float(state.get('totalLoyalty', 0.0)),
            total_loyalty_ineligible=float(state.get('totalLoyaltyIneligible', 0.0)),
            total_claimed=float(state.get('totalClaimed', 0.0))
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GlobalState':
        """Create from a cached dictionary."""
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class UserClaim:
    """Current claim values for one wallet as reported by the claim contract."""
    base: float
    bonus: float
    vested: float
    claimable: float
    early_vestable_bonus: float
    loyalty_bonus: float
    claimed: float
    has_early_claimed: bool = False

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'UserClaim':
        """Parse the decoded `getCurrentClaimValues` / `getUserState` payload."""
        values = payload['get_current_claim_values']
        user_state = payload.get('get_user_state') or {}
        return cls(
            base=float(values['base']),
            bonus=float(values['bonus']),
            vested=float(values['vested']),
            claimable=float(values['claimable']),
            early_vestable_bonus=float(values['earlyVestableBonus']),
            loyalty_bonus=float(values['loyaltyBonus']),
            claimed=float(values['claimed']),
            has_early_claimed=bool(user_state.get('hasEarlyClaimed', False))
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserClaim':
        """Create from a cached dictionary."""
        return cls(**_known_fields(cls, data))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary."""
        return asdict(self)
