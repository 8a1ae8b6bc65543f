"""Sanity checks for projection inputs and timelines."""

import math
from dataclasses import dataclass
from typing import List, Optional

from ..data.models import ProjectConfig
from ..engine.timeline import Timeline

TOLERANCE = 1e-6


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "bounds", "monotonic"
    message: str
    details: Optional[str] = None


class TimelineChecker:
    """Run sanity checks on a projection's inputs and output rows."""

    def __init__(self, max_token_amount: float, config: ProjectConfig):
        self.max_token_amount = max_token_amount
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check projection inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        config = self.config

        if config.early_vest_ratio_min_bps > config.early_vest_ratio_max_bps:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Early-vest ratio decreases over the unlock window",
                details=(
                    f"Min: {config.early_vest_ratio_min_bps} bps, "
                    f"Max: {config.early_vest_ratio_max_bps} bps"
                )
            ))

        for name, bps in (
            ("Base claim", config.base_token_claim_bps),
            ("Early-vest min", config.early_vest_ratio_min_bps),
            ("Early-vest max", config.early_vest_ratio_max_bps),
        ):
            if bps < 0 or bps > 10_000:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"{name} of {bps} bps is outside 0-10000",
                ))

        if config.unlock_duration_days <= 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Unlock duration is zero; everything unlocks on day 0",
            ))

        if self.max_token_amount > config.token_amount > 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message="Wallet allocation exceeds the season token amount",
                details=f"Allocation: {self.max_token_amount:,.0f}, Season: {config.token_amount:,.0f}"
            ))

        return warnings

    def check_rows(self, rows: Timeline) -> List[ValidationWarning]:
        """
        Check projected rows for broken invariants.

        Args:
            rows: Timeline rows

        Returns:
            List of validation warnings
        """
        warnings = []
        expected_rows = max(0, self.config.unlock_duration_days) + 1
        if rows and len(rows) != expected_rows:
            warnings.append(ValidationWarning(
                severity="error",
                category="length",
                message=f"Timeline has {len(rows)} rows, expected {expected_rows}",
            ))

        previous_vested = None
        for row in rows:
            m = row.metrics
            for name, value in (("unlocked", m.unlocked), ("locked", m.locked), ("loyalty_bonus", m.loyalty_bonus)):
                if math.isnan(value) or math.isinf(value):
                    warnings.append(ValidationWarning(
                        severity="error",
                        category="nan",
                        message=f"Invalid value detected in {name} on day {row.day}",
                        details=f"Value: {value}"
                    ))

            if m.locked < -TOLERANCE:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Locked amount went negative on day {row.day}",
                    details=f"Value: {m.locked:,.4f}"
                ))

            if m.unlocked > self.max_token_amount + TOLERANCE:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Unlocked exceeds allocation on day {row.day}",
                    details=f"Unlocked: {m.unlocked:,.4f}, Allocation: {self.max_token_amount:,.4f}"
                ))

            if previous_vested is not None and m.vested < previous_vested - TOLERANCE:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="monotonic",
                    message=f"Vested amount decreased on day {row.day}",
                    details=f"{previous_vested:,.4f} -> {m.vested:,.4f}"
                ))
            previous_vested = m.vested

        if rows:
            final = rows[-1].metrics
            if abs(final.vested - final.bonus) > TOLERANCE:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="completion",
                    message="Bonus is not fully vested on the final day",
                    details=f"Vested: {final.vested:,.4f}, Bonus: {final.bonus:,.4f}"
                ))

        return warnings


def validate_timeline(
    max_token_amount: float,
    config: ProjectConfig,
    rows: Timeline
) -> List[ValidationWarning]:
    """
    Validate a projection's inputs and rows.

    Args:
        max_token_amount: Wallet allocation
        config: Project config the rows were projected from
        rows: Timeline rows

    Returns:
        List of all validation warnings
    """
    checker = TimelineChecker(max_token_amount, config)
    warnings = []
    warnings.extend(checker.check_config_inputs())
    warnings.extend(checker.check_rows(rows))
    return warnings
