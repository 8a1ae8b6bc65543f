"""Tests for the vesting math.

Scenario values are reference outputs of the claim contract for the default
season (10,000 allocation, 90-day window, 20% -> 60% early-vest ratio).
"""

import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vestpreview.engine.vesting import (
    VestingParameters,
    clamp_day,
    compute_metrics,
    current_day,
)


def scenario_params(**overrides) -> VestingParameters:
    values = dict(
        max_token_amount=10_000,
        base_token_claim_bps=0,
        unlock_duration_days=90,
        early_vest_ratio_min_bps=2000,
        early_vest_ratio_max_bps=6000,
        day_t=0,
        total_loyalty=0,
        total_loyalty_ineligible=0,
        token_amount=76_880_160,
    )
    values.update(overrides)
    return VestingParameters(**values)


class TestScenarios:
    """Reference scenarios."""

    def test_scenario_a_day_zero(self):
        m = compute_metrics(scenario_params())
        assert m.base == 0
        assert m.bonus == 10_000
        assert m.vested == 0
        assert m.unlocked == 0
        assert m.locked == 10_000
        assert m.early_vest_ratio == pytest.approx(0.20)
        assert m.early_vestable_bonus == pytest.approx(2000)
        assert m.forfeited == pytest.approx(8000)
        assert m.total_if_early_claim == pytest.approx(2000)
        assert m.total_if_wait == pytest.approx(10_000)
        assert not m.is_unlock_complete

    def test_scenario_b_last_day(self):
        m = compute_metrics(scenario_params(day_t=90))
        assert m.is_unlock_complete
        assert m.vested == 10_000
        assert m.unlocked == 10_000
        assert m.locked == 0
        assert m.early_vest_ratio == 0
        assert m.forfeited == 0
        assert m.total_if_early_claim == m.total_if_wait

    def test_scenario_c_empty_pool(self):
        m = compute_metrics(scenario_params(token_amount=0, total_loyalty=500_000))
        assert m.loyalty_bonus == 0
        assert m.total_if_wait == 10_000


class TestFormulas:
    """Individual formula checks."""

    def test_base_split(self):
        m = compute_metrics(scenario_params(base_token_claim_bps=2500))
        assert m.base == pytest.approx(2500)
        assert m.bonus == pytest.approx(7500)
        assert m.unlocked == pytest.approx(2500)

    def test_midpoint_ratio(self):
        m = compute_metrics(scenario_params(day_t=45))
        assert m.vested == pytest.approx(5000)
        assert m.early_vest_ratio == pytest.approx(0.40)
        assert m.early_vestable_bonus == pytest.approx(2000)
        assert m.forfeited == pytest.approx(3000)
        assert m.total_if_early_claim == pytest.approx(7000)

    def test_loyalty_bonus_pro_rata(self):
        m = compute_metrics(scenario_params(
            total_loyalty=1_000_000,
            total_loyalty_ineligible=6_880_160
        ))
        # 10,000 / 70,000,000 of a 1,000,000 pool
        assert m.loyalty_bonus == pytest.approx(10_000 * 1_000_000 / 70_000_000)
        assert m.total_if_wait == pytest.approx(10_000 + m.loyalty_bonus)

    def test_ineligible_exceeding_pool_yields_zero_bonus(self):
        m = compute_metrics(scenario_params(total_loyalty=100, total_loyalty_ineligible=80_000_000))
        assert m.loyalty_bonus == 0

    def test_zero_duration_unlocks_everything(self):
        m = compute_metrics(scenario_params(unlock_duration_days=0))
        assert m.is_unlock_complete
        assert m.vested == m.bonus
        assert m.locked == 0
        assert m.early_vest_ratio == 0

    def test_day_past_window_is_capped(self):
        m = compute_metrics(scenario_params(day_t=400))
        assert m.vested == m.bonus
        assert m.early_vestable_bonus == 0
        assert m.total_if_early_claim == m.total_if_wait

    def test_full_base_leaves_nothing_locked(self):
        m = compute_metrics(scenario_params(base_token_claim_bps=10_000, day_t=10))
        assert m.locked == 0
        assert m.early_vest_ratio == 0
        assert m.total_if_early_claim == pytest.approx(10_000)

    def test_to_dict_includes_ratio_percent(self):
        data = compute_metrics(scenario_params(day_t=45)).to_dict()
        assert data['early_vest_ratio_percent'] == pytest.approx(40.0)
        assert data['is_unlock_complete'] is False


class TestProperties:
    """Invariants over a whole window."""

    @pytest.mark.parametrize("base_bps", [0, 1500, 10_000])
    def test_bounds_and_monotonic_vesting(self, base_bps):
        previous = -1.0
        for day in range(0, 121):
            m = compute_metrics(scenario_params(day_t=day, base_token_claim_bps=base_bps))
            assert m.locked >= 0
            assert m.unlocked <= 10_000 + 1e-9
            assert m.vested >= previous
            previous = m.vested
            if day >= 90:
                assert m.is_unlock_complete
                assert m.early_vest_ratio == 0
                assert m.early_vestable_bonus == 0
                assert m.forfeited == 0

    def test_vested_equals_bonus_on_final_day(self):
        m = compute_metrics(scenario_params(day_t=90, base_token_claim_bps=3333))
        assert m.vested == m.bonus

    @pytest.mark.parametrize("max_amount,duration,base_bps", [
        (63098445.52712488, 340, 0),
        (12345.6789, 7, 1234),
        (0.1, 3, 0),
    ])
    def test_final_day_exact_for_fractional_allocation(self, max_amount, duration, base_bps):
        m = compute_metrics(scenario_params(
            max_token_amount=max_amount,
            unlock_duration_days=duration,
            base_token_claim_bps=base_bps,
            day_t=duration
        ))
        assert m.is_unlock_complete
        assert m.vested == m.bonus
        assert m.locked == 0

    def test_idempotent(self):
        params = scenario_params(day_t=17, total_loyalty=12_345)
        assert compute_metrics(params) == compute_metrics(params)


class TestCurrentDay:
    """Day index inside the unlock window."""

    def test_before_start_clamps_to_zero(self):
        assert current_day(date(2025, 12, 16), 90, today=date(2025, 12, 1)) == 0

    def test_inside_window(self):
        assert current_day("2025-12-16", 90, today=date(2026, 1, 15)) == 30

    def test_after_end_clamps_to_duration(self):
        assert current_day("2025-12-16", 90, today=date(2027, 1, 1)) == 90

    def test_missing_start_is_day_zero(self):
        assert current_day(None, 90) == 0

    def test_clamp_day_with_zero_duration(self):
        assert clamp_day(12, 0) == 0
        assert clamp_day(-3, 10) == 0
        assert clamp_day(7, 10) == 7
