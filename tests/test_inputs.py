"""Tests for simulation inputs, reporting, sanity checks and the CLI."""

import json
import pytest
import sys
import os
from dataclasses import replace
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pandas as pd
from pydantic import ValidationError

from vestpreview.cli import main, overrides_from_args, build_parser
from vestpreview.config.schema import Simulation
from vestpreview.data.models import GlobalState, ProjectConfig
from vestpreview.engine.timeline import TimelineRow, project_timeline
from vestpreview.engine.vesting import VestingParameters, compute_metrics
from vestpreview.reporting.charts import create_early_vest_ratio_chart, create_vesting_chart, write_charts_html
from vestpreview.reporting.export import export_csv, export_json, timeline_to_dataframe
from vestpreview.simulation.inputs import (
    CHAIN,
    SIMULATION,
    compare_claim_options,
    progress_percent,
    resolve_inputs,
)
from vestpreview.validation.sanity_checks import TimelineChecker, validate_timeline


def chain_config(**overrides) -> ProjectConfig:
    values = dict(
        token_amount=50_000_000,
        base_token_claim_bps=1000,
        unlock_duration_days=60,
        early_vest_ratio_min_bps=3000,
        early_vest_ratio_max_bps=7000,
        total_deposited=48_000_000,
        unlock_start_date="2026-02-01",
    )
    values.update(overrides)
    return ProjectConfig(**values)


class TestResolveInputs:
    """Chain versus simulation values."""

    def test_chain_config_set_uses_chain(self):
        pool = GlobalState(total_loyalty=900, total_loyalty_ineligible=100)
        inputs = resolve_inputs(chain_config(), pool)
        assert inputs.mode == CHAIN
        assert inputs.config == chain_config()
        assert inputs.global_state == pool
        assert inputs.start_date == date(2026, 2, 1)
        assert set(inputs.sources.values()) == {CHAIN}

    def test_chain_config_ignores_overrides(self):
        inputs = resolve_inputs(chain_config(), None, overrides={"unlock_duration_days": 10})
        assert inputs.config.unlock_duration_days == 60
        assert inputs.global_state == GlobalState()

    def test_chain_config_without_start_uses_simulation_start(self):
        inputs = resolve_inputs(chain_config(unlock_start_date=None))
        assert inputs.start_date == date(2025, 12, 16)
        assert inputs.config.unlock_start_date == "2025-12-16"

    def test_no_chain_data_uses_defaults(self):
        inputs = resolve_inputs(None, None)
        assert inputs.mode == SIMULATION
        assert inputs.config.token_amount == 76_880_160
        assert inputs.config.unlock_duration_days == 90
        assert inputs.start_date == date(2025, 12, 16)
        assert inputs.max_token_amount == 10_000
        assert inputs.global_state == GlobalState()
        assert set(inputs.sources.values()) == {SIMULATION}

    def test_unset_config_borrows_deposits_and_start(self):
        unset = chain_config(token_amount=0)
        inputs = resolve_inputs(unset, GlobalState(total_loyalty=5, total_claimed=7))
        assert inputs.mode == SIMULATION
        assert inputs.config.token_amount == 48_000_000
        assert inputs.config.base_token_claim_bps == 0
        assert inputs.start_date == date(2026, 2, 1)
        assert inputs.sources['token_amount'] == CHAIN
        assert inputs.sources['start_date'] == CHAIN
        assert inputs.sources['loyalty_pool'] == SIMULATION
        # Simulated pool, real claim total
        assert inputs.global_state.total_loyalty == 0
        assert inputs.global_state.total_claimed == 7

    def test_overrides_apply_in_simulation(self):
        inputs = resolve_inputs(None, overrides={
            "unlock_duration_days": 30,
            "loyalty_pool": 250_000,
            "unlock_start_date": "2026-03-01",
            "max_token_amount": 500,
        })
        assert inputs.config.unlock_duration_days == 30
        assert inputs.global_state.total_loyalty == 250_000
        assert inputs.start_date == date(2026, 3, 1)
        assert inputs.max_token_amount == 500

    def test_custom_defaults(self):
        inputs = resolve_inputs(None, defaults=Simulation(unlock_duration_days=14))
        assert inputs.config.unlock_duration_days == 14

    def test_invalid_override_rejected(self):
        with pytest.raises(ValidationError):
            resolve_inputs(None, overrides={"early_vest_ratio_max_bps": 20_000})


class TestSummaries:
    """Progress and claim comparison."""

    def test_progress_rounds_half_up(self):
        metrics = compute_metrics(VestingParameters(
            max_token_amount=8,
            base_token_claim_bps=0,
            unlock_duration_days=8,
            early_vest_ratio_min_bps=0,
            early_vest_ratio_max_bps=0,
            day_t=1,
        ))
        # 1 of 8 unlocked is 12.5%
        assert progress_percent(metrics, 8) == 13

    def test_progress_without_allocation(self):
        assert progress_percent(None, 10_000) == 0
        assert progress_percent(None, 0) == 0

    def test_compare_claim_options(self):
        metrics = compute_metrics(VestingParameters(10_000, 0, 90, 2000, 6000, 0, token_amount=76_880_160))
        comparison = compare_claim_options(metrics)
        assert comparison.total_if_early_claim == pytest.approx(2000)
        assert comparison.total_if_wait == pytest.approx(10_000)
        assert comparison.difference == pytest.approx(8000)
        assert comparison.better_option == "wait"

    def test_compare_after_unlock_is_equal(self):
        metrics = compute_metrics(VestingParameters(10_000, 0, 90, 2000, 6000, 90))
        assert compare_claim_options(metrics).better_option == "equal"


class TestExport:
    """CSV and JSON export."""

    def test_dataframe_has_one_row_per_day(self):
        rows = project_timeline(10_000, chain_config(), start_date="2026-02-01")
        df = timeline_to_dataframe(rows)
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 61
        assert df['day'].tolist()[:2] == [0, 1]
        assert df.iloc[-1]['unlocked'] == pytest.approx(10_000)

    def test_export_csv(self, tmp_path):
        rows = project_timeline(10_000, chain_config())
        path = tmp_path / "timeline.csv"
        export_csv(rows, str(path))
        df = pd.read_csv(path)
        assert len(df) == 61
        assert 'early_vestable_bonus' in df.columns

    def test_export_json(self, tmp_path):
        inputs = resolve_inputs(chain_config())
        rows = project_timeline(inputs.max_token_amount, inputs.config, inputs.global_state, inputs.start_date)
        path = tmp_path / "timeline.json"
        export_json(rows, str(path), inputs=inputs, config_hash="abc123")
        data = json.loads(path.read_text())
        assert data['config_hash'] == "abc123"
        assert data['inputs']['sources']['mode'] == CHAIN
        assert len(data['rows']) == 61
        assert data['rows'][0]['date'] == "2026-02-01"
        assert data['final_metrics']['day'] == 60


class TestCharts:
    """Plotly figures."""

    def test_vesting_chart_traces(self):
        rows = project_timeline(10_000, chain_config())
        fig = create_vesting_chart(rows, current_day=12)
        assert [t.name for t in fig.data] == ['Unlocked', 'Locked', 'Total if claimed early']
        assert len(fig.data[0].x) == 61

    def test_ratio_chart(self):
        rows = project_timeline(10_000, chain_config())
        fig = create_early_vest_ratio_chart(rows)
        assert fig.data[0].y[0] == pytest.approx(30.0)

    def test_vesting_chart_marks_current_day(self):
        rows = project_timeline(10_000, chain_config())
        fig = create_vesting_chart(rows, current_day=12)
        assert fig.layout.shapes[0].x0 == 12
        assert fig.layout.xaxis.title.text == "Day"
        assert len(create_vesting_chart(rows).layout.shapes) == 0

    def test_charts_written_to_one_page(self, tmp_path):
        rows = project_timeline(10_000, chain_config())
        path = tmp_path / "charts.html"
        write_charts_html(rows, str(path), current_day=12)
        html = path.read_text(encoding="utf-8")
        assert html.startswith("<!DOCTYPE html>")
        assert html.count("Plotly.newPlot") == 2
        assert "Early-Vest Ratio" in html


class TestSanityChecks:
    """Timeline validation."""

    def test_clean_timeline_has_no_warnings(self):
        config = chain_config()
        rows = project_timeline(10_000, config)
        assert validate_timeline(10_000, config, rows) == []

    def test_decreasing_ratio_warns(self):
        config = chain_config(early_vest_ratio_min_bps=8000, early_vest_ratio_max_bps=2000)
        warnings = TimelineChecker(10_000, config).check_config_inputs()
        assert any(w.category == "input" for w in warnings)

    def test_allocation_above_season_warns(self):
        warnings = TimelineChecker(10 ** 9, chain_config()).check_config_inputs()
        assert any(w.category == "bounds" for w in warnings)

    def test_broken_rows_reported(self):
        config = chain_config(unlock_duration_days=2)
        rows = project_timeline(10_000, config)
        bad = replace(rows[1].metrics, locked=-5.0, vested=-1.0)
        rows[1] = TimelineRow(day=1, date=None, metrics=bad)
        categories = {w.category for w in TimelineChecker(10_000, config).check_rows(rows)}
        assert "bounds" in categories
        assert "monotonic" in categories

    def test_wrong_length_reported(self):
        config = chain_config(unlock_duration_days=5)
        rows = project_timeline(10_000, config)[:3]
        warnings = TimelineChecker(10_000, config).check_rows(rows)
        assert any(w.category == "length" for w in warnings)


class TestCli:
    """vestpreview-timeline entry point."""

    def test_overrides_from_flags(self):
        args = build_parser().parse_args(["--max", "500", "--duration", "30", "--min-bps", "1000"])
        assert overrides_from_args(args) == {
            'max_token_amount': 500.0,
            'unlock_duration_days': 30,
            'early_vest_ratio_min_bps': 1000,
        }

    def test_simulated_run_writes_csv(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("VESTPREVIEW_ENV", raising=False)
        path = tmp_path / "out.csv"
        code = main(["--max", "1000", "--duration", "10", "--day", "5", "--csv", str(path)])
        assert code == 0
        out = capsys.readouterr().out
        assert "Mode: simulation" in out
        assert "Day 5" in out
        assert len(pd.read_csv(path)) == 11

    def test_simulated_run_writes_html(self, tmp_path, capsys, monkeypatch):
        monkeypatch.delenv("VESTPREVIEW_ENV", raising=False)
        path = tmp_path / "out.html"
        code = main(["--max", "1000", "--duration", "10", "--day", "5", "--html", str(path)])
        assert code == 0
        assert f"Wrote {path}" in capsys.readouterr().out
        assert "Vesting Timeline" in path.read_text(encoding="utf-8")
