"""Tests for the timeline projector and the off-thread worker."""

import asyncio
import pytest
import sys
import os
from datetime import date

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from vestpreview.data.models import GlobalState, ProjectConfig
from vestpreview.engine.timeline import metrics_for_day, project_timeline
from vestpreview.errors import ProjectionCancelled
from vestpreview.simulation.worker import (
    CancellationToken,
    ProjectionRequest,
    TimelineError,
    TimelineResult,
    TimelineWorker,
)


def make_config(duration: int = 90, **overrides) -> ProjectConfig:
    values = dict(
        token_amount=76_880_160,
        base_token_claim_bps=0,
        unlock_duration_days=duration,
        early_vest_ratio_min_bps=2000,
        early_vest_ratio_max_bps=6000,
    )
    values.update(overrides)
    return ProjectConfig(**values)


class TestProjectTimeline:
    """Timeline length and row contents."""

    def test_length_is_duration_plus_one(self):
        rows = project_timeline(10_000, make_config(90), GlobalState())
        assert len(rows) == 91
        assert [r.day for r in rows[:3]] == [0, 1, 2]
        assert rows[-1].day == 90

    def test_zero_duration_has_single_completed_row(self):
        rows = project_timeline(10_000, make_config(0))
        assert len(rows) == 1
        assert rows[0].metrics.is_unlock_complete

    @pytest.mark.parametrize("max_amount", [0, -5])
    def test_no_allocation_yields_empty_timeline(self, max_amount):
        assert project_timeline(max_amount, make_config(90)) == []

    def test_missing_config_yields_empty_timeline(self):
        assert project_timeline(10_000, None) == []

    def test_rows_are_dated_from_start(self):
        rows = project_timeline(10_000, make_config(30), start_date="2025-12-16")
        assert rows[0].date == date(2025, 12, 16)
        assert rows[16].date == date(2026, 1, 1)
        assert rows[0].to_dict()['date'] == "2025-12-16"

    def test_undated_rows_export_empty_date(self):
        rows = project_timeline(10_000, make_config(5))
        assert rows[0].date is None
        assert rows[0].to_dict()['date'] == ''

    def test_pool_snapshot_is_constant_across_days(self):
        pool = GlobalState(total_loyalty=1_000_000)
        rows = project_timeline(10_000, make_config(10), pool)
        bonuses = {r.metrics.loyalty_bonus for r in rows}
        assert len(bonuses) == 1
        assert bonuses.pop() > 0

    def test_row_matches_single_day_metrics(self):
        config = make_config(90)
        pool = GlobalState(total_loyalty=5000)
        rows = project_timeline(10_000, config, pool)
        assert rows[42].metrics == metrics_for_day(10_000, config, pool, 42)

    def test_cancelled_token_stops_projection(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ProjectionCancelled):
            project_timeline(10_000, make_config(90), cancel_token=token)


class TestTimelineWorker:
    """Request/reply protocol of the worker."""

    def test_single_request_gets_result(self):
        with TimelineWorker() as worker:
            reply = worker.submit(ProjectionRequest(10_000, make_config(90), GlobalState(), "2025-12-16")).result()
            assert isinstance(reply, TimelineResult)
            assert len(reply.rows) == 91
            assert worker.latest_reply() == reply

    def test_missing_config_replies_with_empty_rows(self):
        with TimelineWorker() as worker:
            reply = worker.submit(ProjectionRequest(10_000, None)).result()
        assert isinstance(reply, TimelineResult)
        assert reply.rows == []

    def test_newer_request_supersedes_older(self):
        with TimelineWorker() as worker:
            first = worker.submit(ProjectionRequest(10_000, make_config(10_000_000)))
            second = worker.submit(ProjectionRequest(10_000, make_config(30)))

            first_reply = first.result()
            second_reply = second.result()

            assert isinstance(first_reply, TimelineError)
            assert first_reply.cancelled
            assert not worker.is_current(first_reply)

            assert isinstance(second_reply, TimelineResult)
            assert len(second_reply.rows) == 31
            assert worker.is_current(second_reply)
            assert worker.latest_reply() == second_reply

    def test_request_ids_increase(self):
        with TimelineWorker() as worker:
            a = worker.submit(ProjectionRequest(10_000, make_config(3))).result()
            b = worker.submit(ProjectionRequest(10_000, make_config(3))).result()
        assert b.request_id > a.request_id

    def test_projection_failure_becomes_error_reply(self):
        broken = make_config(duration="ninety")
        with TimelineWorker() as worker:
            reply = worker.submit(ProjectionRequest(10_000, broken)).result()
        assert isinstance(reply, TimelineError)
        assert not reply.cancelled
        assert reply.message

    def test_async_request(self):
        async def run():
            with TimelineWorker() as worker:
                return await worker.request(ProjectionRequest(10_000, make_config(7)))

        reply = asyncio.run(run())
        assert isinstance(reply, TimelineResult)
        assert len(reply.rows) == 8
