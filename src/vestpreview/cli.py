"""Command-line vesting timeline preview.

Usage:
    vestpreview-timeline --max 10000 --duration 90
    vestpreview-timeline --project 0xabc... --csv timeline.csv
    vestpreview-timeline --max 10000 --html timeline.html
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

from .config.loader import load_config
from .data.models import GlobalState, ProjectConfig
from .data.service import build_service
from .engine.vesting import current_day
from .engine.timeline import metrics_for_day
from .errors import SourceUnavailableError
from .log import configure_logging
from .reporting.charts import write_charts_html
from .reporting.export import export_csv, export_json
from .simulation.inputs import compare_claim_options, progress_percent, resolve_inputs
from .simulation.worker import ProjectionRequest, TimelineError, TimelineWorker
from .validation.sanity_checks import validate_timeline

logger = logging.getLogger(__name__)

# CLI flag -> Simulation field
_OVERRIDE_FLAGS = {
    'max': 'max_token_amount',
    'duration': 'unlock_duration_days',
    'start_date': 'unlock_start_date',
    'base_bps': 'base_token_claim_bps',
    'min_bps': 'early_vest_ratio_min_bps',
    'max_bps': 'early_vest_ratio_max_bps',
    'token_amount': 'token_amount',
    'loyalty_pool': 'loyalty_pool',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Project a token vesting timeline")
    parser.add_argument('--config', type=str, help='Path to a YAML config (defaults to packaged defaults)')
    parser.add_argument('--env', type=str, help='Environment profile')
    parser.add_argument('--project', type=str, help='Project token address to read on-chain config for')
    parser.add_argument('--max', type=float, help='Wallet allocation')
    parser.add_argument('--duration', type=int, help='Unlock duration in days')
    parser.add_argument('--start-date', type=str, help='Unlock start date (YYYY-MM-DD)')
    parser.add_argument('--base-bps', type=int, help='Base claim share in bps')
    parser.add_argument('--min-bps', type=int, help='Early-vest ratio at day 0 in bps')
    parser.add_argument('--max-bps', type=int, help='Early-vest ratio at the end in bps')
    parser.add_argument('--token-amount', type=float, help='Season token amount')
    parser.add_argument('--loyalty-pool', type=float, help='Simulated loyalty pool')
    parser.add_argument('--day', type=int, help='Day to summarize (defaults to today)')
    parser.add_argument('--csv', type=str, help='Write the timeline to CSV')
    parser.add_argument('--json', type=str, help='Write the timeline to JSON')
    parser.add_argument('--html', type=str, help='Write vesting and early-vest ratio charts to HTML')
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Simulation overrides for every flag that was given."""
    overrides = {}
    for flag, name in _OVERRIDE_FLAGS.items():
        value = getattr(args, flag, None)
        if value is not None:
            overrides[name] = value
    return overrides


async def fetch_chain_inputs(config, project_id: str) -> Tuple[Optional[ProjectConfig], Optional[GlobalState]]:
    """Read project config and pool state, or (None, None) if the source is down."""
    service = build_service(config)
    try:
        project = await service.project_config(project_id)
        pool = await service.global_state(project_id)
        if project.is_stale or pool.is_stale:
            logger.warning("Showing cached data for %s while it refreshes", project_id)
        return project.value, pool.value
    except SourceUnavailableError as e:
        logger.warning("On-chain data unavailable (%s), using simulation values", e)
        return None, None
    finally:
        await service.close()


def print_summary(inputs, rows, day: int) -> None:
    metrics = metrics_for_day(inputs.max_token_amount, inputs.config, inputs.global_state, day)
    comparison = compare_claim_options(metrics)
    print(f"Mode: {inputs.mode}  Start: {inputs.start_date.isoformat()}  "
          f"Duration: {inputs.config.unlock_duration_days} days")
    print(f"Day {day}: unlocked {metrics.unlocked:,.2f} of {inputs.max_token_amount:,.2f} "
          f"({progress_percent(metrics, inputs.max_token_amount)}%)")
    print(f"  Early-vest ratio: {metrics.early_vest_ratio_percent:.1f}%")
    print(f"  Total if claimed early: {comparison.total_if_early_claim:,.2f}")
    print(f"  Total if waiting:       {comparison.total_if_wait:,.2f}  "
          f"(+{comparison.difference:,.2f})")
    print(f"Timeline: {len(rows)} days projected")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config, environment=args.env)
    configure_logging(config.logging.level)

    chain_config, chain_global = None, None
    if args.project:
        chain_config, chain_global = asyncio.run(fetch_chain_inputs(config, args.project))

    inputs = resolve_inputs(chain_config, chain_global, overrides_from_args(args), config.simulation)

    with TimelineWorker() as worker:
        reply = worker.submit(ProjectionRequest(
            max_token_amount=inputs.max_token_amount,
            config=inputs.config,
            global_state=inputs.global_state,
            start_date=inputs.start_date
        )).result()

    if isinstance(reply, TimelineError):
        print(f"[!] Projection failed: {reply.message}", file=sys.stderr)
        return 1
    rows = reply.rows

    for warning in validate_timeline(inputs.max_token_amount, inputs.config, rows):
        logger.warning("[%s] %s", warning.category, warning.message)

    day = args.day
    if day is None:
        day = current_day(inputs.start_date, inputs.config.unlock_duration_days)
    print_summary(inputs, rows, day)

    if args.csv:
        export_csv(rows, args.csv)
        print(f"Wrote {args.csv}")
    if args.json:
        export_json(rows, args.json, inputs=inputs, config_hash=config.compute_hash())
        print(f"Wrote {args.json}")
    if args.html:
        write_charts_html(rows, args.html, current_day=day)
        print(f"Wrote {args.html}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
