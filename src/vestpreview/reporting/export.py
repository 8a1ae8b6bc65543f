"""Export functionality for CSV and JSON."""

import json
from typing import Any, Dict, Optional

import pandas as pd

from ..engine.timeline import Timeline
from ..simulation.inputs import ResolvedInputs

COLUMNS = [
    'day', 'date', 'base', 'bonus', 'vested', 'unlocked', 'locked',
    'early_vest_ratio', 'early_vest_ratio_percent', 'early_vestable_bonus',
    'forfeited', 'loyalty_bonus', 'total_if_early_claim', 'total_if_wait',
    'is_unlock_complete'
]


def timeline_to_dataframe(rows: Timeline) -> pd.DataFrame:
    """Convert timeline rows to a DataFrame, one row per day."""
    return pd.DataFrame([row.to_dict() for row in rows], columns=COLUMNS)


def export_csv(rows: Timeline, filepath: str):
    """Export a timeline to CSV."""
    df = timeline_to_dataframe(rows)
    df.to_csv(filepath, index=False)


def timeline_payload(
    rows: Timeline,
    inputs: Optional[ResolvedInputs] = None,
    config_hash: Optional[str] = None
) -> Dict[str, Any]:
    """Build the JSON export document for a timeline."""
    payload: Dict[str, Any] = {}
    if config_hash:
        payload['config_hash'] = config_hash
    if inputs is not None:
        payload['inputs'] = {
            'max_token_amount': inputs.max_token_amount,
            'start_date': inputs.start_date.isoformat(),
            'config': inputs.config.to_dict(),
            'global_state': inputs.global_state.to_dict(),
            'sources': dict(inputs.sources),
        }
    payload['rows'] = [row.to_dict() for row in rows]
    if rows:
        final = rows[-1].metrics
        payload['final_metrics'] = {
            'day': rows[-1].day,
            'unlocked': final.unlocked,
            'total_if_wait': final.total_if_wait,
            'loyalty_bonus': final.loyalty_bonus,
        }
    return payload


def export_json(
    rows: Timeline,
    filepath: str,
    inputs: Optional[ResolvedInputs] = None,
    config_hash: Optional[str] = None
):
    """Export a timeline, and optionally its inputs, to JSON."""
    with open(filepath, 'w') as f:
        json.dump(timeline_payload(rows, inputs, config_hash), f, indent=2)
