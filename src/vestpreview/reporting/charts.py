"""Chart generation using Plotly."""

from typing import Optional

import plotly.graph_objects as go

from ..engine.timeline import Timeline

COLORS = {
    "unlocked": "#00d4ff",
    "unlocked_fill": "rgba(0, 212, 255, 0.12)",
    "locked": "#ffab00",
    "locked_fill": "rgba(255, 171, 0, 0.12)",
    "early_claim": "#00e676",
    "today": "#ff5252",
}

BACKGROUND = "rgb(8, 9, 10)"


def style_timeline_figure(fig: go.Figure, title: str, y_title: str, showlegend: bool = True) -> go.Figure:
    """Shared layout for charts plotted against the unlock day."""
    fig.update_layout(
        title=dict(text=title, x=0),
        template="plotly_dark",
        hovermode="x unified",
        showlegend=showlegend,
        legend=dict(orientation="h", y=1.05, x=0),
        plot_bgcolor=BACKGROUND,
        paper_bgcolor=BACKGROUND,
        margin=dict(l=50, r=20, t=50, b=40)
    )
    fig.update_xaxes(title_text="Day", rangemode="tozero")
    fig.update_yaxes(title_text=y_title, rangemode="tozero")
    return fig


def create_vesting_chart(rows: Timeline, current_day: Optional[int] = None) -> go.Figure:
    """
    Unlocked, locked and early-claim totals over the unlock window.

    Args:
        rows: Timeline rows
        current_day: Day to mark with a vertical line, if any

    Returns:
        Plotly figure
    """
    days = [row.day for row in rows]

    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=days,
        y=[row.metrics.unlocked for row in rows],
        name='Unlocked',
        mode='lines',
        line=dict(color=COLORS["unlocked"], width=2),
        fill='tozeroy',
        fillcolor=COLORS["unlocked_fill"]
    ))

    fig.add_trace(go.Scatter(
        x=days,
        y=[row.metrics.locked for row in rows],
        name='Locked',
        mode='lines',
        line=dict(color=COLORS["locked"], width=2),
        fill='tozeroy',
        fillcolor=COLORS["locked_fill"]
    ))

    fig.add_trace(go.Scatter(
        x=days,
        y=[row.metrics.total_if_early_claim for row in rows],
        name='Total if claimed early',
        mode='lines',
        line=dict(color=COLORS["early_claim"], width=2, dash='dot')
    ))

    if current_day is not None and rows:
        fig.add_vline(x=current_day, line_dash="dash", line_color=COLORS["today"], line_width=1)

    style_timeline_figure(fig, "Vesting Timeline", "Tokens")

    return fig


def create_early_vest_ratio_chart(rows: Timeline) -> go.Figure:
    """Early-vest ratio by day, as a percentage."""
    fig = go.Figure()

    fig.add_trace(go.Scatter(
        x=[row.day for row in rows],
        y=[row.metrics.early_vest_ratio_percent for row in rows],
        name='Early-vest ratio',
        mode='lines',
        line=dict(color=COLORS["locked"], width=2)
    ))
    style_timeline_figure(fig, "Early-Vest Ratio", "Ratio (%)", showlegend=False)

    return fig


def write_charts_html(rows: Timeline, path: str, current_day: Optional[int] = None) -> None:
    """
    Write the vesting and early-vest ratio charts to one standalone HTML page.

    plotly.js is loaded from the CDN, so the page needs network access to render.

    Args:
        rows: Timeline rows
        path: Output file path
        current_day: Day to mark on the vesting chart, if any
    """
    figures = [create_vesting_chart(rows, current_day), create_early_vest_ratio_chart(rows)]
    body = "\n".join(
        fig.to_html(full_html=False, include_plotlyjs="cdn" if i == 0 else False)
        for i, fig in enumerate(figures)
    )
    with open(path, "w", encoding="utf-8") as f:
        f.write(
            "<!DOCTYPE html>\n<html>\n<head><meta charset=\"utf-8\"><title>Vesting Timeline</title></head>\n"
            f"<body style=\"background:{BACKGROUND}\">\n{body}\n</body>\n</html>\n"
        )
