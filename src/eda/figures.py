"""
Plotly figures for the shooting and COVID reports.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from plotly import graph_objects as go
from plotly import io as pio

log = logging.getLogger(__name__)

PALETTE = ["#4B6BFB", "#FFA500", "#D62728", "#2CA02C", "#6A3D9A", "#8C564B", "#E377C2", "#999999"]


def safe_filename(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", text)


def save_figure(fig: go.Figure, output_dir: Path, name: str, pdf: bool = False) -> Path:
    """Write ``fig`` as HTML, and as PDF when requested and kaleido is available."""
    output_dir.mkdir(parents=True, exist_ok=True)
    base = safe_filename(name)
    html_path = output_dir / f"{base}.html"
    fig.write_html(html_path)
    if pdf:
        try:
            pio.write_image(fig, output_dir / f"{base}.pdf")
        except Exception as exc:  # noqa: BLE001
            log.warning("Could not export %s as PDF: %s", name, exc)
    return html_path


def trend_lines(
    frame: pd.DataFrame,
    title: str,
    xaxis_title: str,
    yaxis_title: str,
    log_y: bool = False,
) -> go.Figure:
    """One line per column of ``frame`` against its index."""
    fig = go.Figure()
    for i, col in enumerate(frame.columns):
        fig.add_scatter(
            x=frame.index,
            y=frame[col],
            mode="lines+markers" if len(frame) < 60 else "lines",
            name=str(col),
            line=dict(color=PALETTE[i % len(PALETTE)]),
        )
    fig.update_layout(
        title=title,
        xaxis_title=xaxis_title,
        yaxis_title=yaxis_title,
        yaxis_type="log" if log_y else "linear",
        template="plotly_white",
    )
    return fig


def stacked_hour_histogram(incidents: pd.DataFrame, group_col: str = "BORO") -> go.Figure:
    """Incidents by hour of day, one stacked bar segment per group."""
    counts = (
        incidents.groupby(["hour", group_col])
        .size()
        .unstack(fill_value=0)
        .reindex(range(24), fill_value=0)
    )
    fig = go.Figure()
    for i, group in enumerate(counts.columns):
        fig.add_bar(
            x=counts.index,
            y=counts[group],
            name=str(group),
            marker=dict(color=PALETTE[i % len(PALETTE)]),
        )
    fig.update_layout(
        barmode="stack",
        title="Shooting incidents by hour of day",
        xaxis_title="Hour of day",
        yaxis_title="Incidents",
        template="plotly_white",
    )
    return fig


def heatmap(matrix: pd.DataFrame, title: str, xaxis_title: str, yaxis_title: str) -> go.Figure:
    fig = go.Figure(
        go.Heatmap(
            z=matrix.to_numpy(),
            x=[str(c) for c in matrix.columns],
            y=[str(r) for r in matrix.index],
            colorscale="OrRd",
        )
    )
    fig.update_layout(title=title, xaxis_title=xaxis_title, yaxis_title=yaxis_title, template="plotly_white")
    return fig


def density_plot(
    counts: pd.Series,
    density,
    label: str,
    x_max: Optional[float] = None,
    points: int = 400,
) -> go.Figure:
    """Observed count frequencies against a rescaled KDE curve."""
    grid_end = float(x_max if x_max is not None else max(counts.max(), 1))
    grid = np.arange(0, int(np.ceil(grid_end)) + 1)
    observed = counts.value_counts(normalize=True).reindex(grid, fill_value=0.0)
    xs = np.linspace(0.0, grid_end, points)
    fig = go.Figure()
    fig.add_bar(x=grid, y=observed.values, name="Observed share of days", marker=dict(color="#4B6BFB"), opacity=0.7)
    fig.add_scatter(x=xs, y=density(xs), mode="lines", name="Rescaled KDE", line=dict(color="#D62728", width=3))
    fig.update_layout(
        title=f"Daily count density – {label}",
        xaxis_title="Incidents per bucket",
        yaxis_title="Probability / density",
        template="plotly_white",
    )
    return fig


def probability_bars(tables: List[Tuple[str, pd.DataFrame]], title: str) -> go.Figure:
    """Grouped bars, one trace per (name, probability frame)."""
    fig = go.Figure()
    for i, (name, table) in enumerate(tables):
        fig.add_bar(
            x=table["bucket"],
            y=table["probability"],
            name=str(name),
            marker=dict(color=PALETTE[i % len(PALETTE)]),
        )
    fig.update_layout(
        barmode="group",
        title=title,
        xaxis_title="Incidents per bucket",
        yaxis_title="Probability",
        template="plotly_white",
    )
    return fig


def ols_scatter(df: pd.DataFrame, x: str = "cases_per_thou", y: str = "deaths_per_thou") -> go.Figure:
    fig = go.Figure()
    fig.add_scatter(
        x=df[x],
        y=df[y],
        mode="markers",
        name="Actual",
        text=df.get("state"),
        marker=dict(color="#4B6BFB"),
    )
    if "predicted" in df.columns:
        fig.add_scatter(
            x=df[x],
            y=df["predicted"],
            mode="markers",
            name="Predicted",
            text=df.get("state"),
            marker=dict(color="#D62728"),
        )
    fig.update_layout(
        title="Deaths per thousand vs cases per thousand, by state",
        xaxis_title="Cases per thousand",
        yaxis_title="Deaths per thousand",
        template="plotly_white",
    )
    return fig


__all__ = [
    "safe_filename",
    "save_figure",
    "trend_lines",
    "stacked_hour_histogram",
    "heatmap",
    "density_plot",
    "probability_bars",
    "ols_scatter",
]
