"""
Descriptive statistics and static figures for a daily count series.

Outputs
-------
1. summary dict: mean/variance/dispersion and the empirical vs Poisson zero share.
2. counts_{label}.png: counts per day with a rolling mean.
3. count_hist_{label}.png: histogram of counts per day.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

import numpy as np
import pandas as pd
from matplotlib import pyplot as plt


def count_stats(counts: pd.Series) -> Dict[str, float]:
    """Compute metrics useful for Poisson diagnostics."""
    lam = counts.mean()
    variance = counts.var()
    dispersion_index = variance / lam if lam > 0 else np.nan
    zero_prob = (counts == 0).mean()
    poisson_zero = np.exp(-lam)
    return {
        "mean_per_bucket": float(lam),
        "variance_per_bucket": float(variance),
        "dispersion_index": float(dispersion_index),
        "emp_zero_prob": float(zero_prob),
        "poisson_zero_prob": float(poisson_zero),
        "max_per_bucket": int(counts.max()),
    }


def save_summary(path: Path, summaries: Dict[str, Dict[str, float]]) -> None:
    path.write_text(json.dumps(summaries, indent=2, default=str))


def plot_counts(counts: pd.Series, out_path: Path, window: int = 28) -> None:
    fig, ax = plt.subplots(2, 1, figsize=(12, 8), sharex=True)
    counts.plot(ax=ax[0], color="#1f77b4", linewidth=0.6)
    ax[0].set_title(f"Incidents per Day – {counts.name}")
    ax[0].set_ylabel("Incidents")
    counts.rolling(window, min_periods=1).mean().plot(ax=ax[1], color="#ff7f0e")
    ax[1].set_title(f"{window}-day Rolling Mean")
    ax[1].set_ylabel("Incidents / day")
    ax[1].set_xlabel("Date")
    fig.tight_layout()
    fig.savefig(out_path, dpi=200)
    plt.close(fig)


def plot_count_hist(counts: pd.Series, out_path: Path) -> None:
    fig, ax = plt.subplots(figsize=(8, 4))
    bins = np.arange(0, counts.max() + 2) - 0.5
    counts.plot(kind="hist", bins=bins, alpha=0.7, ax=ax, color="#2ca02c")
    ax.set_title(f"Distribution of Incidents per Day – {counts.name}")
    ax.set_xlabel("Incidents")
    ax.set_ylabel("Days")
    fig.tight_layout()
    fig.savefig(out_path, dpi=200)
    plt.close(fig)


__all__ = ["count_stats", "save_summary", "plot_counts", "plot_count_hist"]
