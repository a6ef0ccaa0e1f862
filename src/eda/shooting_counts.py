"""
Gap-free count series built from incident timestamps.

Every series returned here has one row per calendar day of its span, zeros
included, so it can go straight into ``modeling.count_kde``.
"""

from __future__ import annotations

from typing import Optional, Union

import pandas as pd

DateLike = Union[str, pd.Timestamp, None]


def _day_index(incidents: pd.DataFrame, start: DateLike, end: DateLike) -> pd.DatetimeIndex:
    if start is None:
        if incidents.empty:
            raise ValueError("Cannot infer a date span from an empty incident frame.")
        start = incidents["event_time"].min()
    if end is None:
        if incidents.empty:
            raise ValueError("Cannot infer a date span from an empty incident frame.")
        end = incidents["event_time"].max()
    start, end = pd.Timestamp(start).normalize(), pd.Timestamp(end).normalize()
    if end < start:
        raise ValueError(f"End date {end.date()} is before start date {start.date()}")
    return pd.date_range(start, end, freq="D", name="date")


def daily_counts(incidents: pd.DataFrame, start: DateLike = None, end: DateLike = None) -> pd.Series:
    """Incidents per calendar day over ``[start, end]``."""
    days = _day_index(incidents, start, end)
    counts = incidents["event_time"].dt.normalize().value_counts()
    return counts.reindex(days, fill_value=0).astype("int64").rename("incidents")


def daily_counts_by_group(
    incidents: pd.DataFrame,
    group_col: str = "BORO",
    start: DateLike = None,
    end: DateLike = None,
) -> pd.DataFrame:
    """Return counts per day per group (wide format), every day of the span present."""
    days = _day_index(incidents, start, end)
    grouped = (
        incidents.assign(date=incidents["event_time"].dt.normalize())
        .groupby(["date", group_col])
        .size()
        .rename("incidents")
        .reset_index()
    )
    pivot = grouped.pivot_table(
        index="date",
        columns=group_col,
        values="incidents",
        fill_value=0,
        aggfunc="sum",
    )
    pivot = pivot.reindex(days, fill_value=0).astype("int64")
    pivot.columns.name = group_col
    return pivot


def hourly_counts(
    incidents: pd.DataFrame,
    hour: int,
    start: DateLike = None,
    end: DateLike = None,
) -> pd.Series:
    """Incidents in the given hour-of-day, one count per calendar day."""
    if not 0 <= int(hour) <= 23:
        raise ValueError(f"Hour must be in [0, 23], got {hour}")
    days = _day_index(incidents, start, end)
    in_hour = incidents[incidents["event_time"].dt.hour == int(hour)]
    counts = in_hour["event_time"].dt.normalize().value_counts()
    return counts.reindex(days, fill_value=0).astype("int64").rename(f"hour_{int(hour):02d}")


def window_counts(series: pd.Series, start: DateLike, end: DateLike) -> pd.Series:
    """Slice a daily count series to ``[start, end]`` (either side may be open)."""
    window = series.loc[start:end]
    if window.empty:
        raise ValueError(f"No days of {series.name!r} fall in window {start} to {end}")
    return window


def parse_windows(spec: str):
    """Parse ``"2006-2019,2020-2023"`` into ``[(label, start, end), ...]`` year windows."""
    windows = []
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" not in part:
            raise ValueError(f"Invalid window '{part}', expected startYear-endYear")
        start_s, end_s = part.split("-", 1)
        start_year, end_year = int(start_s), int(end_s)
        if end_year < start_year:
            raise ValueError(f"Window end must not precede start: '{part}'")
        windows.append((part, f"{start_year}-01-01", f"{end_year}-12-31"))
    return windows


def parse_hours(spec: Optional[str]):
    if spec is None or spec.strip().lower() == "all":
        return list(range(24))
    hours = sorted({int(h) for h in spec.split(",") if h.strip()})
    for hour in hours:
        if not 0 <= hour <= 23:
            raise ValueError(f"Hour must be in [0, 23], got {hour}")
    return hours


__all__ = [
    "daily_counts",
    "daily_counts_by_group",
    "hourly_counts",
    "window_counts",
    "parse_windows",
    "parse_hours",
]
