"""
Loading and cleaning of the NYPD Shooting Incident Data (Historic) export.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd
import requests

log = logging.getLogger(__name__)

NYPD_SHOOTINGS_URL = "https://data.cityofnewyork.us/api/views/833y-pgnj/rows.csv?accessType=DOWNLOAD"

SHOOTING_COLUMNS = [
    "INCIDENT_KEY",
    "OCCUR_DATE",
    "OCCUR_TIME",
    "BORO",
    "PRECINCT",
    "LOCATION_DESC",
    "STATISTICAL_MURDER_FLAG",
    "PERP_AGE_GROUP",
    "PERP_SEX",
    "PERP_RACE",
    "VIC_AGE_GROUP",
    "VIC_SEX",
    "VIC_RACE",
    "Latitude",
    "Longitude",
]

CATEGORICAL_COLUMNS = [
    "BORO",
    "LOCATION_DESC",
    "PERP_AGE_GROUP",
    "PERP_SEX",
    "PERP_RACE",
    "VIC_AGE_GROUP",
    "VIC_SEX",
    "VIC_RACE",
]

# placeholders the export uses instead of leaving a cell empty
MISSING_MARKERS = ["(null)", "(NULL)", "NULL", "UNKNOWN", "U", "NONE", ""]
VALID_AGE_GROUPS = {"<18", "18-24", "25-44", "45-64", "65+"}

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

Source = Union[str, Path]


def download_dataset(url: str, dest: Path, timeout: float = 60.0, overwrite: bool = False) -> Path:
    """Fetch a CSV export to ``dest`` unless a copy is already there."""
    if dest.exists() and not overwrite:
        log.info("Using cached %s", dest)
        return dest
    dest.parent.mkdir(parents=True, exist_ok=True)
    log.info("Downloading %s", url)
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    dest.write_bytes(response.content)
    log.info("Wrote %d bytes to %s", len(response.content), dest)
    return dest


def _check_local(source: Source) -> None:
    text = str(source)
    if "://" in text:
        return
    if not Path(text).exists():
        raise FileNotFoundError(source)


def load_shootings(source: Source = NYPD_SHOOTINGS_URL, max_rows: Optional[int] = None) -> pd.DataFrame:
    """Load the incident export and build a naive ``event_time`` column."""
    _check_local(source)
    df = pd.read_csv(source, nrows=max_rows, dtype={"OCCUR_TIME": str, "OCCUR_DATE": str})
    missing = {"OCCUR_DATE", "OCCUR_TIME", "BORO"} - set(df.columns)
    if missing:
        raise ValueError(f"Shooting data is missing required columns: {sorted(missing)}")
    stamp = df["OCCUR_DATE"].str.strip() + " " + df["OCCUR_TIME"].str.strip()
    df["event_time"] = pd.to_datetime(stamp, format="%m/%d/%Y %H:%M:%S", errors="coerce")
    bad = int(df["event_time"].isna().sum())
    if bad:
        log.warning("Dropping %d rows with unparseable OCCUR_DATE/OCCUR_TIME", bad)
    df = df.dropna(subset=["event_time"]).sort_values("event_time").reset_index(drop=True)
    log.info("Loaded %d shooting incidents from %s", len(df), source)
    return df


def clean_shootings(df: pd.DataFrame, columns: Iterable[str] = SHOOTING_COLUMNS) -> pd.DataFrame:
    """Keep analysis columns, turn placeholder values into NaN and add time features."""
    keep = [col for col in columns if col in df.columns]
    out = df[[*keep, "event_time"]].copy()
    for col in CATEGORICAL_COLUMNS:
        if col not in out.columns:
            continue
        values = out[col].astype("string").str.strip().str.upper()
        values = values.mask(values.isin(MISSING_MARKERS))
        out[col] = values
    for col in ("PERP_AGE_GROUP", "VIC_AGE_GROUP"):
        if col in out.columns:
            out[col] = out[col].where(out[col].isin(VALID_AGE_GROUPS))
    if "STATISTICAL_MURDER_FLAG" in out.columns:
        flag = out["STATISTICAL_MURDER_FLAG"].astype(str).str.strip().str.lower()
        out["STATISTICAL_MURDER_FLAG"] = flag.isin(["true", "1", "y", "yes"])
    out = out.dropna(subset=["BORO"])
    out["year"] = out["event_time"].dt.year
    out["hour"] = out["event_time"].dt.hour
    out["weekday"] = out["event_time"].dt.dayofweek
    return out.reset_index(drop=True)


def missing_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Missing-value count and share per column, worst first."""
    counts = df.isna().sum()
    summary = pd.DataFrame(
        {
            "missing": counts.astype(int),
            "missing_share": counts / len(df) if len(df) else np.nan,
        }
    )
    summary.index.name = "column"
    return summary.sort_values("missing", ascending=False)


def yearly_counts(df: pd.DataFrame, group_col: str = "BORO") -> pd.DataFrame:
    """Incidents per year (rows) per group (columns)."""
    return (
        df.groupby(["year", group_col])
        .size()
        .unstack(fill_value=0)
        .sort_index()
    )


def murder_share(df: pd.DataFrame, group_col: str = "BORO") -> pd.DataFrame:
    grouped = df.groupby(group_col)["STATISTICAL_MURDER_FLAG"]
    out = pd.DataFrame({"incidents": grouped.size(), "murders": grouped.sum().astype(int)})
    out["murder_share"] = out["murders"] / out["incidents"]
    return out.sort_values("incidents", ascending=False)


def hour_weekday_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """7 x 24 incident counts, weekday names as rows and hours as columns."""
    matrix = (
        df.groupby(["weekday", "hour"])
        .size()
        .unstack(fill_value=0)
        .reindex(index=range(7), columns=range(24), fill_value=0)
    )
    matrix.index = WEEKDAY_NAMES
    return matrix


__all__ = [
    "NYPD_SHOOTINGS_URL",
    "download_dataset",
    "load_shootings",
    "clean_shootings",
    "missing_summary",
    "yearly_counts",
    "murder_share",
    "hour_weekday_matrix",
]
