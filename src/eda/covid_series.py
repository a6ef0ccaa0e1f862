"""
Johns Hopkins CSSE US time series (confirmed cases and deaths) reshaped into
long per-county rows and aggregated per state and nationally.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)

JHU_BASE_URL = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/"
)
US_CASES_URL = JHU_BASE_URL + "time_series_covid19_confirmed_US.csv"
US_DEATHS_URL = JHU_BASE_URL + "time_series_covid19_deaths_US.csv"

KEY_COLUMNS = ["Admin2", "Province_State", "Country_Region", "Combined_Key"]
DATE_COLUMN = re.compile(r"^\d{1,2}/\d{1,2}/\d{2}$")

Source = Union[str, Path]


def load_time_series(source: Source, value_name: str) -> pd.DataFrame:
    """Melt a wide JHU time-series CSV into ``state, county, date, <value_name>`` rows."""
    text = str(source)
    if "://" not in text and not Path(text).exists():
        raise FileNotFoundError(source)
    wide = pd.read_csv(source)
    date_cols = [col for col in wide.columns if DATE_COLUMN.match(str(col))]
    if not date_cols:
        raise ValueError(f"No m/d/yy date columns found in {source}")
    missing = set(KEY_COLUMNS) - set(wide.columns)
    if missing:
        raise ValueError(f"Time series is missing key columns: {sorted(missing)}")
    id_cols = [*KEY_COLUMNS] + (["Population"] if "Population" in wide.columns else [])
    long = wide.melt(id_vars=id_cols, value_vars=date_cols, var_name="date", value_name=value_name)
    long["date"] = pd.to_datetime(long["date"], format="%m/%d/%y")
    long = long.rename(columns={"Admin2": "county", "Province_State": "state", "Country_Region": "country"})
    long[value_name] = pd.to_numeric(long[value_name], errors="coerce").fillna(0).astype("int64")
    log.info("Loaded %d %s rows over %d days from %s", len(long), value_name, len(date_cols), source)
    return long


def combine_cases_deaths(cases: pd.DataFrame, deaths: pd.DataFrame) -> pd.DataFrame:
    """Join cases and deaths per county/day; Population comes from the deaths file."""
    if "Population" not in deaths.columns:
        raise ValueError("Deaths time series must carry a Population column.")
    keys = ["Combined_Key", "date"]
    merged = cases[[*keys, "county", "state", "country", "cases"]].merge(
        deaths[[*keys, "deaths", "Population"]],
        on=keys,
        how="inner",
    )
    merged = merged[merged["cases"] > 0]
    return merged.sort_values(["state", "county", "date"]).reset_index(drop=True)


def _add_daily_changes(df: pd.DataFrame, group_col: Optional[str] = None) -> pd.DataFrame:
    grouped = df.groupby(group_col) if group_col else df
    df["new_cases"] = grouped["cases"].diff().fillna(df["cases"]).clip(lower=0).astype("int64")
    df["new_deaths"] = grouped["deaths"].diff().fillna(df["deaths"]).clip(lower=0).astype("int64")
    return df


def state_totals(df: pd.DataFrame) -> pd.DataFrame:
    """Cumulative and new cases/deaths per state per day."""
    totals = (
        df.groupby(["state", "date"], as_index=False)[["cases", "deaths", "Population"]]
        .sum()
        .sort_values(["state", "date"])
        .reset_index(drop=True)
    )
    return _add_daily_changes(totals, "state")


def us_totals(df: pd.DataFrame) -> pd.DataFrame:
    totals = (
        df.groupby("date", as_index=False)[["cases", "deaths", "Population"]]
        .sum()
        .sort_values("date")
        .reset_index(drop=True)
    )
    return _add_daily_changes(totals)


def state_population(deaths: pd.DataFrame) -> pd.Series:
    """Resident population per state, summed over every county in the deaths file."""
    if "Population" not in deaths.columns:
        raise ValueError("Deaths time series must carry a Population column.")
    counties = deaths.drop_duplicates("Combined_Key")
    return counties.groupby("state")["Population"].sum().rename("Population")


def per_thousand_by_state(df: pd.DataFrame, population: Optional[pd.Series] = None) -> pd.DataFrame:
    """Latest cumulative totals per state with cases and deaths per thousand residents.

    Without ``population`` the denominator is the summed population of the
    counties present on the latest date, which leaves out counties with no
    recorded cases. Pass ``state_population(deaths)`` to count every county.
    """
    states = state_totals(df) if "new_cases" not in df.columns else df
    latest = states.sort_values("date").groupby("state").tail(1).copy()
    if population is not None:
        latest["Population"] = latest["state"].map(population).fillna(0)
    latest = latest[latest["Population"] > 0].copy()
    latest["cases_per_thou"] = 1000 * latest["cases"] / latest["Population"]
    latest["deaths_per_thou"] = 1000 * latest["deaths"] / latest["Population"]
    latest = latest.replace([np.inf, -np.inf], np.nan).dropna(subset=["cases_per_thou", "deaths_per_thou"])
    cols = ["state", "date", "cases", "deaths", "Population", "cases_per_thou", "deaths_per_thou"]
    return latest[cols].sort_values("deaths_per_thou", ascending=False).reset_index(drop=True)


__all__ = [
    "US_CASES_URL",
    "US_DEATHS_URL",
    "load_time_series",
    "combine_cases_deaths",
    "state_totals",
    "us_totals",
    "state_population",
    "per_thousand_by_state",
]
