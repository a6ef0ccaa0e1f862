#!/usr/bin/env python3
"""Trends in US COVID-19 cases/deaths and an OLS of deaths on cases per state."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path


def _ensure_src_on_path() -> None:
    here = Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        src = candidate / "src"
        if src.exists():
            if str(src) not in sys.path:
                sys.path.append(str(src))
            return
    raise FileNotFoundError("Could not locate src/ directory for imports.")


_ensure_src_on_path()

from eda import figures  # type: ignore  # noqa: E402
from eda.covid_series import (  # type: ignore  # noqa: E402
    US_CASES_URL,
    US_DEATHS_URL,
    combine_cases_deaths,
    load_time_series,
    per_thousand_by_state,
    state_population,
    state_totals,
    us_totals,
)
from eda.nypd_shootings import download_dataset, missing_summary  # type: ignore  # noqa: E402
from modeling.covid_regression import fit_cases_deaths_ols, with_predictions  # type: ignore  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="COVID-19 cases/deaths exploration for US states.")
    parser.add_argument("--cases", type=Path, default=Path("data/raw/time_series_covid19_confirmed_US.csv"))
    parser.add_argument("--deaths", type=Path, default=Path("data/raw/time_series_covid19_deaths_US.csv"))
    parser.add_argument("--state", default="New York", help="State for the single-state trend plot.")
    parser.add_argument("--pdf", action="store_true", help="Also export figures as PDF (needs kaleido).")
    parser.add_argument("--output", type=Path, default=Path("outputs/covid"), help="Output directory.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    args.output.mkdir(parents=True, exist_ok=True)
    fig_dir = args.output / "figures"

    cases_path = download_dataset(US_CASES_URL, args.cases)
    deaths_path = download_dataset(US_DEATHS_URL, args.deaths)
    cases = load_time_series(cases_path, "cases")
    deaths = load_time_series(deaths_path, "deaths")

    missing_summary(cases).to_csv(args.output / "missing_cases.csv")
    missing_summary(deaths).to_csv(args.output / "missing_deaths.csv")

    combined = combine_cases_deaths(cases, deaths)
    states = state_totals(combined)
    national = us_totals(combined)

    figures.save_figure(
        figures.trend_lines(
            national.set_index("date")[["cases", "deaths"]],
            "COVID-19 in the US",
            "Date",
            "Cumulative count",
            log_y=True,
        ),
        fig_dir,
        "us_cumulative",
        pdf=args.pdf,
    )
    one_state = states[states["state"] == args.state]
    if one_state.empty:
        raise ValueError(f"State {args.state} not found in time series")
    figures.save_figure(
        figures.trend_lines(
            one_state.set_index("date")[["cases", "deaths"]],
            f"COVID-19 in {args.state}",
            "Date",
            "Cumulative count",
            log_y=True,
        ),
        fig_dir,
        f"state_{args.state}",
        pdf=args.pdf,
    )
    figures.save_figure(
        figures.trend_lines(
            national.set_index("date")[["new_cases", "new_deaths"]],
            "New COVID-19 cases and deaths per day, US",
            "Date",
            "Daily count",
        ),
        fig_dir,
        "us_new",
        pdf=args.pdf,
    )

    per_thou = per_thousand_by_state(states, population=state_population(deaths))
    result = fit_cases_deaths_ols(per_thou)
    per_thou = with_predictions(per_thou, result)
    table_path = args.output / "state_per_thousand.csv"
    per_thou.to_csv(table_path, index=False)
    print(f"Saved per-thousand table to {table_path}")

    summary_path = args.output / "ols_summary.json"
    summary_path.write_text(json.dumps(result.summary_dict(), indent=2))
    print(f"Saved OLS summary to {summary_path}")
    figures.save_figure(figures.ols_scatter(per_thou), fig_dir, "ols_deaths_vs_cases", pdf=args.pdf)


if __name__ == "__main__":
    main()
