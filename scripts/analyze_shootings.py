#!/usr/bin/env python3
"""
Exploratory report on NYPD shooting incidents with KDE probability tables.

Example
-------
python scripts/analyze_shootings.py --input data/raw/nypd_shootings.csv \
    --windows 2006-2019,2020-2023 --hours 0,12,22
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd


def _ensure_src_on_path() -> None:
    here = Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        src = candidate / "src"
        if src.exists():
            if str(src) not in sys.path:
                sys.path.append(str(src))
            return
    raise FileNotFoundError("Could not locate src/ directory to import project modules.")


_ensure_src_on_path()

from eda import count_diagnostics, figures  # type: ignore  # noqa: E402
from eda.nypd_shootings import (  # type: ignore  # noqa: E402
    NYPD_SHOOTINGS_URL,
    clean_shootings,
    download_dataset,
    hour_weekday_matrix,
    load_shootings,
    missing_summary,
    murder_share,
    yearly_counts,
)
from eda.shooting_counts import (  # type: ignore  # noqa: E402
    daily_counts,
    daily_counts_by_group,
    hourly_counts,
    parse_hours,
    parse_windows,
    window_counts,
)
from modeling.count_kde import (  # type: ignore  # noqa: E402
    CountDensity,
    InvalidParameter,
    KDEConfig,
    estimate_count_density,
    probability_frame,
    select_bandwidth,
)

log = logging.getLogger("analyze_shootings")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Exploratory analysis of NYPD shooting incidents.")
    parser.add_argument(
        "--input",
        type=Path,
        default=Path("data/raw/nypd_shootings.csv"),
        help="Shooting incident CSV; downloaded from NYC Open Data if missing.",
    )
    parser.add_argument("--url", default=NYPD_SHOOTINGS_URL, help="Source URL used when --input is missing.")
    parser.add_argument("--max-rows", type=int, default=None, help="Optional row cap for testing.")
    parser.add_argument(
        "--bandwidth",
        default="1.0",
        help="KDE bandwidth, or 'auto' for a cross-validated choice per series.",
    )
    parser.add_argument("--table-start", type=float, default=0.0, help="Lower edge of the daily table.")
    parser.add_argument("--table-end", type=float, default=40.0, help="Upper edge of the daily table.")
    parser.add_argument("--table-step", type=float, default=5.0, help="Bucket width of the daily table.")
    parser.add_argument("--hour-table-end", type=float, default=6.0, help="Upper edge of per-hour tables.")
    parser.add_argument("--hour-table-step", type=float, default=1.0, help="Bucket width of per-hour tables.")
    parser.add_argument(
        "--hours",
        default="all",
        help="Comma-separated hours of day to model, or 'all'.",
    )
    parser.add_argument(
        "--windows",
        default="2006-2019,2020-2023",
        help="Comma-separated year windows for city-wide daily tables, e.g. '2006-2019,2020-2023'.",
    )
    parser.add_argument("--pdf", action="store_true", help="Also export figures as PDF (needs kaleido).")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("outputs/shootings"),
        help="Directory for tables, summaries and plots.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING).")
    return parser.parse_args()


def resolve_bandwidth(option: str, counts: pd.Series) -> float:
    if option.strip().lower() == "auto":
        return select_bandwidth(counts)
    return float(option)


def fit_and_tabulate(
    counts: pd.Series,
    bandwidth_option: str,
    start: float,
    end: float,
    step: float,
) -> Tuple[CountDensity, pd.DataFrame]:
    config = KDEConfig(bandwidth=resolve_bandwidth(bandwidth_option, counts))
    estimate = estimate_count_density(counts, config)
    table = probability_frame(estimate.table(start, end, step))
    return estimate, table


def collect_tables(named: Dict[str, pd.DataFrame], estimates: Dict[str, CountDensity]) -> pd.DataFrame:
    frames = []
    for name, table in named.items():
        est = estimates[name]
        frames.append(
            table.assign(
                series=name,
                bandwidth=est.bandwidth,
                range_min=est.range_min,
                range_max=est.range_max,
            )
        )
    return pd.concat(frames, ignore_index=True) if frames else pd.DataFrame()


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    args.output.mkdir(parents=True, exist_ok=True)
    fig_dir = args.output / "figures"

    source = download_dataset(args.url, args.input) if not args.input.exists() else args.input
    incidents = clean_shootings(load_shootings(source, max_rows=args.max_rows))

    missing = missing_summary(incidents)
    missing_path = args.output / "missing_values.csv"
    missing.to_csv(missing_path)
    print(f"Saved missing-value tally to {missing_path}")

    yearly = yearly_counts(incidents)
    yearly.to_csv(args.output / "yearly_counts.csv")
    murder_share(incidents).to_csv(args.output / "murder_share.csv")
    figures.save_figure(
        figures.trend_lines(yearly, "Shooting incidents per year by borough", "Year", "Incidents"),
        fig_dir,
        "yearly_trend",
        pdf=args.pdf,
    )
    figures.save_figure(figures.stacked_hour_histogram(incidents), fig_dir, "hour_stacked", pdf=args.pdf)
    figures.save_figure(
        figures.heatmap(hour_weekday_matrix(incidents), "Incidents by weekday and hour", "Hour", "Weekday"),
        fig_dir,
        "weekday_hour_heatmap",
        pdf=args.pdf,
    )

    start, end = incidents["event_time"].min(), incidents["event_time"].max()
    boro_counts = daily_counts_by_group(incidents, "BORO", start=start, end=end)
    city_counts = daily_counts(incidents, start=start, end=end).rename("CITYWIDE")

    series: Dict[str, pd.Series] = {str(b): boro_counts[b].rename(str(b)) for b in boro_counts.columns}
    series["CITYWIDE"] = city_counts
    for label, w_start, w_end in parse_windows(args.windows):
        try:
            series[f"CITYWIDE {label}"] = window_counts(city_counts, w_start, w_end).rename(f"CITYWIDE {label}")
        except ValueError as exc:
            log.warning("Skipping window %s: %s", label, exc)

    summaries = {name: count_diagnostics.count_stats(s) for name, s in series.items()}
    count_diagnostics.save_summary(args.output / "daily_count_summary.json", summaries)
    count_diagnostics.plot_counts(city_counts, args.output / "counts_CITYWIDE.png")
    count_diagnostics.plot_count_hist(city_counts, args.output / "count_hist_CITYWIDE.png")

    daily_tables: Dict[str, pd.DataFrame] = {}
    daily_estimates: Dict[str, CountDensity] = {}
    for name, counts in series.items():
        try:
            est, table = fit_and_tabulate(
                counts, args.bandwidth, args.table_start, args.table_end, args.table_step
            )
        except InvalidParameter as exc:
            log.warning("Skipping daily KDE for %s: %s", name, exc)
            continue
        daily_tables[name] = table
        daily_estimates[name] = est
        figures.save_figure(
            figures.density_plot(counts, est.pdf, name, x_max=args.table_end),
            fig_dir / "density",
            f"daily_{name}",
            pdf=args.pdf,
        )
        log.info("%s: window [%g, %g], table mass %.4f", name, est.range_min, est.range_max, table["probability"].sum())

    daily_path = args.output / "daily_probability_tables.csv"
    collect_tables(daily_tables, daily_estimates).to_csv(daily_path, index=False)
    print(f"Saved daily probability tables to {daily_path}")
    boro_tables: List[Tuple[str, pd.DataFrame]] = [
        (name, table) for name, table in daily_tables.items() if name in boro_counts.columns
    ]
    figures.save_figure(
        figures.probability_bars(boro_tables, "Probability of daily shooting counts by borough"),
        fig_dir,
        "daily_probability_by_borough",
        pdf=args.pdf,
    )

    hour_tables: Dict[str, pd.DataFrame] = {}
    hour_estimates: Dict[str, CountDensity] = {}
    for hour in parse_hours(args.hours):
        counts = hourly_counts(incidents, hour, start=start, end=end)
        try:
            est, table = fit_and_tabulate(
                counts, args.bandwidth, 0.0, args.hour_table_end, args.hour_table_step
            )
        except InvalidParameter as exc:
            log.warning("Skipping hour %02d: %s", hour, exc)
            continue
        hour_tables[counts.name] = table
        hour_estimates[counts.name] = est

    hourly_path = args.output / "hourly_probability_tables.csv"
    collect_tables(hour_tables, hour_estimates).to_csv(hourly_path, index=False)
    print(f"Saved hour-of-day probability tables to {hourly_path}")

    run_path = args.output / "run.json"
    run_path.write_text(
        json.dumps(
            {
                "source": str(source),
                "incidents": int(len(incidents)),
                "first_incident": str(start),
                "last_incident": str(end),
                "bandwidth": args.bandwidth,
                "daily_table": [args.table_start, args.table_end, args.table_step],
                "hour_table": [0.0, args.hour_table_end, args.hour_table_step],
            },
            indent=2,
        )
    )
    print(f"Saved run metadata to {run_path}")


if __name__ == "__main__":
    main()
