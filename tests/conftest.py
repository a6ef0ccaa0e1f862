"""
Test Configuration
==================

Pytest fixtures: small synthetic NYPD and JHU CSV exports, no network.
"""

import pandas as pd
import pytest


SHOOTING_HEADER = (
    "INCIDENT_KEY,OCCUR_DATE,OCCUR_TIME,BORO,PRECINCT,LOCATION_DESC,STATISTICAL_MURDER_FLAG,"
    "PERP_AGE_GROUP,PERP_SEX,PERP_RACE,VIC_AGE_GROUP,VIC_SEX,VIC_RACE,Latitude,Longitude"
)

SHOOTING_ROWS = [
    "1,01/01/2020,23:10:00,BROOKLYN,75,(null),true,18-24,M,BLACK,25-44,M,BLACK,40.67,-73.88",
    "2,01/01/2020,23:45:00,BROOKLYN,73,MULTI DWELL - PUBLIC HOUS,false,(null),(null),(null),18-24,M,BLACK,40.66,-73.91",
    "3,01/01/2020,02:30:00,BRONX,44,,false,1020,M,WHITE HISPANIC,25-44,F,BLACK,40.83,-73.92",
    "4,01/03/2020,23:05:00,QUEENS,113,,false,UNKNOWN,U,UNKNOWN,45-64,M,BLACK,40.68,-73.77",
    "5,01/04/2020,12:00:00,BROOKLYN,75,,true,25-44,M,BLACK,<18,M,BLACK,40.67,-73.88",
    "6,01/04/2020,bad,BROOKLYN,75,,false,25-44,M,BLACK,<18,M,BLACK,40.67,-73.88",
    "7,01/06/2020,23:55:00,MANHATTAN,32,PVT HOUSE,false,25-44,M,BLACK,25-44,M,BLACK,40.81,-73.94",
    "8,01/06/2021,01:15:00,BRONX,46,,false,,,,18-24,M,BLACK HISPANIC,40.85,-73.90",
]


@pytest.fixture
def shootings_csv(tmp_path):
    """Write a small shooting export (one unparseable timestamp) and return its path."""
    path = tmp_path / "shootings.csv"
    path.write_text("\n".join([SHOOTING_HEADER, *SHOOTING_ROWS]) + "\n")
    return path


@pytest.fixture
def incidents():
    """Cleaned-shape incident frame for the count builders."""
    times = pd.to_datetime(
        [
            "2020-01-01 23:10",
            "2020-01-01 23:45",
            "2020-01-01 02:30",
            "2020-01-03 23:05",
            "2020-01-04 12:00",
            "2020-01-06 23:55",
        ]
    )
    return pd.DataFrame(
        {
            "event_time": times,
            "BORO": ["BROOKLYN", "BROOKLYN", "BRONX", "QUEENS", "BROOKLYN", "MANHATTAN"],
        }
    )


def _jhu_frame(values_by_county, with_population=None):
    dates = ["1/22/20", "1/23/20", "1/24/20"]
    rows = []
    for (county, state), values in values_by_county.items():
        row = {
            "UID": len(rows) + 1,
            "Admin2": county,
            "Province_State": state,
            "Country_Region": "US",
            "Combined_Key": f"{county}, {state}, US",
        }
        if with_population is not None:
            row["Population"] = with_population[(county, state)]
        row.update(dict(zip(dates, values)))
        rows.append(row)
    return pd.DataFrame(rows)


COUNTIES = {
    ("Kings", "New York"): [0, 10, 30],
    ("Queens", "New York"): [5, 5, 20],
    ("Cook", "Illinois"): [1, 4, 8],
    ("Harris", "Texas"): [2, 6, 6],
}
DEATHS = {
    ("Kings", "New York"): [0, 1, 3],
    ("Queens", "New York"): [0, 0, 2],
    ("Cook", "Illinois"): [0, 0, 1],
    ("Harris", "Texas"): [0, 1, 1],
}
POPULATION = {
    ("Kings", "New York"): 2_500_000,
    ("Queens", "New York"): 2_200_000,
    ("Cook", "Illinois"): 5_100_000,
    ("Harris", "Texas"): 4_700_000,
}


@pytest.fixture
def jhu_csvs(tmp_path):
    """Return paths of (confirmed, deaths) wide time-series CSVs."""
    cases_path = tmp_path / "confirmed.csv"
    deaths_path = tmp_path / "deaths.csv"
    _jhu_frame(COUNTIES).to_csv(cases_path, index=False)
    _jhu_frame(DEATHS, with_population=POPULATION).to_csv(deaths_path, index=False)
    return cases_path, deaths_path
