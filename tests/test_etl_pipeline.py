"""Tests for the county ETL utilities and end-to-end flow."""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import requests
from loguru import logger

from etl_pipeline import run_etl
from pipelines.data.demographics import clean_source
from pipelines.data.elections import (
    attach_state_rollup,
    build_state_rollup,
    clean_county_election_results,
    majority,
    majority_labels,
    vote_shares,
)
from pipelines.data.io import load_source, read_main_table
from pipelines.data.join import join_sources, select_main_table
from pipelines.data.keys import is_valid_fips, normalize_fips, with_fips
from pipelines.data.reshape import long_to_wide
from pipelines.data.sanity import sanity_checks
from pipelines.data.sources import EDUCATION, FEATURE_COLUMNS, POVERTY


# ----------------------------- identifiers -----------------------------
def test_normalize_fips_pads_numeric_and_string_ids() -> None:
    raw = pd.Series([1001, "1001", "01001", 1001.0, None, "123456", " 6037 "], dtype=object)

    out = normalize_fips(raw)

    assert out.tolist()[:4] == ["01001"] * 4
    assert pd.isna(out.iloc[4])
    # already 5+ characters: no truncation
    assert out.iloc[5] == "123456"
    assert out.iloc[6] == "06037"


def test_normalize_fips_is_idempotent_and_fixed_width() -> None:
    ids = pd.Series(range(1, 99999, 997))

    once = normalize_fips(ids)
    twice = normalize_fips(once)

    pd.testing.assert_series_equal(once, twice)
    assert (once.str.len() == 5).all()
    assert is_valid_fips(once).all()


def test_with_fips_renames_without_padding_string_sources() -> None:
    df = pd.DataFrame({"GEOID": ["01001", "06037"], "B01001_calc_PopDensity": [91.8, 2500.0]})

    out = with_fips(df, "GEOID", pad=False)

    assert list(out.columns) == ["fips", "B01001_calc_PopDensity"]
    assert out["fips"].tolist() == ["01001", "06037"]
    # input untouched
    assert "GEOID" in df.columns


# ----------------------------- reshape -----------------------------
def test_long_to_wide_one_column_per_attribute() -> None:
    long = pd.DataFrame(
        {
            "fips": ["01001", "01001", "06037", "06037", "06037"],
            "attribute": ["rate", "income", "rate", "income", "labor_force"],
            "value": ["3.1", "58,000", "4.5", "72,000", "5,100,000"],
        }
    )

    wide = long_to_wide(long, attributes=["rate", "income"])

    assert sorted(wide.columns) == ["fips", "income", "rate"]
    assert wide["fips"].tolist() == ["01001", "06037"]
    row = wide.set_index("fips").loc["06037"]
    assert row["income"] == 72000.0
    assert row["rate"] == pytest.approx(4.5)


def test_long_to_wide_rejects_duplicate_pairs() -> None:
    long = pd.DataFrame(
        {"fips": ["01001", "01001"], "attribute": ["rate", "rate"], "value": [1.0, 2.0]}
    )
    with pytest.raises(ValueError, match="repeated"):
        long_to_wide(long)


def test_clean_source_long_layout_reports_missing_attribute() -> None:
    raw = pd.DataFrame(
        {"FIPStxt": [1001], "Stabr": ["AL"], "Attribute": ["POVALL_2019"], "Value": [1000]}
    )
    with pytest.raises(ValueError, match="poverty"):
        clean_source(raw, POVERTY)


def test_clean_source_renames_headers_with_commas() -> None:
    raw = pd.DataFrame(
        {
            "FIPS Code": [1001, 6037],
            "State": ["AL", "CA"],
            "Percent of adults with less than a high school diploma, 2014-18": [11.3, 21.0],
            "Percent of adults with a bachelor's degree or higher, 2014-18": [27.7, 32.0],
        }
    )

    out = clean_source(raw, EDUCATION)

    assert list(out.columns) == ["fips", "pct_less_hs", "pct_bachelors"]
    assert out["fips"].tolist() == ["01001", "06037"]


# ----------------------------- labels -----------------------------
def test_majority_rule_ties_go_to_democrats() -> None:
    assert majority(400, 600) == "R"
    assert majority(500, 500) == "D"
    assert majority(600, 400) == "D"

    labels = majority_labels(pd.Series([400, 500, 600, np.nan]), pd.Series([600, 500, 400, 10]))
    assert labels.tolist()[:3] == ["R", "D", "D"]
    assert pd.isna(labels.iloc[3])


def test_vote_shares_sum_to_100_and_zero_total_is_missing() -> None:
    dem, gop = vote_shares(pd.Series([400, 1, 0]), pd.Series([600, 2, 0]))

    assert dem.iloc[0] == pytest.approx(40.0)
    assert gop.iloc[0] == pytest.approx(60.0)
    assert dem.iloc[1] + gop.iloc[1] == pytest.approx(100.0)
    assert math.isnan(dem.iloc[2]) and math.isnan(gop.iloc[2])


def test_state_rollup_sums_votes_and_applies_same_rule() -> None:
    county = pd.DataFrame(
        {
            "fips": ["01001", "01003", "04013", "06037"],
            "state_name": ["Alabama", "Alabama", "Arizona", "California"],
            "dem_votes": [400.0, 500.0, 300.0, 900.0],
            "gop_votes": [600.0, 500.0, 300.0, 100.0],
        }
    )

    rollup = build_state_rollup(county).set_index("state_name")

    assert rollup.loc["Alabama", "state_dem_votes"] == 900
    assert rollup.loc["Alabama", "state_gop_votes"] == 1100
    assert rollup.loc["Alabama", "state_majority"] == "R"
    assert rollup.loc["Arizona", "state_majority"] == "D"  # tie
    assert rollup.loc["California", "state_majority"] == "D"
    for state, row in rollup.iterrows():
        assert row["state_majority"] == majority(row["state_dem_votes"], row["state_gop_votes"]), state

    attached = attach_state_rollup(county, rollup.reset_index())
    assert len(attached) == len(county)
    assert attached["state_majority"].tolist() == ["R", "R", "D", "D"]


# ----------------------------- join / select -----------------------------
def _anchor() -> pd.DataFrame:
    return pd.DataFrame({"fips": pd.Series(["06037", "01001", "01003"], dtype="string"), "total_pop": [10.0, 20.0, 30.0]})


def test_join_preserves_anchor_rows_and_order() -> None:
    census = _anchor()
    density = pd.DataFrame({"fips": pd.Series(["01001", "99999"], dtype="string"), "pop_density": [91.8, 1.0]})
    election = pd.DataFrame({"fips": pd.Series(["01003", "06037"], dtype="string"), "majority": ["R", "D"]})
    census_before = census.copy()

    unified = join_sources(census, {"density": density, "election": election}, order=("density", "election"))

    assert len(unified) == len(census)
    assert unified["fips"].tolist() == ["06037", "01001", "01003"]
    assert pd.isna(unified.loc[0, "pop_density"])
    assert unified.loc[1, "pop_density"] == pytest.approx(91.8)
    assert pd.isna(unified.loc[1, "majority"])
    pd.testing.assert_frame_equal(census, census_before)


def test_sanity_checks_reject_duplicate_keys_in_joined_source() -> None:
    density = pd.DataFrame({"fips": pd.Series(["01001", "01001"], dtype="string"), "pop_density": [1.0, 2.0]})
    with pytest.raises(ValueError, match="density"):
        sanity_checks(_anchor(), {"density": density})


def test_sanity_checks_reject_malformed_anchor_fips() -> None:
    census = pd.DataFrame({"fips": pd.Series(["1001", "01003"], dtype="string"), "total_pop": [1.0, 2.0]})
    with pytest.raises(ValueError, match="malformed fips"):
        sanity_checks(census, {})


def test_sanity_checks_only_warn_on_malformed_joined_fips() -> None:
    density = pd.DataFrame({"fips": pd.Series(["01001", "ABCDE"], dtype="string"), "pop_density": [1.0, 2.0]})
    messages: list[str] = []
    sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="WARNING")
    try:
        sanity_checks(_anchor(), {"density": density})
    finally:
        logger.remove(sink_id)

    assert any("density" in m and "malformed fips" in m for m in messages)
    unified = join_sources(_anchor(), {"density": density}, order=("density",))
    assert len(unified) == len(_anchor())
    assert unified.loc[unified["fips"] == "01001", "pop_density"].item() == 1.0


def test_select_main_table_projects_and_numbers_rows() -> None:
    unified = pd.DataFrame({"fips": ["01001", "01003"], "state": ["Alabama", "Alabama"], "majority": ["R", "D"]})
    for i, c in enumerate(FEATURE_COLUMNS):
        unified[c] = [float(i), float(i + 1)]

    main = select_main_table(unified)

    assert list(main.columns) == ["fips", *FEATURE_COLUMNS, "majority", "id"]
    assert main["id"].tolist() == [0, 1]


# ----------------------------- loading -----------------------------
class _FakeResponse:
    def __init__(self, content: bytes, status_code: int = 200) -> None:
        self.content = content
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")


def test_failed_fetch_names_the_source(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_get(url, timeout=None):
        return _FakeResponse(b"", status_code=503)

    monkeypatch.setattr(requests, "get", fake_get)

    with pytest.raises(RuntimeError, match="education"):
        load_source("education", "https://example.test/Education.csv", EDUCATION.required)


def test_schema_drift_is_reported_with_source_name(tmp_path: Path) -> None:
    path = tmp_path / "education.csv"
    pd.DataFrame({"FIPS Code": [1001], "Something else": [1]}).to_csv(path, index=False)

    with pytest.raises(ValueError, match="education"):
        load_source("education", path, EDUCATION.required, id_col=EDUCATION.id_col)


def test_election_results_derive_shares_and_labels() -> None:
    raw = pd.DataFrame(
        {
            "state_name": ["Alabama", "Alabama", "Texas"],
            "county_fips": [1001, 1003, 48301],
            "county_name": ["Autauga County", "Baldwin County", "Loving County"],
            "votes_gop": [600, 500, 0],
            "votes_dem": [400, 500, 0],
            "total_votes": [1000, 1000, 0],
        }
    )

    out = clean_county_election_results(raw)

    assert out["fips"].tolist() == ["01001", "01003", "48301"]
    assert out["majority"].tolist() == ["R", "D", "D"]
    assert out.loc[0, "dem_pct"] == pytest.approx(40.0)
    assert out.loc[0, "gop_pct"] == pytest.approx(60.0)
    assert math.isnan(out.loc[2, "dem_pct"])


# ----------------------------- end to end -----------------------------
COUNTIES = [
    # fips, state, county, dem, gop
    (1001, "Alabama", "Autauga County", 400, 600),
    (1003, "Alabama", "Baldwin County", 500, 500),
    (4013, "Arizona", "Maricopa County", 900, 100),
    (6037, "California", "Los Angeles County", 0, 0),
    (36061, "New York", "New York County", 700, 300),
    (48201, "Texas", "Harris County", 450, 550),
]

EDUCATION_URL = "https://example.test/Education.csv"


def _create_mock_inputs(tmp_path: Path) -> dict[str, str]:
    raw_dir = tmp_path / "raw"
    raw_dir.mkdir()
    n = len(COUNTIES)
    ids = [c[0] for c in COUNTIES]

    census = pd.DataFrame(
        {
            "CensusId": ids,
            "State": [c[1] for c in COUNTIES],
            "County": [c[2].replace(" County", "") for c in COUNTIES],
            "TotalPop": [55000 + i for i in range(n)],
            "Men": [27000] * n,
            "Hispanic": [2.6 + i for i in range(n)],
            "White": [75.8 - i for i in range(n)],
            "Black": [18.5] * n,
            "Asian": [0.6] * n,
            "IncomePerCap": [24974 + 100 * i for i in range(n)],
            "Professional": [34.7] * n,
            "Service": [17.0] * n,
            "Production": [15.8] * n,
            "Drive": [87.5] * n,
            "Transit": [0.1 * i for i in range(n)],
            "MeanCommute": [26.5] * n,
            "SelfEmployed": [5.4] * n,
        }
    )
    census.to_pickle(raw_dir / "census.pkl")

    # string GEOIDs, last county missing
    density = pd.DataFrame(
        {"GEOID": [f"{i:05d}" for i in ids[:-1]], "B01001_calc_PopDensity": [91.8 + i for i in range(n - 1)]}
    )
    density.to_csv(raw_dir / "density.csv", index=False)

    education = pd.DataFrame(
        {
            "FIPS Code": [0, 1000] + ids,
            "State": ["US", "AL"] + ["XX"] * n,
            "Area name": ["United States", "Alabama"] + [c[2] for c in COUNTIES],
            "Percent of adults with less than a high school diploma, 2014-18": [12.0, 14.0] + [11.3] * n,
            "Percent of adults with a bachelor's degree or higher, 2014-18": [32.1, 25.0] + [27.7] * n,
        }
    )
    education_csv = education.to_csv(index=False).encode("latin-1")

    unemployment_rows = []
    for i in [1000] + ids:
        unemployment_rows += [
            {"FIPS_Code": i, "State": "XX", "Area_name": "x", "Attribute": "Unemployment_rate_2019", "Value": 3.5},
            {"FIPS_Code": i, "State": "XX", "Area_name": "x", "Attribute": "Median_Household_Income_2019", "Value": "58,233"},
            {"FIPS_Code": i, "State": "XX", "Area_name": "x", "Attribute": "Civilian_labor_force_2019", "Value": "26,172"},
        ]
    pd.DataFrame(unemployment_rows).to_csv(raw_dir / "unemployment.csv", index=False)

    population = pd.DataFrame(
        {
            "FIPStxt": ids,
            "State": ["XX"] * n,
            "Area_Name": [c[2] for c in COUNTIES],
            "R_birth_2019": [11.2] * n,
            "R_death_2019": [9.8] * n,
            "R_NET_MIG_2019": [4.1] * n,
        }
    )
    population.to_csv(raw_dir / "population.csv", index=False)

    poverty = pd.DataFrame(
        {
            "FIPStxt": ids + ids,
            "Stabr": ["XX"] * (2 * n),
            "Area_name": [c[2] for c in COUNTIES] * 2,
            "Attribute": ["PCTPOVALL_2019"] * n + ["POVALL_2019"] * n,
            "Value": [12.1] * n + ["6,723"] * n,
        }
    )
    poverty.to_csv(raw_dir / "poverty.csv", index=False)

    election = pd.DataFrame(
        {
            "state_name": [c[1] for c in COUNTIES],
            "county_fips": ids,
            "county_name": [c[2] for c in COUNTIES],
            "votes_gop": [c[4] for c in COUNTIES],
            "votes_dem": [c[3] for c in COUNTIES],
            "total_votes": [c[3] + c[4] for c in COUNTIES],
        }
    )
    election.to_csv(raw_dir / "election.csv", index=False)

    (raw_dir / "education_payload.csv").write_bytes(education_csv)
    return {
        "census": str(raw_dir / "census.pkl"),
        "density": str(raw_dir / "density.csv"),
        "education": EDUCATION_URL,
        "unemployment": str(raw_dir / "unemployment.csv"),
        "population": str(raw_dir / "population.csv"),
        "poverty": str(raw_dir / "poverty.csv"),
        "election": str(raw_dir / "election.csv"),
    }


def test_run_etl_end_to_end(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    locations = _create_mock_inputs(tmp_path)
    payload = (tmp_path / "raw" / "education_payload.csv").read_bytes()
    requested = []

    def fake_get(url, timeout=None):
        requested.append(url)
        return _FakeResponse(payload)

    monkeypatch.setattr(requests, "get", fake_get)
    out_dir = tmp_path / "processed"
    sqlite_path = tmp_path / "warehouse.sqlite"

    main, unified = run_etl(out_dir=out_dir, locations=locations, sqlite_path=sqlite_path)

    assert requested == [EDUCATION_URL]
    for name in ("main_df.csv", "main_df.parquet", "county_audit.parquet"):
        assert (out_dir / name).exists()
    assert sqlite_path.exists()

    # anchor rows preserved, in census order
    expected_fips = ["01001", "01003", "04013", "06037", "36061", "48201"]
    assert len(main) == len(COUNTIES) == len(unified)
    assert main["fips"].tolist() == expected_fips
    assert list(main.columns) == ["fips", *FEATURE_COLUMNS, "majority", "id"]
    assert main["id"].tolist() == list(range(len(COUNTIES)))

    # labels and tie-break
    assert main["majority"].tolist() == ["R", "D", "D", "D", "D", "R"]

    # long tables reshaped, thousands separators handled
    assert main["median_hh_income"].iloc[0] == pytest.approx(58233.0)
    assert main["poverty_pct"].iloc[0] == pytest.approx(12.1)
    # left join: county without density stays, with a missing value
    assert pd.isna(main["pop_density"].iloc[-1])
    assert main["pop_density"].notna().sum() == len(COUNTIES) - 1

    # zero two-party votes -> missing shares, not an error
    la = unified.set_index("fips").loc["06037"]
    assert pd.isna(la["dem_pct"]) and pd.isna(la["gop_pct"])
    # state rollup attached for auditing only
    assert unified.set_index("fips").loc["01001", "state_majority"] == "R"
    assert "state_majority" not in main.columns

    # persisted main table round-trips with zero-padded fips
    reread = read_main_table(out_dir / "main_df.csv")
    assert reread["fips"].tolist() == expected_fips
