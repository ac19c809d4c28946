from __future__ import annotations

import numpy as np
import pandas as pd

from .db import connect_db
from .demographics import clean_source
from .sources import ELECTION


def majority(dem_votes: float, gop_votes: float) -> str:
    """'R' only when the GOP strictly out-polls the Democrats; ties go to 'D'."""
    return "R" if dem_votes < gop_votes else "D"


def majority_labels(dem: pd.Series, gop: pd.Series) -> pd.Series:
    """Vectorised `majority`, used for county labels and state rollups alike."""
    dem = dem.astype(float)
    gop = gop.astype(float)
    labels = pd.Series(np.where(dem < gop, "R", "D"), index=dem.index, dtype="string")
    return labels.mask(dem.isna() | gop.isna(), pd.NA)


def vote_shares(dem: pd.Series, gop: pd.Series) -> tuple[pd.Series, pd.Series]:
    """Two-party vote shares in percent. A zero two-party total gives NaN, not an error."""
    dem = dem.astype(float)
    gop = gop.astype(float)
    total = (dem + gop).where(lambda s: s > 0)
    return 100.0 * dem / total, 100.0 * gop / total


def clean_county_election_results(raw: pd.DataFrame) -> pd.DataFrame:
    """
    County presidential results -> one row per county with derived fields.

    Returns columns:
      - fips (string, 5 chars)
      - state_name
      - dem_votes, gop_votes
      - dem_pct, gop_pct   (two-party shares, NaN when no two-party votes)
      - majority           ('D' / 'R')
    """
    out = clean_source(raw, ELECTION)
    out["dem_pct"], out["gop_pct"] = vote_shares(out["dem_votes"], out["gop_votes"])
    out["majority"] = majority_labels(out["dem_votes"], out["gop_votes"])
    return out


def build_state_rollup(county: pd.DataFrame) -> pd.DataFrame:
    """
    Sum county votes per state and label the state with the same majority rule.
    Informational only; never fed to the model.
    """
    required = {"state_name", "dem_votes", "gop_votes"}
    missing = required - set(county.columns)
    if missing:
        raise ValueError(f"State rollup needs columns: {sorted(missing)}")

    con = connect_db()
    try:
        names = county["state_name"]
        votes = pd.DataFrame({
            "state_name": names.astype(object).where(names.notna(), None),
            "dem_votes": county["dem_votes"].astype(float),
            "gop_votes": county["gop_votes"].astype(float),
        })
        con.register("tmp_county_votes", votes)
        rollup = con.execute("""
            SELECT
                state_name,
                SUM(dem_votes) AS state_dem_votes,
                SUM(gop_votes) AS state_gop_votes
            FROM tmp_county_votes
            WHERE state_name IS NOT NULL
            GROUP BY state_name
            ORDER BY state_name
        """).df()
        con.unregister("tmp_county_votes")
    finally:
        con.close()
    # keep the join key dtype identical to the county side
    rollup["state_name"] = rollup["state_name"].astype(county["state_name"].dtype)
    rollup["state_majority"] = majority_labels(rollup["state_dem_votes"], rollup["state_gop_votes"])
    return rollup


def attach_state_rollup(county: pd.DataFrame, rollup: pd.DataFrame) -> pd.DataFrame:
    return county.merge(rollup, on="state_name", how="left")
