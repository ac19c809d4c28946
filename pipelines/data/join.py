from __future__ import annotations
from typing import Mapping, Sequence

import pandas as pd
from loguru import logger

from .sources import FEATURE_COLUMNS, JOIN_ORDER, LABEL_COLUMN


def join_sources(
    census: pd.DataFrame,
    sources: Mapping[str, pd.DataFrame],
    order: Sequence[str] = JOIN_ORDER,
) -> pd.DataFrame:
    """
    Left-join every source onto the census anchor by `fips`, in a fixed order.

    The anchor's row set and row order are preserved; a county missing from a
    source gets missing values for that source's columns. Inputs are not mutated.
    """
    missing = [name for name in order if name not in sources]
    if missing:
        raise ValueError(f"Missing sources for join: {missing}")

    unified = census.reset_index(drop=True)
    n_anchor = len(unified)
    for name in order:
        right = sources[name]
        overlap = [c for c in right.columns if c != "fips" and c in unified.columns]
        if overlap:
            raise ValueError(f"Source '{name}' would overwrite columns already joined: {overlap}")

        unified = unified.merge(right, on="fips", how="left", validate="many_to_one", indicator=True)
        unmatched = int((unified["_merge"] == "left_only").sum())
        unified = unified.drop(columns="_merge")
        if unmatched:
            logger.info(f"[join] {name}: {unmatched}/{n_anchor} census counties without a match")

    if len(unified) != n_anchor:
        raise AssertionError(f"Join changed the anchor row count: {n_anchor} -> {len(unified)}")
    return unified


def select_main_table(
    unified: pd.DataFrame,
    features: Sequence[str] = FEATURE_COLUMNS,
    label: str = LABEL_COLUMN,
) -> pd.DataFrame:
    """Project the unified table to fips + model features + label, then number the rows."""
    keep = ["fips", *features, label]
    missing = [c for c in keep if c not in unified.columns]
    if missing:
        raise ValueError(f"Unified table is missing columns needed for the main table: {missing}")

    main = unified[keep].copy()
    for c in features:
        main[c] = pd.to_numeric(main[c], errors="coerce").astype("float64")
    main[label] = main[label].astype("string")
    main = main.reset_index(drop=True)
    main["id"] = range(len(main))
    return main
