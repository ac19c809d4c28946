#!/usr/bin/env python3
# etl_pipeline.py
# Build the county-level modelling table:
# - Stage 1: Load the census anchor and six county sources, canonical fips, long -> wide
# - Stage 2: Derive vote shares + majority labels, left-join on fips, project to main table
# - Outputs: main_df.{csv,parquet}, county_audit.parquet (optional SQLite copy)

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import pandas as pd
from loguru import logger

from county_election_trees.config import (
    AUDIT_TABLE_PARQUET,
    MAIN_TABLE_CSV,
    MAIN_TABLE_PARQUET,
    PROCESSED_DATA_DIR,
    SOURCE_LOCATIONS,
)
from pipelines.data.demographics import clean_source
from pipelines.data.elections import attach_state_rollup, build_state_rollup, clean_county_election_results
from pipelines.data.io import load_source, to_sqlite, write_csv, write_parquet
from pipelines.data.join import join_sources, select_main_table
from pipelines.data.sanity import sanity_checks
from pipelines.data.sources import JOIN_ORDER, SOURCE_SPECS


# ======================== Stage 1: load + clean ========================
def load_raw_sources(locations: Mapping[str, str]) -> Dict[str, pd.DataFrame]:
    missing = [name for name in SOURCE_SPECS if name not in locations]
    if missing:
        raise ValueError(f"No location configured for sources: {missing}")
    return {
        name: load_source(name, locations[name], spec.required, id_col=spec.id_col)
        for name, spec in SOURCE_SPECS.items()
    }


def clean_sources(raw: Mapping[str, pd.DataFrame]) -> Dict[str, pd.DataFrame]:
    cleaned = {}
    for name, spec in SOURCE_SPECS.items():
        if name == "election":
            cleaned[name] = clean_county_election_results(raw[name])
        else:
            cleaned[name] = clean_source(raw[name], spec)
    return cleaned


# ======================== Stage 2: join + select ========================
def build_unified(cleaned: Mapping[str, pd.DataFrame]) -> pd.DataFrame:
    census = cleaned["census"]
    joined = {name: cleaned[name] for name in JOIN_ORDER}
    sanity_checks(census, joined)

    unified = join_sources(census, joined)
    rollup = build_state_rollup(unified)
    return attach_state_rollup(unified, rollup)


def run_etl(
    out_dir: Path = PROCESSED_DATA_DIR,
    locations: Optional[Mapping[str, str]] = None,
    sqlite_path: Optional[Path] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    locations = {**SOURCE_LOCATIONS, **(locations or {})}

    logger.info("========== Stage 1: load sources ==========")
    raw = load_raw_sources(locations)
    cleaned = clean_sources(raw)

    logger.info("========== Stage 2: join + select ==========")
    unified = build_unified(cleaned)
    main_table = select_main_table(unified)

    n_incomplete = int(main_table.isna().any(axis=1).sum())
    logger.info(
        f"[ETL] main table: {len(main_table)} counties, {n_incomplete} with at least one missing value; "
        f"label counts {main_table['majority'].value_counts(dropna=False).to_dict()}"
    )

    out_dir = Path(out_dir)
    main_csv = out_dir / MAIN_TABLE_CSV.name
    main_pq = out_dir / MAIN_TABLE_PARQUET.name
    audit_pq = out_dir / AUDIT_TABLE_PARQUET.name
    write_csv(main_table, main_csv)
    write_parquet(main_table, main_pq)
    write_parquet(unified, audit_pq)
    if sqlite_path is not None:
        to_sqlite(main_table, Path(sqlite_path), "main_table")
        to_sqlite(unified, Path(sqlite_path), "county_audit")

    logger.info(f"[ETL] wrote {main_csv}, {main_pq}, {audit_pq}")
    return main_table, unified


def main():
    ap = argparse.ArgumentParser(description="Build the county main table (census + USDA + election results).")
    ap.add_argument("--out", type=Path, default=PROCESSED_DATA_DIR, help="Output directory.")
    for name in SOURCE_SPECS:
        ap.add_argument(
            f"--{name}",
            default=None,
            help=f"Path or URL for the {name} source (default: {SOURCE_LOCATIONS[name]}).",
        )
    ap.add_argument("--sqlite", type=Path, default=None, help="Optional SQLite file to also write tables into.")
    args = ap.parse_args()

    overrides = {name: getattr(args, name) for name in SOURCE_SPECS if getattr(args, name)}
    run_etl(out_dir=args.out, locations=overrides, sqlite_path=args.sqlite)


if __name__ == "__main__":
    main()
