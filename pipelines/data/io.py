from __future__ import annotations

import io
from pathlib import Path

import pandas as pd
import requests
from loguru import logger
from sqlalchemy import create_engine

from county_election_trees.config import HTTP_TIMEOUT

SUPPORTED_TABULAR = (".csv", ".tsv", ".parquet", ".pq", ".feather", ".pkl", ".pickle")


def mkdir_p(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def is_remote(location: str | Path) -> bool:
    return str(location).lower().startswith(("http://", "https://"))


def _parse_csv_bytes(payload: bytes, dtype: dict | None = None) -> pd.DataFrame:
    # USDA ERS files are latin-1 encoded; try utf-8 first
    try:
        return pd.read_csv(io.BytesIO(payload), encoding="utf-8", dtype=dtype)
    except UnicodeDecodeError:
        return pd.read_csv(io.BytesIO(payload), encoding="latin-1", dtype=dtype)


def fetch_csv(url: str, timeout: float = HTTP_TIMEOUT, dtype: dict | None = None) -> pd.DataFrame:
    """Plain GET of a text/csv endpoint. No retry: a failure aborts the run."""
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return _parse_csv_bytes(resp.content, dtype=dtype)


def read_any(location: str | Path, dtype: dict | None = None) -> pd.DataFrame:
    if is_remote(location):
        return fetch_csv(str(location), dtype=dtype)

    path = Path(location)
    if not path.exists():
        raise FileNotFoundError(f"Missing file: {path}")
    ext = path.suffix.lower()
    if ext in (".parquet", ".pq"):
        return pd.read_parquet(path)
    if ext == ".feather":
        return pd.read_feather(path)
    if ext in (".pkl", ".pickle"):
        return pd.read_pickle(path)
    if ext == ".tsv":
        return pd.read_csv(path, sep="\t", dtype=dtype)
    if ext == ".csv":
        return _parse_csv_bytes(path.read_bytes(), dtype=dtype)
    raise ValueError(f"Unsupported input file type: {path} (expected one of {SUPPORTED_TABULAR})")


def load_source(
    name: str,
    location: str | Path,
    required: list[str] | None = None,
    id_col: str | None = None,
) -> pd.DataFrame:
    """
    Read one raw source and check that its expected raw headers are present.

    Any read/fetch/parse failure is re-raised as a RuntimeError that names the
    source, so a failed run points at the data set that broke it.
    """
    logger.info(f"[load] {name} <- {location}")
    try:
        # Text sources keep the county id as text so leading zeros survive the read
        df = read_any(location, dtype={id_col: "string"} if id_col else None)
    except FileNotFoundError as e:
        raise FileNotFoundError(f"Source '{name}': {e}") from e
    except Exception as e:
        raise RuntimeError(f"Failed loading source '{name}' from {location}: {e}") from e

    if required:
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise ValueError(f"Source '{name}' is missing expected columns: {missing}")

    logger.info(f"[load] {name}: {len(df)} rows, {len(df.columns)} columns")
    return df


def write_parquet(df: pd.DataFrame, path: Path) -> None:
    mkdir_p(path.parent)
    df.to_parquet(path, engine="pyarrow", index=False)


def write_csv(df: pd.DataFrame, path: Path) -> None:
    mkdir_p(path.parent)
    df.to_csv(path, index=False)


def to_sqlite(df: pd.DataFrame, sqlite_path: Path, table: str) -> None:
    mkdir_p(sqlite_path.parent)
    eng = create_engine(f"sqlite:///{sqlite_path}")
    with eng.begin() as conn:
        df.to_sql(table, conn, if_exists="replace", index=False)


def read_main_table(path: str | Path) -> pd.DataFrame:
    """Read a persisted main table, keeping `fips` as a zero-padded string."""
    path = Path(path)
    if path.suffix.lower() in (".parquet", ".pq"):
        return pd.read_parquet(path)
    return pd.read_csv(path, dtype={"fips": "string"})
