from __future__ import annotations

from typing import Iterable

import pandas as pd


def to_number(s: pd.Series) -> pd.Series:
    """Numeric coercion tolerant of thousands separators ("1,234")."""
    if pd.api.types.is_numeric_dtype(s):
        return s.astype("float64")
    cleaned = s.astype("string").str.replace(",", "", regex=False).str.strip()
    return pd.to_numeric(cleaned, errors="coerce").astype("float64")


def is_long_table(df: pd.DataFrame, name_col: str = "attribute", value_col: str = "value") -> bool:
    return {name_col, value_col}.issubset(df.columns)


def long_to_wide(
    df: pd.DataFrame,
    key: str = "fips",
    name_col: str = "attribute",
    value_col: str = "value",
    attributes: Iterable[str] | None = None,
) -> pd.DataFrame:
    """
    Long (key, attribute, value) -> wide (key, <one column per attribute>).

    Duplicate (key, attribute) pairs are an error: values are never
    aggregated, so a repeated pair means the source is not what we think it is.
    """
    missing = [c for c in (key, name_col, value_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Long table missing columns: {missing}")

    t = df.loc[df[key].notna(), [key, name_col, value_col]].copy()
    t[name_col] = t[name_col].astype("string").str.strip()
    if attributes is not None:
        wanted = list(attributes)
        t = t.loc[t[name_col].isin(wanted)]

    dup = t.duplicated(subset=[key, name_col], keep=False)
    if dup.any():
        pairs = t.loc[dup, [key, name_col]].drop_duplicates().head(10)
        examples = list(pairs.itertuples(index=False, name=None))
        raise ValueError(
            f"Long table has {int(dup.sum())} rows with a repeated ({key}, {name_col}) pair; "
            f"examples: {examples}"
        )

    t[value_col] = to_number(t[value_col])
    wide = t.pivot(index=key, columns=name_col, values=value_col)
    wide.columns.name = None
    return wide.reset_index()
