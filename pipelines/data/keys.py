from __future__ import annotations
import pandas as pd

FIPS_WIDTH = 5


def normalize_fips(raw: pd.Series) -> pd.Series:
    """
    Canonical county FIPS: string, left-padded with '0' to 5 characters.

    Numeric ids (1001, 1001.0) and strings that lost their leading zero
    ("1001") both become "01001". Values already 5+ characters long pass
    through untouched; missing values stay missing.
    """
    s = raw.astype("string").str.strip()
    s = s.str.replace(r"\.0+$", "", regex=True)
    s = s.where(s.str.len() > 0, pd.NA)
    return s.str.zfill(FIPS_WIDTH)


def with_fips(df: pd.DataFrame, id_col: str, pad: bool = True) -> pd.DataFrame:
    """Rename a source's county id column to `fips` and move it to the front."""
    if id_col not in df.columns:
        raise ValueError(f"Missing county id column {id_col!r}; found {list(df.columns)[:10]}")
    out = df.rename(columns={id_col: "fips"})
    if pad:
        out["fips"] = normalize_fips(out["fips"])
    else:
        out["fips"] = out["fips"].astype("string").str.strip()
    return out[["fips"] + [c for c in out.columns if c != "fips"]]


def is_valid_fips(s: pd.Series) -> pd.Series:
    return s.astype("string").str.fullmatch(r"\d{5}").fillna(False).astype(bool)
