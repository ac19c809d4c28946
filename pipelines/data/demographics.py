from __future__ import annotations

import pandas as pd
from loguru import logger

from .keys import with_fips
from .reshape import is_long_table, long_to_wide, to_number
from .sources import SourceSpec


def clean_source(raw: pd.DataFrame, spec: SourceSpec) -> pd.DataFrame:
    """
    Standardize one raw source into (fips, <internal columns>).

    Steps, each returning a new frame:
      * county id column -> `fips` (zero-padded unless the source already ships strings)
      * long sources are pivoted to one column per attribute
      * raw headers (which may contain spaces, commas, '%') are renamed to the
        internal names right here, so nothing downstream touches raw headers
      * non-text columns are coerced to float
    """
    df = with_fips(raw, spec.id_col, pad=spec.pad)

    if spec.long:
        df = df.rename(columns={spec.name_col: "attribute", spec.value_col: "value"})
        if not is_long_table(df):
            raise ValueError(f"Source '{spec.name}' is not in long (attribute/value) form.")
        df = long_to_wide(df, key="fips", attributes=spec.columns.keys())

    missing = [c for c in spec.columns if c not in df.columns]
    if missing:
        raise ValueError(f"Source '{spec.name}' is missing expected fields: {missing}")

    out = df[["fips", *spec.columns]].rename(columns=spec.columns).copy()
    for c in out.columns:
        if c == "fips":
            continue
        if c in spec.text_columns:
            out[c] = out[c].astype("string").str.strip()
        else:
            out[c] = to_number(out[c])

    logger.debug(f"[clean] {spec.name}: {len(out)} rows -> {list(out.columns)}")
    return out.reset_index(drop=True)
