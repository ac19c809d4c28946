from __future__ import annotations
from typing import Mapping

import pandas as pd
from loguru import logger

from .keys import is_valid_fips


def sanity_checks(census: pd.DataFrame, sources: Mapping[str, pd.DataFrame]) -> None:
    # 1) anchor keys must all be canonical 5-digit FIPS
    bad_anchor = ~is_valid_fips(census["fips"])
    if bad_anchor.any():
        examples = census.loc[bad_anchor, "fips"].head(10).tolist()
        raise ValueError(f"{int(bad_anchor.sum())} census rows have a malformed fips: {examples}")

    for name, df in sources.items():
        # 2) a joined source must have at most one row per fips, or the join would duplicate anchor rows
        dup = df["fips"].dropna().duplicated(keep=False)
        if dup.any():
            examples = df["fips"].dropna()[dup].unique()[:10].tolist()
            raise ValueError(f"Source '{name}' has {int(dup.sum())} rows sharing a fips: {examples}")

        # 3) malformed keys on the joined side simply never match; report them
        bad = ~is_valid_fips(df["fips"])
        if bad.any():
            logger.warning(f"[sanity] {name}: {int(bad.sum())} rows with a malformed fips will not join.")

    logger.info("Sanity checks passed.")
