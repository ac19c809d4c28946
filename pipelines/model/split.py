from __future__ import annotations

import math
from typing import Optional, Tuple

import pandas as pd

NON_FEATURE_COLUMNS = ("id", "fips")


def split_train_eval(
    main: pd.DataFrame,
    train_fraction: float = 0.8,
    seed: Optional[int] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Random, unstratified train/eval partition of the main table.

    Train is floor(f * N) rows sampled without replacement; eval is every row
    whose `id` was not sampled. Without a seed every call gives a new split.
    """
    if not 0 < train_fraction < 1:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
    if "id" not in main.columns:
        raise ValueError("Main table has no `id` column to split on.")

    n_train = math.floor(train_fraction * len(main))
    train = main.sample(n=n_train, replace=False, random_state=seed)
    evaluation = main.loc[~main["id"].isin(train["id"])]
    return train.reset_index(drop=True), evaluation.reset_index(drop=True)


def model_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Drop bookkeeping columns before a frame goes to the model."""
    return df.drop(columns=[c for c in NON_FEATURE_COLUMNS if c in df.columns])
