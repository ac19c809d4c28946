from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.metrics import confusion_matrix
from sklearn.tree import DecisionTreeClassifier
from tqdm import tqdm

from county_election_trees.params import SplitParams, TreeParams
from pipelines.data.sources import LABEL_COLUMN
from pipelines.model.split import model_frame, split_train_eval

# Label order of the confusion matrix; 'D' is treated as the positive class
CLASSES = ["D", "R"]

SWEEP_COLUMNS = [
    "cp", "recall", "specificity", "accuracy", "node_count", "depth",
    "n_train", "n_eval", "n_train_dropped", "n_eval_dropped",
]


@dataclass(frozen=True)
class Evaluation:
    """Metrics of one fitted tree on one evaluation set.

    recall      = true D predicted D / all true D   (sensitivity)
    specificity = true R predicted R / all true R
    Either is NaN when its denominator is zero.
    """
    cp: float
    recall: float
    specificity: float
    accuracy: float
    node_count: int
    depth: int
    n_train: int
    n_eval: int
    n_train_dropped: int = 0
    n_eval_dropped: int = 0
    confusion: Optional[pd.DataFrame] = field(default=None, compare=False, repr=False)

    def as_row(self) -> Dict[str, Any]:
        return {c: getattr(self, c) for c in SWEEP_COLUMNS}


def _ratio(num: int, den: int) -> float:
    return float(num) / den if den > 0 else float("nan")


def drop_incomplete(df: pd.DataFrame, role: str = "train") -> Tuple[pd.DataFrame, int]:
    """Listwise deletion. Returns the complete rows and how many rows were dropped."""
    complete = df.dropna(how="any")
    n_dropped = len(df) - len(complete)
    if n_dropped:
        logger.warning(f"[{role}] dropped {n_dropped}/{len(df)} rows with at least one missing value")
    return complete, n_dropped


def root_impurity(labels: pd.Series) -> float:
    """Gini impurity of the whole training label set, 1 - sum(p_k^2)."""
    shares = labels.value_counts(normalize=True)
    return float(1.0 - (shares ** 2).sum())


def effective_alpha(cp: float, labels: pd.Series) -> float:
    """
    Translate a relative cp into sklearn's absolute `ccp_alpha`.

    cp is a fraction of the root node's impurity (as in rpart), so the same cp
    prunes an imbalanced county set as hard as a balanced one.
    """
    if cp is None or math.isnan(cp) or cp <= 0:
        logger.warning(f"cp={cp} is not positive; growing the unpruned tree (ccp_alpha=0)")
        return 0.0
    return float(cp) * root_impurity(labels)


def fit_tree(
    train: pd.DataFrame,
    cp: float,
    params: TreeParams = TreeParams(),
) -> DecisionTreeClassifier:
    """
    Fit a fresh classification tree predicting `majority` from every other column.

    `cp` is the cost-complexity pruning strength as a fraction of the root
    impurity: smaller cp keeps more of the tree. Rows with any missing value are dropped first.
    """
    frame, _ = drop_incomplete(model_frame(train), "train")
    if frame.empty:
        raise ValueError("No complete training rows left after dropping missing values.")

    X = frame.drop(columns=[LABEL_COLUMN])
    y = frame[LABEL_COLUMN].astype(str)
    model = DecisionTreeClassifier(
        criterion="gini",
        ccp_alpha=effective_alpha(cp, y),
        min_samples_split=params.min_samples_split,
        min_samples_leaf=params.min_samples_leaf,
        random_state=params.random_state,
    )
    model.fit(X, y)
    return model


def evaluate_tree(
    model: DecisionTreeClassifier,
    evaluation: pd.DataFrame,
    cp: float = float("nan"),
    n_train: int = 0,
    n_train_dropped: int = 0,
) -> Evaluation:
    """Predict complete evaluation rows only; incomplete rows are counted, not predicted."""
    frame, n_dropped = drop_incomplete(model_frame(evaluation), "eval")

    if frame.empty:
        cm = np.zeros((2, 2), dtype=int)
    else:
        X = frame[list(model.feature_names_in_)]
        y_true = frame[LABEL_COLUMN].astype(str).to_numpy()
        y_pred = model.predict(X)
        cm = confusion_matrix(y_true, y_pred, labels=CLASSES)

    tp_d, fn_d = int(cm[0, 0]), int(cm[0, 1])
    fp_r, tn_r = int(cm[1, 0]), int(cm[1, 1])
    confusion = pd.DataFrame(
        cm,
        index=pd.Index(CLASSES, name="actual"),
        columns=pd.Index(CLASSES, name="predicted"),
    )
    return Evaluation(
        cp=cp,
        recall=_ratio(tp_d, tp_d + fn_d),
        specificity=_ratio(tn_r, tn_r + fp_r),
        accuracy=_ratio(tp_d + tn_r, int(cm.sum())),
        node_count=int(model.tree_.node_count),
        depth=int(model.get_depth()),
        n_train=n_train,
        n_eval=len(frame),
        n_train_dropped=n_train_dropped,
        n_eval_dropped=n_dropped,
        confusion=confusion,
    )


def run_sweep(
    train: pd.DataFrame,
    evaluation: pd.DataFrame,
    cps: Iterable[float],
    params: TreeParams = TreeParams(),
) -> pd.DataFrame:
    """
    Fit and evaluate one tree per cp, each from scratch on the same split.

    Returns one row per cp (input order) with recall/specificity/accuracy and
    tree size, ready for plotting a trade-off curve.
    """
    complete_train, n_train_dropped = drop_incomplete(model_frame(train), "train")
    complete_eval, _ = drop_incomplete(model_frame(evaluation), "eval")
    n_eval_dropped = len(evaluation) - len(complete_eval)

    rows = []
    for cp in tqdm(list(cps), desc="cp sweep"):
        model = fit_tree(complete_train, cp, params)
        ev = evaluate_tree(model, complete_eval, cp=cp, n_train=len(complete_train),
                           n_train_dropped=n_train_dropped)
        row = ev.as_row()
        row["n_eval_dropped"] = n_eval_dropped
        rows.append(row)
    return pd.DataFrame(rows, columns=SWEEP_COLUMNS)


def fit_and_evaluate(
    main: pd.DataFrame,
    cp: Optional[float] = None,
    split_params: SplitParams = SplitParams(),
    tree_params: TreeParams = TreeParams(),
) -> Tuple[DecisionTreeClassifier, Evaluation]:
    """One interactive cycle: fresh split, fresh fit, evaluate. Nothing is cached."""
    cp = tree_params.cp if cp is None else cp
    train, evaluation = split_train_eval(main, split_params.train_fraction, split_params.seed)
    complete_train, n_train_dropped = drop_incomplete(model_frame(train), "train")
    model = fit_tree(complete_train, cp, tree_params)
    ev = evaluate_tree(model, evaluation, cp=cp, n_train=len(complete_train),
                       n_train_dropped=n_train_dropped)
    return model, ev
