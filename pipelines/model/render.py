from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd
from matplotlib.figure import Figure
from sklearn.tree import DecisionTreeClassifier, plot_tree

from pipelines.data.io import mkdir_p

TREE_TITLE = "Which way does a county vote?"


def render_tree(
    model: DecisionTreeClassifier,
    title: str = TREE_TITLE,
    path: Optional[Path] = None,
    dpi: int = 150,
) -> Figure:
    """Draw a fitted tree; optionally save it as an image. Returns the Figure."""
    n_leaves = max(int(model.get_n_leaves()), 1)
    width = min(max(8.0, 1.6 * n_leaves), 40.0)
    height = min(max(5.0, 1.8 * (model.get_depth() + 1)), 24.0)

    fig = Figure(figsize=(width, height))
    ax = fig.subplots()
    plot_tree(
        model,
        feature_names=list(model.feature_names_in_),
        class_names=[str(c) for c in model.classes_],
        filled=True,
        rounded=True,
        impurity=False,
        fontsize=8,
        ax=ax,
    )
    ax.set_title(title)

    if path is not None:
        path = Path(path)
        mkdir_p(path.parent)
        fig.savefig(path, dpi=dpi, bbox_inches="tight")
    return fig


def plot_sweep(results: pd.DataFrame, path: Optional[Path] = None) -> Figure:
    """Recall / specificity trade-off against cp (log x-axis, larger trees to the left)."""
    fig = Figure(figsize=(8, 5))
    ax = fig.subplots()
    ax.plot(results["cp"], results["recall"], marker="o", label="Recall (D)")
    ax.plot(results["cp"], results["specificity"], marker="s", label="Specificity (R)")
    ax.set_xscale("log")
    ax.set_xlabel("Complexity parameter (cp)")
    ax.set_ylabel("Rate on evaluation set")
    ax.set_title("Recall vs specificity across tree complexity")
    ax.legend()
    ax.grid(True, which="both", alpha=0.3)

    if path is not None:
        path = Path(path)
        mkdir_p(path.parent)
        fig.savefig(path, dpi=150, bbox_inches="tight")
    return fig
