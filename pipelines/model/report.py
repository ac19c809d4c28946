from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Dict

import pandas as pd

from pipelines.data.io import mkdir_p, write_csv
from pipelines.model.sweep import Evaluation


def format_float(value: float) -> str:
    return "n/a" if value is None or math.isnan(value) else f"{value:.3f}"


def format_report(ev: Evaluation) -> str:
    lines = [
        "Decision Tree Summary",
        "=" * 40,
        f"Complexity parameter (cp): {ev.cp:g}",
        f"Tree size: {ev.node_count} nodes, depth {ev.depth}",
        f"Training rows: {ev.n_train} (dropped incomplete: {ev.n_train_dropped})",
        f"Evaluation rows: {ev.n_eval} (dropped incomplete: {ev.n_eval_dropped})",
        "",
        "Performance Metrics:",
        f"  - Recall (true D predicted D): {format_float(ev.recall)}",
        f"  - Specificity (true R predicted R): {format_float(ev.specificity)}",
        f"  - Accuracy: {format_float(ev.accuracy)}",
    ]
    if ev.confusion is not None:
        lines += ["", "Confusion Matrix (rows = actual, columns = predicted):", ev.confusion.to_string()]
    return "\n".join(lines)


def write_sweep_outputs(results: pd.DataFrame, out_dir: Path) -> Dict[str, Path]:
    out_dir = Path(out_dir)
    mkdir_p(out_dir)
    csv_path = out_dir / "cp_sweep.csv"
    json_path = out_dir / "cp_sweep.json"

    write_csv(results, csv_path)
    records = [
        {k: (None if isinstance(v, float) and math.isnan(v) else v) for k, v in row.items()}
        for row in results.to_dict(orient="records")
    ]
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(records, f, indent=2, default=float)
    return {"csv": csv_path, "json": json_path}
