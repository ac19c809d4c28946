from __future__ import annotations
import argparse
from pathlib import Path

from loguru import logger

from county_election_trees.config import FIGURES_DIR, MAIN_TABLE_CSV, REPORTS_DIR
from county_election_trees.params import SplitParams, SweepParams, TreeParams
from pipelines.data.io import read_main_table
from .render import plot_sweep, render_tree
from .report import format_report, write_sweep_outputs
from .split import split_train_eval
from .sweep import fit_and_evaluate, run_sweep


def main() -> None:
    p = argparse.ArgumentParser(description="Fit / sweep county majority-vote decision trees")
    sub = p.add_subparsers(dest="stage", required=True)

    fit = sub.add_parser("fit", help="One split, one fit, one report")
    fit.add_argument("--main", type=Path, default=MAIN_TABLE_CSV, help="Main table (csv/parquet)")
    fit.add_argument("--cp", type=float, default=TreeParams().cp)
    fit.add_argument("--train-fraction", type=float, default=SplitParams().train_fraction)
    fit.add_argument("--seed", type=int, default=None)
    fit.add_argument("--tree-png", type=Path, default=None, help="Write the tree diagram here")

    sweep = sub.add_parser("sweep", help="Recall/specificity across a sequence of cp values")
    sweep.add_argument("--main", type=Path, default=MAIN_TABLE_CSV)
    sweep.add_argument("--cps", type=float, nargs="+", default=list(SweepParams().cps))
    sweep.add_argument("--train-fraction", type=float, default=SweepParams().train_fraction)
    sweep.add_argument("--seed", type=int, default=SweepParams().seed)
    sweep.add_argument("--out", type=Path, default=REPORTS_DIR)

    args = p.parse_args()
    main_table = read_main_table(args.main)
    logger.info(f"Loaded main table {args.main}: {len(main_table)} rows")

    if args.stage == "fit":
        model, ev = fit_and_evaluate(
            main_table,
            cp=args.cp,
            split_params=SplitParams(train_fraction=args.train_fraction, seed=args.seed),
        )
        print(format_report(ev))
        if args.tree_png:
            render_tree(model, path=args.tree_png)
            print(f"\nSaved tree: {args.tree_png}")

    elif args.stage == "sweep":
        train, evaluation = split_train_eval(main_table, args.train_fraction, args.seed)
        results = run_sweep(train, evaluation, args.cps)
        paths = write_sweep_outputs(results, args.out)
        fig_path = args.out / FIGURES_DIR.name / "cp_sweep.png"
        plot_sweep(results, fig_path)
        print(results.to_string(index=False))
        print(f"\nSaved:\n  {paths['csv']}\n  {paths['json']}\n  {fig_path}")

    print(f"Done. stage={args.stage}")


if __name__ == "__main__":
    main()
