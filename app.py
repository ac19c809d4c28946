"""
How to predict an election with decision trees.

Interactive front end over the county main table built by etl_pipeline.py.
One slider sets the inverse complexity parameter; every change re-splits
the data, re-fits the tree from scratch and re-draws it.

Usage:
    streamlit run app.py
"""

import os

import streamlit as st

from county_election_trees.config import MAIN_TABLE_CSV
from county_election_trees.params import (
    SLIDER_DEFAULT,
    SLIDER_MAX,
    SLIDER_MIN,
    SplitParams,
    cp_from_slider,
)
from pipelines.data.io import read_main_table
from pipelines.model.render import render_tree
from pipelines.model.sweep import fit_and_evaluate

st.set_page_config(page_title="County vote decision trees", layout="wide")
st.title("How to predict an election with decision trees")

main_path = os.getenv("MAIN_TABLE_PATH", str(MAIN_TABLE_CSV))
main_df = read_main_table(main_path)

with st.sidebar:
    slider_value = st.slider(
        "Complexity parameter (higher = more complex)",
        min_value=SLIDER_MIN,
        max_value=SLIDER_MAX,
        value=SLIDER_DEFAULT,
    )

inv_cp = cp_from_slider(slider_value)
model, evaluation = fit_and_evaluate(main_df, cp=inv_cp, split_params=SplitParams(train_fraction=0.8))

fig = render_tree(model)
st.pyplot(fig)

st.caption(
    f"cp = {inv_cp:.4f} · {evaluation.node_count} nodes · "
    f"accuracy {evaluation.accuracy:.3f} on {evaluation.n_eval} held-out counties"
)
